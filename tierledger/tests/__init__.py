from __future__ import annotations
"""
tierledger test suite package.

Shared helpers for the tests. Time is never read from the wall clock inside
the suite; engines are built with a `FixedClock` that tests advance explicitly.
"""

DAY: int = 24 * 60 * 60

# Arbitrary but stable starting point for every clock in the suite.
GENESIS_TIME: int = 1_700_000_000

# Fixture world (see conftest.py).
AUTHORITY = "factory"
CUSTODY = "tierledger:custody"
COLLECTION = "club"
COLLECTION_OWNER = "club-owner"
ASSET = "CLUB"
FEE_SINK = "treasury"
MEMBER = "m1"
HOLDER = "alice"
THRESHOLDS = (100, 500, 1000)


class FixedClock:
    """Callable clock returning a settable integer timestamp."""

    def __init__(self, now: int = GENESIS_TIME) -> None:
        self.now = int(now)

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        self.now += int(seconds)
        return self.now


__all__ = [
    "DAY",
    "GENESIS_TIME",
    "AUTHORITY",
    "CUSTODY",
    "COLLECTION",
    "COLLECTION_OWNER",
    "ASSET",
    "FEE_SINK",
    "MEMBER",
    "HOLDER",
    "THRESHOLDS",
    "FixedClock",
]
