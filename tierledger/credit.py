from __future__ import annotations

"""
tierledger.credit — credit formula and tier scan
-------------------------------------------------

Pure integer functions over explicit inputs; no state, no clock, no I/O.

Credit
~~~~~~
    credit = deposited + minted + spent + floor(spent * bonus_percent / 100)

Tier scan
~~~~~~~~~
Thresholds are walked in order. Each threshold the credit meets or exceeds
(`>=`) adds one tier. The scan stops at the first unmet threshold and reports
how much credit is still missing for it. When every threshold is met the tier
equals the number of thresholds and nothing is left to reach.

    thresholds = (100, 500, 1000)
    scan_tier(50,   thresholds) -> (0, 50)
    scan_tier(160,  thresholds) -> (1, 340)
    scan_tier(1000, thresholds) -> (3, 0)
"""

from typing import Sequence, Tuple

from tierledger.records.member import MemberRecord

PERCENT_DENOMINATOR = 100


def spend_bonus(spent: int, bonus_percent: int) -> int:
    """Bonus credit earned on `spent` units (floored)."""
    return (int(spent) * int(bonus_percent)) // PERCENT_DENOMINATOR


def compute_credit(record: MemberRecord, bonus_percent: int) -> int:
    return (
        record.tokens_deposited
        + record.minted_credit
        + record.tokens_spent
        + spend_bonus(record.tokens_spent, bonus_percent)
    )


def scan_tier(credit: int, thresholds: Sequence[int]) -> Tuple[int, int]:
    """Return (tier, credit_needed_for_next) for an active member."""
    tier = 0
    for threshold in thresholds:
        if credit >= threshold:
            tier += 1
            continue
        return tier, threshold - credit
    return tier, 0


def threshold_for_tier(thresholds: Sequence[int], tier: int) -> int:
    """Credit value of 1-indexed `tier`. Raises IndexError outside 1..len(thresholds)."""
    if tier < 1 or tier > len(thresholds):
        raise IndexError(tier)
    return thresholds[tier - 1]


def is_non_decreasing(values: Sequence[int]) -> bool:
    return all(a <= b for a, b in zip(values, values[1:]))


__all__ = [
    "PERCENT_DENOMINATOR",
    "spend_bonus",
    "compute_credit",
    "scan_tier",
    "threshold_for_tier",
    "is_non_decreasing",
]
