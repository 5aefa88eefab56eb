from __future__ import annotations

"""
tierledger.adapters.assets
==========================

Asset-transfer collaborator used by the engine to move fungible units and
native value between identifiers.

The engine only depends on the `AssetTransfer` protocol. `InMemoryAssetBook`
is a deterministic, dict-backed implementation used by tests, the CLI and any
embedding that keeps balances in-process.

Conventions
-----------
- Amounts are integer base units (no floats).
- Native value (renewal payments) uses the reserved asset reference
  `NATIVE_ASSET` on the same protocol.
- `transfer` raises `TransferFailed` (or returns False) when the sender lacks
  balance or, when allowances are enforced, the operator lacks allowance.
"""

import logging
from threading import RLock
from typing import Dict, Optional, Protocol, Tuple, runtime_checkable

from tierledger.errors import TransferFailed

log = logging.getLogger(__name__)

NATIVE_ASSET = "native"


@runtime_checkable
class AssetTransfer(Protocol):
    """Minimal asset surface the engine needs."""

    def balance_of(self, holder: str, asset_ref: str) -> int:
        """Return the units of `asset_ref` held by `holder`."""

    def transfer(self, sender: str, to: str, asset_ref: str, amount: int) -> bool:
        """Move `amount` units; raise or return False if it cannot."""


class InMemoryAssetBook:
    """
    Dict-backed balances with optional operator allowances.

    When `operator` is set, any transfer whose sender is not the operator
    itself consumes allowance granted to the operator via `approve`, mirroring
    a token's transfer_from path.
    """

    def __init__(self, *, operator: Optional[str] = None) -> None:
        self._balances: Dict[Tuple[str, str], int] = {}
        self._allowances: Dict[Tuple[str, str, str], int] = {}
        self._operator = operator
        self._lock = RLock()

    # --- setup helpers ---

    def mint(self, holder: str, asset_ref: str, amount: int) -> int:
        if amount < 0:
            raise TransferFailed("mint amount must be non-negative")
        with self._lock:
            key = (holder, asset_ref)
            self._balances[key] = self._balances.get(key, 0) + int(amount)
            return self._balances[key]

    def approve(self, owner: str, spender: str, asset_ref: str, amount: int) -> None:
        with self._lock:
            self._allowances[(owner, spender, asset_ref)] = int(amount)

    def allowance(self, owner: str, spender: str, asset_ref: str) -> int:
        return self._allowances.get((owner, spender, asset_ref), 0)

    # --- AssetTransfer ---

    def balance_of(self, holder: str, asset_ref: str) -> int:
        return self._balances.get((holder, asset_ref), 0)

    def transfer(self, sender: str, to: str, asset_ref: str, amount: int) -> bool:
        amount = int(amount)
        if amount < 0:
            raise TransferFailed("transfer amount must be non-negative", details={"amount": amount})
        with self._lock:
            have = self.balance_of(sender, asset_ref)
            if have < amount:
                raise TransferFailed(
                    "insufficient balance",
                    details={"holder": sender, "asset_ref": asset_ref, "have": have, "need": amount},
                )
            gated = self._operator is not None and sender != self._operator
            if gated:
                allowed = self.allowance(sender, self._operator, asset_ref)
                if allowed < amount:
                    raise TransferFailed(
                        "allowance too low",
                        details={"owner": sender, "spender": self._operator, "allowed": allowed, "need": amount},
                    )
                self._allowances[(sender, self._operator, asset_ref)] = allowed - amount
            self._balances[(sender, asset_ref)] = have - amount
            self._balances[(to, asset_ref)] = self.balance_of(to, asset_ref) + amount
        log.debug("asset transfer %s -> %s: %d %s", sender, to, amount, asset_ref)
        return True


__all__ = ["NATIVE_ASSET", "AssetTransfer", "InMemoryAssetBook"]
