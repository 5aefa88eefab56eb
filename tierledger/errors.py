from __future__ import annotations
# tierledger/errors.py
"""
Error kinds raised by the tier accounting engine. Every precondition failure
maps to exactly one class so callers can tell rejections apart without parsing
messages. All of them are synchronous, whole-operation rejections: when one is
raised no member or collection state has been written.

Exports:
- TierError (base)
- NotAuthorized, NotOwner, NotRegisteredCollection, DoesNotExist
- InsufficientBalance, InsufficientDeposit, InsufficientPayment
- IndexOutOfRange, InvalidAmount, InvalidConfig, TransferFailed
"""


import json
from typing import Any, Dict, Mapping, Optional


class TierError(Exception):
    """Base class for tierledger domain errors."""

    code: str = "TIER_ERROR"

    def __init__(self, message: str = "", *, details: Optional[Mapping[str, Any]] = None) -> None:
        self.message = message or self.__class__.__name__
        self.details = dict(details or {})
        super().__init__(self.__str__())

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.details:
            packed = json.dumps(self.details, sort_keys=True, separators=(",", ":"), default=str)
            return f"{self.code}: {self.message} [{packed}]"
        return f"{self.code}: {self.message}"


class NotAuthorized(TierError):
    """A caller other than the bootstrap authority tried to register a collection."""
    code = "TIER_NOT_AUTHORIZED"

    def __init__(self, *, caller: str, message: str = "caller is not the bootstrap authority") -> None:
        super().__init__(message, details={"caller": caller})


class NotOwner(TierError):
    """Owner-gated action (renewal terms, withdrawal) attempted by a non-owner."""
    code = "TIER_NOT_OWNER"

    def __init__(
        self,
        *,
        caller: str,
        collection_id: str,
        member_id: Optional[str] = None,
        owner: Optional[str] = None,
        message: str = "caller is not the owner",
    ) -> None:
        d: Dict[str, Any] = {"caller": caller, "collection_id": collection_id}
        if member_id is not None:
            d["member_id"] = member_id
        if owner is not None:
            d["owner"] = owner
        super().__init__(message, details=d)


class NotRegisteredCollection(TierError):
    """The referenced (or calling) collection has no registered config."""
    code = "TIER_NOT_REGISTERED_COLLECTION"

    def __init__(self, *, collection_id: str, message: str = "collection is not registered") -> None:
        super().__init__(message, details={"collection_id": collection_id})


class DoesNotExist(TierError):
    """The identity oracle reports no owner for the member."""
    code = "TIER_DOES_NOT_EXIST"

    def __init__(self, *, collection_id: str, member_id: str, message: str = "member does not exist") -> None:
        super().__init__(message, details={"collection_id": collection_id, "member_id": member_id})


class InsufficientBalance(TierError):
    """Caller holds fewer asset units than the amount being credited."""
    code = "TIER_INSUFFICIENT_BALANCE"

    def __init__(self, *, required: int, actual: int, holder: str, message: str = "insufficient asset balance") -> None:
        super().__init__(
            message,
            details={"required": int(required), "actual": int(actual), "holder": holder},
        )


class InsufficientDeposit(TierError):
    """Withdrawal larger than the member's deposited balance."""
    code = "TIER_INSUFFICIENT_DEPOSIT"

    def __init__(self, *, requested: int, deposited: int, message: str = "insufficient deposit") -> None:
        super().__init__(message, details={"requested": int(requested), "deposited": int(deposited)})


class InsufficientPayment(TierError):
    """Attached value does not cover periods * renewal price."""
    code = "TIER_INSUFFICIENT_PAYMENT"

    def __init__(self, *, required: int, attached: int, message: str = "insufficient payment") -> None:
        super().__init__(message, details={"required": int(required), "attached": int(attached)})


class IndexOutOfRange(TierError):
    """Requested tier index is outside the configured thresholds."""
    code = "TIER_INDEX_OUT_OF_RANGE"

    def __init__(self, *, index: int, size: int, message: str = "tier index out of range") -> None:
        super().__init__(message, details={"index": int(index), "size": int(size)})


class InvalidAmount(TierError):
    """Negative amounts or non-positive renewal periods."""
    code = "TIER_INVALID_AMOUNT"


class InvalidConfig(TierError):
    """Malformed collection configuration (thresholds, percentages, terms)."""
    code = "TIER_INVALID_CONFIG"


class TransferFailed(TierError):
    """The asset-transfer collaborator refused or failed a movement."""
    code = "TIER_TRANSFER_FAILED"


__all__ = [
    "TierError",
    "NotAuthorized",
    "NotOwner",
    "NotRegisteredCollection",
    "DoesNotExist",
    "InsufficientBalance",
    "InsufficientDeposit",
    "InsufficientPayment",
    "IndexOutOfRange",
    "InvalidAmount",
    "InvalidConfig",
    "TransferFailed",
]
