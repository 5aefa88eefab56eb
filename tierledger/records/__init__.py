from __future__ import annotations
"""
tierledger.records
==================

Plain dataclasses shared by the ledger, engine, persistence and RPC layers:

- CollectionConfig / RenewalTerms: per-collection configuration
- MemberRecord / MemberKey: per-(collection, member) ledger fields
- CollectionId, MemberId, Address: NewType aliases over `str`
"""

from .collection import Address, CollectionConfig, CollectionId, RenewalTerms
from .member import EMPTY_RECORD, MemberId, MemberKey, MemberRecord

__all__ = [
    "Address",
    "CollectionConfig",
    "CollectionId",
    "RenewalTerms",
    "EMPTY_RECORD",
    "MemberId",
    "MemberKey",
    "MemberRecord",
]
