from __future__ import annotations
"""
tierledger.ledger
=================

Storage-agnostic ledger tables (collections, member records, journal).
Persistence lives in tierledger.adapters.state_db.
"""

from .state import JournalEntry, LedgerInvariantError, LedgerState

__all__ = ["JournalEntry", "LedgerInvariantError", "LedgerState"]
