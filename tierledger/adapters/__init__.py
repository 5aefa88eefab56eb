from __future__ import annotations
"""
tierledger.adapters
-------------------

Collaborator interfaces and their in-process implementations:
  - assets     : AssetTransfer protocol, InMemoryAssetBook, NATIVE_ASSET
  - identity   : IdentityOracle protocol, InMemoryIdentityRegistry
  - state_db   : SQLite snapshot persistence for LedgerState
"""

from .assets import NATIVE_ASSET, AssetTransfer, InMemoryAssetBook
from .identity import IdentityOracle, InMemoryIdentityRegistry

__all__ = [
    "NATIVE_ASSET",
    "AssetTransfer",
    "InMemoryAssetBook",
    "IdentityOracle",
    "InMemoryIdentityRegistry",
]
