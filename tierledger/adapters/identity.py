from __future__ import annotations

"""
tierledger.adapters.identity
============================

Identity/ownership oracle collaborator.

The engine asks two questions: who owns member X of collection C (None when
the member does not exist), and who owns collection C itself.
`InMemoryIdentityRegistry` answers both from plain dicts and doubles as the
fake used throughout the test suite.
"""

from typing import Dict, Iterator, Optional, Protocol, Tuple, runtime_checkable


@runtime_checkable
class IdentityOracle(Protocol):
    def owner_of(self, collection_id: str, member_id: str) -> Optional[str]:
        """Owner of a member, or None if the member does not exist."""

    def collection_owner(self, collection_id: str) -> Optional[str]:
        """Owner of the collection itself, or None if unknown."""


class InMemoryIdentityRegistry:
    def __init__(self) -> None:
        self._members: Dict[Tuple[str, str], str] = {}
        self._collections: Dict[str, str] = {}

    def set_collection_owner(self, collection_id: str, owner: str) -> None:
        self._collections[collection_id] = owner

    def set_member_owner(self, collection_id: str, member_id: str, owner: str) -> None:
        self._members[(collection_id, member_id)] = owner

    def burn(self, collection_id: str, member_id: str) -> None:
        self._members.pop((collection_id, member_id), None)

    def members(self, collection_id: str) -> Iterator[str]:
        for (cid, mid) in sorted(self._members):
            if cid == collection_id:
                yield mid

    # --- IdentityOracle ---

    def owner_of(self, collection_id: str, member_id: str) -> Optional[str]:
        return self._members.get((collection_id, member_id))

    def collection_owner(self, collection_id: str) -> Optional[str]:
        return self._collections.get(collection_id)


__all__ = ["IdentityOracle", "InMemoryIdentityRegistry"]
