from __future__ import annotations

"""
Tier ledger — collection configs & member records
-------------------------------------------------

Keyed, in-memory storage for the two engine tables:
  • collections: CollectionId → CollectionConfig
  • members:     MemberKey(collection, member) → MemberRecord

Reads of an unknown member return the all-zero record; nothing is created
until a committed write. Records are frozen dataclasses, so a caller stages a
replacement value and hands it to `commit_member` once the surrounding
operation can no longer fail.

Persistence is delegated to higher layers (tierledger.adapters.state_db) which
snapshot `LedgerState.dump()` and restore via `LedgerState.load()`.

Every committed member write appends a JournalEntry carrying the post-state
fields, which makes the history of a record reconstructable without storing
credit redundantly.
"""

from dataclasses import dataclass, field
from threading import RLock
from typing import Dict, Iterable, Iterator, List, Literal, Optional, Tuple

from tierledger.records.collection import CollectionConfig, CollectionId
from tierledger.records.member import EMPTY_RECORD, MemberId, MemberKey, MemberRecord

OpName = Literal["deposit", "spend", "withdraw", "renew", "mint"]


class LedgerInvariantError(RuntimeError):
    """A staged write would break a record invariant."""


@dataclass(frozen=True)
class JournalEntry:
    seq: int
    key: MemberKey
    op: OpName
    amount: int
    at: int
    record_after: MemberRecord
    meta: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "seq": self.seq,
            "collection_id": str(self.key.collection_id),
            "member_id": str(self.key.member_id),
            "op": self.op,
            "amount": self.amount,
            "at": self.at,
            "record_after": self.record_after.to_dict(),
            "meta": dict(self.meta),
        }


def _check_transition(before: MemberRecord, after: MemberRecord) -> None:
    if min(after.tokens_spent, after.tokens_deposited, after.minted_credit, after.active_until) < 0:
        raise LedgerInvariantError(f"negative field in staged record {after}")
    if after.active_until < before.active_until:
        raise LedgerInvariantError(
            f"active_until may not move backwards ({before.active_until} -> {after.active_until})"
        )
    if after.tokens_spent < before.tokens_spent:
        raise LedgerInvariantError("tokens_spent is cumulative and may not decrease")


class LedgerState:
    """In-memory collection and member tables with an append-only journal."""

    def __init__(self) -> None:
        self._collections: Dict[str, CollectionConfig] = {}
        self._members: Dict[MemberKey, MemberRecord] = {}
        self._journal: List[JournalEntry] = []
        self._lock = RLock()

    # --- load/save ---

    def dump(self) -> Dict:
        with self._lock:
            return {
                "collections": {k: v.to_dict() for k, v in sorted(self._collections.items())},
                "members": [
                    {
                        "collection_id": str(k.collection_id),
                        "member_id": str(k.member_id),
                        **rec.to_dict(),
                    }
                    for k, rec in sorted(self._members.items())
                ],
            }

    @classmethod
    def load(cls, data: Dict) -> "LedgerState":
        st = cls()
        for k, v in data.get("collections", {}).items():
            st._collections[k] = CollectionConfig.from_dict(v)
        for row in data.get("members", []):
            key = MemberKey(CollectionId(row["collection_id"]), MemberId(row["member_id"]))
            st._members[key] = MemberRecord.from_dict(row)
        return st

    # --- collections ---

    def get_collection(self, collection_id: str) -> Optional[CollectionConfig]:
        return self._collections.get(collection_id)

    def put_collection(self, config: CollectionConfig) -> None:
        with self._lock:
            self._collections[str(config.collection_id)] = config

    def collections(self) -> Tuple[CollectionConfig, ...]:
        return tuple(v for _, v in sorted(self._collections.items()))

    # --- members ---

    def get_member(self, key: MemberKey) -> MemberRecord:
        return self._members.get(key, EMPTY_RECORD)

    def has_member(self, key: MemberKey) -> bool:
        return key in self._members

    def members_of(self, collection_id: str) -> Iterator[Tuple[MemberId, MemberRecord]]:
        for key, rec in sorted(self._members.items()):
            if key.collection_id == collection_id:
                yield key.member_id, rec

    def commit_member(
        self,
        key: MemberKey,
        record: MemberRecord,
        *,
        op: OpName,
        amount: int,
        at: int,
        meta: Optional[Dict[str, str]] = None,
    ) -> JournalEntry:
        with self._lock:
            _check_transition(self.get_member(key), record)
            self._members[key] = record
            je = JournalEntry(
                seq=len(self._journal) + 1,
                key=key,
                op=op,
                amount=int(amount),
                at=int(at),
                record_after=record,
                meta=dict(meta or {}),
            )
            self._journal.append(je)
            return je

    # --- introspection ---

    def journal(self, key: Optional[MemberKey] = None) -> Iterable[JournalEntry]:
        if key is None:
            return tuple(self._journal)
        return tuple(je for je in self._journal if je.key == key)

    def __len__(self) -> int:
        return len(self._members)


__all__ = ["OpName", "JournalEntry", "LedgerInvariantError", "LedgerState"]
