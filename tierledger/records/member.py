from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, NamedTuple, NewType

from .collection import CollectionId

MemberId = NewType("MemberId", str)


class MemberKey(NamedTuple):
    collection_id: CollectionId
    member_id: MemberId

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.collection_id}/{self.member_id}"


@dataclass(frozen=True)
class MemberRecord:
    """
    Per-member ledger fields. Frozen so mutations are staged as new values
    (`dataclasses.replace`) and only written back once every collaborator call
    in an operation has succeeded.
    """
    tokens_spent: int = 0
    tokens_deposited: int = 0
    minted_credit: int = 0
    active_until: int = 0

    def is_active(self, now: int) -> bool:
        return now < self.active_until

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "MemberRecord":
        return MemberRecord(
            tokens_spent=int(d.get("tokens_spent", 0)),
            tokens_deposited=int(d.get("tokens_deposited", 0)),
            minted_credit=int(d.get("minted_credit", 0)),
            active_until=int(d.get("active_until", 0)),
        )


EMPTY_RECORD = MemberRecord()

__all__ = ["MemberId", "MemberKey", "MemberRecord", "EMPTY_RECORD"]
