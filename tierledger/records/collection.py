from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, NewType, Tuple

CollectionId = NewType("CollectionId", str)
Address = NewType("Address", str)


@dataclass(frozen=True)
class RenewalTerms:
    """Price (native value units) and length (seconds) of one renewal period."""
    price: int
    length: int

    def cost(self, periods: int) -> int:
        return int(periods) * self.price

    def extension(self, periods: int) -> int:
        return int(periods) * self.length


@dataclass(frozen=True)
class CollectionConfig:
    collection_id: CollectionId
    asset_ref: str
    fee_sink: Address
    renewal: RenewalTerms
    bonus_percent: int = 0
    tier_thresholds: Tuple[int, ...] = field(default_factory=tuple)

    @property
    def tier_count(self) -> int:
        return len(self.tier_thresholds)

    def with_renewal(self, price: int, length: int) -> "CollectionConfig":
        return replace(self, renewal=RenewalTerms(price=int(price), length=int(length)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collection_id": str(self.collection_id),
            "asset_ref": self.asset_ref,
            "fee_sink": str(self.fee_sink),
            "renewal_price": self.renewal.price,
            "renewal_length": self.renewal.length,
            "bonus_percent": self.bonus_percent,
            "tier_thresholds": list(self.tier_thresholds),
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "CollectionConfig":
        return CollectionConfig(
            collection_id=CollectionId(d["collection_id"]),
            asset_ref=str(d["asset_ref"]),
            fee_sink=Address(d["fee_sink"]),
            renewal=RenewalTerms(price=int(d["renewal_price"]), length=int(d["renewal_length"])),
            bonus_percent=int(d.get("bonus_percent", 0)),
            tier_thresholds=tuple(int(t) for t in d.get("tier_thresholds", ())),
        )


__all__ = ["CollectionId", "Address", "RenewalTerms", "CollectionConfig"]
