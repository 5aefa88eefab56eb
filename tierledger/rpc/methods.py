from __future__ import annotations

"""
tierledger.rpc.methods
----------------------

JSON-RPC style read methods over a `TierEngine`.

Exposed methods (bind via `make_methods`):
  • tier.getCredit
  • tier.getTier
  • tier.getThresholds
  • tier.getMember
  • tier.listMembers
  • tier.getCollection

Design:
  - Transport-agnostic: `make_methods` returns a dict of callables that a
    JSON-RPC dispatcher can register. `build_rest_router` exposes the same
    callables as FastAPI GET endpoints.
  - Nothing here mutates the ledger; writes go through the engine directly,
    where callers are authenticated by the host.
"""

from typing import Any, Callable, Dict, Optional, Protocol, Sequence, Tuple

from tierledger.errors import NotRegisteredCollection, TierError
from tierledger.records.collection import CollectionConfig


class EngineView(Protocol):
    """The read side of TierEngine the RPC layer depends on."""

    def credit_of(self, collection_id: str, member_id: str) -> int: ...
    def tier_of(self, collection_id: str, member_id: str) -> Tuple[int, int]: ...
    def thresholds_of(self, collection_id: str) -> Tuple[int, ...]: ...
    def collection(self, collection_id: str) -> Optional[CollectionConfig]: ...
    def member_view(self, collection_id: str, member_id: str) -> Any: ...
    def members_of(self, collection_id: str) -> Sequence[Any]: ...


# ---- Helpers ---------------------------------------------------------------

def _require(value: Optional[str], name: str) -> str:
    if not value:
        raise TierError(f"{name} is required", details={"param": name})
    return value


def _coerce_int(value: Any, name: str) -> int:
    try:
        iv = int(value)
        if iv < 0:
            raise ValueError
        return iv
    except (TypeError, ValueError) as e:
        raise TierError(f"invalid {name}: must be a non-negative integer", details={"param": name}) from e


def _collection_dict(cfg: CollectionConfig) -> Dict[str, Any]:
    return {
        "collectionId": str(cfg.collection_id),
        "assetRef": cfg.asset_ref,
        "feeSink": str(cfg.fee_sink),
        "renewalPrice": cfg.renewal.price,
        "renewalLength": cfg.renewal.length,
        "bonusPercent": cfg.bonus_percent,
        "tierThresholds": list(cfg.tier_thresholds),
    }


# ---- JSON-RPC method factory ----------------------------------------------

def make_methods(engine: EngineView) -> Dict[str, Callable[..., Any]]:
    """
    Build a mapping of JSON-RPC method name -> callable.
    Each callable returns plain JSON-serializable structures.
    """

    def tier_get_credit(*, collectionId: str, memberId: str) -> Dict[str, Any]:
        cid = _require(collectionId, "collectionId")
        mid = _require(memberId, "memberId")
        return {"collectionId": cid, "memberId": mid, "credit": engine.credit_of(cid, mid)}

    def tier_get_tier(*, collectionId: str, memberId: str) -> Dict[str, Any]:
        cid = _require(collectionId, "collectionId")
        mid = _require(memberId, "memberId")
        tier, needed = engine.tier_of(cid, mid)
        return {"collectionId": cid, "memberId": mid, "tier": tier, "creditNeededForNext": needed}

    def tier_get_thresholds(*, collectionId: str) -> Dict[str, Any]:
        cid = _require(collectionId, "collectionId")
        return {"collectionId": cid, "tierThresholds": list(engine.thresholds_of(cid))}

    def tier_get_member(*, collectionId: str, memberId: str) -> Dict[str, Any]:
        cid = _require(collectionId, "collectionId")
        mid = _require(memberId, "memberId")
        return engine.member_view(cid, mid).to_dict()

    def tier_list_members(
        *,
        collectionId: str,
        offset: Optional[int] = 0,
        limit: Optional[int] = 100,
    ) -> Dict[str, Any]:
        cid = _require(collectionId, "collectionId")
        off = _coerce_int(offset, "offset")
        lim = _coerce_int(limit, "limit")
        views = list(engine.members_of(cid))
        items = [v.to_dict() for v in views[off:off + lim]]
        return {"items": items, "nextOffset": off + len(items), "total": len(views)}

    def tier_get_collection(*, collectionId: str) -> Dict[str, Any]:
        cid = _require(collectionId, "collectionId")
        cfg = engine.collection(cid)
        if cfg is None:
            raise NotRegisteredCollection(collection_id=cid)
        return _collection_dict(cfg)

    # Map JSON-RPC names → callables
    return {
        "tier.getCredit": tier_get_credit,
        "tier.getTier": tier_get_tier,
        "tier.getThresholds": tier_get_thresholds,
        "tier.getMember": tier_get_member,
        "tier.listMembers": tier_list_members,
        "tier.getCollection": tier_get_collection,
    }


# ---- REST adapter (FastAPI) ------------------------------------------------

def build_rest_router(engine: EngineView):
    """
    Return a FastAPI APIRouter exposing the read methods as GET endpoints.
    Mount path suggestion: RPC_PREFIX (import from tierledger.rpc).
    """
    try:
        from fastapi import APIRouter, HTTPException, Query
    except Exception as exc:  # pragma: no cover
        raise RuntimeError("FastAPI is required to build the REST router") from exc

    methods = make_methods(engine)
    router = APIRouter()

    def _call(name: str, status_on_error: int, **params: Any) -> Dict[str, Any]:
        try:
            return methods[name](**params)
        except NotRegisteredCollection as e:
            raise HTTPException(status_code=404, detail=e.to_dict()) from e
        except TierError as e:
            raise HTTPException(status_code=status_on_error, detail=e.to_dict()) from e

    @router.get("/collections/{collection_id}")
    def http_get_collection(collection_id: str):
        return _call("tier.getCollection", 404, collectionId=collection_id)

    @router.get("/collections/{collection_id}/thresholds")
    def http_get_thresholds(collection_id: str):
        return _call("tier.getThresholds", 400, collectionId=collection_id)

    @router.get("/collections/{collection_id}/members")
    def http_list_members(
        collection_id: str,
        offset: int = Query(0, ge=0),
        limit: int = Query(100, ge=1, le=500),
    ):
        return _call("tier.listMembers", 400, collectionId=collection_id, offset=offset, limit=limit)

    @router.get("/collections/{collection_id}/members/{member_id}")
    def http_get_member(collection_id: str, member_id: str):
        return _call("tier.getMember", 400, collectionId=collection_id, memberId=member_id)

    @router.get("/collections/{collection_id}/members/{member_id}/credit")
    def http_get_credit(collection_id: str, member_id: str):
        return _call("tier.getCredit", 400, collectionId=collection_id, memberId=member_id)

    @router.get("/collections/{collection_id}/members/{member_id}/tier")
    def http_get_tier(collection_id: str, member_id: str):
        return _call("tier.getTier", 400, collectionId=collection_id, memberId=member_id)

    return router


__all__ = [
    "EngineView",
    "make_methods",
    "build_rest_router",
]
