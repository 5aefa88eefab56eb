from __future__ import annotations

"""
Tier Accounting Engine
----------------------

Composes collection configuration, member ledger mutations and derived views
over one `LedgerState`. Asset movement and ownership questions go to injected
collaborators (`AssetTransfer`, `IdentityOracle`), so the engine runs the same
against in-memory fakes and real backends.

Operation discipline
~~~~~~~~~~~~~~~~~~~~
Every public entry point runs under one coarse `RLock`, so operations never
interleave. Mutations follow the same three steps:

1) validate preconditions and stage a replacement `MemberRecord`
2) perform every collaborator call (transfers)
3) commit the staged record, journal entry and event

A failure in (1) or (2) raises a `TierError` subclass and leaves the ledger
untouched.

Typical flow
~~~~~~~~~~~~
    engine = TierEngine(config=cfg, assets=book, identity=registry)
    engine.register_collection(cfg.bootstrap_authority, "club", asset_ref="CLUB",
                               fee_sink="treasury", renewal=RenewalTerms(10, 30 * DAY),
                               bonus_percent=10, tier_thresholds=(100, 500, 1000))
    engine.on_mint("club", "member-7", tiers_up=0)          # called by the collection
    engine.receive_credit("alice", "club", "member-7", 100, spend=True)
    engine.tier_of("club", "member-7")                       # -> (1, 390)
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from threading import RLock
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from tierledger import metrics
from tierledger.adapters.assets import AssetTransfer
from tierledger.adapters.identity import IdentityOracle
from tierledger.config import EngineConfig
from tierledger.credit import (compute_credit, is_non_decreasing, scan_tier,
                               threshold_for_tier)
from tierledger.errors import (DoesNotExist, IndexOutOfRange, InsufficientBalance,
                               InsufficientDeposit, InsufficientPayment,
                               InvalidAmount, InvalidConfig, NotAuthorized,
                               NotOwner, NotRegisteredCollection, TierError,
                               TransferFailed)
from tierledger.ledger.state import JournalEntry, LedgerState
from tierledger.records.collection import (Address, CollectionConfig,
                                           CollectionId, RenewalTerms)
from tierledger.records.member import MemberId, MemberKey, MemberRecord

log = logging.getLogger(__name__)

Clock = Callable[[], int]


def _system_clock() -> int:
    return int(time.time())


@dataclass(frozen=True)
class EngineEvent:
    name: str
    at: int
    args: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "at": self.at, "args": dict(self.args)}


@dataclass(frozen=True)
class MemberView:
    collection_id: str
    member_id: str
    record: MemberRecord
    credit: int
    tier: int
    credit_needed_for_next: int
    active: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collectionId": self.collection_id,
            "memberId": self.member_id,
            "tokensSpent": self.record.tokens_spent,
            "tokensDeposited": self.record.tokens_deposited,
            "mintedCredit": self.record.minted_credit,
            "activeUntil": self.record.active_until,
            "credit": self.credit,
            "tier": self.tier,
            "creditNeededForNext": self.credit_needed_for_next,
            "active": self.active,
        }


def _ensure_int(value: Any, name: str) -> int:
    # bool is an int subclass; floats would truncate silently
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmount(f"{name} must be an integer, got {value!r}", details={name: repr(value)})
    return int(value)


def _ensure_nonneg(value: Any, name: str) -> int:
    v = _ensure_int(value, name)
    if v < 0:
        raise InvalidAmount(f"{name} must be non-negative, got {v}", details={name: v})
    return v


class TierEngine:
    """
    Membership credit & tier accounting over injected collaborators.

    Parameters
    ----------
    config : EngineConfig
        Supplies the bootstrap authority, custody identifier and native asset ref.
    assets : AssetTransfer
        Moves collection assets and native value.
    identity : IdentityOracle
        Resolves member and collection owners.
    state : LedgerState, optional
        Backing tables; a fresh in-memory state is created when omitted.
    clock : callable, optional
        Returns the current time in seconds; defaults to wall-clock time.
    """

    def __init__(
        self,
        *,
        config: EngineConfig,
        assets: AssetTransfer,
        identity: IdentityOracle,
        state: Optional[LedgerState] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        config.validate()
        self.config = config
        self.assets = assets
        self.identity = identity
        self.state = state if state is not None else LedgerState()
        self._clock = clock or _system_clock
        self._events: List[EngineEvent] = []
        self._lock = RLock()

    # --- internal helpers ---

    def now(self) -> int:
        return int(self._clock())

    @contextmanager
    def _operation(self, op: str) -> Iterator[None]:
        with self._lock, metrics.time_operation(op):
            try:
                yield
            except TierError as e:
                metrics.record_result(op, e.code)
                log.warning("%s rejected: %s", op, e)
                raise
            metrics.record_result(op, "ok")

    def _emit(self, name: str, **args: Any) -> EngineEvent:
        ev = EngineEvent(name=name, at=self.now(), args=args)
        self._events.append(ev)
        return ev

    def _require_collection(self, collection_id: str) -> CollectionConfig:
        cfg = self.state.get_collection(collection_id)
        if cfg is None:
            raise NotRegisteredCollection(collection_id=collection_id)
        return cfg

    def _exists(self, collection_id: str, member_id: str) -> bool:
        return self.identity.owner_of(collection_id, member_id) is not None

    def _require_exists(self, collection_id: str, member_id: str) -> None:
        if not self._exists(collection_id, member_id):
            raise DoesNotExist(collection_id=collection_id, member_id=member_id)

    def _move(self, sender: str, to: str, asset_ref: str, amount: int) -> None:
        if amount == 0:
            return
        try:
            ok = self.assets.transfer(sender, to, asset_ref, amount)
        except TierError:
            raise
        except Exception as exc:
            raise TransferFailed(
                f"asset transfer raised {type(exc).__name__}",
                details={"from": sender, "to": to, "asset_ref": asset_ref, "amount": amount},
            ) from exc
        if ok is False:
            raise TransferFailed(
                "asset transfer refused",
                details={"from": sender, "to": to, "asset_ref": asset_ref, "amount": amount},
            )

    @staticmethod
    def _validate_config(cfg: CollectionConfig) -> None:
        if not cfg.asset_ref:
            raise InvalidConfig("asset_ref must be set")
        if not cfg.fee_sink:
            raise InvalidConfig("fee_sink must be set")
        if cfg.bonus_percent < 0:
            raise InvalidConfig("bonus_percent must be non-negative", details={"bonus_percent": cfg.bonus_percent})
        if cfg.renewal.price < 0 or cfg.renewal.length < 0:
            raise InvalidConfig(
                "renewal terms must be non-negative",
                details={"price": cfg.renewal.price, "length": cfg.renewal.length},
            )
        if any(t < 0 for t in cfg.tier_thresholds):
            raise InvalidConfig("tier thresholds must be non-negative")
        if not is_non_decreasing(cfg.tier_thresholds):
            raise InvalidConfig(
                "tier thresholds must be ascending",
                details={"tier_thresholds": list(cfg.tier_thresholds)},
            )

    # --- collection registration ---

    def register_collection(
        self,
        caller: str,
        collection_id: str,
        *,
        asset_ref: str,
        fee_sink: str,
        renewal: Optional[Union[RenewalTerms, Tuple[int, int]]] = None,
        bonus_percent: int = 0,
        tier_thresholds: Sequence[int] = (),
    ) -> CollectionConfig:
        """
        Register (or re-register) a collection. Only the bootstrap authority may
        call this; a repeat call replaces the whole config. Without explicit
        `renewal` terms the engine config defaults apply.
        """
        with self._operation("register"):
            if caller != self.config.bootstrap_authority:
                raise NotAuthorized(caller=caller)
            if renewal is None:
                terms = RenewalTerms(price=self.config.renewal.price, length=self.config.renewal.length)
            elif isinstance(renewal, RenewalTerms):
                terms = renewal
            else:
                terms = RenewalTerms(*map(int, renewal))
            cfg = CollectionConfig(
                collection_id=CollectionId(collection_id),
                asset_ref=asset_ref,
                fee_sink=Address(fee_sink),
                renewal=terms,
                bonus_percent=int(bonus_percent),
                tier_thresholds=tuple(int(t) for t in tier_thresholds),
            )
            self._validate_config(cfg)
            replaced = self.state.get_collection(collection_id) is not None
            self.state.put_collection(cfg)
            self._emit("CollectionRegistered", replaced=replaced, **cfg.to_dict())
            log.info("collection %s registered (replaced=%s)", collection_id, replaced)
            return cfg

    def set_renewal_terms(self, caller: str, collection_id: str, price: int, length: int) -> CollectionConfig:
        """Collection-owner-only update of renewal price and length."""
        with self._operation("set_terms"):
            cfg = self._require_collection(collection_id)
            owner = self.identity.collection_owner(collection_id)
            if owner is None or owner != caller:
                raise NotOwner(caller=caller, collection_id=collection_id, owner=owner)
            updated = cfg.with_renewal(price, length)
            self._validate_config(updated)
            self.state.put_collection(updated)
            self._emit("RenewalTermsUpdated", collection_id=collection_id, price=int(price), length=int(length))
            log.info("collection %s renewal terms -> price=%d length=%d", collection_id, price, length)
            return updated

    # --- ledger mutations ---

    def receive_credit(
        self,
        caller: str,
        collection_id: str,
        member_id: str,
        amount: int,
        *,
        spend: bool = False,
    ) -> int:
        """
        Credit a member with `amount` units of the collection asset paid by
        `caller`. Spent units go to the fee sink and earn the bonus; deposited
        units stay in engine custody and remain withdrawable. Returns credit.
        """
        with self._operation("receive_credit"):
            cfg = self._require_collection(collection_id)
            amount = _ensure_nonneg(amount, "amount")
            self._require_exists(collection_id, member_id)
            have = int(self.assets.balance_of(caller, cfg.asset_ref))
            if have < amount:
                raise InsufficientBalance(required=amount, actual=have, holder=caller)

            key = MemberKey(CollectionId(collection_id), MemberId(member_id))
            before = self.state.get_member(key)
            if spend:
                staged = replace(before, tokens_spent=before.tokens_spent + amount)
                self._move(caller, cfg.fee_sink, cfg.asset_ref, amount)
            else:
                staged = replace(before, tokens_deposited=before.tokens_deposited + amount)
                self._move(caller, self.config.custody_address, cfg.asset_ref, amount)

            path = "spend" if spend else "deposit"
            self.state.commit_member(key, staged, op=path, amount=amount, at=self.now(), meta={"from": caller})
            credit = compute_credit(staged, cfg.bonus_percent)
            self._emit(
                "CreditReceived",
                collection_id=collection_id,
                member_id=member_id,
                sender=caller,
                amount=amount,
                spend=bool(spend),
                credit=credit,
            )
            metrics.record_credit(path, amount)
            log.info("%s %d for %s/%s by %s (credit=%d)", path, amount, collection_id, member_id, caller, credit)
            return credit

    def withdraw(self, caller: str, collection_id: str, member_id: str, amount: int) -> int:
        """Owner-only withdrawal of deposited units back to `caller`. Returns credit."""
        with self._operation("withdraw"):
            cfg = self._require_collection(collection_id)
            amount = _ensure_nonneg(amount, "amount")
            owner = self.identity.owner_of(collection_id, member_id)
            if owner is None or owner != caller:
                raise NotOwner(caller=caller, collection_id=collection_id, member_id=member_id, owner=owner)

            key = MemberKey(CollectionId(collection_id), MemberId(member_id))
            before = self.state.get_member(key)
            if amount > before.tokens_deposited:
                raise InsufficientDeposit(requested=amount, deposited=before.tokens_deposited)
            staged = replace(before, tokens_deposited=before.tokens_deposited - amount)
            self._move(self.config.custody_address, caller, cfg.asset_ref, amount)

            self.state.commit_member(key, staged, op="withdraw", amount=amount, at=self.now(), meta={"to": caller})
            credit = compute_credit(staged, cfg.bonus_percent)
            self._emit(
                "DepositWithdrawn",
                collection_id=collection_id,
                member_id=member_id,
                to=caller,
                amount=amount,
                credit=credit,
            )
            metrics.record_credit("withdraw", amount)
            log.info("withdraw %d from %s/%s to %s (credit=%d)", amount, collection_id, member_id, caller, credit)
            return credit

    def renew(self, caller: str, collection_id: str, member_id: str, periods: int, *, value: int) -> int:
        """
        Extend a member's active window by `periods` renewal lengths, counted
        from the current `active_until` (not from now). The whole attached
        `value` is forwarded to the collection's fee sink. Returns the new
        `active_until`.
        """
        with self._operation("renew"):
            cfg = self._require_collection(collection_id)
            periods = _ensure_int(periods, "periods")
            if periods <= 0:
                raise InvalidAmount("periods must be positive", details={"periods": periods})
            value = _ensure_nonneg(value, "value")
            required = cfg.renewal.cost(periods)
            if required > value:
                raise InsufficientPayment(required=required, attached=value)
            self._require_exists(collection_id, member_id)

            key = MemberKey(CollectionId(collection_id), MemberId(member_id))
            before = self.state.get_member(key)
            staged = replace(before, active_until=before.active_until + cfg.renewal.extension(periods))
            self._move(caller, cfg.fee_sink, self.config.native_asset, value)

            self.state.commit_member(
                key, staged, op="renew", amount=value, at=self.now(), meta={"from": caller, "periods": str(periods)}
            )
            self._emit(
                "MembershipRenewed",
                collection_id=collection_id,
                member_id=member_id,
                payer=caller,
                periods=periods,
                value=value,
                active_until=staged.active_until,
            )
            metrics.record_renewal(periods, value)
            log.info("renewed %s/%s by %d period(s) until %d", collection_id, member_id, periods, staged.active_until)
            return staged.active_until

    def on_mint(self, caller: str, member_id: str, tiers_up: int = 0) -> Tuple[int, int]:
        """
        Called by a registered collection (the caller *is* the collection id)
        when it mints a member slot. Opens the active window for one renewal
        length and, for `tiers_up > 0`, grants the credit of that tier's
        threshold. Returns (active_until, credit).
        """
        with self._operation("mint"):
            cfg = self.state.get_collection(caller)
            if cfg is None:
                raise NotRegisteredCollection(collection_id=caller)
            tiers_up = _ensure_int(tiers_up, "tiers_up")
            if tiers_up < 0:
                raise IndexOutOfRange(index=tiers_up, size=cfg.tier_count)
            granted = 0
            if tiers_up > 0:
                try:
                    granted = threshold_for_tier(cfg.tier_thresholds, tiers_up)
                except IndexError:
                    raise IndexOutOfRange(index=tiers_up, size=cfg.tier_count) from None

            key = MemberKey(CollectionId(caller), MemberId(member_id))
            before = self.state.get_member(key)
            now = self.now()
            minted = granted if tiers_up > 0 else before.minted_credit
            staged = replace(
                before,
                minted_credit=minted,
                active_until=max(before.active_until, now + cfg.renewal.length),
            )

            self.state.commit_member(key, staged, op="mint", amount=granted, at=now, meta={"tiers_up": str(tiers_up)})
            credit = compute_credit(staged, cfg.bonus_percent)
            self._emit(
                "MemberMinted",
                collection_id=caller,
                member_id=member_id,
                tiers_up=tiers_up,
                granted=granted,
                minted_credit=minted,
                active_until=staged.active_until,
            )
            metrics.record_credit("mint", granted)
            log.info("minted %s/%s tiers_up=%d until %d", caller, member_id, tiers_up, staged.active_until)
            return staged.active_until, credit

    # --- derived views ---

    def credit_of(self, collection_id: str, member_id: str) -> int:
        cfg = self.state.get_collection(collection_id)
        bonus = cfg.bonus_percent if cfg is not None else 0
        rec = self.state.get_member(MemberKey(CollectionId(collection_id), MemberId(member_id)))
        return compute_credit(rec, bonus)

    def tier_of(self, collection_id: str, member_id: str) -> Tuple[int, int]:
        """
        (tier, credit_needed_for_next). Inactive members (active_until <= now)
        and members of unregistered collections report (0, 0).
        """
        cfg = self.state.get_collection(collection_id)
        rec = self.state.get_member(MemberKey(CollectionId(collection_id), MemberId(member_id)))
        active = cfg is not None and rec.is_active(self.now())
        metrics.record_tier_lookup(active)
        if not active:
            return 0, 0
        return scan_tier(compute_credit(rec, cfg.bonus_percent), cfg.tier_thresholds)

    def thresholds_of(self, collection_id: str) -> Tuple[int, ...]:
        cfg = self.state.get_collection(collection_id)
        return cfg.tier_thresholds if cfg is not None else ()

    def collection(self, collection_id: str) -> Optional[CollectionConfig]:
        return self.state.get_collection(collection_id)

    def collections(self) -> Tuple[CollectionConfig, ...]:
        return self.state.collections()

    def member_view(self, collection_id: str, member_id: str) -> MemberView:
        rec = self.state.get_member(MemberKey(CollectionId(collection_id), MemberId(member_id)))
        tier, needed = self.tier_of(collection_id, member_id)
        return MemberView(
            collection_id=collection_id,
            member_id=member_id,
            record=rec,
            credit=self.credit_of(collection_id, member_id),
            tier=tier,
            credit_needed_for_next=needed,
            active=rec.is_active(self.now()),
        )

    def members_of(self, collection_id: str) -> List[MemberView]:
        return [self.member_view(collection_id, str(mid)) for mid, _ in self.state.members_of(collection_id)]

    def events(self) -> Tuple[EngineEvent, ...]:
        return tuple(self._events)

    def journal(self, collection_id: Optional[str] = None, member_id: Optional[str] = None) -> Tuple[JournalEntry, ...]:
        if collection_id is None or member_id is None:
            return tuple(self.state.journal())
        return tuple(self.state.journal(MemberKey(CollectionId(collection_id), MemberId(member_id))))


__all__ = ["Clock", "EngineEvent", "MemberView", "TierEngine"]
