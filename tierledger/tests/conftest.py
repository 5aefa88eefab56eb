from __future__ import annotations

import pytest

from tierledger.adapters.assets import NATIVE_ASSET, InMemoryAssetBook
from tierledger.adapters.identity import InMemoryIdentityRegistry
from tierledger.config import EngineConfig
from tierledger.engine import TierEngine
from tierledger.records.collection import RenewalTerms

from . import (ASSET, AUTHORITY, COLLECTION, COLLECTION_OWNER, CUSTODY, DAY,
               FEE_SINK, HOLDER, MEMBER, THRESHOLDS, FixedClock)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def book() -> InMemoryAssetBook:
    b = InMemoryAssetBook()
    b.mint(HOLDER, ASSET, 10_000)
    b.mint(HOLDER, NATIVE_ASSET, 1_000)
    b.mint("bob", ASSET, 10_000)
    return b


@pytest.fixture
def registry() -> InMemoryIdentityRegistry:
    r = InMemoryIdentityRegistry()
    r.set_collection_owner(COLLECTION, COLLECTION_OWNER)
    r.set_member_owner(COLLECTION, MEMBER, HOLDER)
    return r


@pytest.fixture
def engine(book, registry, clock) -> TierEngine:
    """Engine with one registered collection (`club`), bonus 10%, thresholds 100/500/1000."""
    eng = TierEngine(
        config=EngineConfig(bootstrap_authority=AUTHORITY, custody_address=CUSTODY),
        assets=book,
        identity=registry,
        clock=clock,
    )
    eng.register_collection(
        AUTHORITY,
        COLLECTION,
        asset_ref=ASSET,
        fee_sink=FEE_SINK,
        renewal=RenewalTerms(price=10, length=30 * DAY),
        bonus_percent=10,
        tier_thresholds=THRESHOLDS,
    )
    return eng


@pytest.fixture
def minted(engine) -> TierEngine:
    """`engine` after the collection minted MEMBER with no tier grant."""
    engine.on_mint(COLLECTION, MEMBER, 0)
    return engine
