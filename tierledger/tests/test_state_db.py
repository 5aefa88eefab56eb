import pytest

from tierledger.adapters.state_db import NotFound, TierStateDB, open_default
from tierledger.ledger.state import LedgerState

from . import COLLECTION, HOLDER, MEMBER


def _snapshot(engine):
    engine.receive_credit(HOLDER, COLLECTION, MEMBER, 40)
    engine.receive_credit(HOLDER, COLLECTION, MEMBER, 60, spend=True)
    return engine.state.dump()


def test_save_and_load_roundtrip(tmp_path, minted):
    snap = _snapshot(minted)
    db = TierStateDB(str(tmp_path / "tier.db"))
    db.save_state(snap)
    db.close()

    with TierStateDB(str(tmp_path / "tier.db")) as reopened:
        loaded = reopened.load_state()
    assert loaded == snap
    st = LedgerState.load(loaded)
    assert st.get_collection(COLLECTION) == minted.collection(COLLECTION)


def test_save_replaces_previous_snapshot(tmp_path, minted):
    db = TierStateDB(str(tmp_path / "tier.db"))
    db.save_state(_snapshot(minted))
    db.save_state({"collections": {}, "members": []})
    assert db.load_state() == {"collections": {}, "members": []}
    db.close()


def test_point_lookups(tmp_path, minted):
    db = TierStateDB(":memory:")
    db.save_state(_snapshot(minted))
    assert db.get_collection(COLLECTION)["bonus_percent"] == 10
    assert db.get_member(COLLECTION, MEMBER)["tokens_spent"] == 60
    with pytest.raises(NotFound):
        db.get_member(COLLECTION, "ghost")
    with pytest.raises(NotFound):
        db.get_collection("ghost")
    db.close()


def test_list_members_filters(minted, registry, clock):
    registry.set_member_owner(COLLECTION, "m2", "bob")
    minted.receive_credit("bob", COLLECTION, "m2", 5)  # never minted, inactive
    db = TierStateDB(":memory:")
    db.save_state(minted.state.dump())

    assert [m["member_id"] for m in db.list_members(collection_id=COLLECTION)] == [MEMBER, "m2"]
    assert [m["member_id"] for m in db.list_members(active_at=clock.now)] == [MEMBER]
    assert len(db.list_members(limit=1, offset=1)) == 1
    db.close()


def test_open_default_uses_env(tmp_path, monkeypatch):
    path = tmp_path / "env.db"
    monkeypatch.setenv("TIERLEDGER_DB", str(path))
    db = open_default()
    db.close()
    assert path.exists()
