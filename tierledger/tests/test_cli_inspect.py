from __future__ import annotations

import json

import pytest

typer_testing = pytest.importorskip("typer.testing")

from tierledger.adapters.state_db import TierStateDB
from tierledger.cli.inspect import app

from . import COLLECTION, DAY, GENESIS_TIME, HOLDER, MEMBER

runner = typer_testing.CliRunner()


@pytest.fixture
def db_path(tmp_path, minted, registry):
    minted.receive_credit(HOLDER, COLLECTION, MEMBER, 50)
    minted.receive_credit(HOLDER, COLLECTION, MEMBER, 100, spend=True)
    registry.set_member_owner(COLLECTION, "m2", "bob")
    minted.receive_credit("bob", COLLECTION, "m2", 700)
    path = tmp_path / "tier.db"
    with TierStateDB(str(path)) as db:
        db.save_state(minted.state.dump())
    return str(path)


def test_collections_json(db_path):
    r = runner.invoke(app, ["collections", "--db", db_path, "--json"])
    assert r.exit_code == 0, r.output
    rows = json.loads(r.stdout)
    assert [c["collection_id"] for c in rows] == [COLLECTION]
    assert rows[0]["tier_thresholds"] == [100, 500, 1000]


def test_collections_table(db_path):
    r = runner.invoke(app, ["collections", "--db", db_path])
    assert r.exit_code == 0, r.output
    assert "COLLECTION" in r.stdout
    assert COLLECTION in r.stdout


def test_members_json_derives_credit_and_tier(db_path):
    r = runner.invoke(app, ["members", COLLECTION, "--db", db_path, "--now", str(GENESIS_TIME), "--json"])
    assert r.exit_code == 0, r.output
    rows = {row["member_id"]: row for row in json.loads(r.stdout)}
    assert rows[MEMBER]["credit"] == 160
    assert rows[MEMBER]["tier"] == 1
    assert rows[MEMBER]["credit_needed_for_next"] == 340
    # m2 was never minted: credit without tier
    assert rows["m2"]["credit"] == 700
    assert rows["m2"]["tier"] == 0
    assert rows["m2"]["active"] is False


def test_members_active_filter(db_path):
    r = runner.invoke(
        app, ["members", COLLECTION, "--db", db_path, "--now", str(GENESIS_TIME), "--active", "--json"]
    )
    assert r.exit_code == 0, r.output
    assert [row["member_id"] for row in json.loads(r.stdout)] == [MEMBER]


def test_member_detail_after_expiry(db_path):
    later = GENESIS_TIME + 31 * DAY
    r = runner.invoke(app, ["member", COLLECTION, MEMBER, "--db", db_path, "--now", str(later), "--json"])
    assert r.exit_code == 0, r.output
    row = json.loads(r.stdout)
    assert row["credit"] == 160
    assert row["tier"] == 0
    assert row["active"] is False


def test_member_not_found(db_path):
    r = runner.invoke(app, ["member", COLLECTION, "ghost", "--db", db_path])
    assert r.exit_code == 1


def test_unknown_collection(db_path):
    r = runner.invoke(app, ["members", "nope", "--db", db_path])
    assert r.exit_code == 1


def test_missing_db_exits_2(tmp_path):
    r = runner.invoke(app, ["collections", "--db", str(tmp_path / "absent.db")])
    assert r.exit_code == 2


def test_get_app_returns_typer_app():
    from tierledger.cli.inspect import get_app

    assert get_app() is app


@pytest.fixture
def package_logger(monkeypatch):
    import logging

    monkeypatch.delenv("TIERLEDGER_CONFIG_FILE", raising=False)
    monkeypatch.delenv("TIERLEDGER_LOG_LEVEL", raising=False)
    logger = logging.getLogger("tierledger")
    saved = logger.level
    yield logger
    logger.setLevel(saved)


def test_log_level_option_configures_package_logger(db_path, package_logger):
    import logging

    r = runner.invoke(app, ["--log-level", "debug", "collections", "--db", db_path])
    assert r.exit_code == 0, r.output
    assert package_logger.level == logging.DEBUG


def test_log_level_from_environment(db_path, package_logger, monkeypatch):
    import logging

    monkeypatch.setenv("TIERLEDGER_LOG_LEVEL", "WARNING")
    r = runner.invoke(app, ["collections", "--db", db_path])
    assert r.exit_code == 0, r.output
    assert package_logger.level == logging.WARNING


def test_bad_log_level_is_a_usage_error(db_path, package_logger):
    r = runner.invoke(app, ["--log-level", "chatty", "collections", "--db", db_path])
    assert r.exit_code == 2
