import pytest

from tierledger.adapters.assets import InMemoryAssetBook
from tierledger.config import EngineConfig
from tierledger.engine import TierEngine
from tierledger.errors import (DoesNotExist, InsufficientBalance, InsufficientDeposit,
                               InvalidAmount, NotOwner, NotRegisteredCollection,
                               TransferFailed)
from tierledger.records.member import MemberKey

from . import (ASSET, AUTHORITY, COLLECTION, CUSTODY, DAY, FEE_SINK, HOLDER,
               MEMBER, THRESHOLDS)


def _record(engine, member_id=MEMBER):
    return engine.state.get_member(MemberKey(COLLECTION, member_id))


def test_deposit_spend_scenario(minted):
    eng = minted
    assert eng.receive_credit(HOLDER, COLLECTION, MEMBER, 50) == 50
    assert eng.tier_of(COLLECTION, MEMBER) == (0, 50)

    assert eng.receive_credit(HOLDER, COLLECTION, MEMBER, 100, spend=True) == 160
    assert eng.tier_of(COLLECTION, MEMBER) == (1, 340)

    assert eng.receive_credit(HOLDER, COLLECTION, MEMBER, 400, spend=True) == 600
    assert eng.tier_of(COLLECTION, MEMBER) == (2, 400)

    rec = _record(eng)
    assert rec.tokens_deposited == 50
    assert rec.tokens_spent == 500


def test_deposit_moves_units_into_custody(engine, book):
    engine.receive_credit(HOLDER, COLLECTION, MEMBER, 70)
    assert book.balance_of(HOLDER, ASSET) == 10_000 - 70
    assert book.balance_of(CUSTODY, ASSET) == 70
    assert book.balance_of(FEE_SINK, ASSET) == 0


def test_spend_moves_units_to_fee_sink(engine, book):
    engine.receive_credit(HOLDER, COLLECTION, MEMBER, 70, spend=True)
    assert book.balance_of(FEE_SINK, ASSET) == 70
    assert book.balance_of(CUSTODY, ASSET) == 0


def test_any_funded_caller_may_credit_a_member(engine, book):
    assert engine.receive_credit("bob", COLLECTION, MEMBER, 20) == 20
    assert book.balance_of("bob", ASSET) == 10_000 - 20


def test_receive_credit_requires_existing_member(engine):
    with pytest.raises(DoesNotExist):
        engine.receive_credit(HOLDER, COLLECTION, "ghost", 10)
    assert not engine.state.has_member(MemberKey(COLLECTION, "ghost"))


def test_receive_credit_checks_balance(engine, book):
    with pytest.raises(InsufficientBalance) as ei:
        engine.receive_credit(HOLDER, COLLECTION, MEMBER, 10_001, spend=True)
    assert ei.value.details == {"required": 10_001, "actual": 10_000, "holder": HOLDER}
    assert _record(engine).tokens_spent == 0
    assert book.balance_of(HOLDER, ASSET) == 10_000


def test_receive_credit_unregistered_collection(engine):
    with pytest.raises(NotRegisteredCollection):
        engine.receive_credit(HOLDER, "nope", MEMBER, 1)


def test_negative_amount_rejected(engine):
    with pytest.raises(InvalidAmount):
        engine.receive_credit(HOLDER, COLLECTION, MEMBER, -5)
    with pytest.raises(InvalidAmount):
        engine.withdraw(HOLDER, COLLECTION, MEMBER, -5)


def test_zero_amount_is_a_noop_credit(engine, book):
    assert engine.receive_credit(HOLDER, COLLECTION, MEMBER, 0) == 0
    assert book.balance_of(CUSTODY, ASSET) == 0


def test_withdraw_returns_units_and_lowers_credit(engine, book):
    engine.receive_credit(HOLDER, COLLECTION, MEMBER, 300)
    assert engine.withdraw(HOLDER, COLLECTION, MEMBER, 120) == 180
    assert _record(engine).tokens_deposited == 180
    assert book.balance_of(HOLDER, ASSET) == 10_000 - 180
    assert book.balance_of(CUSTODY, ASSET) == 180


def test_withdraw_more_than_deposited_leaves_record_unchanged(engine, book):
    engine.receive_credit(HOLDER, COLLECTION, MEMBER, 40)
    engine.receive_credit(HOLDER, COLLECTION, MEMBER, 60, spend=True)
    before = _record(engine)
    with pytest.raises(InsufficientDeposit) as ei:
        engine.withdraw(HOLDER, COLLECTION, MEMBER, 41)
    assert ei.value.details == {"requested": 41, "deposited": 40}
    assert _record(engine) == before
    assert book.balance_of(CUSTODY, ASSET) == 40


def test_spent_units_are_not_withdrawable(engine):
    engine.receive_credit(HOLDER, COLLECTION, MEMBER, 100, spend=True)
    with pytest.raises(InsufficientDeposit):
        engine.withdraw(HOLDER, COLLECTION, MEMBER, 1)


def test_only_member_owner_may_withdraw(engine):
    engine.receive_credit("bob", COLLECTION, MEMBER, 100)
    with pytest.raises(NotOwner):
        engine.withdraw("bob", COLLECTION, MEMBER, 100)
    assert _record(engine).tokens_deposited == 100


def test_withdraw_after_burn_is_not_owner(engine, registry):
    engine.receive_credit(HOLDER, COLLECTION, MEMBER, 10)
    registry.burn(COLLECTION, MEMBER)
    with pytest.raises(NotOwner):
        engine.withdraw(HOLDER, COLLECTION, MEMBER, 10)


def test_failed_transfer_leaves_ledger_untouched(registry, clock):
    gated = InMemoryAssetBook(operator=CUSTODY)
    gated.mint(HOLDER, ASSET, 500)
    eng = TierEngine(
        config=EngineConfig(bootstrap_authority=AUTHORITY, custody_address=CUSTODY),
        assets=gated,
        identity=registry,
        clock=clock,
    )
    eng.register_collection(
        AUTHORITY, COLLECTION, asset_ref=ASSET, fee_sink=FEE_SINK, renewal=(10, 30 * DAY),
        tier_thresholds=THRESHOLDS,
    )
    # balance is sufficient but no allowance was granted to the custody operator
    with pytest.raises(TransferFailed):
        eng.receive_credit(HOLDER, COLLECTION, MEMBER, 100)
    assert not eng.state.has_member(MemberKey(COLLECTION, MEMBER))
    assert eng.journal() == ()

    gated.approve(HOLDER, CUSTODY, ASSET, 100)
    assert eng.receive_credit(HOLDER, COLLECTION, MEMBER, 100) == 100
    assert gated.allowance(HOLDER, CUSTODY, ASSET) == 0


def test_refusing_collaborator_maps_to_transfer_failed(engine, book, monkeypatch):
    monkeypatch.setattr(book, "transfer", lambda *a, **k: False)
    with pytest.raises(TransferFailed):
        engine.receive_credit(HOLDER, COLLECTION, MEMBER, 5, spend=True)
    assert _record(engine).tokens_spent == 0


def test_mutations_are_journaled_and_emitted(engine):
    engine.receive_credit(HOLDER, COLLECTION, MEMBER, 30)
    engine.receive_credit(HOLDER, COLLECTION, MEMBER, 20, spend=True)
    engine.withdraw(HOLDER, COLLECTION, MEMBER, 10)

    entries = engine.journal(COLLECTION, MEMBER)
    assert [je.op for je in entries] == ["deposit", "spend", "withdraw"]
    assert [je.seq for je in entries] == [1, 2, 3]
    assert entries[-1].record_after.tokens_deposited == 20
    assert entries[0].to_dict()["meta"] == {"from": HOLDER}

    names = [ev.name for ev in engine.events()]
    assert names[-3:] == ["CreditReceived", "CreditReceived", "DepositWithdrawn"]
    assert engine.events()[-1].args["credit"] == 20 + 20 + 2


@pytest.mark.parametrize("amount", [1.9, 2.0, True, "3"])
def test_fractional_or_non_integer_amount_rejected(minted, book, amount):
    with pytest.raises(InvalidAmount):
        minted.receive_credit(HOLDER, COLLECTION, MEMBER, amount)
    with pytest.raises(InvalidAmount):
        minted.receive_credit(HOLDER, COLLECTION, MEMBER, amount, spend=True)
    assert minted.credit_of(COLLECTION, MEMBER) == 0
    assert book.balance_of(HOLDER, ASSET) == 10_000


def test_withdraw_amount_must_be_an_integer(engine):
    engine.receive_credit(HOLDER, COLLECTION, MEMBER, 10)
    with pytest.raises(InvalidAmount):
        engine.withdraw(HOLDER, COLLECTION, MEMBER, 4.5)
    assert _record(engine).tokens_deposited == 10


def test_withdraw_then_redeposit_restores_credit(minted, book):
    minted.receive_credit(HOLDER, COLLECTION, MEMBER, 300)
    minted.receive_credit(HOLDER, COLLECTION, MEMBER, 200, spend=True)
    credit = minted.credit_of(COLLECTION, MEMBER)
    tier = minted.tier_of(COLLECTION, MEMBER)
    deposited = _record(minted).tokens_deposited
    custody = book.balance_of(CUSTODY, ASSET)

    minted.withdraw(HOLDER, COLLECTION, MEMBER, 120)
    assert minted.credit_of(COLLECTION, MEMBER) == credit - 120
    assert book.balance_of(CUSTODY, ASSET) == custody - 120

    assert minted.receive_credit(HOLDER, COLLECTION, MEMBER, 120) == credit
    assert _record(minted).tokens_deposited == deposited
    assert minted.tier_of(COLLECTION, MEMBER) == tier
    assert book.balance_of(CUSTODY, ASSET) == custody
