"""House wallet ledger."""

import pytest

from bucketball.engine.ledger import HouseWalletLedger
from bucketball.storage.db import init_schema


def test_initial_state(temp_db):
    state = HouseWalletLedger(temp_db).get_state()
    assert state.balance == 1000.0
    assert state.admin_profit == 0.0
    assert state.total_bets == 0.0


def test_apply_delta_is_additive(temp_db):
    ledger = HouseWalletLedger(temp_db)
    ledger.apply_delta(-150.0, 5.0, 250.0)
    state = ledger.apply_delta(40.0, 2.0, 60.0)
    assert state.balance == pytest.approx(890.0)
    assert state.admin_profit == pytest.approx(7.0)
    assert state.total_bets == pytest.approx(310.0)
    assert ledger.get_state() == state


@pytest.mark.parametrize("skim, bets", [(-1.0, 0.0), (0.0, -1.0)])
def test_negative_skim_or_bets_rejected(temp_db, skim, bets):
    ledger = HouseWalletLedger(temp_db)
    with pytest.raises(ValueError):
        ledger.apply_delta(0.0, skim, bets)
    assert ledger.get_state().balance == 1000.0


def test_fund(temp_db):
    ledger = HouseWalletLedger(temp_db)
    assert ledger.fund(500.0).balance == pytest.approx(1500.0)
    with pytest.raises(ValueError):
        ledger.fund(0.0)


def test_init_schema_does_not_reseed(temp_db):
    ledger = HouseWalletLedger(temp_db)
    ledger.apply_delta(-100.0, 0.0, 0.0)
    init_schema(temp_db, 5000.0)
    assert ledger.get_state().balance == pytest.approx(900.0)
