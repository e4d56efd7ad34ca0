"""Bankroll simulation runs and persistence."""

import random

import pytest

from bucketball.simulation.runner import get_run_result, list_run_ids, run_simulation, save_run_result
from bucketball.storage.users import list_users


def test_run_simulation_conserves_money(temp_db, settings):
    result = run_simulation(temp_db, settings, rounds=20, players_per_round=4, rng=random.Random(42))
    assert result.rounds_played == 20
    assert result.min_balance >= 0
    wallet = temp_db.execute("SELECT balance, admin_profit FROM house_wallet").fetchone()
    assert result.end_balance == pytest.approx(wallet[0])
    # Bots are funded with exactly their stake, so money in = house start + total wagered
    users_total = sum(u.balance for u in list_users(temp_db, limit=1000))
    assert users_total + wallet[0] + wallet[1] == pytest.approx(1000.0 + result.total_wagered)


def test_run_result_persisted(temp_db, settings):
    result = run_simulation(temp_db, settings, rounds=3, players_per_round=2, rng=random.Random(1))
    save_run_result(temp_db, result)
    loaded = get_run_result(temp_db, result.run_id)
    assert loaded == result
    assert result.run_id in list_run_ids(temp_db)
    assert get_run_result(temp_db, "missing") is None
