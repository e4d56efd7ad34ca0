"""Two-pass payout: classification, nominal outcomes and the wallet cap."""

import pytest

from bucketball.engine.payout import (
    admin_skim,
    apply_wallet_cap,
    classify,
    credits_by_user,
    house_net_change,
    nominal_outcome,
    nominal_outcomes,
)
from bucketball.models import Bet


def _bet(user_id: str, ball_id: int, amount: float) -> Bet:
    return Bet(bet_id=f"{user_id}-{ball_id}", user_id=user_id, round_id="r1", ball_id=ball_id, amount=amount)


def test_classification_boundaries():
    assert classify(2.0) == "won"
    assert classify(10.0) == "won"
    assert classify(1.99) == "lost"
    assert classify(1.5) == "lost"
    assert classify(1.0) == "pushed"
    assert classify(0.75) == "lost"
    assert classify(0.0) == "lost"


def test_push_returns_stake_exactly():
    o = nominal_outcome(_bet("u", 0, 100.0), basket=3, multiplier=1.0)
    assert o.pushed
    assert o.profit == 0.0
    assert o.win_amount == 100.0


def test_between_one_and_two_is_a_loss_that_keeps_its_profit():
    o = nominal_outcome(_bet("u", 0, 100.0), basket=2, multiplier=1.5)
    assert o.status == "lost"
    assert not o.won and not o.pushed
    assert o.profit == pytest.approx(50.0)
    assert o.win_amount == pytest.approx(150.0)


def test_partial_loss_returns_fraction_of_stake():
    o = nominal_outcome(_bet("u", 0, 100.0), basket=1, multiplier=0.5)
    assert o.status == "lost"
    assert o.win_amount == pytest.approx(50.0)
    assert o.profit == pytest.approx(-50.0)


def test_bets_on_other_balls_lose_everything():
    outcomes = nominal_outcomes([_bet("a", 0, 100.0), _bet("b", 2, 40.0)], 0, 5, 4.0)
    loser = outcomes[1]
    assert loser.basket is None
    assert loser.multiplier == 0.0
    assert loser.profit == -40.0


def test_cap_scales_all_winners_by_one_factor():
    # house 1000 -> cap 200; nominal profit 600 + 400 = 1000 -> scale 0.2
    outcomes = nominal_outcomes([_bet("a", 0, 600.0), _bet("b", 0, 400.0), _bet("c", 1, 50.0)], 0, 4, 2.0)
    cap = apply_wallet_cap(outcomes, 200.0)
    assert cap.scale == pytest.approx(0.2)
    assert cap.limited
    assert cap.total_nominal_win == pytest.approx(1000.0)
    a, b, c = outcomes
    assert a.profit == pytest.approx(120.0)
    assert b.profit == pytest.approx(80.0)
    assert a.wallet_limited and b.wallet_limited
    assert a.multiplier == pytest.approx(1.2)
    assert not c.wallet_limited
    assert sum(o.profit for o in outcomes if o.won) == pytest.approx(200.0)


def test_cap_leaves_pushes_and_losses_alone():
    outcomes = [
        nominal_outcome(_bet("a", 0, 1000.0), 7, 10.0),
        nominal_outcome(_bet("b", 0, 100.0), 3, 1.0),
        nominal_outcome(_bet("c", 0, 100.0), 0, 0.25),
    ]
    apply_wallet_cap(outcomes, 200.0)
    assert outcomes[0].profit == pytest.approx(200.0)
    assert outcomes[1].profit == 0.0 and not outcomes[1].wallet_limited
    assert outcomes[2].profit == pytest.approx(-75.0)


def test_under_cap_is_untouched():
    outcomes = nominal_outcomes([_bet("a", 0, 10.0)], 0, 5, 4.0)
    cap = apply_wallet_cap(outcomes, 200.0)
    assert cap.scale == 1.0
    assert outcomes[0].profit == pytest.approx(30.0)
    assert not outcomes[0].wallet_limited


def test_house_change_and_credits():
    outcomes = nominal_outcomes([_bet("a", 0, 100.0), _bet("a", 1, 50.0), _bet("b", 0, 20.0)], 0, 5, 4.0)
    assert house_net_change(outcomes) == pytest.approx(-300.0 + 50.0 - 60.0)
    assert credits_by_user(outcomes) == pytest.approx({"a": 400.0, "b": 80.0})


def test_admin_skim_clamped_to_remaining_balance():
    assert admin_skim(1000.0, 0.03, 500.0) == pytest.approx(30.0)
    assert admin_skim(1000.0, 0.03, 10.0) == pytest.approx(10.0)
    assert admin_skim(1000.0, 0.03, -5.0) == 0.0


def test_admin_skim_respects_solvency_floor():
    # 1000 before, 810 after payouts, floor 800 -> only 10 of the 30 skim fits
    assert admin_skim(1000.0, 0.03, 810.0, floor=800.0) == pytest.approx(10.0)
    assert admin_skim(1000.0, 0.03, 800.0, floor=800.0) == 0.0
    assert admin_skim(100.0, 0.03, 900.0, floor=800.0) == pytest.approx(3.0)
