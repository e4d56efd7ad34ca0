"""Outcome selector: pruning, fallback redistribution and weighted draws."""

import math
import random

import pytest

from bucketball.engine.selector import (
    basket_weights,
    max_allowed_win,
    max_sustainable_multiplier,
    select_basket,
    weighted_index,
)
from bucketball.models.catalog import BASE_WEIGHTS

from conftest import FixedRng

PAYING = (4, 5, 6, 7)  # 2x, 4x, 8x, 10x


def test_max_allowed_win_is_twenty_percent_and_never_negative():
    assert max_allowed_win(1000.0) == pytest.approx(200.0)
    assert max_allowed_win(-50.0) == 0.0


def test_zero_wager_is_unconstrained():
    assert max_sustainable_multiplier(0.0, 1000.0) == math.inf
    assert basket_weights(0.0, 1000.0) == list(BASE_WEIGHTS)


def test_large_wager_prunes_every_paying_basket():
    # 500 wagered against 1000: 200 / 500 = 0.4x sustainable
    weights = basket_weights(500.0, 1000.0)
    assert weights == [35, 25, 15, 5, 0, 0, 0, 0]
    assert all(weights[i] == 0 for i in PAYING)


def test_prune_only_multipliers_strictly_above_limit():
    # 200 / 100 = 2.0 exactly: 2x survives, 4x and up are pruned
    assert basket_weights(100.0, 1000.0) == [35, 25, 15, 5, 8, 0, 0, 0]


def test_small_wager_keeps_full_distribution():
    # 200 / 10 = 20x covers the 10x basket
    assert basket_weights(10.0, 1000.0) == list(BASE_WEIGHTS)


def test_empty_house_prunes_paying_baskets():
    weights = basket_weights(10.0, 0.0)
    assert [weights[i] for i in PAYING] == [0, 0, 0, 0]
    assert sum(weights) > 0


def test_fewer_than_four_live_baskets_get_fallback_weights():
    base = (0, 0, 0, 5, 8, 6, 4, 2)
    weights = basket_weights(100.0, 1000.0, base_weights=base)
    # live: 1x and 2x, ranked by position
    assert weights == [0, 0, 0, 40, 30, 0, 0, 0]


def test_mismatched_weights_rejected():
    with pytest.raises(ValueError):
        basket_weights(10.0, 1000.0, base_weights=(1, 2, 3))


def test_weighted_index_walks_cumulative_weights():
    weights = [35, 25, 15, 5, 0, 0, 0, 0]
    assert weighted_index(weights, FixedRng(0.0)) == 0
    assert weighted_index(weights, FixedRng(0.5)) == 1  # 40 of 80
    assert weighted_index(weights, FixedRng(0.999)) == 3
    assert weighted_index([0, 0, 0], FixedRng(0.5)) == 0


def test_select_basket_never_pays_past_the_cap():
    rng = random.Random(1234)
    draws = {select_basket(500.0, 1000.0, rng) for _ in range(2000)}
    assert draws <= {0, 1, 2, 3}


def test_select_basket_is_reproducible_with_seed():
    rng1, rng2 = random.Random(99), random.Random(99)
    seq1 = [select_basket(10.0, 1000.0, rng1) for _ in range(50)]
    seq2 = [select_basket(10.0, 1000.0, rng2) for _ in range(50)]
    assert seq1 == seq2
    assert all(0 <= i < 8 for i in seq1)
