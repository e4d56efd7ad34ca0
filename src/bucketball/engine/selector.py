"""Outcome selector - wallet-aware weighted basket draw for one ball.

The draw couples the probability of generous baskets to what the house
can actually pay: any paying basket (multiplier > 1) whose multiplier
exceeds ``max_allowed_win / aggregate_wager`` is removed from the draw,
where ``max_allowed_win`` is ``cap_ratio`` (20%) of the house balance.
"""

from __future__ import annotations

import math
from typing import Protocol

from bucketball.models.catalog import (
    BASE_WEIGHTS,
    BASKETS,
    FALLBACK_TAIL_WEIGHT,
    FALLBACK_WEIGHTS,
    MIN_LIVE_BASKETS,
)

DEFAULT_CAP_RATIO = 0.20


class RandomSource(Protocol):
    """Subset of random.Random the engine draws from."""

    def random(self) -> float: ...
    def uniform(self, a: float, b: float) -> float: ...
    def choice(self, seq): ...


def max_allowed_win(house_balance: float, cap_ratio: float = DEFAULT_CAP_RATIO) -> float:
    """Largest total profit a single round may pay out (never negative)."""
    return max(0.0, house_balance * cap_ratio)


def max_sustainable_multiplier(
    aggregate_wager: float,
    house_balance: float,
    cap_ratio: float = DEFAULT_CAP_RATIO,
) -> float:
    """max_allowed_win / aggregate_wager; unconstrained (inf) when nothing is wagered."""
    if aggregate_wager <= 0:
        return math.inf
    return max_allowed_win(house_balance, cap_ratio) / aggregate_wager


def basket_weights(
    aggregate_wager: float,
    house_balance: float,
    cap_ratio: float = DEFAULT_CAP_RATIO,
    base_weights: tuple[int, ...] = BASE_WEIGHTS,
    multipliers: list[float] | None = None,
) -> list[int]:
    """Final draw weights per basket after pruning and fallback redistribution."""
    values = multipliers if multipliers is not None else [b.value for b in BASKETS]
    if len(values) != len(base_weights):
        raise ValueError("base_weights and multipliers must have the same length")
    limit = max_sustainable_multiplier(aggregate_wager, house_balance, cap_ratio)
    weights = list(base_weights)

    # Top down: prune paying baskets the wallet cannot sustain
    for i in sorted(range(len(values)), key=lambda k: values[k], reverse=True):
        if values[i] <= 1.0:
            break
        if values[i] > limit:
            weights[i] = 0

    live = [i for i, w in enumerate(weights) if w > 0]
    if 0 < len(live) < MIN_LIVE_BASKETS:
        redistributed = [0] * len(weights)
        for rank, i in enumerate(live):
            redistributed[i] = FALLBACK_WEIGHTS[rank] if rank < len(FALLBACK_WEIGHTS) else FALLBACK_TAIL_WEIGHT
        weights = redistributed
    return weights


def weighted_index(weights: list[int], rng: RandomSource) -> int:
    """Draw an index proportionally to weights. Zero total falls back to index 0."""
    total = sum(w for w in weights if w > 0)
    if total <= 0:
        return 0
    target = rng.random() * total
    upto = 0.0
    for i, w in enumerate(weights):
        if w <= 0:
            continue
        upto += w
        if target < upto:
            return i
    # Float edge: target == total
    return max(i for i, w in enumerate(weights) if w > 0)


def select_basket(
    aggregate_wager: float,
    house_balance: float,
    rng: RandomSource,
    cap_ratio: float = DEFAULT_CAP_RATIO,
) -> int:
    """Pick the basket index a ball lands in, given its aggregate wager and the house balance."""
    return weighted_index(basket_weights(aggregate_wager, house_balance, cap_ratio), rng)
