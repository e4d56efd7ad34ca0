"""Static ball and basket catalog."""

from __future__ import annotations

from bucketball.models.game import Ball, Basket

BALLS: tuple[Ball, ...] = (
    Ball(id=0, color="#FF6B6B", name="Red"),
    Ball(id=1, color="#4ECDC4", name="Cyan"),
    Ball(id=2, color="#FFE66D", name="Yellow"),
    Ball(id=3, color="#95E1D3", name="Green"),
)

BASKETS: tuple[Basket, ...] = (
    Basket(value=0.25, color="#e74c3c"),
    Basket(value=0.5, color="#e67e22"),
    Basket(value=0.75, color="#f39c12"),
    Basket(value=1.0, color="#f1c40f"),
    Basket(value=2.0, color="#2ecc71"),
    Basket(value=4.0, color="#3498db"),
    Basket(value=8.0, color="#9b59b6"),
    Basket(value=10.0, color="#1abc9c"),
)

# House edge: low multipliers dominate
BASE_WEIGHTS: tuple[int, ...] = (35, 25, 15, 5, 8, 6, 4, 2)

# Used when pruning leaves fewer than MIN_LIVE_BASKETS baskets
FALLBACK_WEIGHTS: tuple[int, ...] = (40, 30, 20, 10)
FALLBACK_TAIL_WEIGHT = 10
MIN_LIVE_BASKETS = 4

BALL_IDS = frozenset(b.id for b in BALLS)


def get_ball(ball_id: int) -> Ball | None:
    for ball in BALLS:
        if ball.id == ball_id:
            return ball
    return None
