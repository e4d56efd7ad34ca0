"""Game schema (Pydantic) - Round, Bet, GameResult, HouseWallet, catalog."""

from bucketball.models.game import (
    Ball,
    Basket,
    Bet,
    GameResult,
    GameState,
    HouseWallet,
    Round,
    SettlementReport,
    User,
)
from bucketball.models.catalog import BALLS, BASKETS, get_ball

__all__ = [
    "Ball",
    "Basket",
    "Bet",
    "GameResult",
    "GameState",
    "HouseWallet",
    "Round",
    "SettlementReport",
    "User",
    "BALLS",
    "BASKETS",
    "get_ball",
]
