"""Round, Bet, GameResult, HouseWallet - game records."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

RoundStatus = Literal["pending", "active", "completed"]
BetStatus = Literal["pending", "won", "lost", "pushed", "refunded"]


class Ball(BaseModel):
    """A bettable ball."""

    id: int
    color: str
    name: str


class Basket(BaseModel):
    """A payout bucket a ball lands in."""

    value: float = Field(..., gt=0, description="Payout multiplier")
    color: str


class Round(BaseModel):
    """One betting cycle (a game)."""

    round_id: str
    round_number: int
    status: RoundStatus = "active"
    winning_ball_id: int | None = None
    winning_basket: int | None = None
    total_wagered: float = 0.0
    house_balance: float = 0.0  # wallet balance snapshot at round start
    admin_profit: float = 0.0  # admin profit snapshot at round start
    expired: bool = False
    created_at: int = 0  # ms epoch
    updated_at: int = 0
    completed_at: int | None = None

    @property
    def is_active(self) -> bool:
        return self.status == "active"


class Bet(BaseModel):
    """One user's wager on one ball within one round."""

    bet_id: str
    user_id: str
    round_id: str
    ball_id: int
    amount: float = Field(..., gt=0)
    status: BetStatus = "pending"
    created_at: int = 0
    updated_at: int = 0


class GameResult(BaseModel):
    """Settled outcome of one bet. Multiplier is the effective (post-cap) one."""

    result_id: str
    bet_id: str
    user_id: str
    round_id: str
    ball_id: int
    ball_name: str
    ball_color: str
    bet_amount: float
    multiplier: float
    win_amount: float
    profit: float
    basket_landed: int | None = None  # None for bets on non-winning balls
    won: bool = False
    pushed: bool = False
    wallet_limited: bool = False
    created_at: int = 0


class HouseWallet(BaseModel):
    """House bankroll ledger (singleton)."""

    balance: float
    admin_profit: float = 0.0
    total_bets: float = 0.0
    updated_at: int = 0


class User(BaseModel):
    """Spendable balance holder."""

    user_id: str
    name: str = ""
    balance: float = 0.0
    created_at: int = 0
    updated_at: int = 0


class GameState(BaseModel):
    """Snapshot returned to a player."""

    current_round: Round | None = None
    available_balls: list[Ball] = Field(default_factory=list)
    available_baskets: list[Basket] = Field(default_factory=list)
    user_balance: float = 0.0
    house_wallet: float = 0.0
    admin_profit: float = 0.0
    total_bets: float = 0.0
    game_history: list[GameResult] = Field(default_factory=list)


class SettlementReport(BaseModel):
    """Summary of one settled round."""

    round_id: str
    winning_ball_id: int | None = None  # None when every bet was already settled
    winning_basket: int | None = None
    ball_baskets: dict[int, int] = Field(default_factory=dict)
    total_wagered: float
    max_allowed_win: float
    total_nominal_win: float
    scale: float = 1.0
    net_house_change: float
    admin_skim: float
    results: list[GameResult] = Field(default_factory=list)
    skipped_bets: int = 0
