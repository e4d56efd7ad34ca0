"""Pydantic schemas for API request/response consistency and OpenAPI docs."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code, e.g. insufficient_balance, round_not_active")


# --- Betting ---
class PlaceBetRequest(BaseModel):
    ball_bets: dict[int, float] = Field(..., min_length=1, description="ball id -> amount")
    round_id: str | None = Field(None, description="Round the bet targets; defaults to the active round")


# --- Users ---
class UserCreateRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    name: str = ""
    initial_balance: float = Field(0.0, ge=0)


class AmountRequest(BaseModel):
    amount: float = Field(..., gt=0)


# --- Stats ---
class GameStatsResponse(BaseModel):
    total_games: int
    completed_games: int
    active_games: int
    expired_games: int
    total_bets_amount: float


class UserStatsResponse(BaseModel):
    total_bets: float
    bet_count: int
    total_wins: float
    win_count: int
    win_rate: float
    net_profit: float


# --- Admin ---
class SimulateResponse(BaseModel):
    players_added: int
    bets: list[dict[str, Any]] = Field(default_factory=list)


class SweepResponse(BaseModel):
    expired_round_ids: list[str] = Field(default_factory=list)
