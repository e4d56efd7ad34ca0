"""FastAPI backend - thin adapter over the round settlement engine."""

from __future__ import annotations

import asyncio
import random
from contextlib import asynccontextmanager, contextmanager
from typing import Iterator

import duckdb
from fastapi import FastAPI, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bucketball.api.schemas import (
    AmountRequest,
    ErrorResponse,
    GameStatsResponse,
    HealthResponse,
    PlaceBetRequest,
    SimulateResponse,
    SweepResponse,
    UserCreateRequest,
    UserStatsResponse,
)
from bucketball.config import Settings, get_settings
from bucketball.engine.selector import RandomSource
from bucketball.engine.settlement import RoundSettlementEngine
from bucketball.engine.sweeper import RoundSweeper
from bucketball.errors import (
    BucketballError,
    HouseWalletDepleted,
    InsufficientBalance,
    NoBetsPresent,
    RoundExpired,
    RoundNotActive,
    RoundNotFound,
    SettlementFailed,
    UserNotFound,
    ValidationError,
)
from bucketball.models import BALLS, BASKETS, Ball, Basket, GameResult, GameState, HouseWallet, Round, SettlementReport, User
from bucketball.storage import users as user_store
from bucketball.storage.db import get_connection, init_schema

API_PREFIX = "/api/v1"

# Set by run_api() / configure() before the app starts.
_config_profile: str | None = None
_settings: Settings | None = None
_rng: RandomSource | None = None

# Most specific first
_STATUS_BY_ERROR: list[tuple[type[BucketballError], int]] = [
    (ValidationError, 400),
    (InsufficientBalance, 400),
    (HouseWalletDepleted, 503),
    (RoundNotActive, 409),
    (NoBetsPresent, 409),
    (RoundExpired, 409),
    (RoundNotFound, 404),
    (UserNotFound, 404),
    (SettlementFailed, 500),
]


def configure(settings: Settings | None = None, profile: str | None = None, rng: RandomSource | None = None) -> None:
    """Pin settings (and optionally the random source) used by every request."""
    global _settings, _config_profile, _rng
    _config_profile = profile
    _settings = settings
    _rng = rng


def _get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = get_settings(_config_profile)
    return _settings


def _get_rng() -> RandomSource:
    global _rng
    if _rng is None:
        seed = _get_settings().rng_seed
        _rng = random.Random(seed) if seed is not None else random.SystemRandom()
    return _rng


def _get_conn():
    return get_connection(_get_settings().db_path)


@contextmanager
def _engine() -> Iterator[RoundSettlementEngine]:
    """One connection (and engine) per request."""
    conn = _get_conn()
    try:
        yield RoundSettlementEngine(conn, _get_settings(), rng=_get_rng())
    finally:
        conn.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = _get_settings()
    conn = get_connection(settings.db_path)
    try:
        init_schema(conn, settings.initial_house_balance)
    finally:
        conn.close()

    sweeper_task = None
    sweeper_stop = None
    if settings.sweeper_enabled:
        sweeper = RoundSweeper(settings)
        sweeper_stop = asyncio.Event()
        sweeper_task = asyncio.create_task(sweeper.run(stop_event=sweeper_stop))

    yield

    if sweeper_task is not None and sweeper_stop is not None:
        sweeper_stop.set()
        await sweeper_task


app = FastAPI(title="Bucketball API", version="0.1.0", lifespan=lifespan)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


def _error_json(code: str, message: str, status_code: int = 404) -> JSONResponse:
    """Return consistent error JSON: { detail, code }."""
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "code": code},
    )


@app.exception_handler(BucketballError)
async def _game_error_handler(request: Request, exc: BucketballError) -> JSONResponse:
    status_code = next((s for cls, s in _STATUS_BY_ERROR if isinstance(exc, cls)), 400)
    return _error_json(exc.code, exc.message, status_code)


_ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok")


# --- Player endpoints ---
@app.get(f"{API_PREFIX}/games/state", response_model=GameState, responses=_ERRORS)
def game_state(user_id: str = Header(..., alias="X-User-Id")) -> GameState:
    """Current round, catalog, balances and the caller's recent results."""
    with _engine() as engine:
        return engine.game_state(user_id)


@app.post(
    f"{API_PREFIX}/games/bet",
    response_model=Round,
    responses={**_ERRORS, 503: {"description": "House wallet is empty", "model": ErrorResponse}},
)
def place_bet(req: PlaceBetRequest, user_id: str = Header(..., alias="X-User-Id")) -> Round:
    with _engine() as engine:
        return engine.place_bet(user_id, req.ball_bets, round_id=req.round_id)


@app.post(
    f"{API_PREFIX}/games/{{round_id}}/play",
    response_model=SettlementReport,
    responses={**_ERRORS, 500: {"description": "Settlement rolled back", "model": ErrorResponse}},
)
def play_round(round_id: str) -> SettlementReport:
    """Settle the round. Safe to retry after a settlement_failed error."""
    with _engine() as engine:
        return engine.settle_round(round_id)


@app.get(f"{API_PREFIX}/games/history", response_model=list[GameResult])
def game_history(
    user_id: str = Header(..., alias="X-User-Id"),
    limit: int = Query(10, ge=1, le=100),
) -> list[GameResult]:
    with _engine() as engine:
        return engine.history(user_id, limit)


@app.get(f"{API_PREFIX}/games/stats", response_model=UserStatsResponse)
def user_game_stats(user_id: str = Header(..., alias="X-User-Id")) -> UserStatsResponse:
    with _engine() as engine:
        return UserStatsResponse(**engine.user_stats(user_id))


@app.get(f"{API_PREFIX}/games/balls", response_model=list[Ball])
def available_balls() -> list[Ball]:
    return list(BALLS)


@app.get(f"{API_PREFIX}/games/baskets", response_model=list[Basket])
def available_baskets() -> list[Basket]:
    return list(BASKETS)


# --- Users (balance store) ---
@app.post(f"{API_PREFIX}/users", response_model=User, status_code=201, responses=_ERRORS)
def create_user(req: UserCreateRequest):
    conn = _get_conn()
    try:
        return user_store.create_user(conn, req.user_id, req.name, req.initial_balance)
    except duckdb.ConstraintException:
        return _error_json("user_exists", f"User already exists: {req.user_id}", 409)
    finally:
        conn.close()


@app.get(f"{API_PREFIX}/users/{{user_id}}", response_model=User, responses=_ERRORS)
def get_user(user_id: str):
    conn = _get_conn()
    try:
        user = user_store.get_user(conn, user_id)
        if user is None:
            return _error_json("user_not_found", f"User not found: {user_id}")
        return user
    finally:
        conn.close()


@app.post(f"{API_PREFIX}/users/{{user_id}}/deposit", response_model=User, responses=_ERRORS)
def deposit(user_id: str, req: AmountRequest):
    conn = _get_conn()
    try:
        user_store.adjust_balance(conn, user_id, req.amount)
        return user_store.get_user(conn, user_id)
    finally:
        conn.close()


# --- Admin endpoints ---
@app.get(f"{API_PREFIX}/admin/games/stats", response_model=GameStatsResponse)
def admin_game_stats() -> GameStatsResponse:
    with _engine() as engine:
        return GameStatsResponse(**engine.game_stats())


@app.get(f"{API_PREFIX}/admin/games/house-wallet", response_model=HouseWallet)
def admin_house_wallet() -> HouseWallet:
    with _engine() as engine:
        return engine.ledger.get_state()


@app.post(f"{API_PREFIX}/admin/games/house-wallet/fund", response_model=HouseWallet)
def admin_fund_house_wallet(req: AmountRequest) -> HouseWallet:
    with _engine() as engine:
        return engine.ledger.fund(req.amount)


@app.post(f"{API_PREFIX}/admin/games/{{round_id}}/simulate", response_model=SimulateResponse, responses=_ERRORS)
def admin_simulate_players(round_id: str, players: int = Query(2, ge=1, le=10)) -> SimulateResponse:
    with _engine() as engine:
        bets = engine.simulate_other_players(round_id, players)
        return SimulateResponse(players_added=len(bets), bets=bets)


@app.post(f"{API_PREFIX}/admin/games/sweep", response_model=SweepResponse)
def admin_sweep() -> SweepResponse:
    """Expire stale rounds now instead of waiting for the sweeper."""
    with _engine() as engine:
        return SweepResponse(expired_round_ids=engine.expire_stale_rounds())


def run_api(
    host: str | None = None,
    port: int | None = None,
    profile: str | None = None,
) -> None:
    configure(profile=profile)
    settings = _get_settings()
    import uvicorn
    uvicorn.run(
        "bucketball.api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=False,
    )
