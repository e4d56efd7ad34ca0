"""DuckDB connection, schema init and transactions."""

from __future__ import annotations

import time
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

import duckdb
import structlog

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)

SCHEMA_SQL = """
-- Spendable user balances (external collaborator)
CREATE TABLE IF NOT EXISTS users (
    user_id         VARCHAR PRIMARY KEY,
    name            VARCHAR,
    balance         DOUBLE NOT NULL DEFAULT 0,
    created_at      BIGINT NOT NULL,
    updated_at      BIGINT NOT NULL
);

-- Rounds (games), at most one active, guarded by round_gate
CREATE TABLE IF NOT EXISTS rounds (
    round_id        VARCHAR PRIMARY KEY,
    round_number    BIGINT NOT NULL,
    status          VARCHAR NOT NULL,
    winning_ball_id INTEGER,
    winning_basket  INTEGER,
    total_wagered   DOUBLE NOT NULL DEFAULT 0,
    house_balance   DOUBLE NOT NULL,
    admin_profit    DOUBLE NOT NULL,
    expired         BOOLEAN NOT NULL DEFAULT FALSE,
    created_at      BIGINT NOT NULL,
    updated_at      BIGINT NOT NULL,
    completed_at    BIGINT
);

-- Single-row gate holding the active round id (compare-and-swap target)
CREATE TABLE IF NOT EXISTS round_gate (
    id              INTEGER PRIMARY KEY,
    active_round_id VARCHAR,
    updated_at      BIGINT
);

-- Bets (never deleted)
CREATE TABLE IF NOT EXISTS bets (
    bet_id          VARCHAR PRIMARY KEY,
    user_id         VARCHAR NOT NULL,
    round_id        VARCHAR NOT NULL,
    ball_id         INTEGER NOT NULL,
    amount          DOUBLE NOT NULL,
    status          VARCHAR NOT NULL,
    created_at      BIGINT NOT NULL,
    updated_at      BIGINT NOT NULL
);

-- Settled outcomes (audit trail, one per bet)
CREATE TABLE IF NOT EXISTS game_results (
    result_id       VARCHAR PRIMARY KEY,
    bet_id          VARCHAR NOT NULL UNIQUE,
    user_id         VARCHAR NOT NULL,
    round_id        VARCHAR NOT NULL,
    ball_id         INTEGER NOT NULL,
    ball_name       VARCHAR NOT NULL,
    ball_color      VARCHAR NOT NULL,
    bet_amount      DOUBLE NOT NULL,
    multiplier      DOUBLE NOT NULL,
    win_amount      DOUBLE NOT NULL,
    profit          DOUBLE NOT NULL,
    basket_landed   INTEGER,
    won             BOOLEAN NOT NULL,
    pushed          BOOLEAN NOT NULL,
    wallet_limited  BOOLEAN NOT NULL,
    created_at      BIGINT NOT NULL
);

-- House wallet singleton
CREATE TABLE IF NOT EXISTS house_wallet (
    id              INTEGER PRIMARY KEY,
    balance         DOUBLE NOT NULL,
    admin_profit    DOUBLE NOT NULL DEFAULT 0,
    total_bets      DOUBLE NOT NULL DEFAULT 0,
    updated_at      BIGINT NOT NULL
);

-- Simulation runs (bot-player bankroll reports)
CREATE TABLE IF NOT EXISTS sim_runs (
    run_id              VARCHAR PRIMARY KEY,
    rounds_played       INTEGER NOT NULL,
    players_per_round   INTEGER NOT NULL,
    start_balance       DOUBLE,
    end_balance         DOUBLE,
    min_balance         DOUBLE,
    admin_profit        DOUBLE,
    total_wagered       DOUBLE,
    wallet_limited_rounds INTEGER,
    params              JSON,
    created_at          BIGINT
)
"""

WALLET_ROW_ID = 1
GATE_ROW_ID = 1


def now_ms() -> int:
    return int(time.time() * 1000)


def get_connection(db_path: str | Path, read_only: bool = False) -> DuckDBPyConnection:
    """Return a DuckDB connection. Caller must close or use as context manager.
    ':memory:' gives a private in-memory database (tests)."""
    if str(db_path) == ":memory:":
        return duckdb.connect(":memory:")
    path = Path(db_path)
    if not read_only:
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path), read_only=read_only)


def schema_statements(sql: str) -> list[str]:
    """Split DDL into statements, dropping `--` comment lines first so they may contain `;`."""
    body = "\n".join(line for line in sql.splitlines() if not line.lstrip().startswith("--"))
    return [s.strip() for s in body.split(";") if s.strip()]


def init_schema(conn: DuckDBPyConnection, initial_house_balance: float = 1000.0) -> None:
    """Create tables if they do not exist and seed the wallet and round gate rows."""
    for stmt in schema_statements(SCHEMA_SQL):
        try:
            conn.execute(stmt)
        except duckdb.Error as e:
            if "already exists" not in str(e).lower():
                raise
    conn.execute(
        """
        INSERT INTO house_wallet (id, balance, admin_profit, total_bets, updated_at)
        VALUES (?, ?, 0, 0, ?)
        ON CONFLICT (id) DO NOTHING
        """,
        [WALLET_ROW_ID, initial_house_balance, now_ms()],
    )
    conn.execute(
        "INSERT INTO round_gate (id, active_round_id, updated_at) VALUES (?, NULL, ?) ON CONFLICT (id) DO NOTHING",
        [GATE_ROW_ID, now_ms()],
    )


def _rollback_quietly(conn: DuckDBPyConnection) -> None:
    # DuckDB ends the transaction itself on some commit failures
    try:
        conn.execute("ROLLBACK")
    except duckdb.TransactionException:
        log.debug("rollback_without_transaction")


@contextmanager
def transaction(conn: DuckDBPyConnection) -> Iterator[DuckDBPyConnection]:
    """BEGIN/COMMIT around the block; ROLLBACK and re-raise on any error.

    Concurrent writers to the same row surface as duckdb.TransactionException
    (write-write conflict) either inside the block or at COMMIT.
    """
    conn.execute("BEGIN TRANSACTION")
    try:
        yield conn
    except BaseException:
        _rollback_quietly(conn)
        raise
    try:
        conn.execute("COMMIT")
    except duckdb.Error:
        _rollback_quietly(conn)
        raise
