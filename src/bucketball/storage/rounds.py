"""Round, bet and game-result persistence, plus the active-round gate."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from bucketball.models import Bet, GameResult, Round
from bucketball.storage.db import GATE_ROW_ID, now_ms

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

ROUND_COLUMNS = [
    "round_id",
    "round_number",
    "status",
    "winning_ball_id",
    "winning_basket",
    "total_wagered",
    "house_balance",
    "admin_profit",
    "expired",
    "created_at",
    "updated_at",
    "completed_at",
]
BET_COLUMNS = ["bet_id", "user_id", "round_id", "ball_id", "amount", "status", "created_at", "updated_at"]
RESULT_COLUMNS = [
    "result_id",
    "bet_id",
    "user_id",
    "round_id",
    "ball_id",
    "ball_name",
    "ball_color",
    "bet_amount",
    "multiplier",
    "win_amount",
    "profit",
    "basket_landed",
    "won",
    "pushed",
    "wallet_limited",
    "created_at",
]

# Round fields a caller may set through update_round
_UPDATABLE_ROUND_FIELDS = frozenset(
    {"status", "winning_ball_id", "winning_basket", "total_wagered", "expired", "completed_at"}
)


def _placeholders(columns: list[str]) -> str:
    return ", ".join("?" for _ in columns)


# --- Rounds ---
def next_round_number(conn: DuckDBPyConnection) -> int:
    row = conn.execute("SELECT COALESCE(MAX(round_number), 0) FROM rounds").fetchone()
    return int(row[0]) + 1


def create_round(conn: DuckDBPyConnection, rnd: Round) -> None:
    values = [getattr(rnd, c) for c in ROUND_COLUMNS]
    conn.execute(
        f"INSERT INTO rounds ({', '.join(ROUND_COLUMNS)}) VALUES ({_placeholders(ROUND_COLUMNS)})",
        values,
    )


def get_round(conn: DuckDBPyConnection, round_id: str) -> Round | None:
    row = conn.execute(
        f"SELECT {', '.join(ROUND_COLUMNS)} FROM rounds WHERE round_id = ?", [round_id]
    ).fetchone()
    if not row:
        return None
    return Round(**dict(zip(ROUND_COLUMNS, row)))


def get_active_round(conn: DuckDBPyConnection) -> Round | None:
    """Return the round referenced by the gate, if any."""
    round_id = get_gate(conn)
    if round_id is None:
        return None
    return get_round(conn, round_id)


def list_active_rounds(conn: DuckDBPyConnection) -> list[Round]:
    rows = conn.execute(
        f"SELECT {', '.join(ROUND_COLUMNS)} FROM rounds WHERE status = 'active' ORDER BY created_at"
    ).fetchall()
    return [Round(**dict(zip(ROUND_COLUMNS, r))) for r in rows]


def list_rounds(conn: DuckDBPyConnection, limit: int = 20) -> list[Round]:
    rows = conn.execute(
        f"SELECT {', '.join(ROUND_COLUMNS)} FROM rounds ORDER BY round_number DESC LIMIT ?", [limit]
    ).fetchall()
    return [Round(**dict(zip(ROUND_COLUMNS, r))) for r in rows]


def update_round(
    conn: DuckDBPyConnection,
    round_id: str,
    fields: dict[str, Any],
    expect_status: str | None = None,
) -> bool:
    """Set fields on a round. With expect_status, only update if the status still matches.
    Returns True if a row was updated."""
    unknown = set(fields) - _UPDATABLE_ROUND_FIELDS
    if unknown:
        raise ValueError(f"Cannot update round fields: {sorted(unknown)}")
    data = dict(fields)
    data["updated_at"] = now_ms()
    assignments = ", ".join(f"{k} = ?" for k in data)
    sql = f"UPDATE rounds SET {assignments} WHERE round_id = ?"
    params = list(data.values()) + [round_id]
    if expect_status is not None:
        sql += " AND status = ?"
        params.append(expect_status)
    row = conn.execute(sql + " RETURNING round_id", params).fetchone()
    return row is not None


def add_to_round_wager(conn: DuckDBPyConnection, round_id: str, amount: float) -> bool:
    """Increment total_wagered on an active round. False if the round is no longer active."""
    row = conn.execute(
        """
        UPDATE rounds SET total_wagered = total_wagered + ?, updated_at = ?
        WHERE round_id = ? AND status = 'active'
        RETURNING round_id
        """,
        [amount, now_ms(), round_id],
    ).fetchone()
    return row is not None


# --- Active-round gate ---
def get_gate(conn: DuckDBPyConnection) -> str | None:
    row = conn.execute("SELECT active_round_id FROM round_gate WHERE id = ?", [GATE_ROW_ID]).fetchone()
    return row[0] if row else None


def claim_gate(conn: DuckDBPyConnection, round_id: str) -> bool:
    """Point the gate at round_id if no round is active. False if another round holds it."""
    row = conn.execute(
        """
        UPDATE round_gate SET active_round_id = ?, updated_at = ?
        WHERE id = ? AND active_round_id IS NULL
        RETURNING id
        """,
        [round_id, now_ms(), GATE_ROW_ID],
    ).fetchone()
    return row is not None


def release_gate(conn: DuckDBPyConnection, round_id: str) -> bool:
    """Clear the gate if it still points at round_id."""
    row = conn.execute(
        """
        UPDATE round_gate SET active_round_id = NULL, updated_at = ?
        WHERE id = ? AND active_round_id = ?
        RETURNING id
        """,
        [now_ms(), GATE_ROW_ID, round_id],
    ).fetchone()
    return row is not None


# --- Bets ---
def create_bet(conn: DuckDBPyConnection, bet: Bet) -> None:
    conn.execute(
        f"INSERT INTO bets ({', '.join(BET_COLUMNS)}) VALUES ({_placeholders(BET_COLUMNS)})",
        [getattr(bet, c) for c in BET_COLUMNS],
    )


def get_bets_for_round(conn: DuckDBPyConnection, round_id: str, status: str | None = None) -> list[Bet]:
    sql = f"SELECT {', '.join(BET_COLUMNS)} FROM bets WHERE round_id = ?"
    params: list[Any] = [round_id]
    if status is not None:
        sql += " AND status = ?"
        params.append(status)
    rows = conn.execute(sql + " ORDER BY created_at, bet_id", params).fetchall()
    return [Bet(**dict(zip(BET_COLUMNS, r))) for r in rows]


def get_bets_for_user(conn: DuckDBPyConnection, user_id: str, limit: int = 50) -> list[Bet]:
    rows = conn.execute(
        f"SELECT {', '.join(BET_COLUMNS)} FROM bets WHERE user_id = ? ORDER BY created_at DESC LIMIT ?",
        [user_id, limit],
    ).fetchall()
    return [Bet(**dict(zip(BET_COLUMNS, r))) for r in rows]


def update_bet_status(conn: DuckDBPyConnection, bet_id: str, status: str, expect_status: str = "pending") -> bool:
    """Transition a bet's status. Only pending bets move unless expect_status says otherwise."""
    row = conn.execute(
        "UPDATE bets SET status = ?, updated_at = ? WHERE bet_id = ? AND status = ? RETURNING bet_id",
        [status, now_ms(), bet_id, expect_status],
    ).fetchone()
    return row is not None


# --- Results ---
def create_result(conn: DuckDBPyConnection, result: GameResult) -> None:
    conn.execute(
        f"INSERT INTO game_results ({', '.join(RESULT_COLUMNS)}) VALUES ({_placeholders(RESULT_COLUMNS)})",
        [getattr(result, c) for c in RESULT_COLUMNS],
    )


def get_results_for_user(conn: DuckDBPyConnection, user_id: str, limit: int = 10) -> list[GameResult]:
    rows = conn.execute(
        f"""SELECT {', '.join(RESULT_COLUMNS)} FROM game_results
            WHERE user_id = ? ORDER BY created_at DESC, result_id LIMIT ?""",
        [user_id, limit],
    ).fetchall()
    return [GameResult(**dict(zip(RESULT_COLUMNS, r))) for r in rows]


def get_results_for_round(conn: DuckDBPyConnection, round_id: str) -> list[GameResult]:
    rows = conn.execute(
        f"SELECT {', '.join(RESULT_COLUMNS)} FROM game_results WHERE round_id = ? ORDER BY result_id",
        [round_id],
    ).fetchall()
    return [GameResult(**dict(zip(RESULT_COLUMNS, r))) for r in rows]
