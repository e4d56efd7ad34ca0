"""User balance store - the engine's view of spendable balances."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bucketball.errors import InsufficientBalance, UserNotFound
from bucketball.models import User
from bucketball.storage.db import now_ms

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

_COLUMNS = ["user_id", "name", "balance", "created_at", "updated_at"]


def create_user(conn: DuckDBPyConnection, user_id: str, name: str = "", balance: float = 0.0) -> User:
    """Insert a user. Raises duckdb.ConstraintException if the id exists."""
    ts = now_ms()
    conn.execute(
        "INSERT INTO users (user_id, name, balance, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
        [user_id, name, balance, ts, ts],
    )
    return User(user_id=user_id, name=name, balance=balance, created_at=ts, updated_at=ts)


def get_user(conn: DuckDBPyConnection, user_id: str) -> User | None:
    row = conn.execute(
        f"SELECT {', '.join(_COLUMNS)} FROM users WHERE user_id = ?", [user_id]
    ).fetchone()
    if not row:
        return None
    return User(**dict(zip(_COLUMNS, row)))


def get_balance(conn: DuckDBPyConnection, user_id: str) -> float:
    row = conn.execute("SELECT balance FROM users WHERE user_id = ?", [user_id]).fetchone()
    if not row:
        raise UserNotFound(f"User not found: {user_id}")
    return float(row[0])


def adjust_balance(conn: DuckDBPyConnection, user_id: str, delta: float) -> float:
    """Add delta to the user's balance in one statement and return the new balance.

    A negative delta only applies when the balance covers it; otherwise
    InsufficientBalance is raised and nothing changes.
    """
    if delta < 0:
        row = conn.execute(
            """
            UPDATE users SET balance = balance + ?, updated_at = ?
            WHERE user_id = ? AND balance >= ?
            RETURNING balance
            """,
            [delta, now_ms(), user_id, -delta],
        ).fetchone()
    else:
        row = conn.execute(
            "UPDATE users SET balance = balance + ?, updated_at = ? WHERE user_id = ? RETURNING balance",
            [delta, now_ms(), user_id],
        ).fetchone()
    if row is not None:
        return float(row[0])
    balance = get_balance(conn, user_id)  # raises UserNotFound
    raise InsufficientBalance(f"Insufficient balance: have {balance:.2f}, need {-delta:.2f}")


def list_users(conn: DuckDBPyConnection, limit: int = 100) -> list[User]:
    rows = conn.execute(
        f"SELECT {', '.join(_COLUMNS)} FROM users ORDER BY created_at LIMIT ?", [limit]
    ).fetchall()
    return [User(**dict(zip(_COLUMNS, r))) for r in rows]
