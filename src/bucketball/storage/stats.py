"""Aggregate game statistics (overall and per user)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


def game_stats(conn: DuckDBPyConnection) -> dict[str, Any]:
    """Round counts by status and total amount wagered."""
    total, completed, active, expired = conn.execute(
        """
        SELECT
            COUNT(*),
            COUNT(*) FILTER (WHERE status = 'completed'),
            COUNT(*) FILTER (WHERE status = 'active'),
            COUNT(*) FILTER (WHERE expired)
        FROM rounds
        """
    ).fetchone()
    total_bets_amount = conn.execute("SELECT COALESCE(SUM(amount), 0) FROM bets").fetchone()[0]
    return {
        "total_games": int(total),
        "completed_games": int(completed),
        "active_games": int(active),
        "expired_games": int(expired),
        "total_bets_amount": float(total_bets_amount),
    }


def user_stats(conn: DuckDBPyConnection, user_id: str) -> dict[str, Any]:
    """Totals for one user: stake, bet count, win profit, win count, win rate (%), net profit."""
    total_bets, bet_count = conn.execute(
        "SELECT COALESCE(SUM(amount), 0), COUNT(*) FROM bets WHERE user_id = ?", [user_id]
    ).fetchone()
    total_wins, win_count = conn.execute(
        "SELECT COALESCE(SUM(profit), 0), COUNT(*) FROM game_results WHERE user_id = ? AND won",
        [user_id],
    ).fetchone()
    net_profit = conn.execute(
        "SELECT COALESCE(SUM(profit), 0) FROM game_results WHERE user_id = ?", [user_id]
    ).fetchone()[0]
    bet_count = int(bet_count)
    win_count = int(win_count)
    return {
        "total_bets": float(total_bets),
        "bet_count": bet_count,
        "total_wins": float(total_wins),
        "win_count": win_count,
        "win_rate": (win_count / bet_count * 100) if bet_count else 0.0,
        "net_profit": float(net_profit),
    }
