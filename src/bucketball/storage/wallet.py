"""House wallet persistence - singleton row, additive updates only."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bucketball.models import HouseWallet
from bucketball.storage.db import WALLET_ROW_ID, now_ms

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


def get_wallet(conn: DuckDBPyConnection) -> HouseWallet:
    """Return the wallet row. init_schema seeds it, so it always exists."""
    row = conn.execute(
        "SELECT balance, admin_profit, total_bets, updated_at FROM house_wallet WHERE id = ?",
        [WALLET_ROW_ID],
    ).fetchone()
    if row is None:
        raise LookupError("house_wallet row missing; run init_schema")
    return HouseWallet(balance=row[0], admin_profit=row[1], total_bets=row[2], updated_at=row[3])


def apply_delta(
    conn: DuckDBPyConnection,
    net_change: float,
    admin_skim: float,
    bets_added: float,
) -> HouseWallet:
    """Apply balance/admin-profit/total-bets increments in a single UPDATE."""
    row = conn.execute(
        """
        UPDATE house_wallet SET
            balance = balance + ?,
            admin_profit = admin_profit + ?,
            total_bets = total_bets + ?,
            updated_at = ?
        WHERE id = ?
        RETURNING balance, admin_profit, total_bets, updated_at
        """,
        [net_change, admin_skim, bets_added, now_ms(), WALLET_ROW_ID],
    ).fetchone()
    if row is None:
        raise LookupError("house_wallet row missing; run init_schema")
    return HouseWallet(balance=row[0], admin_profit=row[1], total_bets=row[2], updated_at=row[3])
