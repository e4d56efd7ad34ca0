"""House wallet ledger - single source of truth for house solvency."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from bucketball.models import HouseWallet
from bucketball.storage import wallet as wallet_store

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)


class HouseWalletLedger:
    """Reads wallet state and applies per-round deltas as one additive update."""

    def __init__(self, conn: DuckDBPyConnection) -> None:
        self.conn = conn

    def get_state(self) -> HouseWallet:
        return wallet_store.get_wallet(self.conn)

    def apply_delta(self, net_change: float, admin_skim: float, bets_added: float) -> HouseWallet:
        """balance += net_change, admin_profit += admin_skim, total_bets += bets_added.
        Caller owns the transaction."""
        if admin_skim < 0:
            raise ValueError("admin_skim must be non-negative")
        if bets_added < 0:
            raise ValueError("bets_added must be non-negative")
        state = wallet_store.apply_delta(self.conn, net_change, admin_skim, bets_added)
        log.info(
            "house_wallet_updated",
            net_change=round(net_change, 4),
            admin_skim=round(admin_skim, 4),
            bets_added=bets_added,
            balance=round(state.balance, 4),
        )
        return state

    def fund(self, amount: float) -> HouseWallet:
        """Admin top-up of the house balance."""
        if amount <= 0:
            raise ValueError("amount must be positive")
        return self.apply_delta(amount, 0.0, 0.0)
