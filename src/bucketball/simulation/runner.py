"""Bankroll simulation: bot players over many rounds, persist the run report."""

from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

import structlog

from bucketball.config.settings import Settings
from bucketball.engine.selector import RandomSource
from bucketball.engine.settlement import RoundSettlementEngine
from bucketball.errors import HouseWalletDepleted

log = structlog.get_logger(__name__)


@dataclass
class RunResult:
    """Result of a simulation run."""

    run_id: str
    rounds_played: int
    players_per_round: int
    start_balance: float
    end_balance: float
    min_balance: float
    admin_profit: float
    total_wagered: float
    wallet_limited_rounds: int
    params: dict = field(default_factory=dict)

    @property
    def house_pnl(self) -> float:
        return self.end_balance - self.start_balance


def run_simulation(
    conn: Any,
    settings: Settings,
    rounds: int,
    players_per_round: int = 4,
    rng: RandomSource | None = None,
) -> RunResult:
    """Play `rounds` rounds of bot bets through the real engine and track the house wallet."""
    engine = RoundSettlementEngine(conn, settings, rng=rng)
    start = engine.ledger.get_state()
    min_balance = start.balance
    total_wagered = 0.0
    limited_rounds = 0
    played = 0

    for _ in range(rounds):
        try:
            rnd = engine.open_round()
        except HouseWalletDepleted:
            log.warning("simulation_house_depleted", rounds_played=played)
            break
        engine.simulate_other_players(rnd.round_id, players_per_round)
        report = engine.settle_round(rnd.round_id)
        played += 1
        total_wagered += report.total_wagered
        if report.scale < 1.0:
            limited_rounds += 1
        min_balance = min(min_balance, engine.ledger.get_state().balance)

    end = engine.ledger.get_state()
    result = RunResult(
        run_id=str(uuid.uuid4())[:8],
        rounds_played=played,
        players_per_round=players_per_round,
        start_balance=start.balance,
        end_balance=end.balance,
        min_balance=min_balance,
        admin_profit=end.admin_profit - start.admin_profit,
        total_wagered=total_wagered,
        wallet_limited_rounds=limited_rounds,
        params={"rounds": rounds, "exposure_cap_ratio": settings.exposure_cap_ratio},
    )
    log.info("simulation_finished", run_id=result.run_id, rounds_played=played, house_pnl=round(result.house_pnl, 2))
    return result


def save_run_result(conn: Any, result: RunResult) -> None:
    """Persist RunResult to sim_runs table."""
    conn.execute(
        """
        INSERT INTO sim_runs (run_id, rounds_played, players_per_round, start_balance, end_balance, min_balance,
                              admin_profit, total_wagered, wallet_limited_rounds, params, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            result.run_id,
            result.rounds_played,
            result.players_per_round,
            result.start_balance,
            result.end_balance,
            result.min_balance,
            result.admin_profit,
            result.total_wagered,
            result.wallet_limited_rounds,
            json.dumps(result.params),
            int(time.time() * 1000),
        ],
    )


def get_run_result(conn: Any, run_id: str) -> RunResult | None:
    """Load RunResult by run_id."""
    row = conn.execute(
        """SELECT run_id, rounds_played, players_per_round, start_balance, end_balance, min_balance,
                  admin_profit, total_wagered, wallet_limited_rounds, params
           FROM sim_runs WHERE run_id = ?""",
        [run_id],
    ).fetchone()
    if not row:
        return None
    return RunResult(
        run_id=row[0],
        rounds_played=row[1],
        players_per_round=row[2],
        start_balance=row[3],
        end_balance=row[4],
        min_balance=row[5],
        admin_profit=row[6],
        total_wagered=row[7],
        wallet_limited_rounds=row[8],
        params=json.loads(row[9]) if row[9] else {},
    )


def list_run_ids(conn: Any, limit: int = 50) -> list[str]:
    rows = conn.execute("SELECT run_id FROM sim_runs ORDER BY created_at DESC LIMIT ?", [limit]).fetchall()
    return [r[0] for r in rows]
