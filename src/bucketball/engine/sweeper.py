"""Staleness sweeper - periodically expires rounds left active too long."""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from bucketball.config.settings import Settings
from bucketball.engine.settlement import RoundSettlementEngine
from bucketball.storage.db import get_connection, init_schema

log = structlog.get_logger(__name__)


def sweep_once(db_path: str | Path, settings: Settings) -> list[str]:
    """Open a connection, expire stale rounds, close. Returns expired round ids."""
    conn = get_connection(db_path)
    try:
        init_schema(conn, settings.initial_house_balance)
        engine = RoundSettlementEngine(conn, settings)
        return engine.expire_stale_rounds()
    finally:
        conn.close()


class RoundSweeper:
    """Runs sweep_once every interval until stopped."""

    def __init__(self, settings: Settings, db_path: str | Path | None = None) -> None:
        self.settings = settings
        self.db_path = db_path or settings.db_path
        self.interval_sec = settings.sweep_interval_sec
        self.sweeps = 0
        self.expired_total = 0

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        """Sweep until stop_event is set. A failed sweep is logged and retried next interval."""
        stop = stop_event or asyncio.Event()
        log.info("sweeper_started", interval_sec=self.interval_sec)
        while not stop.is_set():
            try:
                expired = await asyncio.to_thread(sweep_once, self.db_path, self.settings)
            except Exception as e:
                log.error("sweep_failed", error=str(e))
            else:
                self.sweeps += 1
                self.expired_total += len(expired)
                if expired:
                    log.info("stale_rounds_expired", round_ids=expired)
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.interval_sec)
            except asyncio.TimeoutError:
                pass
        log.info("sweeper_stopped", sweeps=self.sweeps, expired_total=self.expired_total)
