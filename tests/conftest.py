"""Shared fixtures: temp DuckDB, settings and a deterministic random source."""

import tempfile
from pathlib import Path

import pytest

from bucketball.config import Settings
from bucketball.engine.settlement import RoundSettlementEngine
from bucketball.storage.db import get_connection, init_schema
from bucketball.storage.users import create_user


class FixedRng:
    """random() returns a constant, uniform() its lower bound, choice() the pick-th item."""

    def __init__(self, value: float = 0.0, pick: int = 0):
        self.value = value
        self.pick = pick

    def random(self) -> float:
        return self.value

    def uniform(self, a: float, b: float) -> float:
        return a

    def choice(self, seq):
        return seq[self.pick % len(seq)]


@pytest.fixture
def db_path():
    tmp = tempfile.mkdtemp()
    path = Path(tmp) / "test.duckdb"
    yield path
    path.unlink(missing_ok=True)
    Path(tmp).rmdir()


@pytest.fixture
def settings(db_path):
    return Settings(storage={"db_path": str(db_path)}, sweeper={"enabled": False})


@pytest.fixture
def temp_db(db_path, settings):
    conn = get_connection(db_path)
    init_schema(conn, settings.initial_house_balance)
    yield conn
    conn.close()


@pytest.fixture
def fixed_rng():
    return FixedRng()


@pytest.fixture
def make_engine(temp_db, settings, fixed_rng):
    """Engine factory; basket forces every ball into that basket index."""

    def _make(basket: int | None = None, clock=None, rng=None, conn=None):
        selector = (lambda wager, balance, rng_, ratio: basket) if basket is not None else None
        return RoundSettlementEngine(
            conn or temp_db, settings, rng=rng or fixed_rng, clock=clock, selector=selector
        )

    return _make


@pytest.fixture
def players(temp_db):
    """alice, bob and carol with 1000 each."""
    for user_id in ("alice", "bob", "carol"):
        create_user(temp_db, user_id, user_id.title(), 1000.0)
    return ["alice", "bob", "carol"]
