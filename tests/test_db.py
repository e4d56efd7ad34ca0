"""Schema creation and the statement splitter."""

import pytest

from bucketball.engine.ledger import HouseWalletLedger
from bucketball.storage import rounds as round_store
from bucketball.storage.db import SCHEMA_SQL, get_connection, init_schema, schema_statements

TABLES = {"users", "rounds", "round_gate", "bets", "game_results", "house_wallet", "sim_runs"}


@pytest.fixture
def mem_conn():
    conn = get_connection(":memory:")
    yield conn
    conn.close()


def test_init_schema_creates_every_table(mem_conn):
    init_schema(mem_conn, 1000.0)
    rows = mem_conn.execute("SELECT table_name FROM information_schema.tables").fetchall()
    assert TABLES <= {r[0] for r in rows}
    assert round_store.get_gate(mem_conn) is None
    assert HouseWalletLedger(mem_conn).get_state().balance == 1000.0


def test_init_schema_is_idempotent(mem_conn):
    init_schema(mem_conn, 1000.0)
    HouseWalletLedger(mem_conn).fund(250.0)
    init_schema(mem_conn, 1000.0)
    assert HouseWalletLedger(mem_conn).get_state().balance == 1250.0
    assert mem_conn.execute("SELECT COUNT(*) FROM round_gate").fetchone()[0] == 1


def test_semicolons_in_comments_do_not_split_statements():
    sql = "-- a; b\nCREATE TABLE x (i INT);\n  -- c; d\nCREATE TABLE y (i INT)"
    assert schema_statements(sql) == ["CREATE TABLE x (i INT)", "CREATE TABLE y (i INT)"]


def test_schema_splits_into_create_statements_only():
    stmts = schema_statements(SCHEMA_SQL)
    assert len(stmts) == len(TABLES)
    assert all(s.startswith("CREATE TABLE") for s in stmts)
