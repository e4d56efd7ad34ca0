"""Wallet subcommand: show, fund."""

from __future__ import annotations

import typer

from bucketball.engine.ledger import HouseWalletLedger
from bucketball.storage.db import get_connection, init_schema

app = typer.Typer(help="House wallet inspection and funding")


@app.command("show")
def show(ctx: typer.Context) -> None:
    """Show the house wallet."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn, settings.initial_house_balance)
    try:
        w = HouseWalletLedger(conn).get_state()
        typer.echo(f"Balance: {w.balance:.2f}")
        typer.echo(f"Admin profit: {w.admin_profit:.2f}")
        typer.echo(f"Total bets: {w.total_bets:.2f}")
    finally:
        conn.close()


@app.command("fund")
def fund(
    ctx: typer.Context,
    amount: float = typer.Argument(..., min=0.01, help="Amount to add to the house balance"),
) -> None:
    """Top up the house wallet."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn, settings.initial_house_balance)
    try:
        w = HouseWalletLedger(conn).fund(amount)
        typer.echo(f"Balance: {w.balance:.2f}")
    finally:
        conn.close()
