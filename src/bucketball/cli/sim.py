"""Sim subcommand: run, report."""

from __future__ import annotations

import random

import typer

from bucketball.simulation.runner import get_run_result, list_run_ids, run_simulation, save_run_result
from bucketball.storage.db import get_connection, init_schema

app = typer.Typer(help="Bankroll simulation with bot players")


@app.command("run")
def run_sim(
    ctx: typer.Context,
    rounds: int = typer.Option(100, "--rounds", "-r", min=1, help="Rounds to play"),
    players: int = typer.Option(4, "--players", "-n", min=1, max=10, help="Bot players per round"),
    seed: int | None = typer.Option(None, "--seed", help="RNG seed (default from config or system entropy)"),
) -> None:
    """Play rounds of bot bets against the house wallet."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn, settings.initial_house_balance)
    try:
        rng = random.Random(seed) if seed is not None else None
        result = run_simulation(conn, settings, rounds, players, rng=rng)
        save_run_result(conn, result)
        typer.echo(f"Run id: {result.run_id}")
        typer.echo(f"Rounds: {result.rounds_played}  Players/round: {result.players_per_round}")
        typer.echo(f"House: {result.start_balance:.2f} -> {result.end_balance:.2f}  (min {result.min_balance:.2f})")
        typer.echo(f"Admin profit: {result.admin_profit:.2f}  Wallet-limited rounds: {result.wallet_limited_rounds}")
    finally:
        conn.close()


@app.command("report")
def report(
    ctx: typer.Context,
    run_id: str | None = typer.Option(None, "--run-id", help="Simulation run ID (omit to list runs)"),
) -> None:
    """Show report for a simulation run."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn, settings.initial_house_balance)
    try:
        if run_id is None:
            for rid in list_run_ids(conn):
                typer.echo(rid)
            return
        result = get_run_result(conn, run_id)
        if not result:
            typer.echo(f"Run not found: {run_id}")
            raise typer.Exit(1)
        typer.echo(f"Run: {result.run_id}")
        typer.echo(f"Rounds played: {result.rounds_played}  Players/round: {result.players_per_round}")
        typer.echo(f"House PnL: {result.house_pnl:+.2f}  Min balance: {result.min_balance:.2f}")
        typer.echo(f"Total wagered: {result.total_wagered:.2f}  Admin profit: {result.admin_profit:.2f}")
        typer.echo(f"Wallet-limited rounds: {result.wallet_limited_rounds}")
    finally:
        conn.close()
