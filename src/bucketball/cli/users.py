"""Users subcommand: create, deposit, show."""

from __future__ import annotations

import duckdb
import typer

from bucketball.errors import BucketballError
from bucketball.storage.db import get_connection, init_schema
from bucketball.storage.users import adjust_balance, create_user, get_user

app = typer.Typer(help="Player accounts and balances")


@app.command("create")
def create(
    ctx: typer.Context,
    user_id: str = typer.Argument(..., help="User ID"),
    name: str = typer.Option("", "--name", "-n", help="Display name"),
    balance: float = typer.Option(0.0, "--balance", "-b", min=0, help="Starting balance"),
) -> None:
    """Create a player with a starting balance."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn, settings.initial_house_balance)
    try:
        user = create_user(conn, user_id, name, balance)
        typer.echo(f"Created {user.user_id}  balance={user.balance:.2f}")
    except duckdb.ConstraintException:
        typer.echo(f"User already exists: {user_id}")
        raise typer.Exit(1)
    finally:
        conn.close()


@app.command("deposit")
def deposit(
    ctx: typer.Context,
    user_id: str = typer.Argument(..., help="User ID"),
    amount: float = typer.Argument(..., min=0.01, help="Amount to credit"),
) -> None:
    """Credit a player's balance."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn, settings.initial_house_balance)
    try:
        balance = adjust_balance(conn, user_id, amount)
        typer.echo(f"{user_id}  balance={balance:.2f}")
    except BucketballError as e:
        typer.echo(f"Error: {e.message}")
        raise typer.Exit(1)
    finally:
        conn.close()


@app.command("show")
def show(
    ctx: typer.Context,
    user_id: str = typer.Argument(..., help="User ID"),
) -> None:
    """Show a player's balance."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn, settings.initial_house_balance)
    try:
        user = get_user(conn, user_id)
        if not user:
            typer.echo(f"User not found: {user_id}")
            raise typer.Exit(1)
        typer.echo(f"{user.user_id}  {user.name}  balance={user.balance:.2f}")
    finally:
        conn.close()
