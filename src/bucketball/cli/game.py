"""Game subcommand: state, bet, play, sweep, history, stats."""

from __future__ import annotations

import typer

from bucketball.engine.settlement import RoundSettlementEngine
from bucketball.errors import BucketballError
from bucketball.models import BASKETS, get_ball
from bucketball.storage import rounds as round_store
from bucketball.storage.db import get_connection, init_schema

app = typer.Typer(help="Play rounds from the command line")


def _parse_ball_bets(specs: list[str]) -> dict[int, float]:
    """Parse BALL=AMOUNT pairs, e.g. ["0=100", "2=50"]."""
    ball_bets: dict[int, float] = {}
    for spec in specs:
        ball, sep, amount = spec.partition("=")
        if not sep:
            raise typer.BadParameter(f"expected BALL=AMOUNT, got {spec!r}")
        try:
            ball_bets[int(ball)] = ball_bets.get(int(ball), 0.0) + float(amount)
        except ValueError:
            raise typer.BadParameter(f"expected BALL=AMOUNT, got {spec!r}")
    return ball_bets


def _open(ctx: typer.Context):
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn, settings.initial_house_balance)
    return conn, RoundSettlementEngine(conn, settings)


@app.command("state")
def state(
    ctx: typer.Context,
    recent_limit: int = typer.Option(5, "--recent", "-n", help="Recent rounds to list"),
) -> None:
    """Show the active round, the house wallet and recent rounds."""
    conn, engine = _open(ctx)
    try:
        rnd = engine.current_round()
        wallet = engine.ledger.get_state()
        if rnd:
            typer.echo(f"Round #{rnd.round_number} {rnd.round_id}  wagered={rnd.total_wagered:.2f}")
        else:
            typer.echo("No active round")
        typer.echo(
            f"House wallet: {wallet.balance:.2f}  admin profit: {wallet.admin_profit:.2f}  "
            f"total bets: {wallet.total_bets:.2f}"
        )
        recent = round_store.list_rounds(conn, limit=recent_limit)
        if recent:
            typer.echo("Recent rounds:")
        for r in recent:
            outcome = "expired" if r.expired else r.status
            if r.winning_ball_id is not None and r.winning_basket is not None:
                ball = get_ball(r.winning_ball_id)
                outcome = f"{ball.name if ball else r.winning_ball_id} {BASKETS[r.winning_basket].value}x"
            typer.echo(f"  #{r.round_number:<5} {r.round_id[:12]}  wagered={r.total_wagered:.2f}  {outcome}")
    finally:
        conn.close()


@app.command("bet")
def bet(
    ctx: typer.Context,
    user_id: str = typer.Option(..., "--user", "-u", help="User ID"),
    balls: list[str] = typer.Option(..., "--ball", "-b", help="BALL=AMOUNT, repeatable"),
) -> None:
    """Place a bet on the active round (opens one if needed)."""
    ball_bets = _parse_ball_bets(balls)
    conn, engine = _open(ctx)
    try:
        rnd = engine.place_bet(user_id, ball_bets)
        typer.echo(f"Bet placed on round {rnd.round_id}  total={sum(ball_bets.values()):.2f}")
    except BucketballError as e:
        typer.echo(f"Error [{e.code}]: {e.message}")
        raise typer.Exit(1)
    finally:
        conn.close()


@app.command("play")
def play(
    ctx: typer.Context,
    round_id: str | None = typer.Argument(None, help="Round ID (default: active round)"),
) -> None:
    """Settle a round and print each bet's result."""
    conn, engine = _open(ctx)
    try:
        if round_id is None:
            rnd = engine.current_round()
            if rnd is None:
                typer.echo("No active round")
                raise typer.Exit(1)
            round_id = rnd.round_id
        report = engine.settle_round(round_id)
        if report.winning_ball_id is not None and report.winning_basket is not None:
            ball = get_ball(report.winning_ball_id)
            basket = BASKETS[report.winning_basket]
            typer.echo(f"Winner: {ball.name if ball else report.winning_ball_id} -> {basket.value}x")
        if report.scale < 1.0:
            typer.echo(f"Payouts limited by house wallet (scale {report.scale:.4f})")
        for r in report.results:
            typer.echo(
                f"  {r.user_id[:16]:16}  {r.ball_name:7}  bet={r.bet_amount:.2f}  "
                f"x{r.multiplier:.4f}  win={r.win_amount:.2f}  profit={r.profit:+.2f}"
            )
        typer.echo(f"House change: {report.net_house_change:+.2f}  admin skim: {report.admin_skim:.2f}")
    except BucketballError as e:
        typer.echo(f"Error [{e.code}]: {e.message}")
        raise typer.Exit(1)
    finally:
        conn.close()


@app.command("sweep")
def sweep(ctx: typer.Context) -> None:
    """Expire and refund stale rounds now."""
    conn, engine = _open(ctx)
    try:
        expired = engine.expire_stale_rounds()
        typer.echo(f"Expired {len(expired)} round(s)")
        for round_id in expired:
            typer.echo(f"  {round_id}")
    finally:
        conn.close()


@app.command("history")
def history(
    ctx: typer.Context,
    user_id: str = typer.Option(..., "--user", "-u", help="User ID"),
    limit: int = typer.Option(10, "--limit", "-n", help="Max results"),
) -> None:
    """Show a player's most recent results."""
    conn, engine = _open(ctx)
    try:
        for r in engine.history(user_id, limit):
            outcome = "won" if r.won else "push" if r.pushed else "lost"
            typer.echo(f"  {r.round_id[:12]}  {r.ball_name:7}  bet={r.bet_amount:.2f}  {outcome:4}  {r.profit:+.2f}")
    finally:
        conn.close()


@app.command("stats")
def stats(
    ctx: typer.Context,
    user_id: str | None = typer.Option(None, "--user", "-u", help="Show one player's stats instead"),
) -> None:
    """Show game-wide or per-player statistics."""
    conn, engine = _open(ctx)
    try:
        data = engine.user_stats(user_id) if user_id else engine.game_stats()
        for key, value in data.items():
            typer.echo(f"{key}: {value}")
    finally:
        conn.close()
