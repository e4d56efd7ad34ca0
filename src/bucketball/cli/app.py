"""Root CLI app - entry point and command registration."""

from pathlib import Path

import typer

from bucketball.config import get_settings
from bucketball.config.settings import configure_logging

app = typer.Typer(
    name="bucketball",
    help="Bucketball - ball-drop betting rounds, house wallet and bankroll simulation.",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config_dir: Path | None = typer.Option(
        None, "--config-dir", "-C", help="Config directory (default: ./config or package config)"
    ),
    profile: str | None = typer.Option(
        None, "--profile", "-p", help="Config profile (e.g. dev) to overlay on default.toml"
    ),
) -> None:
    """Configure logging and store options in context."""
    settings = get_settings(profile, config_dir)
    configure_logging(settings)
    ctx.obj = {"settings": settings, "config_dir": config_dir, "profile": profile}


# Subcommands registered from other modules
from bucketball.cli import api_cmd, game, sim, users, wallet  # noqa: E402

app.add_typer(users.app, name="users")
app.add_typer(game.app, name="game")
app.add_typer(wallet.app, name="wallet")
app.add_typer(sim.app, name="sim")
app.add_typer(api_cmd.app, name="api")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
