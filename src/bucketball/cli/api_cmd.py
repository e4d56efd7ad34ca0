"""API server command."""

import typer

from bucketball.api.main import run_api

app = typer.Typer(help="Start the HTTP API server")


@app.callback(invoke_without_command=True)
def api(
    ctx: typer.Context,
    host: str | None = typer.Option(None, "--host", help="Bind host (default from [api] config)"),
    port: int | None = typer.Option(None, "--port", help="Bind port (default from [api] config)"),
) -> None:
    if ctx.invoked_subcommand is not None:
        return
    run_api(host=host, port=port, profile=ctx.obj["profile"])


if __name__ == "__main__":
    app()
