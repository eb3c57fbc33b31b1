from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_egg, render_markers, render_recent


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Inspect and administer a running Air Quality Egg dashboard.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Dashboard base URL (defaults to DASHBOARD_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for the dashboard to answer.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("feeds")
def feeds_command(ctx: typer.Context) -> None:
    """List the map markers of every egg."""
    state = _get_state(ctx)
    render_markers(state.client.get_all_feeds())


@app.command("recent")
def recent_command(
    ctx: typer.Context,
    order: str = typer.Argument("desc", help="Sort order accepted by the dashboard, e.g. asc or desc."),
) -> None:
    """List the most recently updated eggs."""
    state = _get_state(ctx)
    render_recent(order, state.client.get_recent(order))


@app.command("egg")
def egg_command(
    ctx: typer.Context,
    feed_id: int = typer.Argument(..., help="Feed id of the egg."),
) -> None:
    """Show the latest readings of one egg."""
    state = _get_state(ctx)
    render_egg(state.client.get_egg(feed_id))


@app.command("flush")
def flush_command(ctx: typer.Context) -> None:
    """Drop the dashboard's cached listings."""
    state = _get_state(ctx)
    status = state.client.flush_cache()
    typer.secho(status, fg=typer.colors.GREEN)
