from typing import Optional, cast

import typer
from rich.markup import escape

from cloven.cli_config import CliConfig
from cloven.toolkit import console
from cloven.toolkit.formatting import render_status, render_usage
from cloven.toolkit.panel import PanelClient
from cloven.toolkit.project_config import resolve_server_id

SERVER_ID_HELP = "Server id. Defaults to SERVER_ID from the .cloven_config file."


def _resolve_server_id(cli_config: CliConfig, server_id: Optional[str]) -> str:
    server_id = resolve_server_id(server_id, cli_config.project_dir)
    cli_config.require_api_key()
    return server_id


def _server_label(name: str) -> str:
    return f"Server: '[blue]{escape(name)}[/blue]'"


def _power_action(
    cli_config: CliConfig, server_id: Optional[str], signal: str, description: str, done: str
):
    with console.exit_on_error():
        server_id = _resolve_server_id(cli_config, server_id)

        with PanelClient(cli_config) as panel, console.step(description) as outcome:
            panel.send_power_signal(server_id, signal)
            details = panel.get_server_details(server_id)
            outcome.message = f"{_server_label(details.name)} {done} successfully."


def start(
    ctx: typer.Context,
    server_id: Optional[str] = typer.Argument(None, help=SERVER_ID_HELP),
):
    """
    Start an existing server.
    """

    _power_action(cast(CliConfig, ctx.obj), server_id, "start", "Starting server...", "started")


def stop(
    ctx: typer.Context,
    server_id: Optional[str] = typer.Argument(None, help=SERVER_ID_HELP),
):
    """
    Stop an existing server.
    """

    _power_action(cast(CliConfig, ctx.obj), server_id, "stop", "Stopping server...", "stopped")


def restart(
    ctx: typer.Context,
    server_id: Optional[str] = typer.Argument(None, help=SERVER_ID_HELP),
):
    """
    Restart an existing server.
    """

    _power_action(
        cast(CliConfig, ctx.obj), server_id, "restart", "Restarting server...", "restarted"
    )


def status(
    ctx: typer.Context,
    server_id: Optional[str] = typer.Argument(None, help=SERVER_ID_HELP),
):
    """
    Get the status of an existing server.
    """

    cli_config = cast(CliConfig, ctx.obj)

    with console.exit_on_error():
        server_id = _resolve_server_id(cli_config, server_id)

        with PanelClient(cli_config) as panel, console.step(
            "Fetching server status..."
        ) as outcome:
            state = panel.get_server_status(server_id)
            details = panel.get_server_details(server_id)
            outcome.message = f"{_server_label(details.name)} Status: `{render_status(state)}`"


def usage(
    ctx: typer.Context,
    server_id: Optional[str] = typer.Argument(None, help=SERVER_ID_HELP),
):
    """
    Get the server usage of an existing server.
    """

    cli_config = cast(CliConfig, ctx.obj)

    with console.exit_on_error():
        server_id = _resolve_server_id(cli_config, server_id)

        with PanelClient(cli_config) as panel:
            with console.step("Fetching server usage..."):
                details = panel.get_server_details(server_id)
                server_usage = panel.get_server_usages(server_id)

    console.info(render_usage(server_usage, details.limits))
