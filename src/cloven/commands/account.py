from typing import cast

import typer

from cloven.cli_config import CliConfig, save_cli_config
from cloven.toolkit import console

API_KEY_HELP = "API key from the panel's account page."


def _store_api_key(cli_config: CliConfig, api_key: str) -> None:
    cli_config.api_key = api_key.strip()
    with console.exit_on_error():
        save_cli_config(cli_config)

    console.info("API key set successfully")


def login(ctx: typer.Context, api_key: str = typer.Argument(..., help=API_KEY_HELP)):
    """
    Login to the cli tool by saving your API key.
    """

    _store_api_key(cast(CliConfig, ctx.obj), api_key)


def set_api_key(ctx: typer.Context, api_key: str = typer.Argument(..., help=API_KEY_HELP)):
    """
    Set the API key used by the cli tool.
    """

    _store_api_key(cast(CliConfig, ctx.obj), api_key)
