import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from cloven.cli_config import DEFAULT_CONFIG_FILE_PATH, CliConfig, load_cli_config
from cloven.commands import account, project, servers
from cloven.toolkit import console

app = typer.Typer(no_args_is_help=True, add_completion=False)

COMMANDS = (
    ("start", ["server_id"], "Start an existing server"),
    ("stop", ["server_id"], "Stop an existing server"),
    ("restart", ["server_id"], "Restart an existing server"),
    ("usage", ["server_id"], "Get the Server usage of an existing server"),
    ("status", ["server_id"], "Get the status of an existing server"),
    ("upload", [], "Uploads the current directory to the server"),
    ("create_config", [], "Create a default .cloven_config file"),
    ("init", [], "Initialize a new cloven nodejs environment"),
    ("login", ["api_key"], "Login to the cli tool"),
    ("set_api_key", ["api_key"], "Set the API key used by the cli tool"),
    ("help", [], "Get help"),
)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        show_time=False,
        show_path=False,
    )
    logging.basicConfig(
        level=level, format="%(message)s", handlers=[handler], force=True
    )


def validate_config_file_path(config_file: Path) -> Path:
    if config_file.exists() and not config_file.is_file():
        raise typer.BadParameter(f"'{config_file.absolute()}' is not a file")

    return config_file


def validate_project_dir(project_dir: Optional[Path]) -> Optional[Path]:
    if project_dir is not None:
        if not project_dir.is_dir():
            raise typer.BadParameter(f"'{project_dir.absolute()}' is not a directory")

    return project_dir


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Path = typer.Option(
        DEFAULT_CONFIG_FILE_PATH,
        envvar="CLOVEN_CONFIG_FILE",
        callback=validate_config_file_path,
        help="Path to the JSON file holding the API key and panel URL.",
    ),
    project_dir: Optional[Path] = typer.Option(
        None,
        callback=validate_project_dir,
        help="Project directory. Defaults to the current directory.",
    ),
    verbose: bool = typer.Option(False, help="Show more information."),
):
    setup_logging(verbose)

    with console.exit_on_error():
        cli_config = load_cli_config(
            config_file_path=config_file,
            project_dir=project_dir or Path.cwd(),
            verbose=verbose,
        )

    ctx.obj = cli_config


@app.command(name="help")
def help_command(ctx: typer.Context):
    """
    Get help.
    """

    cli_config: CliConfig = ctx.obj

    lines = [
        "Cloven CLI Tool",
        f"Panel: {cli_config.panel_url}",
        "Usage: cloven <command> [options]",
        "Available commands:",
    ]
    for name, args, description in COMMANDS:
        lines.append(f"  {name}")
        if args:
            lines.append(f"    Arguments: {', '.join(args)}")
        lines.append(f"    {description}")

    typer.echo("\n".join(lines))


app.command(name="login")(account.login)
app.command(name="set_api_key")(account.set_api_key)
app.command(name="create_config")(project.create_config)
app.command(name="init")(project.init)
app.command(name="upload")(project.upload)
app.command(name="usage")(servers.usage)
app.command(name="restart")(servers.restart)
app.command(name="stop")(servers.stop)
app.command(name="start")(servers.start)
app.command(name="status")(servers.status)


if __name__ == "__main__":
    app()
