from typing import cast

import typer

from cloven.cli_config import CliConfig
from cloven.toolkit import console
from cloven.toolkit.npm import init_package
from cloven.toolkit.panel import PanelClient
from cloven.toolkit.project_config import (
    PROJECT_CONFIG_FILENAME,
    write_default_project_config,
)
from cloven.toolkit.upload import UploadWorkflow


def create_config(ctx: typer.Context):
    """
    Create a default .cloven_config file in the project directory.
    """

    cli_config = cast(CliConfig, ctx.obj)

    with console.exit_on_error():
        write_default_project_config(cli_config.project_dir)
    console.info(f"Created {PROJECT_CONFIG_FILENAME} file")


def init(ctx: typer.Context):
    """
    Initialize a new cloven nodejs environment in the project directory.
    """

    cli_config = cast(CliConfig, ctx.obj)
    project_dir = cli_config.project_dir

    with console.exit_on_error():
        with console.step("Initializing a new cloven nodejs environment..."):
            write_default_project_config(project_dir, overwrite=False)
            init_package(project_dir)

            index_file = project_dir / "index.js"
            if not index_file.exists():
                index_file.touch()

    console.console.print(
        f"[blue]Go to {cli_config.panel_url} and create a new server.\n"
        f"Then copy the server ID and paste it in the {PROJECT_CONFIG_FILENAME} file.\n"
        "Done. Run: npm start[/blue]",
        soft_wrap=True,
    )


def _ask_password() -> str:
    return typer.prompt("Enter your SFTP password", hide_input=True)


def _confirm_restart() -> bool:
    return typer.confirm("Do you want to restart the server?", default=False)


def upload(ctx: typer.Context):
    """
    Uploads the current directory to the server.
    """

    cli_config = cast(CliConfig, ctx.obj)

    with console.exit_on_error(), PanelClient(cli_config) as panel:
        workflow = UploadWorkflow(
            cli_config,
            panel,
            ask_password=_ask_password,
            confirm_restart=_confirm_restart,
            reporter=console.ConsoleReporter(),
        )
        result = workflow.run()

    if result.restarted:
        console.info("Server has been restarted.")
