"""
Terminal output shared by all commands: colored status lines, spinners for
remote steps and progress bars for archiving and transfers.
"""

from contextlib import contextmanager
from typing import Callable, Iterator

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    DownloadColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from cloven.errors import CloveError

console = Console(highlight=False)

ProgressCallback = Callable[[int, int], None]


def info(message: str) -> None:
    console.print(f"[green]{escape(message)}[/green]", soft_wrap=True)


def warn(message: str) -> None:
    console.print(f"[yellow]{escape(message)}[/yellow]", soft_wrap=True)


def err(message: str) -> None:
    console.print(f"[red]{escape(message)}[/red]", soft_wrap=True)


def succeed(description: str, message: str = "") -> None:
    suffix = f" | {message}" if message else ""
    console.print(f"[green]✔[/green] {escape(description)}{suffix}", soft_wrap=True)


def fail(description: str) -> None:
    console.print(f"[red]✖[/red] {escape(description)}", soft_wrap=True)


class StepOutcome:
    """Set `message` inside a step to append it to the success line."""

    def __init__(self):
        self.message = ""


@contextmanager
def step(description: str) -> Iterator[StepOutcome]:
    outcome = StepOutcome()
    try:
        with console.status(escape(description), spinner="dots"):
            yield outcome
    except Exception:
        fail(description)
        raise

    succeed(description, outcome.message)


@contextmanager
def progress_bar(description: str, transfer: bool = False) -> Iterator[ProgressCallback]:
    """
    Yields an `(completed, total)` callback driving a progress bar. Byte
    columns are shown for transfers, an entry counter otherwise.
    """

    columns = [
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
    ]
    if transfer:
        columns.extend([DownloadColumn(), TransferSpeedColumn()])
    else:
        columns.append(MofNCompleteColumn())
    columns.append(TimeRemainingColumn())

    try:
        with Progress(*columns, console=console, transient=True) as progress:
            # Unknown total until the first callback
            task_id = progress.add_task(escape(description), total=None)

            def update(completed: int, total: int) -> None:
                progress.update(task_id, completed=completed, total=total)

            yield update
    except Exception:
        fail(description)
        raise

    succeed(description)


class ConsoleReporter:
    """Reports upload workflow steps on the shared console."""

    def step(self, description: str):
        return step(description)

    def progress(self, description: str, transfer: bool = False):
        return progress_bar(description, transfer=transfer)

    def info(self, message: str) -> None:
        info(message)

    def warn(self, message: str) -> None:
        warn(message)


@contextmanager
def exit_on_error() -> Iterator[None]:
    """Prints a `CloveError` as a red status line and exits with code 1."""

    try:
        yield
    except CloveError as exc:
        err(str(exc))
        raise typer.Exit(code=1)
