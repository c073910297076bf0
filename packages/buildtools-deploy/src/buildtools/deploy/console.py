"""Console output."""

import os
from contextlib import contextmanager
from typing import Generator

from rich.console import Console
from rich.markup import escape

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)

DEBUG = os.environ.get("BUILDTOOLS_DEBUG", "false").lower() in ("1", "true")


def info(message: str) -> None:
    console.print(message)


def output(text: str) -> None:
    """Print command output verbatim."""
    if text:
        console.print(text, markup=False, soft_wrap=True)


def success(message: str) -> None:
    console.print(f"[green]✓ {message}[/green]")


def warn(message: str) -> None:
    console.print(f"[bold yellow]{message}[/bold yellow]")


def error(message: str) -> None:
    err_console.print(f"[red]{escape(message)}[/red]", soft_wrap=True)


def debug(message: str) -> None:
    """Only printed when BUILDTOOLS_DEBUG is enabled."""
    if DEBUG:
        console.print(f"[dim]{message}[/dim]")


@contextmanager
def status(message: str) -> Generator[None, None, None]:
    """Show a spinner while a blocking call runs."""
    with console.status(f"[blue]{message}[/blue]", spinner="dots"):
        yield
