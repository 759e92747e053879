"""Console output formatting utilities for triggerci."""

from __future__ import annotations

from typing import Iterable, Optional

import click


def info(text: str) -> str:
    return click.style(text, fg="green")


def status(text: str) -> str:
    return click.style(text, fg="blue", bold=True)


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_build_started(self, job_name: str, build_url: str, console_url: str) -> None:
        """Print where a freshly triggered build can be found."""
        click.echo(f"Started build of {info(job_name)} at {info(build_url)}")
        click.echo(f"{status('view the log at:')} {info(console_url)}")

    def print_tailing(self, job_name: str, number: int) -> None:
        click.echo(f"{status('tailing the log of')} {info(f'{job_name} #{number}')}")

    def print_names(self, names: Iterable[str]) -> None:
        for name in names:
            click.echo(name)

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        click.echo(click.style(f"\nERROR: {title}", fg="red", bold=True), err=True)
        click.echo(message, err=True)
        if details:
            for detail in details:
                click.echo(f"  {detail}", err=True)
        if suggestion:
            click.echo(f"\n{suggestion}", err=True)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exc()
        else:
            click.echo(f"Error: {exc}", err=True)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        click.echo(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            click.echo(f"[DEBUG] {message}", err=True)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
