"""
wallquery console utilities

This module provides application-wide access to Rich Console objects for writing to stdout
and stderr, the themed message helpers used by the command line, and the logging setup that
routes library log records through a Rich handler.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

wallquery_theme = Theme(
    {"warning": "orange_red1", "fail": "bold red", "confirm": "bold", "describe": ""}
)

console = Console(theme=wallquery_theme)
error_console = Console(theme=wallquery_theme, stderr=True)
log_console = Console(theme=wallquery_theme, stderr=True)

LOG_LEVELS = {
    "quiet": logging.ERROR,
    "verbose": logging.INFO,
    "debug": logging.DEBUG,
}


"""
Formatting helpers
"""


def warn(msg: str):
    """
    Format msg and print to stderr.
    """

    error_console.print(f":warning-emoji:  [bold]warning:[/] {msg}", style="warning")


def describe(msg: str, **kwargs):
    """
    Format descriptive msg and print to stdout.
    """

    console.print(f"{msg}", style="describe", **kwargs)


def confirm_success(msg: str, **kwargs):
    """
    Format confirmation msg and print to stdout. Accept any additional kwargs that console.print from
    rich module exposes.
    """

    console.print(f":white_check_mark-emoji: {msg}", style="confirm", **kwargs)


def fail(msg: str):
    """
    Format failure msg and print to stderr.
    """

    error_console.print(f":x-emoji: failed. {msg}", style="fail", markup=False)


def setup_logging(verbosity: str = "verbose") -> None:
    """
    Route log records of the wallquery package to log_console. verbosity is one of
    "quiet", "verbose" or "debug".
    """

    logger = logging.getLogger("wallquery")
    logger.setLevel(LOG_LEVELS.get(verbosity, logging.INFO))

    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        handler = RichHandler(console=log_console, show_path=False, markup=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
