"""Shared CLI utilities for prep_restraints commands."""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)

# Default number of workers: use half of CPU cores, minimum 1, maximum 8
DEFAULT_WORKERS = min(8, max(1, (os.cpu_count() or 4) // 2))

# Rich consoles for output
console = Console()
err_console = Console(stderr=True)

PACKAGE_LOGGER = "prep_restraints"


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Route the package's log records to stderr through rich.

    Added links and warnings are shown unless ``quiet``; progress lines
    (libraries read, output written) only with ``verbose``.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.handlers.clear()

    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO
    logger.setLevel(level)

    handler = RichHandler(
        console=err_console,
        show_time=False,
        show_path=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)


def create_progress() -> Progress:
    """Create a standardized rich progress bar."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        TimeRemainingColumn(),
        console=err_console,
    )
