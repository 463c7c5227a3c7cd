"""Utility functions for effectcheck."""

import logging
import sys
import tomllib
from pathlib import Path
from typing import Any

import structlog
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)

# Extensions expected in fixture directories
IMAGE_EXTENSIONS = {
    ".jpg",
    ".jpeg",
    ".png",
}


def setup_logging(
    json_output: bool = False, script_mode: bool = False, verbose: bool = False
) -> structlog.BoundLogger:
    """Setup structured logging based on output mode."""
    if json_output:
        # JSON output for scripting
        processors = [
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(),
        ]
    elif script_mode:
        # Simple console output for scripts (no colors/rich formatting)
        processors = [
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.processors.add_log_level,
            structlog.processors.KeyValueRenderer(key_order=["event", "file"]),
        ]
    else:
        # Rich console output for interactive use
        processors = [
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.processors.add_log_level,
            structlog.dev.ConsoleRenderer(),
        ]

    level = logging.DEBUG if verbose else logging.INFO
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger()


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Read CLI defaults from the ``[tool.effectcheck]`` table of pyproject.toml.

    The table is returned as-is and handed to click as ``default_map``, so
    per-command defaults live in sub-tables named after the command::

        [tool.effectcheck.check]
        data_dir = "tests/_data"
        max_conformity = 20
    """
    if path is None:
        path = Path.cwd() / "pyproject.toml"
    if not path.is_file():
        return {}

    with path.open("rb") as f:
        data = tomllib.load(f)
    return data.get("tool", {}).get("effectcheck", {})


def list_images(directory: Path, logger: structlog.BoundLogger | None = None) -> list[Path]:
    """List image files directly inside a directory, sorted by path.

    Files with an unexpected extension are reported but still returned, so a
    stray fixture never disappears silently from a test run.
    """
    if logger is None:
        logger = structlog.get_logger()

    image_files = []
    for file_path in Path(directory).iterdir():
        if not file_path.is_file():
            continue
        if file_path.suffix.lower() not in IMAGE_EXTENSIONS:
            logger.warning(
                "Found file of unknown extension in samples directory",
                file=str(file_path),
            )
        image_files.append(file_path)

    return sorted(image_files)


def create_progress_bar(script_mode: bool = False) -> Progress | None:
    """Create a Rich progress bar for tracking processing."""
    if script_mode:
        return None

    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        TimeRemainingColumn(),
        console=Console(stderr=True),  # Use stderr to keep stdout clean
        transient=False,
    )
