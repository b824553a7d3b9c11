"""
Unified output system using Loguru.
User-facing messages go to the terminal through Rich and to the log file.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger
from rich.console import Console

from .config import get_data_dir

_console: Console | None = None


def get_console() -> Console:
    """Get or create the global Rich Console instance."""
    global _console
    if _console is None:
        _console = Console(stderr=True)
    return _console


def get_log_file_path() -> Path:
    """Get the path to the log file."""
    return get_data_dir() / "pin-radio.log"


def setup_loguru(
    log_file: Optional[Path] = None,
    level: str = "INFO",
    console_output: bool = False,
) -> None:
    """
    Configure loguru for file logging, optionally mirrored to stderr.

    Args:
        log_file: Path to log file (default: ~/.local/share/pin-radio/pin-radio.log)
        level: Minimum level for logging (DEBUG, INFO, WARNING, ERROR)
        console_output: Whether to also emit log records on stderr
    """
    log_file = log_file or get_log_file_path()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    logger.remove()

    logger.add(
        log_file,
        rotation="10 MB",
        retention=5,
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}",
        enqueue=False,
    )

    if console_output:
        logger.add(sys.stderr, level=level, format="{level}: {message}")

    logger.info(f"Loguru initialized: {log_file} (level={level})")


def log(message: str, level: str = "info") -> None:
    """
    Write a user-facing message to the log file and the terminal.

    Args:
        message: User-facing message
        level: Log level (debug, info, warning, error)
    """
    log_func = getattr(logger, level)
    log_func(message)

    styles = {
        "debug": "cyan",
        "info": None,
        "warning": "yellow",
        "error": "bold red",
    }
    if level != "debug":
        get_console().print(message, style=styles.get(level), highlight=False)
