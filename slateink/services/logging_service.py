"""
Logging service for SlateInk.

This module provides centralized logging configuration with console and file output.
Log files are stored in ~/.local/share/slateink/logs/ by default.

SlateInk is a library: its modules only ask for loggers, and the
embedding application decides whether to call setup_logging().
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union


# Default log directory following XDG Base Directory Specification
DEFAULT_LOG_DIR = Path.home() / ".local" / "share" / "slateink" / "logs"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Module-level flag to track if logging has been set up
_logging_initialized = False


def resolve_level(level: Union[int, str]) -> int:
    """
    Turn a level name ("debug", "WARNING") or number into a logging level.

    Unknown names fall back to INFO.
    """
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    return value if isinstance(value, int) else logging.INFO


def setup_logging(
    log_level: Union[int, str] = logging.INFO,
    log_to_file: bool = True,
    log_dir: Optional[Path] = None,
    force: bool = False,
) -> None:
    """
    Configure the logging system for SlateInk.

    Args:
        log_level: The logging level, as a number (logging.DEBUG) or a
            name ("debug").
        log_to_file: Whether to also log to a file.
        log_dir: Directory for log files. Defaults to ~/.local/share/slateink/logs/
        force: Reconfigure even if logging was already set up.

    Handlers installed by an earlier call are closed before new ones
    are added.
    """
    global _logging_initialized

    if _logging_initialized and not force:
        return

    # Use default log directory if not specified
    if log_dir is None:
        log_dir = DEFAULT_LOG_DIR

    level = resolve_level(log_level)
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Clear any existing handlers
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    # Console handler - always enabled
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler - optional
    if log_to_file:
        try:
            # Create log directory if it doesn't exist
            log_dir.mkdir(parents=True, exist_ok=True)

            # One file per day
            log_filename = f"slateink_{datetime.now().strftime('%Y%m%d')}.log"
            log_path = log_dir / log_filename

            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        except (OSError, PermissionError) as e:
            # If we can't create the log file, just log to console
            console_handler.setLevel(logging.WARNING)
            root_logger.warning(f"Could not create log file: {e}. Logging to console only.")

    _logging_initialized = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: The name for the logger, typically __name__ of the calling module.

    Returns:
        A configured Logger instance.

    Usage:
        from slateink.services.logging_service import get_logger
        logger = get_logger(__name__)
        logger.debug("Drag started")
    """
    return logging.getLogger(name)
