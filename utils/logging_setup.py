"""
Logging configuration for the merger.

Console output goes to stderr so it does not interleave with the summary; the
optional log file lives in the output logs directory and always records at the
configured level.
"""

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def setup_logging(
    log_level: int = logging.WARNING,
    log_file: Optional[Path] = None,
    console_logging: bool = True,
) -> None:
    """
    Set up logging configuration.

    Args:
        log_level: Logging level (e.g., logging.INFO)
        log_file: Optional path to log file
        console_logging: Whether to enable console logging
    """
    formatter = logging.Formatter(LOG_FORMAT)

    # Clear existing handlers
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    handlers = []

    if console_logging:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler.setLevel(log_level)
        handlers.append(console_handler)

    if log_file:
        handlers.append(_file_handler(log_file, log_level, formatter))

    # Configure root logger manually; basicConfig would be a no-op on reconfiguration
    root_logger.setLevel(log_level)
    for handler in handlers:
        root_logger.addHandler(handler)


def add_file_logging(log_file: Path, log_level: int) -> logging.Handler:
    """Attach a file handler to the root logger once the output directory exists."""
    handler = _file_handler(log_file, log_level, logging.Formatter(LOG_FORMAT))
    logging.getLogger().addHandler(handler)
    return handler


def _file_handler(log_file: Path, log_level: int, formatter: logging.Formatter) -> logging.FileHandler:
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    handler.setFormatter(formatter)
    handler.setLevel(log_level)
    return handler


def get_log_level(name: str) -> int:
    return getattr(logging, name.upper(), logging.WARNING)
