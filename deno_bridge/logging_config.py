"""
Logging setup for deno-bridge.

One named logger (``deno_bridge``) shared by every module. Console output goes
to stderr: stdout belongs to command output (resolved paths, bundle
descriptors) and to the runtime, which inherits our streams when it runs.

Environment:
    DENO_BRIDGE_LOG_LEVEL: Console level when neither verbose nor quiet is set
    DENO_BRIDGE_LOG_FILE: Log file used when no ``log_file`` is passed
    DENO_BRIDGE_DEBUG: ``1`` forces DEBUG, like ``verbose``
    NO_COLOR: Disables coloured level tags (the same switch deno honours)
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

from .common import debug_enabled

LOGGER_NAME = "deno_bridge"

ENV_LOG_LEVEL = "DENO_BRIDGE_LOG_LEVEL"
ENV_LOG_FILE = "DENO_BRIDGE_LOG_FILE"

_logger: Optional[logging.Logger] = None


def _use_colors(stream) -> bool:
    if "NO_COLOR" in os.environ:
        return False
    return hasattr(stream, "isatty") and stream.isatty()


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    verbose: bool = False,
    quiet: bool = False,
) -> logging.Logger:
    """
    Configure the ``deno_bridge`` logger.

    Args:
        level: Base log level name; ``DENO_BRIDGE_LOG_LEVEL`` overrides it
        log_file: File that receives every record at DEBUG level
            (default: ``DENO_BRIDGE_LOG_FILE``)
        verbose: Force DEBUG on the console
        quiet: Drop the console handler, so only the log file (if any) is written

    Returns:
        The configured logger
    """
    global _logger

    if verbose or debug_enabled():
        console_level = "DEBUG"
    else:
        console_level = os.environ.get(ENV_LOG_LEVEL, level).upper()
    log_file = log_file or os.environ.get(ENV_LOG_FILE) or None

    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.propagate = False

    if not quiet:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(getattr(logging, console_level, logging.INFO))
        console_handler.setFormatter(
            ColoredFormatter("%(levelname_colored)s %(message)s", use_colors=_use_colors(sys.stderr))
        )
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    # The logger passes everything its handlers might want; each handler filters.
    if log_file:
        logger.setLevel(logging.DEBUG)
    elif quiet:
        logger.setLevel(logging.WARNING)
    else:
        logger.setLevel(getattr(logging, console_level, logging.INFO))

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """Return the package logger, configuring defaults on first use."""
    global _logger
    if _logger is None:
        _logger = setup_logging()
    return _logger


class ColoredFormatter(logging.Formatter):
    """Prefix each record with a ``[level]`` tag, coloured when writing to a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str, use_colors: bool = True):
        super().__init__(fmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if self.use_colors:
            color = self.COLORS.get(levelname, "")
            record.levelname_colored = f"{color}[{levelname.lower()}]{self.RESET}"
        else:
            record.levelname_colored = f"[{levelname.lower()}]"
        return super().format(record)
