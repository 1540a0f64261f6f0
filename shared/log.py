#!/usr/bin/env python3
"""
Sensor Stream Logging Configuration

Centralized logging setup for consistent formatting across the project.
Console output always goes to stderr so stdout carries nothing but sample lines.
File logging is opt-in: the client writes no files unless asked to.

Usage:
    from shared.log import get_logger

    logger = get_logger(__name__)
    logger.info("Connecting...")
    logger.error("Connection failed", extra={"url": "ws://192.168.1.66:81/"})
"""

from __future__ import annotations
import logging
import sys
from pathlib import Path
from typing import Optional, Any
import os


# ========================================
#           LOGGING FORMATTERS
# ========================================

class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output"""

    # ANSI Color codes
    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'       # Reset
    }

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class GenericFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        context = []

        # Extract stream fields from extra data
        if hasattr(record, 'url'):
            context.append(f"url={record.url}")
        if hasattr(record, 'schema'):
            context.append(f"schema={record.schema}")
        if hasattr(record, 'channel'):
            context.append(f"ch={record.channel}")

        if context:
            return f"[{' '.join(context)}] {super().format(record)}"
        return super().format(record)


# ========================================
#           LOGGING CONFIGURATION
# ========================================

_loggers_configured = set()
_log_file: Optional[Path] = None


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a configured logger for the given module.

    Args:
        name: Usually __name__ from the calling module
        level: Override log level ("DEBUG", "INFO", "WARNING", "ERROR")

    Returns:
        Configured logger instance

    Examples:
        logger = get_logger(__name__)
        logger.info("Stream starting")

        # With context
        logger.warning("Dropped frame", extra={"url": url, "schema": "channel"})
    """
    logger = logging.getLogger(name)

    # Only configure each logger once
    if name not in _loggers_configured:
        _configure_logger(logger, level)
        _loggers_configured.add(name)

    return logger


def _configure_logger(logger: logging.Logger, level: Optional[str] = None) -> None:
    """Configure a logger with appropriate handlers and formatters"""

    logger.setLevel(_get_log_level(level))

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()

    _add_console_handler(logger, colored=_is_development())
    if _log_file is not None:
        _add_file_handler(logger, _log_file)

    # Prevent duplicate messages from parent loggers
    logger.propagate = False


def _get_log_level(level: Optional[str] = None) -> int:
    """Determine appropriate log level"""

    if level:
        return getattr(logging, level.upper(), logging.INFO)

    # Default based on environment
    return logging.DEBUG if _is_development() else logging.INFO


def _is_development() -> bool:
    """Detect if we're in development mode"""
    return os.getenv('PYTHON_ENV', '').lower() in ['dev', 'development']


class _StderrHandler(logging.StreamHandler):
    """StreamHandler bound to whatever sys.stderr is at emit time (pytest swaps it)."""

    def __init__(self) -> None:
        super().__init__(sys.stderr)

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value) -> None:
        pass


def _add_console_handler(logger: logging.Logger, colored: bool = True) -> None:
    """Add stderr console handler with appropriate formatter"""

    fmt = '[%(levelname)-8s][%(asctime)s][%(name)-5s]: %(message)s'
    handler = _StderrHandler()

    if colored and _supports_color():
        formatter = ColoredFormatter(fmt=fmt, datefmt='%H:%M:%S')
    else:
        formatter = GenericFormatter(fmt=fmt, datefmt='%Y-%m-%d %H:%M:%S')

    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _add_file_handler(logger: logging.Logger, log_file: Path) -> None:
    """Add file handler when a log file was requested"""

    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file)

    formatter = GenericFormatter(
        fmt='%(asctime)s | %(name)-30s | %(levelname)-8s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _supports_color() -> bool:
    """Check if terminal supports color output"""

    # stderr must be a terminal
    if not (hasattr(sys.stderr, "isatty") and sys.stderr.isatty()):
        return False

    # TERM should not be dumb
    if os.getenv("TERM", "") == "dumb":
        return False

    # Windows-specific check
    if sys.platform == "win32":
        # On modern Windows terminals, ANSI colors are supported
        return os.getenv("ANSICON") is not None or os.getenv("WT_SESSION") is not None or os.getenv("TERM_PROGRAM") == "vscode" or "WindowsTerminal" in os.getenv("TERM", "")

    return True


# ========================================
#           CONVENIENCE FUNCTIONS
# ========================================

def configure_root_logging(level: str = "INFO", log_file: Optional[Path] = None) -> None:
    """
    Configure logging for the entire application.
    Call this once at application startup.

    Loggers already handed out by get_logger() are reconfigured so the
    requested level and file handler apply to them too.

    Args:
        level: Root log level ("DEBUG", "INFO", "WARNING", "ERROR")
        log_file: Optional path; when set, every logger also writes there
    """
    global _log_file
    _log_file = Path(log_file) if log_file is not None else None

    _configure_logger(logging.getLogger(), level)
    for name in _loggers_configured:
        _configure_logger(logging.getLogger(name), level)


def log_sample(logger: logging.Logger, level: str, message: str,
               sample: Optional[Any] = None,
               **context: Any) -> None:
    """
    Log a sensor sample with structured context.

    Args:
        logger: Logger instance
        level: Log level ("debug", "info", "warning", "error")
        message: Log message; the sample repr is appended when given
        sample: Decoded sample; its channel (if any) becomes log context
        **context: Additional context fields

    Example:
        log_sample(logger, "info", "sample", sample, schema="reading")
    """

    extra_context = {}

    if sample is not None:
        channel = getattr(sample, 'channel', None)
        if channel is not None:
            extra_context['channel'] = channel
        message = f"{message} {sample!r}"

    extra_context.update(context)

    log_func = getattr(logger, level.lower())
    log_func(message, extra=extra_context)
