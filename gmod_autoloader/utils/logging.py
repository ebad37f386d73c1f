"""Logging configuration for the auto-loader.

Provides centralized logging with secret redaction so API tokens are
never written to the host console or log files.
"""

import logging
import re
import sys
from pathlib import Path
from typing import Optional, Union


# Secret patterns to redact from logs
SECRET_PATTERNS = [
    # Authorization headers
    (re.compile(r'(Bearer\s+)[A-Za-z0-9_\-\.=]+', re.IGNORECASE), r'\1[REDACTED]'),
    (re.compile(r'(token\s+)[A-Za-z0-9_\-\.=]{16,}', re.IGNORECASE), r'\1[REDACTED]'),
    # GitHub token literals
    (re.compile(r'\bgh[pousr]_[A-Za-z0-9]{20,}'), '[REDACTED]'),
    (re.compile(r'\bgithub_pat_[A-Za-z0-9_]{20,}'), '[REDACTED]'),
    # Tokens passed as query parameters
    (re.compile(r'([?&](?:access_)?token=)[^&\s]+', re.IGNORECASE), r'\1[REDACTED]'),
]


class SecretRedactingFormatter(logging.Formatter):
    """Custom formatter that redacts secrets from log messages."""

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record, redacting any secrets."""
        message = super().format(record)
        for pattern, replacement in SECRET_PATTERNS:
            message = pattern.sub(replacement, message)
        return message


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Path] = None,
    console: bool = True
) -> logging.Logger:
    """
    Configure auto-loader logging with secret redaction.

    Args:
        level: Logging level or level name (default INFO)
        log_file: Optional file path for log output
        console: Whether to output to the host console (default True)

    Returns:
        Configured logger instance
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger("gmod_autoloader")
    logger.setLevel(level)

    # Clear any existing handlers
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    formatter = SecretRedactingFormatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            logger.warning(f"Cannot open log file {log_file}: {e}")
        else:
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger

