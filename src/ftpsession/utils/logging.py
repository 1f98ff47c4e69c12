"""Logging configuration for ftpsession.

Provides centralized logging with PII redaction so that FTP passwords,
credentials embedded in URLs and full client addresses never reach a
log file.
"""

import logging
import re
import sys
from pathlib import Path
from typing import Optional, TextIO


ROOT_LOGGER_NAME = "ftpsession"

# PII patterns to redact from logs
PII_PATTERNS = [
    # Password in various formats
    (re.compile(r'(password["\s:=]+)[^\s,}\]]+', re.IGNORECASE), r'\1[REDACTED]'),
    (re.compile(r'(passwd["\s:=]+)[^\s,}\]]+', re.IGNORECASE), r'\1[REDACTED]'),
    # Raw PASS command as echoed by ftplib debugging
    (re.compile(r'(\bPASS\s+)[^\s\'"]+'), r'\1[REDACTED]'),
    # FTP URLs with credentials
    (re.compile(r'(ftps?)://[^:/@\s]+:[^@\s]+@'), r'\1://[REDACTED]@'),
    # IP addresses (partial redaction for privacy)
    (re.compile(r'(\d+\.\d+\.)\d+\.\d+'), r'\1*.*'),
]


def redact(message: str) -> str:
    """Apply every PII pattern to a message."""
    for pattern, replacement in PII_PATTERNS:
        message = pattern.sub(replacement, message)
    return message


class PIIRedactingFormatter(logging.Formatter):
    """Custom formatter that redacts PII from log messages."""

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record, redacting any PII."""
        return redact(super().format(record))


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    console: bool = True,
    stream: Optional[TextIO] = None
) -> logging.Logger:
    """
    Configure ftpsession logging with PII redaction.

    Args:
        level: Logging level (default INFO)
        log_file: Optional file path for log output
        console: Whether to output to console (default True)
        stream: Console stream, defaults to stderr

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    # Clear any existing handlers
    logger.handlers.clear()

    formatter = PIIRedactingFormatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    if console:
        console_handler = logging.StreamHandler(stream or sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Child name, e.g. "session" for "ftpsession.session"

    Returns:
        Logger instance
    """
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
