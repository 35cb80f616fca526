"""Logging configuration using loguru"""

import re
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

_KEY_PATTERNS = (
    re.compile(r"(key=)[^&\s]+"),
    re.compile(r"(X-Goog-Api-Key['\"]?:\s*['\"]?)[^'\",\s}]+", re.IGNORECASE),
)


def redact_api_keys(message: str) -> str:
    """Mask API keys in query strings and headers"""
    for pattern in _KEY_PATTERNS:
        message = pattern.sub(r"\1***", message)
    return message


def _redacting_filter(record) -> bool:
    record["message"] = redact_api_keys(record["message"])
    return True


def setup_logging(
    verbose: bool = False,
    log_file: Optional[Path] = None,
    quiet_transport: bool = True,
) -> None:
    """
    Configure loguru for applications using the maps client.

    Args:
        verbose: Enable debug-level logging (rate limiter waits, response timings)
        log_file: Optional file path for log output
        quiet_transport: Hide per-response DEBUG lines from the console sink
    """
    logger.remove()

    log_level = "DEBUG" if verbose else "INFO"

    def console_filter(record) -> bool:
        if quiet_transport and record["message"].lstrip().startswith("←"):
            return False
        return _redacting_filter(record)

    logger.add(
        sys.stdout,
        format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level=log_level,
        colorize=True,
        filter=console_filter,
    )

    # File sink keeps everything, rotated
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}",
            level="DEBUG",
            rotation="100 MB",
            retention="30 days",
            compression="zip",
            enqueue=True,
            filter=_redacting_filter,
        )
        logger.info(f"Logging to file: {log_file}")
