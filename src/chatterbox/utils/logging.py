# ABOUTME: Structured logging configuration using loguru for the relay process.
# ABOUTME: Supports per-envelope context fields (team, channel, type) and console/file output.

import sys
from pathlib import Path
from typing import Any

from loguru import logger


# Log format with the bound envelope context (team, channel, type) at the end
DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level> | "
    "{extra}"
)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FILE_NAME = "chatterbox_{time:YYYY-MM-DD}.log"
LOG_ROTATION = "100 MB"
LOG_RETENTION = "30 days"


def setup_logging(
    log_level: str = "INFO",
    log_dir: str | Path | None = None,
    console_output: bool = True,
    file_output: bool = False,
) -> None:
    """
    Replace loguru's default sink with the relay's console and file sinks.

    Args:
        log_level: Minimum level, case-insensitive
        log_dir: Directory for rotating log files (default: "logs")
        console_output: Log to stderr
        file_output: Log to a rotating file in log_dir

    Raises:
        ValueError: If log_level is not one of LOG_LEVELS
    """
    level = log_level.upper()
    if level not in LOG_LEVELS:
        raise ValueError(
            f"Invalid log level: '{log_level}'. Must be one of: {', '.join(LOG_LEVELS)}"
        )

    logger.remove()
    # Envelope bodies may carry tokens, so tracebacks never dump local variables
    sink_options = {"format": DEFAULT_FORMAT, "level": level, "backtrace": True, "diagnose": False}

    if console_output:
        logger.add(sys.stderr, colorize=True, **sink_options)

    if file_output:
        directory = Path(log_dir or "logs")
        directory.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(directory / LOG_FILE_NAME),
            rotation=LOG_ROTATION,
            retention=LOG_RETENTION,
            enqueue=True,
            **sink_options,
        )

    logger.info(f"Logging configured: level={level}, console={console_output}, file={file_output}")


def silence_logging() -> None:
    """Drop every sink (used in test mode)"""
    logger.remove()


def log_envelope(
    message: str,
    envelope_type: str,
    team: str | None,
    channel: str | None = None,
    level: str = "INFO",
    **extra_context: Any
) -> None:
    """
    Log a relay event with the envelope's routing fields bound as context.

    Usage:
        >>> log_envelope("Sending message", envelope_type="say", team="T1", channel="C1")

    Args:
        message: Log message
        envelope_type: Envelope type (say, update, new-game, ...)
        team: Workspace ID
        channel: Channel ID, when the envelope has one
        level: Log level (default: "INFO")
        **extra_context: Additional context fields
    """
    context = {"type": envelope_type, "team": team, **extra_context}
    if channel:
        context["channel"] = channel

    logger.bind(**context).log(level.upper(), message)
