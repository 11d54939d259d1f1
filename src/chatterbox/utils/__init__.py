# ABOUTME: Utility module exports for structured logging.
# ABOUTME: Provides logging.py (loguru config and envelope-scoped log helper).

from chatterbox.utils.logging import log_envelope, setup_logging, silence_logging

__all__ = [
    "setup_logging",
    "silence_logging",
    "log_envelope",
]
