# ABOUTME: Reports unrecoverable relay failures to Sentry, or to the local log in development.
# ABOUTME: Attaches the triggering command/envelope and any structured error data as extras.

from typing import Any

import sentry_sdk
from loguru import logger

from chatterbox.config.settings import Settings


def init_error_tracking(settings: Settings) -> bool:
    """
    Initialise the Sentry SDK outside dev/test.

    Returns:
        True when error tracking was enabled
    """
    if settings.mode in ("dev", "test") or not settings.sentry_url:
        logger.info(f"Error tracking disabled (mode={settings.mode})")
        return False

    sentry_sdk.init(dsn=settings.sentry_url, environment=settings.mode)
    logger.info("Error tracking enabled")
    return True


class ErrorReporter:
    """Sink for errors nobody else can handle"""

    def __init__(self, local_only: bool):
        """
        Args:
            local_only: Log reports instead of sending them (development)
        """
        self.local_only = local_only

    @classmethod
    def from_settings(cls, settings: Settings) -> "ErrorReporter":
        return cls(local_only=settings.is_dev)

    def report(self, error: BaseException, info: Any = None) -> None:
        """
        Report an error. Never raises.

        Args:
            error: The error to report
            info: The command, request or envelope being handled
        """
        error_data = getattr(error, "data", None) or {}

        try:
            if self.local_only:
                logger.info("Reporting error...")
                logger.info(f"Command information: {info}")
                logger.info(f"Error data: {error_data}")
                return

            with sentry_sdk.new_scope() as scope:
                scope.set_extra("info", info)
                scope.set_extra("error_data", error_data)
                sentry_sdk.capture_exception(error)
        except Exception as e:
            logger.error(f"Could not report {type(error).__name__}: {e}")
