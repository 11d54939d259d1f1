# ABOUTME: Exception definitions for chat platform session errors.
# ABOUTME: PlatformError carries the error code string Slack reports so callers can match on it.

from typing import Any

# Error codes the relay reacts to
ERROR_NOT_IN_CHANNEL = "channel_not_found"
ERROR_MESSAGE_NOT_FOUND = "message_not_found"
ERROR_CHANNEL_EXISTS = "name_taken"
ERROR_CANT_INVITE_SELF = "cant_invite_self"
ERROR_CODE_ALREADY_USED = "code_already_used"


class PlatformError(Exception):
    """Raised when the chat platform rejects an API call"""

    def __init__(self, code: str, data: dict[str, Any] | None = None):
        super().__init__(code)
        self.code = code
        self.data = data or {}


class SessionConnectFailed(Exception):
    """Raised when a workspace session can't authenticate"""
    pass
