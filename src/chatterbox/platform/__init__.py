# ABOUTME: Chat platform exports: the session capability, Slack implementation and error codes.
# ABOUTME: Everything outside this package talks to Slack through ChatSession.

from chatterbox.platform.exceptions import (
    ERROR_CANT_INVITE_SELF,
    ERROR_CHANNEL_EXISTS,
    ERROR_CODE_ALREADY_USED,
    ERROR_MESSAGE_NOT_FOUND,
    ERROR_NOT_IN_CHANNEL,
    PlatformError,
    SessionConnectFailed,
)
from chatterbox.platform.session import ChatSession, SlackSession, slack_session_factory

__all__ = [
    "ChatSession",
    "SlackSession",
    "slack_session_factory",
    "PlatformError",
    "SessionConnectFailed",
    "ERROR_NOT_IN_CHANNEL",
    "ERROR_MESSAGE_NOT_FOUND",
    "ERROR_CHANNEL_EXISTS",
    "ERROR_CANT_INVITE_SELF",
    "ERROR_CODE_ALREADY_USED",
]
