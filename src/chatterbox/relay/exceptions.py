# ABOUTME: Exception definitions for relay layer errors.
# ABOUTME: Defines error types raised by SessionCache, InboundRelay and WorkspaceInstaller.

from typing import Any


class UnknownWorkspace(Exception):
    """Raised when no credentials exist for a workspace ID"""
    pass


class ChannelProvisioningFailed(Exception):
    """Raised when a game channel can't be created or populated"""

    def __init__(self, message: str, data: dict[str, Any] | None = None):
        super().__init__(message)
        self.data = data or {}


class ChannelNameExhausted(ChannelProvisioningFailed):
    """Raised when every generated channel name was already taken"""
    pass


class OAuthFailed(Exception):
    """Raised when Slack refuses an OAuth code exchange"""

    def __init__(self, message: str, data: dict[str, Any] | None = None):
        super().__init__(message)
        self.data = data or {}
