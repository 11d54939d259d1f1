# ABOUTME: Exception definitions for queue envelope decoding and validation.
# ABOUTME: Raised while turning raw queue bytes into typed outbound envelopes.

from typing import Any


class EnvelopeDecodeError(Exception):
    """Raised when a queue body is not a valid envelope"""

    def __init__(self, message: str, data: dict[str, Any] | None = None):
        super().__init__(message)
        self.data = data or {}


class MissingTeam(EnvelopeDecodeError):
    """Raised when an outbound envelope has no team id"""

    pass


class UnknownMessageType(EnvelopeDecodeError):
    """Raised when an outbound envelope type is not recognised"""

    pass
