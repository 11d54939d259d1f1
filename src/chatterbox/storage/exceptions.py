# ABOUTME: Exception definitions for the credential and channel binding stores.
# ABOUTME: Raised when a stored record can't be turned back into a model.

from typing import Any


class IncompleteCredentials(Exception):
    """Raised when a stored workspace record is missing required fields"""

    def __init__(self, message: str, data: dict[str, Any] | None = None):
        super().__init__(message)
        self.data = data or {}
