"""Configuration module for the Chatterbox relay"""

from .settings import MODE_DEV, MODE_PROD, MODE_TEST, Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "MODE_DEV",
    "MODE_TEST",
    "MODE_PROD",
]
