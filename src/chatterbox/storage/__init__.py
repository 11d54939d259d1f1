"""Persistence for workspace credentials and channel bindings"""

from .exceptions import IncompleteCredentials
from .stores import (
    ChannelBindingStore,
    CredentialStore,
    RedisChannelBindingStore,
    RedisCredentialStore,
    character_key,
    team_key,
)

__all__ = [
    "CredentialStore",
    "ChannelBindingStore",
    "RedisCredentialStore",
    "RedisChannelBindingStore",
    "team_key",
    "character_key",
    "IncompleteCredentials",
]
