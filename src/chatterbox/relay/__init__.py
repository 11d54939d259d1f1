# ABOUTME: Relay module exports: session cache, inbound/outbound relays, error reporting and the service.
# ABOUTME: Chatterbox wires them together; everything else is importable for tests and tooling.

from chatterbox.relay.error_reporter import ErrorReporter, init_error_tracking
from chatterbox.relay.exceptions import (
    ChannelNameExhausted,
    ChannelProvisioningFailed,
    OAuthFailed,
    UnknownWorkspace,
)
from chatterbox.relay.inbound import InboundRelay, create_channel_name
from chatterbox.relay.installer import WorkspaceInstaller
from chatterbox.relay.outbound import OutboundRelay
from chatterbox.relay.service import Chatterbox
from chatterbox.relay.session_cache import SessionCache

__all__ = [
    # Components
    "Chatterbox",
    "SessionCache",
    "InboundRelay",
    "OutboundRelay",
    "WorkspaceInstaller",
    "ErrorReporter",
    "init_error_tracking",
    "create_channel_name",
    # Errors
    "UnknownWorkspace",
    "ChannelProvisioningFailed",
    "ChannelNameExhausted",
    "OAuthFailed",
]
