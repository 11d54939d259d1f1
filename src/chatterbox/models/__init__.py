"""Data models for the Chatterbox relay"""

from .envelopes import (
    ButtonEnvelope,
    DeleteEnvelope,
    DialogEnvelope,
    DmEnvelope,
    EventEnvelope,
    InboundEnvelope,
    InboundType,
    NewGameEnvelope,
    NewGamePayload,
    OutboundEnvelope,
    OutboundType,
    PaymentEnvelope,
    SayEnvelope,
    SlashEnvelope,
    TimestampEnvelope,
    TimestampPayload,
    UpdateEnvelope,
    build_inbound,
    decode_outbound,
)
from .exceptions import EnvelopeDecodeError, MissingTeam, UnknownMessageType
from .workspace import SlashCommand, WorkspaceCredentials

__all__ = [
    # Outbound envelopes
    "OutboundType",
    "OutboundEnvelope",
    "SayEnvelope",
    "UpdateEnvelope",
    "DeleteEnvelope",
    "DmEnvelope",
    "DialogEnvelope",
    "decode_outbound",
    # Inbound envelopes
    "InboundType",
    "InboundEnvelope",
    "ButtonEnvelope",
    "SlashEnvelope",
    "PaymentEnvelope",
    "NewGameEnvelope",
    "NewGamePayload",
    "TimestampEnvelope",
    "TimestampPayload",
    "build_inbound",
    # Telemetry
    "EventEnvelope",
    # Workspace models
    "WorkspaceCredentials",
    "SlashCommand",
    # Errors
    "EnvelopeDecodeError",
    "MissingTeam",
    "UnknownMessageType",
]
