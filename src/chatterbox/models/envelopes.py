# ABOUTME: Pydantic models for the JSON envelopes carried on the in, out and event queues.
# ABOUTME: Outbound and inbound envelopes are tagged unions discriminated by their type field.

import json
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from chatterbox.models.exceptions import (
    EnvelopeDecodeError,
    MissingTeam,
    UnknownMessageType,
)


class OutboundType(str, Enum):
    """Chat operations the game engine can request"""
    SAY = "say"  # Post a new message
    UPDATE = "update"  # Edit an existing message
    DELETE = "delete"  # Remove an existing message
    DM = "dm"  # Direct-message a user
    DIALOG = "dialog"  # Open an interactive dialog


class InboundType(str, Enum):
    """Envelope kinds handed to the game engine"""
    BUTTON = "button"
    SLASH = "slash"
    PAYMENT = "payment"
    NEW_GAME = "new-game"
    ADD_TIMESTAMP = "add_timestamp"


class _Envelope(BaseModel):
    """Shared serialization for every queue envelope"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def encode(self) -> bytes:
        """Serialize to the UTF-8 JSON body written onto a queue"""
        return self.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")


# --- Outbound (out-queue) envelopes ---

class _OutboundEnvelope(_Envelope):
    team: str = Field(description="Workspace the operation targets")
    uid: str | None = Field(
        default=None,
        description="User the message concerns; receives corrective DMs"
    )
    opts: dict[str, Any] | None = Field(
        default=None,
        description="Extra platform message options (attachments, blocks, ...)"
    )


class SayEnvelope(_OutboundEnvelope):
    """Post a new message to a channel"""

    type: Literal["say"] = "say"
    channel: str
    text: str


class UpdateEnvelope(_OutboundEnvelope):
    """Edit a message previously posted"""

    type: Literal["update"] = "update"
    ts: str
    channel: str
    text: str


class DeleteEnvelope(_OutboundEnvelope):
    """Remove a message previously posted"""

    type: Literal["delete"] = "delete"
    ts: str
    channel: str


class DmEnvelope(_OutboundEnvelope):
    """Direct-message a single user"""

    type: Literal["dm"] = "dm"
    uid: str
    text: str


class DialogEnvelope(_OutboundEnvelope):
    """Open an interactive dialog in response to a trigger"""

    type: Literal["dialog"] = "dialog"
    trigger_id: str = Field(alias="triggerId")
    dialog: dict[str, Any]


OutboundEnvelope = Annotated[
    Union[SayEnvelope, UpdateEnvelope, DeleteEnvelope, DmEnvelope, DialogEnvelope],
    Field(discriminator="type"),
]

_OUTBOUND_ADAPTER: TypeAdapter[OutboundEnvelope] = TypeAdapter(OutboundEnvelope)
_OUTBOUND_TYPES = {member.value for member in OutboundType}


def decode_outbound(body: bytes | str) -> OutboundEnvelope:
    """
    Decode a raw out-queue body into a typed envelope.

    Args:
        body: JSON bytes from the out-queue

    Returns:
        One of the outbound envelope variants

    Raises:
        EnvelopeDecodeError: When the body is not a JSON object or fields are missing
        MissingTeam: When the envelope has no team id
        UnknownMessageType: When the type is not one of the outbound types
    """
    try:
        raw = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise EnvelopeDecodeError(f"Could not decode queue message: {e}") from e

    if not isinstance(raw, dict):
        raise EnvelopeDecodeError(
            "Queue message is not a JSON object.",
            data={"body": raw}
        )

    if raw.get("team") in (None, ""):
        raise MissingTeam("No team id defined.", data={"message": raw})

    message_type = raw.get("type")
    if not isinstance(message_type, str) or message_type not in _OUTBOUND_TYPES:
        raise UnknownMessageType(
            f"Invalid message type: '{message_type}'.",
            data={"message": raw}
        )

    try:
        return _OUTBOUND_ADAPTER.validate_python(raw)
    except ValidationError as e:
        raise EnvelopeDecodeError(
            f"Invalid '{message_type}' message: {e.error_count()} field error(s)",
            data={"message": raw, "errors": e.errors(include_url=False)}
        ) from e


# --- Inbound (in-queue) envelopes ---

class NewGamePayload(BaseModel):
    """A player starting a new game"""

    uid: str
    teamid: str
    channel: str
    name: str | None = None
    email: str | None = None


class TimestampPayload(BaseModel):
    """Timestamp of a message the relay just posted"""

    ts: str
    channel: str
    teamid: str


class ButtonEnvelope(_Envelope):
    type: Literal["button"] = "button"
    payload: dict[str, Any]


class SlashEnvelope(_Envelope):
    type: Literal["slash"] = "slash"
    payload: dict[str, Any]


class PaymentEnvelope(_Envelope):
    type: Literal["payment"] = "payment"
    payload: dict[str, Any]


class NewGameEnvelope(_Envelope):
    type: Literal["new-game"] = "new-game"
    payload: NewGamePayload


class TimestampEnvelope(_Envelope):
    type: Literal["add_timestamp"] = "add_timestamp"
    payload: TimestampPayload


InboundEnvelope = Annotated[
    Union[ButtonEnvelope, SlashEnvelope, PaymentEnvelope, NewGameEnvelope, TimestampEnvelope],
    Field(discriminator="type"),
]

_INBOUND_ADAPTER: TypeAdapter[InboundEnvelope] = TypeAdapter(InboundEnvelope)


def build_inbound(envelope_type: InboundType | str, payload: dict[str, Any]) -> InboundEnvelope:
    """Build the inbound envelope variant matching a payload type"""
    value = envelope_type.value if isinstance(envelope_type, InboundType) else envelope_type
    return _INBOUND_ADAPTER.validate_python({"type": value, "payload": payload})


# --- Telemetry ---

class EventEnvelope(_Envelope):
    """Fire-and-forget telemetry event for the event queue"""

    event: str
    character_id: int = 0
    fields: dict[str, Any] = Field(default_factory=dict)

    def encode(self) -> bytes:
        # Telemetry consumers expect every key, including empty fields
        return self.model_dump_json().encode("utf-8")
