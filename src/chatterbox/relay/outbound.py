# ABOUTME: Outbound relay draining the out-queue one envelope at a time into Slack API calls.
# ABOUTME: Classifies platform failures and acknowledges every message after an adaptive delay.

import asyncio
from typing import Any, Protocol, assert_never

from loguru import logger

from chatterbox.messaging.transport import Delivery, RedisQueueTransport
from chatterbox.models.envelopes import (
    DeleteEnvelope,
    DialogEnvelope,
    DmEnvelope,
    OutboundEnvelope,
    SayEnvelope,
    TimestampEnvelope,
    TimestampPayload,
    UpdateEnvelope,
    decode_outbound,
)
from chatterbox.models.exceptions import EnvelopeDecodeError
from chatterbox.platform.exceptions import (
    ERROR_MESSAGE_NOT_FOUND,
    ERROR_NOT_IN_CHANNEL,
    PlatformError,
)
from chatterbox.relay.error_reporter import ErrorReporter
from chatterbox.relay.session_cache import SessionCache
from chatterbox.utils.logging import log_envelope

INVITE_BOT_MESSAGE = (
    "The Chat & Slash bot needs to be invited to your channel before you can play.  "
    "Type `/invite @chatandslash` before attempting any in-game actions."
)

DEFAULT_ACK_DELAY_STEP_MS = 10


class InboundPublisher(Protocol):
    async def enqueue(self, envelope: Any) -> None: ...


class OutboundRelay:
    """
    Consumes the out-queue and performs the requested chat operations.

    Messages are handled strictly in order: the next one is only pulled off
    the queue once the previous one has been acknowledged. Every message is
    acknowledged exactly once, whatever happened while handling it; failures
    are reported, never redelivered.
    """

    def __init__(
        self,
        transport: RedisQueueTransport,
        sessions: SessionCache,
        inbound: InboundPublisher,
        reporter: ErrorReporter,
        queue_name: str,
        initial_ack_delay_ms: int = 0,
        ack_delay_step_ms: int = DEFAULT_ACK_DELAY_STEP_MS,
    ):
        """
        Initialize relay.

        Args:
            transport: Queue transport the out-queue lives on
            sessions: Workspace session cache
            inbound: Publisher for the in-queue (receives add_timestamp envelopes)
            reporter: Error sink for unclassified failures
            queue_name: Name of the out-queue
            initial_ack_delay_ms: Starting acknowledgment delay
            ack_delay_step_ms: Decrease of the delay after each acknowledgment
        """
        self.transport = transport
        self.sessions = sessions
        self.inbound = inbound
        self.reporter = reporter
        self.queue_name = queue_name
        self.ack_delay_step_ms = ack_delay_step_ms
        self._ack_delay_ms = max(0, initial_ack_delay_ms)

    @property
    def ack_delay_ms(self) -> int:
        """Milliseconds the next acknowledgment waits"""
        return self._ack_delay_ms

    async def run(self) -> None:
        """
        Consume the out-queue until the transport closes.

        Raises:
            QueueConnectionFailed: When the queue backend fails
        """
        logger.info(f"Outbound relay consuming '{self.queue_name}'")
        async for delivery in self.transport.consume(self.queue_name):
            await self.on_consume(delivery)

    async def on_consume(self, delivery: Delivery) -> None:
        """Handle one queue message, then acknowledge it"""
        envelope: OutboundEnvelope | None = None

        try:
            envelope = decode_outbound(delivery.body)
            log_envelope(
                f"Sending message of type '{envelope.type}' to channel "
                f"'{getattr(envelope, 'channel', None)}' on team '{envelope.team}'.",
                envelope_type=envelope.type,
                team=envelope.team,
                channel=getattr(envelope, "channel", None),
            )
            logger.debug(f"Message: {envelope.model_dump(by_alias=True, exclude_none=True)}")

            await self.process(envelope)
        except EnvelopeDecodeError as e:
            logger.error(f"Dropping queue message: {e}")
            self.reporter.report(e, e.data or {"body": delivery.body.decode("utf-8", "replace")})
        except PlatformError as e:
            await self.on_platform_error(e, envelope)
        except Exception as e:
            logger.error(f"{type(e).__name__}: {e}")
            self.reporter.report(e, self._context(envelope))
        finally:
            await self.acknowledge(delivery)

    async def on_platform_error(self, error: PlatformError, envelope: OutboundEnvelope | None) -> None:
        """
        Recover from expected platform states, report everything else.

        Args:
            error: Error raised by the session
            envelope: Envelope being delivered
        """
        if envelope is not None and error.code == ERROR_NOT_IN_CHANNEL:
            await self.ask_for_invite(envelope)
        elif error.code == ERROR_MESSAGE_NOT_FOUND:
            logger.warning(f"Attempting to use invalid timestamp: {self._context(envelope)}")
        else:
            logger.error(f"Platform error '{error.code}': {error.data}")
            self.reporter.report(error, self._context(envelope))

    async def ask_for_invite(self, envelope: OutboundEnvelope) -> None:
        """DM the envelope's user explaining the bot must be invited to their channel"""
        if not envelope.uid:
            logger.warning(
                f"Bot not in channel on team '{envelope.team}' and no user to notify."
            )
            return

        try:
            session = await self.sessions.get_session(envelope.team)
            await session.dm(envelope.uid, INVITE_BOT_MESSAGE)
        except Exception as e:
            logger.error(f"Could not ask '{envelope.uid}' to invite the bot: {e}")
            self.reporter.report(e, self._context(envelope))

    async def acknowledge(self, delivery: Delivery) -> None:
        """Wait out the adaptive delay, ack the delivery, then lower the delay"""
        if self._ack_delay_ms:
            await asyncio.sleep(self._ack_delay_ms / 1000)

        await self.transport.ack(delivery)
        self._ack_delay_ms = max(0, self._ack_delay_ms - self.ack_delay_step_ms)

    async def process(self, envelope: OutboundEnvelope) -> None:
        """
        Perform the chat operation an envelope asks for.

        Args:
            envelope: Decoded outbound envelope

        Raises:
            PlatformError: When Slack rejects the operation
            UnknownWorkspace: When the envelope's team was never installed
        """
        session = await self.sessions.get_session(envelope.team)

        match envelope:
            case SayEnvelope():
                response = await session.post_message(envelope.channel, envelope.text, envelope.opts)

                # Lets the game engine target this message with later updates/deletes
                await self.inbound.enqueue(TimestampEnvelope(
                    payload=TimestampPayload(
                        ts=response["ts"],
                        channel=envelope.channel,
                        teamid=envelope.team,
                    )
                ))
            case UpdateEnvelope():
                await session.update_message(envelope.ts, envelope.channel, envelope.text, envelope.opts)
            case DeleteEnvelope():
                await session.delete_message(envelope.ts, envelope.channel)
            case DmEnvelope():
                await session.dm(envelope.uid, envelope.text, envelope.opts)
            case DialogEnvelope():
                await session.dialog(envelope.trigger_id, envelope.dialog)
            case _:
                assert_never(envelope)

    @staticmethod
    def _context(envelope: OutboundEnvelope | None) -> dict[str, Any] | None:
        if envelope is None:
            return None
        return envelope.model_dump(by_alias=True, exclude_none=True)
