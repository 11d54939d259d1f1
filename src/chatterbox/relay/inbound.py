# ABOUTME: Inbound relay turning authenticated Slack payloads into in-queue envelopes.
# ABOUTME: Owns the game-start protocol: channel checks, duplicate games and private channel provisioning.

import secrets
from typing import Any

from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
)

from chatterbox.messaging.transport import RedisQueueTransport
from chatterbox.models.envelopes import (
    EventEnvelope,
    InboundEnvelope,
    InboundType,
    NewGameEnvelope,
    NewGamePayload,
    build_inbound,
)
from chatterbox.models.workspace import SlashCommand
from chatterbox.platform.exceptions import (
    ERROR_CANT_INVITE_SELF,
    ERROR_CHANNEL_EXISTS,
    ERROR_NOT_IN_CHANNEL,
    PlatformError,
)
from chatterbox.platform.session import ChatSession
from chatterbox.relay.error_reporter import ErrorReporter
from chatterbox.relay.exceptions import ChannelNameExhausted, ChannelProvisioningFailed
from chatterbox.relay.session_cache import SessionCache
from chatterbox.storage.stores import ChannelBindingStore

COMMAND_CHATANDSLASH = "/chatandslash"
CHANNEL_PRIVATEGROUP = "privategroup"
PRIVATE_CHANNEL_PREFIX = "G"
CHANNEL_NAME_PREFIX = "game-"

EVENT_TEAM_JOIN = "team_join"

PUBLIC_CHANNEL_MESSAGE = (
    "You can't play Chat & Slash in public channels.  Create a new private channel, "
    "then `/invite @chatandslash` before typing `/chatandslash`."
)
NOT_INVITED_MESSAGE = (
    "The Chat & Slash bot needs to be invited to your channel before you can play.  "
    "Type `/invite @chatandslash` before typing `/chatandslash`."
)
EXISTING_GAME_MESSAGE = "You already have a game of Chat & Slash on this team, in the channel: `{name}`."
START_FAILED_MESSAGE = "Something went wrong starting your game of Chat & Slash.  Please try again in a few minutes."


def create_channel_name() -> str:
    """Random name for a new game channel, e.g. 'game-1f3a9c'"""
    return CHANNEL_NAME_PREFIX + secrets.token_hex(3)


def _is_name_taken(error: BaseException) -> bool:
    return isinstance(error, PlatformError) and error.code == ERROR_CHANNEL_EXISTS


def _log_name_taken(retry_state: RetryCallState) -> None:
    logger.warning(
        f"Tried to create channel that already exists "
        f"(attempt {retry_state.attempt_number}), trying a new name."
    )


class InboundRelay:
    """Validates platform payloads and enqueues them for the game engine"""

    def __init__(
        self,
        transport: RedisQueueTransport,
        sessions: SessionCache,
        bindings: ChannelBindingStore,
        reporter: ErrorReporter,
        queue_name: str,
        event_queue: str,
        verification_token: str,
        payment_token: str | None = None,
        allow_invite_self: bool = False,
        channel_name_max_attempts: int = 20,
    ):
        """
        Initialize relay.

        Args:
            transport: Queue transport the in/event queues live on
            sessions: Workspace session cache
            bindings: Lookup of players' active game channels
            reporter: Error sink
            queue_name: Name of the in-queue
            event_queue: Name of the telemetry queue
            verification_token: Token Slack puts in every payload
            payment_token: Token the payment service uses (optional)
            allow_invite_self: Tolerate 'cant_invite_self' when provisioning (non-production)
            channel_name_max_attempts: Names tried before provisioning gives up
        """
        self.transport = transport
        self.sessions = sessions
        self.bindings = bindings
        self.reporter = reporter
        self.queue_name = queue_name
        self.event_queue = event_queue
        self.verification_token = verification_token
        self.payment_token = payment_token
        self.allow_invite_self = allow_invite_self
        self.channel_name_max_attempts = channel_name_max_attempts

    # --- Queue publishing ---

    async def enqueue(self, envelope: InboundEnvelope) -> None:
        """Put an envelope on the in-queue"""
        await self.transport.publish(self.queue_name, envelope.encode())

    async def enqueue_event(self, event: str, character_id: int, fields: dict[str, Any]) -> None:
        """Put a telemetry event on the event queue"""
        envelope = EventEnvelope(event=event, character_id=character_id, fields=fields)
        await self.transport.publish(self.event_queue, envelope.encode())

    # --- Payload handling ---

    def is_valid_token(self, request_type: str, token: str | None) -> bool:
        """
        Check a payload token.

        Payment callbacks may use the payment token; everything accepts the
        Slack verification token.
        """
        if not token:
            return False
        if request_type == InboundType.PAYMENT.value and self.payment_token and secrets.compare_digest(token, self.payment_token):
            return True
        return secrets.compare_digest(token, self.verification_token)

    async def process_payload(self, request_type: InboundType, payload: dict[str, Any]) -> bool:
        """
        Verify a payload's token and enqueue it.

        Args:
            request_type: button, slash or payment
            payload: Payload as received from the platform

        Returns:
            True when the payload was enqueued
        """
        if not self.is_valid_token(request_type.value, payload.get("token")):
            logger.warning(f"Payload token '{payload.get('token')}' is not valid.")
            return False

        logger.debug(f"{request_type.value.capitalize()}: {payload}")
        await self.enqueue(build_inbound(request_type, payload))
        return True

    async def on_slash(self, payload: dict[str, Any]) -> None:
        """
        Route a slash command.

        Only commands issued from private channels are handled; the game-start
        command runs the game-start protocol, anything else is forwarded.
        """
        if not str(payload.get("channel_id", "")).startswith(PRIVATE_CHANNEL_PREFIX):
            return

        if payload.get("command") == COMMAND_CHATANDSLASH:
            if not self.is_valid_token(InboundType.SLASH.value, payload.get("token")):
                logger.warning(f"Payload token '{payload.get('token')}' is not valid.")
                return
            await self.start_game(SlashCommand.model_validate(payload))
        else:
            await self.process_payload(InboundType.SLASH, payload)

    async def on_event(self, event: dict[str, Any]) -> None:
        """Handle a workspace event callback"""
        if event.get("type") == EVENT_TEAM_JOIN:
            await self.on_team_join(event["user"])
        else:
            logger.warning(f"Unexpected event type: '{event.get('type')}'.")

    # --- Game start ---

    async def start_game(self, command: SlashCommand) -> None:
        """
        Run the game-start protocol for the game-start command.

        Every failure reaches the user as a direct message.

        Args:
            command: The slash command as sent by Slack
        """
        session = await self.sessions.get_session(command.team_id)

        try:
            await self._start_game(command, session)
        except Exception as e:
            logger.error(f"Could not start game for '{command.user_id}' on team '{command.team_id}': {e}")
            self.reporter.report(e, command.as_payload())
            await session.dm(command.user_id, START_FAILED_MESSAGE)

    async def _start_game(self, command: SlashCommand, session: ChatSession) -> None:
        where = f"team {command.team_id}, channel {command.channel_id}, by user {command.user_id}"

        # No games in public channels
        if command.channel_name != CHANNEL_PRIVATEGROUP:
            logger.warning(f"Attempt to start game in public channel on {where}.")
            await session.dm(command.user_id, PUBLIC_CHANNEL_MESSAGE)
            return

        try:
            await session.get_conversation_members(command.channel_id)
        except PlatformError as e:
            if e.code != ERROR_NOT_IN_CHANNEL:
                raise
            logger.warning(f"Attempt to start game without bot in channel on {where}.")
            await session.dm(command.user_id, NOT_INVITED_MESSAGE)
            return

        existing_channel = await self.bindings.fetch_active_channel(command.user_id, command.team_id)

        # Issued in the player's own game channel: let the game engine answer
        if existing_channel == command.channel_id:
            await self.process_payload(InboundType.SLASH, command.as_payload())
            return

        if existing_channel:
            logger.warning(f"Attempt to start game in second channel on {where}.")
            info = await session.get_conversation_info(existing_channel)
            await session.dm(command.user_id, EXISTING_GAME_MESSAGE.format(name=info.get("name", existing_channel)))
            return

        name, email = await self.fetch_profile(session, command.user_id)
        await self.finalize_new_game(command.user_id, command.team_id, command.channel_id, name, email)

    async def on_team_join(self, user: dict[str, Any]) -> None:
        """
        Start a game in a fresh private channel for a new workspace member.

        Does nothing unless the workspace has auto-start enabled.
        """
        session = await self.sessions.get_session(user["team_id"])
        if not session.auto_start:
            return

        name, email = await self.fetch_profile(session, user["id"])
        channel = await self.join_user_to_new_channel(user["id"], session)
        await self.finalize_new_game(user["id"], user["team_id"], channel, name, email)

    async def fetch_profile(self, session: ChatSession, uid: str) -> tuple[str | None, str | None]:
        """Real name and email of a user"""
        info = await session.user_info(uid)
        user = info.get("user", {})
        return user.get("real_name"), user.get("profile", {}).get("email")

    async def finalize_new_game(
        self,
        uid: str,
        teamid: str,
        channel: str,
        name: str | None,
        email: str | None,
    ) -> None:
        """Enqueue a new-game envelope for the game engine"""
        await self.enqueue(NewGameEnvelope(
            payload=NewGamePayload(uid=uid, teamid=teamid, channel=channel, name=name, email=email)
        ))
        logger.bind(uid=uid, charName=name, email=email, channel=channel).info("Starting new game.")

    async def join_user_to_new_channel(self, uid: str, session: ChatSession) -> str:
        """
        Create a private game channel and invite the user and the bot to it.

        A taken name is retried with a fresh random name, up to
        channel_name_max_attempts names.

        Args:
            uid: User to invite
            session: Session of the user's workspace

        Returns:
            ID of the new channel

        Raises:
            ChannelNameExhausted: When every generated name was taken
            ChannelProvisioningFailed: When creating or inviting fails
        """
        channel_id = await self.create_channel(session)

        try:
            await session.invite_private_channel(channel_id, uid)
        except PlatformError as e:
            if self.allow_invite_self and e.code == ERROR_CANT_INVITE_SELF:
                logger.info("Skipping cannot invite self in dev mode error.")
            else:
                logger.error(f"Could not invite user to channel: {e.code}")
                raise ChannelProvisioningFailed("Could not invite user to channel.", e.data) from e

        try:
            await session.invite_private_channel(channel_id, session.bot_id)
        except PlatformError as e:
            logger.error(f"Could not invite bot to channel: {e.code}")
            raise ChannelProvisioningFailed("Could not invite bot to channel.", e.data) from e

        return channel_id

    async def create_channel(self, session: ChatSession) -> str:
        """Create a randomly named private channel, retrying on name collisions"""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.channel_name_max_attempts),
            retry=retry_if_exception(_is_name_taken),
            before_sleep=_log_name_taken,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    return await session.create_private_channel(create_channel_name())
        except RetryError as e:
            raise ChannelNameExhausted(
                f"No free channel name after {self.channel_name_max_attempts} attempts."
            ) from e
        except PlatformError as e:
            logger.error(f"Could not create private channel: {e.code}")
            raise ChannelProvisioningFailed("Could not create private channel.", e.data) from e

        raise ChannelProvisioningFailed("Could not create private channel.")
