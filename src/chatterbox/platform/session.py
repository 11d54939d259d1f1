# ABOUTME: Chat platform session capability and its Slack Web API implementation.
# ABOUTME: Wraps slack_sdk's async client, translating SlackApiError into PlatformError codes.

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from loguru import logger
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient
from slack_sdk.web.async_slack_response import AsyncSlackResponse

from chatterbox.models.workspace import WorkspaceCredentials
from chatterbox.platform.exceptions import PlatformError, SessionConnectFailed


class ChatSession(Protocol):
    """Authenticated connection to one workspace"""

    bot_id: str
    auto_start: bool

    async def connect(self) -> None: ...

    async def post_message(
        self, channel: str, text: str, options: dict[str, Any] | None = None
    ) -> dict[str, Any]: ...

    async def update_message(
        self, ts: str, channel: str, text: str, options: dict[str, Any] | None = None
    ) -> dict[str, Any]: ...

    async def delete_message(self, ts: str, channel: str) -> dict[str, Any]: ...

    async def dm(
        self, uid: str, text: str, options: dict[str, Any] | None = None
    ) -> dict[str, Any]: ...

    async def dialog(self, trigger_id: str, dialog: dict[str, Any]) -> dict[str, Any]: ...

    async def user_info(self, uid: str) -> dict[str, Any]: ...

    async def get_conversation_members(self, channel: str) -> list[str]: ...

    async def get_conversation_info(self, channel: str) -> dict[str, Any]: ...

    async def create_private_channel(self, name: str) -> str: ...

    async def invite_private_channel(self, channel: str, uid: str) -> None: ...


def _error_code(error: SlackApiError) -> str:
    response = error.response
    code = response.get("error") if response is not None else None
    return code or "unknown"


class SlackSession:
    """
    ChatSession backed by the Slack Web API.

    Messages, lookups and dialogs go through the bot token. Private channels
    are created and populated with the installing user's token, which is why
    the bot has to invite itself to new game channels.
    """

    def __init__(
        self,
        bot_token: str,
        app_token: str,
        bot_id: str,
        auto_start: bool = False,
        bot_client: AsyncWebClient | None = None,
        app_client: AsyncWebClient | None = None,
    ):
        self.bot_id = bot_id
        self.auto_start = auto_start
        self.bot = bot_client or AsyncWebClient(token=bot_token)
        self.app = app_client or AsyncWebClient(token=app_token)
        self.team: str | None = None

    async def _call(
        self,
        method: Callable[..., Awaitable[AsyncSlackResponse]],
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Invoke a Web API method, raising PlatformError with Slack's error code"""
        try:
            response = await method(**kwargs)
        except SlackApiError as e:
            code = _error_code(e)
            data = e.response.data if e.response is not None else {}
            raise PlatformError(code, data if isinstance(data, dict) else {}) from e

        return response.data if isinstance(response.data, dict) else {}

    async def connect(self) -> None:
        """
        Verify the bot token and resolve the workspace identity.

        Raises:
            SessionConnectFailed: When Slack rejects the token
        """
        try:
            identity = await self._call(self.bot.auth_test)
        except PlatformError as e:
            raise SessionConnectFailed(f"Slack rejected bot token: {e.code}") from e

        self.team = identity.get("team_id")
        if not self.bot_id:
            self.bot_id = identity.get("user_id", "")
        logger.info(f"Connected to Slack team '{identity.get('team')}' ({self.team})")

    async def post_message(
        self, channel: str, text: str, options: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return await self._call(
            self.bot.chat_postMessage, channel=channel, text=text, **(options or {})
        )

    async def update_message(
        self, ts: str, channel: str, text: str, options: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return await self._call(
            self.bot.chat_update, channel=channel, ts=ts, text=text, **(options or {})
        )

    async def delete_message(self, ts: str, channel: str) -> dict[str, Any]:
        return await self._call(self.bot.chat_delete, channel=channel, ts=ts)

    async def dm(
        self, uid: str, text: str, options: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Open (or reuse) the IM channel with a user and post to it"""
        opened = await self._call(self.bot.conversations_open, users=uid)
        return await self.post_message(opened["channel"]["id"], text, options)

    async def dialog(self, trigger_id: str, dialog: dict[str, Any]) -> dict[str, Any]:
        return await self._call(self.bot.dialog_open, trigger_id=trigger_id, dialog=dialog)

    async def user_info(self, uid: str) -> dict[str, Any]:
        return await self._call(self.bot.users_info, user=uid)

    async def get_conversation_members(self, channel: str) -> list[str]:
        response = await self._call(self.bot.conversations_members, channel=channel)
        return list(response.get("members", []))

    async def get_conversation_info(self, channel: str) -> dict[str, Any]:
        response = await self._call(self.bot.conversations_info, channel=channel)
        return response.get("channel", {})

    async def create_private_channel(self, name: str) -> str:
        """
        Create a private channel as the installing user.

        Returns:
            ID of the new channel

        Raises:
            PlatformError: e.g. with code 'name_taken' when the name exists
        """
        response = await self._call(self.app.conversations_create, name=name, is_private=True)
        return response["channel"]["id"]

    async def invite_private_channel(self, channel: str, uid: str) -> None:
        await self._call(self.app.conversations_invite, channel=channel, users=uid)


def slack_session_factory(credentials: WorkspaceCredentials) -> SlackSession:
    """Build an unconnected SlackSession for a workspace"""
    return SlackSession(
        bot_token=credentials.bot_token,
        app_token=credentials.app_token,
        bot_id=credentials.bot_id,
        auto_start=credentials.auto_start,
    )
