# ABOUTME: Unit tests for SlackSession's use of the Slack Web API clients.
# ABOUTME: Tests token routing between bot and app clients and SlackApiError translation.

from unittest.mock import AsyncMock, MagicMock

import pytest
from slack_sdk.errors import SlackApiError

from chatterbox.models.workspace import WorkspaceCredentials
from chatterbox.platform.exceptions import PlatformError, SessionConnectFailed
from chatterbox.platform.session import SlackSession, slack_session_factory


def slack_response(data: dict) -> MagicMock:
    response = MagicMock()
    response.data = data
    response.get.side_effect = data.get
    return response


def slack_error(code: str) -> SlackApiError:
    return SlackApiError(code, slack_response({"ok": False, "error": code}))


def make_client() -> MagicMock:
    client = MagicMock()
    for method in (
        "auth_test",
        "chat_postMessage",
        "chat_update",
        "chat_delete",
        "conversations_open",
        "dialog_open",
        "users_info",
        "conversations_members",
        "conversations_info",
        "conversations_create",
        "conversations_invite",
    ):
        setattr(client, method, AsyncMock(return_value=slack_response({"ok": True})))
    return client


@pytest.fixture
def bot_client():
    return make_client()


@pytest.fixture
def app_client():
    return make_client()


@pytest.fixture
def session(bot_client, app_client):
    return SlackSession("xoxb-bot", "xoxp-app", "UBOT", bot_client=bot_client, app_client=app_client)


class TestConnect:

    @pytest.mark.asyncio
    async def test_connect_resolves_team(self, session, bot_client):
        bot_client.auth_test.return_value = slack_response(
            {"ok": True, "team": "Test Team", "team_id": "T1", "user_id": "UBOT"}
        )

        await session.connect()

        assert session.team == "T1"

    @pytest.mark.asyncio
    async def test_rejected_token(self, session, bot_client):
        bot_client.auth_test.side_effect = slack_error("invalid_auth")

        with pytest.raises(SessionConnectFailed, match="invalid_auth"):
            await session.connect()


class TestMessages:

    @pytest.mark.asyncio
    async def test_post_message_passes_options(self, session, bot_client):
        bot_client.chat_postMessage.return_value = slack_response({"ok": True, "ts": "123.45"})

        response = await session.post_message("G1", "Hello", {"attachments": [{"text": "a"}]})

        assert response["ts"] == "123.45"
        bot_client.chat_postMessage.assert_awaited_once_with(
            channel="G1", text="Hello", attachments=[{"text": "a"}]
        )

    @pytest.mark.asyncio
    async def test_update_and_delete(self, session, bot_client):
        await session.update_message("1.2", "G1", "Edited")
        await session.delete_message("1.2", "G1")

        bot_client.chat_update.assert_awaited_once_with(channel="G1", ts="1.2", text="Edited")
        bot_client.chat_delete.assert_awaited_once_with(channel="G1", ts="1.2")

    @pytest.mark.asyncio
    async def test_dm_opens_im_channel(self, session, bot_client):
        bot_client.conversations_open.return_value = slack_response({"ok": True, "channel": {"id": "D1"}})

        await session.dm("U1", "Psst")

        bot_client.conversations_open.assert_awaited_once_with(users="U1")
        bot_client.chat_postMessage.assert_awaited_once_with(channel="D1", text="Psst")

    @pytest.mark.asyncio
    async def test_dialog(self, session, bot_client):
        await session.dialog("trig-1", {"title": "Rename"})

        bot_client.dialog_open.assert_awaited_once_with(trigger_id="trig-1", dialog={"title": "Rename"})

    @pytest.mark.asyncio
    async def test_error_code_surfaces(self, session, bot_client):
        bot_client.chat_postMessage.side_effect = slack_error("channel_not_found")

        with pytest.raises(PlatformError) as exc_info:
            await session.post_message("G1", "Hello")

        assert exc_info.value.code == "channel_not_found"
        assert exc_info.value.data == {"ok": False, "error": "channel_not_found"}


class TestLookups:

    @pytest.mark.asyncio
    async def test_members(self, session, bot_client):
        bot_client.conversations_members.return_value = slack_response({"ok": True, "members": ["U1", "UBOT"]})

        assert await session.get_conversation_members("G1") == ["U1", "UBOT"]

    @pytest.mark.asyncio
    async def test_conversation_info(self, session, bot_client):
        bot_client.conversations_info.return_value = slack_response(
            {"ok": True, "channel": {"id": "G9", "name": "game-abc123"}}
        )

        assert (await session.get_conversation_info("G9"))["name"] == "game-abc123"

    @pytest.mark.asyncio
    async def test_user_info(self, session, bot_client):
        await session.user_info("U1")

        bot_client.users_info.assert_awaited_once_with(user="U1")


class TestChannels:
    """Private channels are managed with the installing user's token"""

    @pytest.mark.asyncio
    async def test_create_uses_app_client(self, session, bot_client, app_client):
        app_client.conversations_create.return_value = slack_response({"ok": True, "channel": {"id": "GNEW"}})

        assert await session.create_private_channel("game-abc123") == "GNEW"

        app_client.conversations_create.assert_awaited_once_with(name="game-abc123", is_private=True)
        bot_client.conversations_create.assert_not_called()

    @pytest.mark.asyncio
    async def test_name_taken(self, session, app_client):
        app_client.conversations_create.side_effect = slack_error("name_taken")

        with pytest.raises(PlatformError) as exc_info:
            await session.create_private_channel("game-abc123")

        assert exc_info.value.code == "name_taken"

    @pytest.mark.asyncio
    async def test_invite_uses_app_client(self, session, app_client):
        await session.invite_private_channel("GNEW", "U1")

        app_client.conversations_invite.assert_awaited_once_with(channel="GNEW", users="U1")


def test_factory_builds_from_credentials(credentials):
    session = slack_session_factory(credentials)

    assert isinstance(session, SlackSession)
    assert session.bot_id == "UBOT"
    assert session.auto_start is True
    assert session.bot.token == "xoxb-bot"
    assert session.app.token == "xoxp-app"


def test_factory_defaults_auto_start_off():
    creds = WorkspaceCredentials(team_id="T1", bot_token="xoxb", app_token="xoxp", bot_id="UBOT")

    assert slack_session_factory(creds).auto_start is False
