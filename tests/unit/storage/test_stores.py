# ABOUTME: Unit tests for the Redis credential and channel binding stores.
# ABOUTME: Tests hash decoding, autostart preservation on reinstall and binding lookups.

import pytest

from chatterbox.storage.exceptions import IncompleteCredentials
from chatterbox.storage.stores import (
    RedisChannelBindingStore,
    RedisCredentialStore,
    character_key,
    team_key,
)

STORED_TEAM = {
    b"teamid": b"T1",
    b"team_name": b"Test Team",
    b"bot_token": b"xoxb-bot",
    b"app_token": b"xoxp-app",
    b"bot_id": b"UBOT",
    b"autostart": b"1",
}


class TestCredentialStore:

    @pytest.mark.asyncio
    async def test_fetch_decodes_hash(self, mock_redis_client):
        mock_redis_client.hgetall.return_value = STORED_TEAM

        creds = await RedisCredentialStore(mock_redis_client).fetch_credentials("T1")

        mock_redis_client.hgetall.assert_awaited_once_with("team:T1")
        assert creds.team_id == "T1"
        assert creds.team_name == "Test Team"
        assert creds.bot_token == "xoxb-bot"
        assert creds.app_token == "xoxp-app"
        assert creds.bot_id == "UBOT"
        assert creds.auto_start is True

    @pytest.mark.asyncio
    async def test_fetch_autostart_off(self, mock_redis_client):
        mock_redis_client.hgetall.return_value = {**STORED_TEAM, b"autostart": b"0"}

        creds = await RedisCredentialStore(mock_redis_client).fetch_credentials("T1")

        assert creds.auto_start is False

    @pytest.mark.asyncio
    async def test_fetch_unknown_team(self, mock_redis_client):
        assert await RedisCredentialStore(mock_redis_client).fetch_credentials("TNOPE") is None

    @pytest.mark.asyncio
    async def test_fetch_incomplete_record(self, mock_redis_client):
        mock_redis_client.hgetall.return_value = {
            k: v for k, v in STORED_TEAM.items() if k != b"app_token"
        }

        with pytest.raises(IncompleteCredentials) as exc_info:
            await RedisCredentialStore(mock_redis_client).fetch_credentials("T1")

        assert exc_info.value.data == {"team": "T1", "fields": ["app_token"]}

    @pytest.mark.asyncio
    async def test_store_replaces_hash(self, mock_redis_client):
        pipe = mock_redis_client.mock_pipe

        await RedisCredentialStore(mock_redis_client).store_credentials({
            "teamid": "T1",
            "team_name": "Test Team",
            "bot_token": "xoxb-bot",
            "app_token": "xoxp-app",
            "bot_id": "UBOT",
        })

        mock_redis_client.pipeline.assert_called_once_with(transaction=True)
        pipe.delete.assert_called_once_with("team:T1")
        pipe.hset.assert_called_once_with("team:T1", mapping={
            "teamid": "T1",
            "team_name": "Test Team",
            "bot_token": "xoxb-bot",
            "app_token": "xoxp-app",
            "bot_id": "UBOT",
            "autostart": "0",
        })
        pipe.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reinstall_keeps_autostart(self, mock_redis_client):
        mock_redis_client.hget.return_value = b"1"

        await RedisCredentialStore(mock_redis_client).store_credentials({
            "teamid": "T1",
            "bot_token": "xoxb-new",
            "app_token": "xoxp-new",
            "bot_id": "UBOT",
            "team_name": None,
        })

        mapping = mock_redis_client.mock_pipe.hset.call_args.kwargs["mapping"]
        assert mapping["autostart"] == "1"
        assert mapping["bot_token"] == "xoxb-new"
        assert "team_name" not in mapping

    @pytest.mark.asyncio
    async def test_explicit_autostart_wins(self, mock_redis_client):
        mock_redis_client.hget.return_value = b"0"

        await RedisCredentialStore(mock_redis_client).store_credentials({
            "teamid": "T1",
            "bot_token": "xoxb-bot",
            "app_token": "xoxp-app",
            "bot_id": "UBOT",
            "autostart": True,
        })

        mapping = mock_redis_client.mock_pipe.hset.call_args.kwargs["mapping"]
        assert mapping["autostart"] == "1"

    @pytest.mark.asyncio
    async def test_store_requires_team(self, mock_redis_client):
        with pytest.raises(ValueError):
            await RedisCredentialStore(mock_redis_client).store_credentials({"bot_token": "xoxb-bot"})

        mock_redis_client.pipeline.assert_not_called()


class TestChannelBindingStore:

    def test_keys(self):
        assert team_key("T1") == "team:T1"
        assert character_key("U1", "T1") == "character:T1:U1"

    @pytest.mark.asyncio
    async def test_fetch_bound_channel(self, mock_redis_client):
        mock_redis_client.get.return_value = b"G1"

        channel = await RedisChannelBindingStore(mock_redis_client).fetch_active_channel("U1", "T1")

        assert channel == "G1"
        mock_redis_client.get.assert_awaited_once_with("character:T1:U1")

    @pytest.mark.asyncio
    async def test_fetch_no_game(self, mock_redis_client):
        assert await RedisChannelBindingStore(mock_redis_client).fetch_active_channel("U1", "T1") == ""
