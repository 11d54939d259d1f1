# ABOUTME: Redis-backed stores for workspace credentials and per-player game channel bindings.
# ABOUTME: Credentials live in hashes keyed by workspace ID; bindings in keys per (workspace, user).

from typing import Any, Protocol

from loguru import logger
from pydantic import ValidationError
from redis.asyncio import Redis

from chatterbox.models.workspace import WorkspaceCredentials
from chatterbox.storage.exceptions import IncompleteCredentials


class CredentialStore(Protocol):
    async def fetch_credentials(self, team_id: str) -> WorkspaceCredentials | None: ...

    async def store_credentials(self, fields: dict[str, Any]) -> None: ...


class ChannelBindingStore(Protocol):
    async def fetch_active_channel(self, uid: str, team_id: str) -> str: ...


def team_key(team_id: str) -> str:
    return f"team:{team_id}"


def character_key(uid: str, team_id: str) -> str:
    return f"character:{team_id}:{uid}"


def _text(value: bytes | str | None) -> str | None:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class RedisCredentialStore:
    """Workspace credentials stored as one Redis hash per workspace"""

    def __init__(self, redis_client: Redis):
        self.redis = redis_client

    async def fetch_credentials(self, team_id: str) -> WorkspaceCredentials | None:
        """
        Load credentials for a workspace.

        Args:
            team_id: Workspace ID

        Returns:
            Credentials, or None when the workspace was never installed

        Raises:
            IncompleteCredentials: When the stored record lacks a token or bot ID
        """
        logger.info(f"Loading team '{team_id}'.")

        raw = await self.redis.hgetall(team_key(team_id))
        if not raw:
            return None

        row = {_text(k): _text(v) for k, v in raw.items()}
        try:
            return WorkspaceCredentials.model_validate({
                "team_id": row.get("teamid") or team_id,
                "team_name": row.get("team_name"),
                "bot_token": row.get("bot_token"),
                "app_token": row.get("app_token"),
                "bot_id": row.get("bot_id"),
                "auto_start": row.get("autostart", "0") in ("1", "true", "True"),
            })
        except ValidationError as e:
            missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
            logger.error(f"Stored credentials for team '{team_id}' are incomplete: {missing}")
            raise IncompleteCredentials(
                f"Stored credentials for team '{team_id}' are incomplete.",
                data={"team": team_id, "fields": missing},
            ) from e

    async def store_credentials(self, fields: dict[str, Any]) -> None:
        """
        Insert or replace the credentials of a workspace.

        Args:
            fields: Must include 'teamid'; typically team_name, app_token,
                bot_token and bot_id. An existing autostart flag is kept
                unless supplied.

        Raises:
            ValueError: When 'teamid' is missing
        """
        team_id = fields.get("teamid")
        if not team_id:
            raise ValueError("Credentials must include a 'teamid'")

        mapping = {
            key: ("1" if value else "0") if isinstance(value, bool) else str(value)
            for key, value in fields.items()
            if value is not None
        }

        key = team_key(team_id)
        autostart = mapping.get("autostart") or _text(await self.redis.hget(key, "autostart"))

        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.delete(key)
            pipe.hset(key, mapping={**mapping, "autostart": autostart or "0"})
            await pipe.execute()


class RedisChannelBindingStore:
    """Active game channel of each player, written by the game engine"""

    def __init__(self, redis_client: Redis):
        self.redis = redis_client

    async def fetch_active_channel(self, uid: str, team_id: str) -> str:
        """
        Get the channel hosting a player's game.

        Returns:
            Channel ID, or "" when the player has no game on this workspace
        """
        channel = await self.redis.get(character_key(uid, team_id))
        return _text(channel) or ""
