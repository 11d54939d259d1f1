# ABOUTME: Per-workspace cache of live chat platform sessions, created lazily from stored credentials.
# ABOUTME: Concurrent first requests for one workspace serialize so each workspace connects once.

import asyncio
from collections.abc import Callable

from loguru import logger

from chatterbox.models.workspace import WorkspaceCredentials
from chatterbox.platform.session import ChatSession
from chatterbox.relay.exceptions import UnknownWorkspace
from chatterbox.storage.exceptions import IncompleteCredentials
from chatterbox.storage.stores import CredentialStore

SessionFactory = Callable[[WorkspaceCredentials], ChatSession]


class SessionCache:
    """
    Holds at most one connected session per workspace for the process lifetime.

    Sessions are never evicted or closed; credential changes need a restart.
    """

    def __init__(self, credential_store: CredentialStore, session_factory: SessionFactory):
        """
        Initialize cache.

        Args:
            credential_store: Source of workspace credentials
            session_factory: Builds an unconnected session from credentials
        """
        self.credential_store = credential_store
        self.session_factory = session_factory
        self._sessions: dict[str, ChatSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    async def get_session(self, team_id: str) -> ChatSession:
        """
        Get the connected session for a workspace, creating it on first use.

        Args:
            team_id: Workspace ID

        Returns:
            Connected session with auto_start set from the workspace record

        Raises:
            UnknownWorkspace: When the workspace has no usable stored credentials
            SessionConnectFailed: When the platform rejects the credentials
        """
        session = self._sessions.get(team_id)
        if session is not None:
            return session

        lock = self._locks.setdefault(team_id, asyncio.Lock())
        async with lock:
            # Another request may have connected while we waited
            session = self._sessions.get(team_id)
            if session is not None:
                return session

            try:
                credentials = await self.credential_store.fetch_credentials(team_id)
            except IncompleteCredentials as e:
                raise UnknownWorkspace(f"Stored credentials for team '{team_id}' are unusable") from e
            if credentials is None:
                raise UnknownWorkspace(f"No credentials stored for team '{team_id}'")

            session = self.session_factory(credentials)
            await session.connect()
            session.auto_start = credentials.auto_start

            self._sessions[team_id] = session
            logger.info(f"Opened session for team '{team_id}' ({len(self._sessions)} total)")
            return session
