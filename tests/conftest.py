# ABOUTME: Shared pytest fixtures for all test modules.
# ABOUTME: Provides settings, mock Redis/transport/session clients and delivery helpers.

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from loguru import logger

from chatterbox.config.settings import Settings
from chatterbox.messaging.transport import Delivery, RedisQueueTransport
from chatterbox.models.workspace import WorkspaceCredentials
from chatterbox.relay.error_reporter import ErrorReporter
from chatterbox.relay.session_cache import SessionCache

VERIFICATION_TOKEN = "verify-token"
PAYMENT_TOKEN = "payment-token"


# --- Helper Functions ---

def make_delivery(message: dict[str, Any] | str, queue: str = "out_queue-test") -> Delivery:
    """Build a Delivery from an envelope dict (or raw string body)"""
    body = message if isinstance(message, str) else json.dumps(message)
    return Delivery(queue=queue, body=body.encode("utf-8"))


# --- Configuration Fixtures ---

@pytest.fixture
def settings() -> Settings:
    """Test settings independent of the environment and .env"""
    return Settings(
        _env_file=None,
        mode="test",
        verification_token=VERIFICATION_TOKEN,
        cns_api_token=PAYMENT_TOKEN,
        queue_suffix="test",
        client_id="client-1",
        client_secret="secret-1",
    )


@pytest.fixture
def credentials() -> WorkspaceCredentials:
    return WorkspaceCredentials(
        team_id="T1",
        team_name="Test Team",
        bot_token="xoxb-bot",
        app_token="xoxp-app",
        bot_id="UBOT",
        auto_start=True,
    )


# --- Mock Client Fixtures ---

@pytest.fixture
def mock_redis_client():
    """Mock asyncio Redis client for transport and stores"""
    redis = MagicMock()

    redis.ping = AsyncMock(return_value=True)
    redis.lpush = AsyncMock(return_value=1)
    redis.blmove = AsyncMock(return_value=None)
    redis.lmove = AsyncMock(return_value=None)
    redis.lrem = AsyncMock(return_value=1)
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.hget = AsyncMock(return_value=None)
    redis.hgetall = AsyncMock(return_value={})
    redis.aclose = AsyncMock()

    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[1, 1])
    pipeline_ctx = MagicMock()
    pipeline_ctx.__aenter__ = AsyncMock(return_value=pipe)
    pipeline_ctx.__aexit__ = AsyncMock(return_value=None)
    redis.pipeline = MagicMock(return_value=pipeline_ctx)
    redis.mock_pipe = pipe

    return redis


@pytest.fixture
def mock_session():
    """Mock chat session for one workspace"""
    session = MagicMock()
    session.bot_id = "UBOT"
    session.auto_start = False

    session.connect = AsyncMock()
    session.post_message = AsyncMock(return_value={"ok": True, "ts": "123.45"})
    session.update_message = AsyncMock(return_value={"ok": True})
    session.delete_message = AsyncMock(return_value={"ok": True})
    session.dm = AsyncMock(return_value={"ok": True})
    session.dialog = AsyncMock(return_value={"ok": True})
    session.user_info = AsyncMock(return_value={
        "user": {"id": "U1", "real_name": "Ada Lovelace", "profile": {"email": "ada@example.com"}}
    })
    session.get_conversation_members = AsyncMock(return_value=["U1", "UBOT"])
    session.get_conversation_info = AsyncMock(return_value={"id": "G9", "name": "my-old-game"})
    session.create_private_channel = AsyncMock(return_value="GNEW")
    session.invite_private_channel = AsyncMock()

    return session


@pytest.fixture
def mock_sessions(mock_session):
    """Session cache that always hands out mock_session"""
    sessions = MagicMock(spec=SessionCache)
    sessions.get_session = AsyncMock(return_value=mock_session)
    return sessions


@pytest.fixture
def mock_transport():
    transport = MagicMock(spec=RedisQueueTransport)
    transport.publish = AsyncMock()
    transport.ack = AsyncMock()
    transport.recover = AsyncMock(return_value=0)
    transport.close = AsyncMock()
    return transport


@pytest.fixture
def mock_reporter():
    return MagicMock(spec=ErrorReporter)


@pytest.fixture
def log_records():
    """Capture loguru records emitted during a test"""
    records: list[dict[str, Any]] = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)
