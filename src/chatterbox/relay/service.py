# ABOUTME: Chatterbox service wiring queues, stores, sessions and both relays into one process.
# ABOUTME: Starts the outbound consumer task and guards background work with error reporting.

import asyncio
from collections.abc import Awaitable
from typing import Any

from loguru import logger
from redis.asyncio import Redis

from chatterbox.config.settings import Settings
from chatterbox.messaging.transport import RedisQueueTransport, create_redis_connection
from chatterbox.platform.session import slack_session_factory
from chatterbox.relay.error_reporter import ErrorReporter
from chatterbox.relay.inbound import InboundRelay
from chatterbox.relay.installer import WorkspaceInstaller
from chatterbox.relay.outbound import OutboundRelay
from chatterbox.relay.session_cache import SessionFactory, SessionCache
from chatterbox.storage.stores import RedisChannelBindingStore, RedisCredentialStore


class Chatterbox:
    """Composition root of the relay"""

    def __init__(
        self,
        settings: Settings,
        redis_client: Redis,
        session_factory: SessionFactory = slack_session_factory,
        reporter: ErrorReporter | None = None,
    ):
        """
        Build every component on one Redis connection.

        Args:
            settings: Application settings
            redis_client: asyncio Redis connection (bytes responses)
            session_factory: Builds chat sessions from credentials
            reporter: Error sink (default: from settings)
        """
        self.settings = settings
        self.redis = redis_client
        self.reporter = reporter or ErrorReporter.from_settings(settings)

        self.transport = RedisQueueTransport(redis_client)
        self.credentials = RedisCredentialStore(redis_client)
        self.bindings = RedisChannelBindingStore(redis_client)
        self.sessions = SessionCache(self.credentials, session_factory)

        self.inbound = InboundRelay(
            transport=self.transport,
            sessions=self.sessions,
            bindings=self.bindings,
            reporter=self.reporter,
            queue_name=settings.in_queue_name,
            event_queue=settings.event_queue,
            verification_token=settings.verification_token,
            payment_token=settings.cns_api_token,
            allow_invite_self=not settings.is_production,
            channel_name_max_attempts=settings.channel_name_max_attempts,
        )
        self.outbound = OutboundRelay(
            transport=self.transport,
            sessions=self.sessions,
            inbound=self.inbound,
            reporter=self.reporter,
            queue_name=settings.out_queue_name,
            initial_ack_delay_ms=settings.initial_ack_delay_ms,
            ack_delay_step_ms=settings.ack_delay_step_ms,
        )
        self.installer = WorkspaceInstaller(settings, self.credentials, self.inbound, self.reporter)

        self._consumer: asyncio.Task | None = None

    @classmethod
    async def from_settings(cls, settings: Settings) -> "Chatterbox":
        """Connect to Redis and build the service"""
        logger.info("Connecting to MQ...")
        redis_client = await create_redis_connection(settings.redis_url)
        logger.info("Connected to MQ!")
        return cls(settings, redis_client)

    async def connect(self) -> None:
        """Recover unacknowledged out-queue messages and start consuming"""
        await self.transport.recover(self.settings.out_queue_name)
        self._consumer = asyncio.create_task(self._consume(), name="outbound-relay")

    async def _consume(self) -> None:
        try:
            await self.outbound.run()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Outbound relay stopped: {e}")
            self.reporter.report(e)

    async def close(self) -> None:
        """Stop the consumer and close the queue connection"""
        if self._consumer is not None:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
            self._consumer = None

        await self.transport.close()

    async def guard(self, work: Awaitable[Any], info: Any = None) -> None:
        """
        Await background work, reporting any failure instead of raising.

        Args:
            work: Coroutine started after the HTTP response was sent
            info: Request data attached to error reports
        """
        try:
            await work
        except Exception as e:
            logger.error(f"{type(e).__name__}: {e}")
            self.reporter.report(e, info)
