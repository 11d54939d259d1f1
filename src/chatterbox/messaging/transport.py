# ABOUTME: Durable Redis list queues with manual acknowledgment for the relay's in/out/event queues.
# ABOUTME: Each consumer holds at most one unacknowledged delivery in a per-queue processing list.

from collections.abc import AsyncIterator
from dataclasses import dataclass

from loguru import logger
from redis import RedisError
from redis.asyncio import Redis

from chatterbox.messaging.exceptions import QueueConnectionFailed

# Seconds a blocking pop waits before re-checking for shutdown
CONSUME_POLL_SECONDS = 1.0


@dataclass(frozen=True)
class Delivery:
    """A message taken off a queue and awaiting acknowledgment"""

    queue: str
    body: bytes


def processing_list(queue: str) -> str:
    """Name of the list holding a queue's unacknowledged delivery"""
    return f"{queue}:processing"


async def create_redis_connection(redis_url: str) -> Redis:
    """
    Create an asyncio Redis connection and verify it responds.

    Args:
        redis_url: Redis connection URL (e.g., "redis://localhost:6379/0")

    Returns:
        Connected Redis client (bytes responses)

    Raises:
        QueueConnectionFailed: When Redis is not accessible
    """
    try:
        redis_conn = Redis.from_url(redis_url, decode_responses=False)
        await redis_conn.ping()
        logger.info(f"Redis connection established: {redis_url}")
        return redis_conn
    except (RedisError, OSError) as e:
        logger.error(f"Failed to connect to Redis at {redis_url}: {e}")
        raise QueueConnectionFailed(f"Redis connection failed: {e}") from e


class RedisQueueTransport:
    """
    Named FIFO queues on Redis lists.

    Producers LPUSH onto the queue; the consumer BLMOVEs from the right end
    into the queue's processing list, and acknowledging removes the body from
    that list. Since consume() only pulls the next message once the caller
    resumes the iterator, a single consumer never has more than one message
    in flight (prefetch = 1).
    """

    def __init__(self, redis_client: Redis):
        """
        Initialize transport.

        Args:
            redis_client: asyncio Redis connection returning bytes
        """
        self.redis = redis_client
        self._closing = False

    async def publish(self, queue: str, body: bytes) -> None:
        """
        Append a message to a queue.

        Raises:
            QueueConnectionFailed: When the push fails
        """
        try:
            await self.redis.lpush(queue, body)
        except RedisError as e:
            raise QueueConnectionFailed(f"Could not publish to '{queue}': {e}") from e

        logger.debug(f"Published {len(body)} bytes to queue '{queue}'")

    async def consume(self, queue: str) -> AsyncIterator[Delivery]:
        """
        Yield deliveries from a queue, one at a time, until close() is called.

        Args:
            queue: Queue name

        Yields:
            Delivery awaiting ack()

        Raises:
            QueueConnectionFailed: When the blocking pop fails
        """
        processing = processing_list(queue)
        logger.info(f"Connected to queue: '{queue}'.")

        while not self._closing:
            try:
                body = await self.redis.blmove(
                    queue, processing, CONSUME_POLL_SECONDS, src="RIGHT", dest="LEFT"
                )
            except RedisError as e:
                raise QueueConnectionFailed(f"Could not consume from '{queue}': {e}") from e

            if body is None:
                continue

            yield Delivery(queue=queue, body=body)

    async def ack(self, delivery: Delivery) -> None:
        """
        Acknowledge a delivery, removing it from the processing list.

        Raises:
            QueueConnectionFailed: When the removal fails
        """
        try:
            await self.redis.lrem(processing_list(delivery.queue), 1, delivery.body)
        except RedisError as e:
            raise QueueConnectionFailed(
                f"Could not acknowledge message on '{delivery.queue}': {e}"
            ) from e

    async def recover(self, queue: str) -> int:
        """
        Return deliveries left unacknowledged by a previous consumer to the queue.

        They are placed at the consuming end, so they are delivered next and in
        their original order.

        Args:
            queue: Queue name

        Returns:
            Number of messages recovered
        """
        processing = processing_list(queue)
        recovered = 0

        try:
            while await self.redis.lmove(processing, queue, src="LEFT", dest="RIGHT") is not None:
                recovered += 1
        except RedisError as e:
            raise QueueConnectionFailed(f"Could not recover '{processing}': {e}") from e

        if recovered:
            logger.warning(f"Recovered {recovered} unacknowledged message(s) on '{queue}'")
        return recovered

    async def close(self) -> None:
        """Stop consumers after their current poll and close the connection"""
        self._closing = True
        await self.redis.aclose()
        logger.info("Queue transport closed")
