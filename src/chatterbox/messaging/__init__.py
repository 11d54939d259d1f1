# ABOUTME: Queue transport exports for publishing and consuming relay envelopes.
# ABOUTME: Provides RedisQueueTransport, Delivery and the Redis connection helper.

from chatterbox.messaging.exceptions import QueueConnectionFailed
from chatterbox.messaging.transport import (
    Delivery,
    RedisQueueTransport,
    create_redis_connection,
    processing_list,
)

__all__ = [
    "Delivery",
    "RedisQueueTransport",
    "QueueConnectionFailed",
    "create_redis_connection",
    "processing_list",
]
