# ABOUTME: Exception definitions for the queue transport layer.
# ABOUTME: Defines error types raised by RedisQueueTransport.


class QueueConnectionFailed(Exception):
    """Raised when the queue backend can't be reached or a queue operation fails"""
    pass
