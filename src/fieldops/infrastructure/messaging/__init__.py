"""Redis-backed message publishers."""

from .base import LazyRedisPublisher
from .factory import RedisPublisherFactory
from .redis_queue import RedisQueuePublisher
from .redis_topic import RedisTopicPublisher

__all__ = [
    "LazyRedisPublisher",
    "RedisPublisherFactory",
    "RedisQueuePublisher",
    "RedisTopicPublisher",
]
