"""Durable queue publisher backed by Redis Streams."""

import json
import logging
from typing import Any, Dict, Optional, Set

from redis.asyncio import Redis
from redis.exceptions import ResponseError

from fieldops.application.messaging import PublisherKind, serialize_message

from .base import ClientFactory, LazyRedisPublisher

logger = logging.getLogger(__name__)


class RedisQueuePublisher(LazyRedisPublisher):
    """Appends messages to a stream that a consumer group reads once each.

    The stream and its consumer group are created on first use of a destination.
    """

    kind = PublisherKind.QUEUE

    def __init__(
        self,
        redis_url: str,
        consumer_group: str = "notifications",
        maxlen: Optional[int] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        super().__init__(redis_url, client_factory)
        self.consumer_group = consumer_group
        self.maxlen = maxlen
        self._declared: Set[str] = set()

    async def _ensure_queue(self, client: Redis, destination: str) -> None:
        if destination in self._declared:
            return
        try:
            await client.xgroup_create(destination, self.consumer_group, id="0", mkstream=True)
            logger.info(f"Declared queue '{destination}' for group '{self.consumer_group}'")
        except ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise
        self._declared.add(destination)

    async def _send(self, client: Redis, destination: str, message: Any, properties: Dict[str, Any]) -> None:
        await self._ensure_queue(client, destination)

        fields = {
            "body": serialize_message(message),
            "content_type": "application/json",
            "delivery_mode": "persistent",
            "headers": json.dumps(properties, default=str),
        }
        await client.xadd(destination, fields, maxlen=self.maxlen, approximate=True)

    def _on_disconnect(self) -> None:
        self._declared.clear()
