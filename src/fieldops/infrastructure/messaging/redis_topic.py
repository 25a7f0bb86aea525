"""Fan-out topic publisher backed by Redis Pub/Sub."""

import json
import logging
from typing import Any, Dict

from redis.asyncio import Redis

from fieldops.application.messaging import PublisherKind, to_payload

from .base import LazyRedisPublisher

logger = logging.getLogger(__name__)


class RedisTopicPublisher(LazyRedisPublisher):
    kind = PublisherKind.TOPIC

    async def _send(self, client: Redis, destination: str, message: Any, properties: Dict[str, Any]) -> None:
        envelope = {
            "body": to_payload(message),
            "content_type": "application/json",
            "application_properties": properties,
        }
        receivers = await client.publish(destination, json.dumps(envelope, default=str))
        logger.debug(f"Topic '{destination}' delivered to {receivers} subscriber(s)")
