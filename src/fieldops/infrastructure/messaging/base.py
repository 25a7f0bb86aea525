"""Lazily connected Redis publisher shared by the queue and topic variants."""

import asyncio
import logging
from abc import abstractmethod
from typing import Any, Callable, Dict, Optional

from redis.asyncio import Redis

from fieldops.application.messaging import MessagePublisher
from fieldops.domain.exceptions import TransportException

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], Redis]


class LazyRedisPublisher(MessagePublisher):
    """Publisher that connects on first use and reconnects after a failure.

    No connection is opened at construction. Concurrent first publishes share a
    single connection attempt behind an ``asyncio.Lock``. Any publish failure
    closes and drops the client so the next publish connects again.
    """

    def __init__(self, redis_url: str, client_factory: Optional[ClientFactory] = None) -> None:
        self.redis_url = redis_url
        self._client_factory = client_factory or self._default_client
        self._client: Optional[Redis] = None
        self._lock = asyncio.Lock()

    def _default_client(self) -> Redis:
        return Redis.from_url(self.redis_url, decode_responses=True)

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def _get_client(self) -> Redis:
        client = self._client
        if client is not None:
            return client

        async with self._lock:
            if self._client is None:
                client = self._client_factory()
                try:
                    await client.ping()
                except Exception:
                    await client.aclose()
                    raise
                self._client = client
                logger.info(f"{type(self).__name__} connected to Redis")
            return self._client

    @abstractmethod
    async def _send(
        self,
        client: Redis,
        destination: str,
        message: Any,
        properties: Dict[str, Any],
    ) -> None:
        ...

    async def publish_message(
        self,
        destination: str,
        message: Any,
        properties: Optional[Dict[str, Any]] = None,
    ) -> None:
        client: Optional[Redis] = None
        try:
            client = await self._get_client()
            await self._send(client, destination, message, properties or {})
            logger.debug(f"Published message to '{destination}'")
        except Exception as e:
            if client is not None:
                await self._invalidate(client)
            logger.error(f"Failed to publish message to '{destination}': {e}")
            raise TransportException(
                f"Failed to publish message to '{destination}': {e}",
                destination,
                {"error": str(e), "publisher": type(self).__name__},
            ) from e

    async def _invalidate(self, failed: Redis) -> None:
        """Drop ``failed`` if it is still the current client.

        A client that was already replaced by a reconnect is closed without
        touching the current one.
        """
        async with self._lock:
            if self._client is failed:
                self._client = None
                self._on_disconnect()
        await self._close_client(failed)

    def _on_disconnect(self) -> None:
        """Hook for per-connection state; called under the lock."""

    @staticmethod
    async def _close_client(client: Redis) -> None:
        try:
            await client.aclose()
        except Exception as e:
            logger.warning(f"Error while closing Redis client: {e}")

    async def close(self) -> None:
        async with self._lock:
            client, self._client = self._client, None
            if client is not None:
                self._on_disconnect()
        if client is not None:
            await self._close_client(client)
        logger.info(f"{type(self).__name__} closed")
