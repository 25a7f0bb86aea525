"""Dependency checks reporting ``ComponentHealth``.

A check that answers slower than its ``degraded_after_ms`` reports Degraded.
Checks catch their own dependency errors and report Unhealthy.
"""

import logging
import time
from typing import Callable, Optional

from redis.asyncio import Redis
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from fieldops.application.health import ComponentHealth
from fieldops.domain.types import HealthStatus

from ..games.client import GamesApiClient

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _timed_status(elapsed_ms: int, degraded_after_ms: int) -> HealthStatus:
    return HealthStatus.DEGRADED if elapsed_ms > degraded_after_ms else HealthStatus.HEALTHY


class DatabaseHealthCheck:
    component_name = "database"
    is_critical = True

    def __init__(self, engine: AsyncEngine, degraded_after_ms: int = 1000) -> None:
        self.engine = engine
        self.degraded_after_ms = degraded_after_ms

    async def check(self) -> ComponentHealth:
        started = time.perf_counter()
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return ComponentHealth(
                status=HealthStatus.UNHEALTHY,
                response_time_ms=_elapsed_ms(started),
                description=f"Database unreachable: {e}",
            )

        elapsed = _elapsed_ms(started)
        return ComponentHealth(
            status=_timed_status(elapsed, self.degraded_after_ms),
            response_time_ms=elapsed,
            description="Database is reachable",
        )


class RedisHealthCheck:
    component_name = "message_broker"
    is_critical = False

    def __init__(
        self,
        redis_url: str,
        client_factory: Optional[Callable[[], Redis]] = None,
        degraded_after_ms: int = 500,
    ) -> None:
        self.redis_url = redis_url
        self._client_factory = client_factory or (lambda: Redis.from_url(self.redis_url))
        self.degraded_after_ms = degraded_after_ms

    async def check(self) -> ComponentHealth:
        started = time.perf_counter()
        client = self._client_factory()
        try:
            await client.ping()
        except Exception as e:
            logger.error(f"Redis health check failed: {e}")
            return ComponentHealth(
                status=HealthStatus.UNHEALTHY,
                response_time_ms=_elapsed_ms(started),
                description=f"Redis unreachable: {e}",
            )
        finally:
            await client.aclose()

        elapsed = _elapsed_ms(started)
        return ComponentHealth(
            status=_timed_status(elapsed, self.degraded_after_ms),
            response_time_ms=elapsed,
            description="Redis answered PING",
        )


class GamesApiHealthCheck:
    component_name = "games_api"
    is_critical = False

    def __init__(self, client: GamesApiClient, degraded_after_ms: int = 2000) -> None:
        self.client = client
        self.degraded_after_ms = degraded_after_ms

    async def check(self) -> ComponentHealth:
        started = time.perf_counter()
        try:
            status_code = await self.client.ping()
        except Exception as e:
            logger.error(f"Games API health check failed: {e}")
            return ComponentHealth(
                status=HealthStatus.UNHEALTHY,
                response_time_ms=_elapsed_ms(started),
                description=str(e),
            )

        elapsed = _elapsed_ms(started)
        if status_code >= 500:
            return ComponentHealth(
                status=HealthStatus.UNHEALTHY,
                response_time_ms=elapsed,
                description=f"Games API returned HTTP {status_code}",
            )
        return ComponentHealth(
            status=_timed_status(elapsed, self.degraded_after_ms),
            response_time_ms=elapsed,
            description=f"Games API returned HTTP {status_code}",
        )
