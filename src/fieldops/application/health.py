"""Aggregated health of the service's dependencies."""

import asyncio
import logging
from datetime import datetime
from typing import Dict, Optional, Protocol, Sequence

from pydantic import BaseModel, Field

from fieldops import __version__
from fieldops.domain.types import HealthStatus, utc_now

logger = logging.getLogger(__name__)


class ComponentHealth(BaseModel):
    """Result of a single check"""
    status: HealthStatus
    response_time_ms: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = None


class HealthReport(BaseModel):
    """Overall service health"""
    status: HealthStatus
    timestamp: datetime
    version: str
    components: Dict[str, ComponentHealth] = Field(default_factory=dict)


class HealthCheck(Protocol):
    """Check for one dependency. Critical checks can make the whole service unhealthy."""

    component_name: str
    is_critical: bool

    async def check(self) -> ComponentHealth: ...


class HealthCheckService:
    def __init__(self, checks: Sequence[HealthCheck], version: str = __version__) -> None:
        self.checks = list(checks)
        self.version = version

    async def check_health(self) -> HealthReport:
        logger.info(f"Starting health checks for {len(self.checks)} components")

        results = await asyncio.gather(*(self._run(check) for check in self.checks))
        components = {check.component_name: health for check, health in zip(self.checks, results)}

        status = self.determine_overall_status(components)
        logger.info(f"Health check completed with status {status.value} ({len(components)} components)")

        return HealthReport(status=status, timestamp=utc_now(), version=self.version, components=components)

    async def _run(self, check: HealthCheck) -> ComponentHealth:
        try:
            result = await check.check()
            logger.debug(
                f"Health of {check.component_name}: {result.status.value} ({result.response_time_ms}ms)"
            )
            return result
        except Exception as e:
            logger.error(f"Health check failed for {check.component_name}: {e}")
            return ComponentHealth(
                status=HealthStatus.UNHEALTHY,
                description=f"Health check threw exception: {e}",
            )

    def determine_overall_status(self, components: Dict[str, ComponentHealth]) -> HealthStatus:
        if not components:
            return HealthStatus.UNKNOWN

        critical = {check.component_name for check in self.checks if check.is_critical}
        if any(
            name in critical and health.status is HealthStatus.UNHEALTHY
            for name, health in components.items()
        ):
            return HealthStatus.UNHEALTHY

        if any(
            health.status in (HealthStatus.UNHEALTHY, HealthStatus.DEGRADED)
            for health in components.values()
        ):
            return HealthStatus.DEGRADED

        return HealthStatus.HEALTHY
