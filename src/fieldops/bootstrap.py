"""Composition root wiring settings, infrastructure and application services.

Typical use::

    container = Container(get_settings())
    async with container.session() as session:
        order = await container.order_service(session).add_order(request, context)
    await container.close()
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from .application.dispatcher import DomainEventDispatcher, HandlerRegistry
from .application.handlers import (
    DroughtAlertRequiredEventHandler,
    ExcessiveRainfallAlertHandler,
    ExtremeHeatAlertHandler,
    FieldHistory,
    FreezingTemperatureAlertHandler,
    HeatStressAnalysisHandler,
    IrrigationAnalysisHandler,
    OrderCreatedEventHandler,
    OrderStatusChangedEventHandler,
    PaymentMethodSetEventHandler,
    PestRiskAnalysisHandler,
)
from .application.health import HealthCheckService
from .application.messaging import MessagePublisherFactory
from .application.services import FieldMeasurementService, OrderService
from .config.logging import configure_logging
from .config.settings import Settings
from .domain.drought import DroughtDetector
from .domain.entities import FieldMeasurement
from .infrastructure.database.connection import (
    close_database_engine,
    get_async_session,
    get_database_engine,
)
from .infrastructure.database.repositories import (
    SqlAlchemyFieldMeasurementRepository,
    SqlAlchemyOrderRepository,
)
from .infrastructure.games.client import GamesApiClient
from .infrastructure.health.checks import DatabaseHealthCheck, GamesApiHealthCheck, RedisHealthCheck
from .infrastructure.messaging.factory import RedisPublisherFactory

logger = logging.getLogger(__name__)


def build_handler_registry(
    settings: Settings,
    publisher_factory: MessagePublisherFactory,
    field_history: FieldHistory,
) -> HandlerRegistry:
    """Register every event handler with its destination and thresholds."""
    return HandlerRegistry([
        OrderCreatedEventHandler(publisher_factory, settings.notifications_queue),
        OrderStatusChangedEventHandler(publisher_factory, settings.notifications_queue),
        PaymentMethodSetEventHandler(publisher_factory, settings.payments_topic),
        DroughtAlertRequiredEventHandler(publisher_factory, settings.alert_notifications_destination),
        ExtremeHeatAlertHandler(
            publisher_factory, settings.alert_required_destination, settings.extreme_heat.threshold
        ),
        FreezingTemperatureAlertHandler(
            publisher_factory, settings.alert_required_destination, settings.freezing.threshold
        ),
        ExcessiveRainfallAlertHandler(
            publisher_factory, settings.alert_notifications_destination, settings.excessive_rainfall.threshold
        ),
        HeatStressAnalysisHandler(
            publisher_factory, settings.alert_required_destination, field_history, settings.heat_stress
        ),
        IrrigationAnalysisHandler(
            publisher_factory, settings.alert_notifications_destination, field_history, settings.irrigation
        ),
        PestRiskAnalysisHandler(
            publisher_factory, settings.alert_required_destination, field_history, settings.pest_risk
        ),
    ])


class Container:
    """Holds the long-lived collaborators of the service."""

    def __init__(
        self,
        settings: Settings,
        publisher_factory: Optional[MessagePublisherFactory] = None,
        games_client: Optional[GamesApiClient] = None,
    ) -> None:
        configure_logging(settings)
        self.settings = settings
        self.publisher_factory = publisher_factory or RedisPublisherFactory.from_settings(settings)
        self.games_client = games_client or GamesApiClient(settings)
        self.registry = build_handler_registry(settings, self.publisher_factory, self.field_history)
        self.dispatcher = DomainEventDispatcher(self.registry)
        self.detector = DroughtDetector()
        logger.info(f"{settings.service_name} container ready ({len(self.registry)} handlers registered)")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        async with get_async_session(self.settings) as session:
            yield session

    async def field_history(self, field_id: UUID, start: datetime, end: datetime) -> List[FieldMeasurement]:
        """Read a field's history on its own session, after the measurement was committed."""
        async with self.session() as session:
            return await SqlAlchemyFieldMeasurementRepository(session).list_by_field_and_range(field_id, start, end)

    def order_service(self, session: AsyncSession) -> OrderService:
        return OrderService(SqlAlchemyOrderRepository(session), self.games_client, self.dispatcher)

    def measurement_service(self, session: AsyncSession) -> FieldMeasurementService:
        return FieldMeasurementService(
            SqlAlchemyFieldMeasurementRepository(session),
            self.dispatcher,
            self.detector,
            self.settings.drought,
        )

    def health_service(self) -> HealthCheckService:
        return HealthCheckService([
            DatabaseHealthCheck(get_database_engine(self.settings)),
            RedisHealthCheck(self.settings.redis_url),
            GamesApiHealthCheck(self.games_client),
        ])

    async def close(self) -> None:
        await self.publisher_factory.close()
        await self.games_client.close()
        await close_database_engine()
        logger.info("Container closed")
