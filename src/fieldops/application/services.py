"""Application services for orders and field measurements.

Each command persists first, then dispatches the events the aggregate recorded
and clears its event log. Publishing is therefore at-most-once: a failure after
commit leaves the stored state in place.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Generic, List, Optional, Protocol, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field

from fieldops.config.settings import DroughtAlertSettings
from fieldops.domain.drought import DroughtDetector
from fieldops.domain.entities import FieldMeasurement, Order
from fieldops.domain.exceptions import ValidationException
from fieldops.domain.models import GameItem, OrderStatus, PaymentMethod, PaymentMethodDetails
from fieldops.domain.repositories import FieldMeasurementRepository, OrderRepository

from .context import RequestContext
from .dispatcher import DomainEventDispatcher

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PagedResult(Generic[T]):
    """One page of a listing."""
    items: List[T] = field(default_factory=list)
    total_count: int = 0
    skip: int = 0
    take: int = 10

    @property
    def total_pages(self) -> int:
        if self.take <= 0:
            return 0
        return math.ceil(self.total_count / self.take)

    @property
    def has_next(self) -> bool:
        return self.skip + len(self.items) < self.total_count


class GamesCatalog(Protocol):
    """Source of game names and prices."""

    async def get_game(self, game_id: int, correlation_id: Optional[str] = None) -> Optional[GameItem]: ...


class AddOrderRequest(BaseModel):
    """Order placement input"""
    user_id: str = Field(min_length=1)
    user_email: str = Field(min_length=3)
    game_ids: List[int] = Field(min_length=1)
    payment_method: PaymentMethod
    payment_method_details: Optional[PaymentMethodDetails] = None


class AddFieldMeasurementRequest(BaseModel):
    """Sensor reading input"""
    field_id: UUID
    soil_moisture: float
    air_temperature: float
    precipitation: float
    collected_at: datetime
    alert_recipient: Optional[str] = None
    user_id: Optional[str] = None


def _check_paging(skip: int, take: int) -> None:
    if skip < 0:
        raise ValidationException("skip cannot be negative", metadata={"skip": skip})
    if take <= 0:
        raise ValidationException("take must be greater than 0", metadata={"take": take})


class OrderService:
    def __init__(
        self,
        order_repository: OrderRepository,
        games_client: GamesCatalog,
        dispatcher: DomainEventDispatcher,
    ) -> None:
        self.order_repository = order_repository
        self.games_client = games_client
        self.dispatcher = dispatcher

    async def list_orders(self, skip: int = 0, take: int = 10) -> PagedResult[Order]:
        _check_paging(skip, take)
        orders = await self.order_repository.list(skip, take)
        total = await self.order_repository.count()

        result = PagedResult(items=orders, total_count=total, skip=skip, take=take)
        logger.info(f"Retrieved {len(orders)} orders (page size {take}, total {total}, pages {result.total_pages})")
        return result

    async def get_order(self, order_id: int) -> Order:
        return await self.order_repository.get_by_id(order_id)

    async def add_order(self, request: AddOrderRequest, context: RequestContext) -> Order:
        """Place an order, resolve its games and announce it.

        Raises:
            ValidationException: If the user already has an active order with one
                of the requested games, or a game is unknown to the catalogue
        """
        requested = set(request.game_ids)
        active_orders = await self.order_repository.find_active_by_user(request.user_id)
        if any(game.game_id in requested for order in active_orders for game in order.games):
            raise ValidationException(
                f"There is already an active order for the user {request.user_id.upper()} "
                f"with one or more of the games requested.",
                "DUPLICATE_ACTIVE_ORDER",
                {"user_id": request.user_id},
            )

        games: List[GameItem] = []
        for game_id in request.game_ids:
            game = await self.games_client.get_game(game_id, context.correlation_id)
            if game is None:
                raise ValidationException(
                    f"Game with id {game_id} is not available.", "GAME_NOT_AVAILABLE", {"game_id": game_id}
                )
            games.append(game)

        order = Order(
            user_id=request.user_id,
            user_email=request.user_email,
            payment_method=request.payment_method,
            games=games,
            payment_method_details=request.payment_method_details,
        )

        order = await self.order_repository.add(order)
        logger.info(f"Order {order.order_id} created for user {order.user_id}")

        order.mark_as_created()
        await self.dispatcher.process(order.events.pending(), context)
        order.events.clear()

        return order

    async def update_order_status(self, order_id: int, status: OrderStatus, context: RequestContext) -> Order:
        order = await self.order_repository.get_by_id(order_id)
        order.status = status
        order = await self.order_repository.update(order)
        logger.info(f"Order {order.order_id} updated. New status: {order.status.value}")

        await self.dispatcher.process(order.events.pending(), context)
        order.events.clear()

        return order

    async def delete_order(self, order_id: int) -> None:
        await self.order_repository.delete(order_id)
        logger.info(f"Order {order_id} deleted")


class FieldMeasurementService:
    def __init__(
        self,
        repository: FieldMeasurementRepository,
        dispatcher: DomainEventDispatcher,
        detector: DroughtDetector,
        drought_settings: DroughtAlertSettings,
    ) -> None:
        self.repository = repository
        self.dispatcher = dispatcher
        self.detector = detector
        self.drought_settings = drought_settings

    async def add_measurement(self, request: AddFieldMeasurementRequest, context: RequestContext) -> FieldMeasurement:
        measurement = FieldMeasurement(
            field_id=request.field_id,
            soil_moisture=request.soil_moisture,
            air_temperature=request.air_temperature,
            precipitation=request.precipitation,
            collected_at=request.collected_at,
            alert_recipient=request.alert_recipient,
            user_id=request.user_id,
        )

        measurement = await self.repository.add(measurement)
        logger.info(
            f"Measurement {measurement.id} saved for field {measurement.field_id}. "
            f"Soil moisture: {measurement.soil_moisture}%"
        )

        measurement.record_created()
        await self._check_drought(measurement)

        await self.dispatcher.process(measurement.events.pending(), context)
        measurement.events.clear()

        return measurement

    async def _check_drought(self, measurement: FieldMeasurement) -> None:
        settings = self.drought_settings
        start = measurement.collected_at - timedelta(days=settings.history_days)
        history = list(
            await self.repository.list_by_field_and_range(measurement.field_id, start, measurement.collected_at)
        )
        if all(m.id != measurement.id for m in history):
            history.append(measurement)

        condition = self.detector.detect(history, settings.threshold, settings.minimum_duration_hours)
        if condition is None:
            return

        logger.warning(
            f"Drought detected on field {measurement.field_id}: below {settings.threshold}% "
            f"for {condition.duration_hours:.1f}h"
        )
        measurement.require_drought_alert(condition, settings.threshold)

    async def get_measurement(self, measurement_id: UUID) -> FieldMeasurement:
        return await self.repository.get_by_id(measurement_id)

    async def list_by_field(self, field_id: UUID) -> List[FieldMeasurement]:
        return await self.repository.list_by_field(field_id)

    async def list_measurements(self, skip: int = 0, take: int = 10) -> PagedResult[FieldMeasurement]:
        _check_paging(skip, take)
        measurements = await self.repository.list(skip, take)
        total = await self.repository.count()

        result = PagedResult(items=measurements, total_count=total, skip=skip, take=take)
        logger.info(
            f"Retrieved {len(measurements)} measurements (page size {take}, total {total}, pages {result.total_pages})"
        )
        return result
