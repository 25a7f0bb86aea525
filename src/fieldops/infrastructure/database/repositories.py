"""Repository layer for database operations.

Implements the order and field measurement repository contracts on top of an
``AsyncSession``. Missing rows raise ``EntityNotFoundException``; any other
failure is rolled back and wrapped in ``RepositoryException``.
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, func, and_, desc
from sqlalchemy.ext.asyncio import AsyncSession

from fieldops.domain.entities import FieldMeasurement, Order
from fieldops.domain.exceptions import EntityNotFoundException, FieldOpsDomainException
from fieldops.domain.models import OrderStatus
from fieldops.domain.types import utc_now

from .models import FieldMeasurementDB, OrderDB

logger = logging.getLogger(__name__)


class RepositoryException(FieldOpsDomainException):
    """Exception for repository operations."""
    pass


INACTIVE_ORDER_STATUSES = (OrderStatus.CANCELLED.value, OrderStatus.RELEASED.value)


class SqlAlchemyOrderRepository:
    """Repository for orders and their game line items.

    Write operations return the entity they were given so events recorded on it
    stay available to the caller.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _load(self, order_id: int) -> OrderDB:
        try:
            db_order = await self.session.get(OrderDB, order_id)
        except Exception as e:
            logger.error(f"Failed to load order {order_id}: {e}")
            raise RepositoryException(
                f"Failed to load order {order_id}: {e}",
                "ORDER_QUERY_FAILED",
                {"order_id": order_id}
            ) from e

        if db_order is None:
            raise EntityNotFoundException("Order", order_id)
        return db_order

    async def get_by_id(self, order_id: int) -> Order:
        db_order = await self._load(order_id)
        return db_order.to_domain_model()

    async def add(self, order: Order) -> Order:
        """Persist a new order and assign its ``order_id``.

        Raises:
            RepositoryException: If the insert fails
        """
        try:
            db_order = OrderDB.from_domain_model(order)
            self.session.add(db_order)
            await self.session.flush()
            await self.session.commit()

            order.order_id = db_order.id
            logger.debug(f"Created order {order.order_id} for user {order.user_id}")
            return order

        except Exception as e:
            await self.session.rollback()
            logger.error(f"Failed to create order: {e}")
            raise RepositoryException(
                f"Failed to create order: {e}",
                "ORDER_CREATE_FAILED",
                {"user_id": order.user_id}
            ) from e

    async def update(self, order: Order) -> Order:
        db_order = await self._load(order.order_id)

        try:
            updated_at = utc_now()
            db_order.user_email = order.user_email
            db_order.status = order.status.value
            db_order.payment_method = order.payment_method.value
            details = order.payment_method_details
            db_order.payment_details = details.model_dump() if details else None
            db_order.updated_at = updated_at
            await self.session.commit()

            order.updated_at = updated_at
            logger.debug(f"Updated order {order.order_id} to status {order.status.value}")
            return order

        except Exception as e:
            await self.session.rollback()
            logger.error(f"Failed to update order {order.order_id}: {e}")
            raise RepositoryException(
                f"Failed to update order {order.order_id}: {e}",
                "ORDER_UPDATE_FAILED",
                {"order_id": order.order_id}
            ) from e

    async def delete(self, order_id: int) -> None:
        db_order = await self._load(order_id)

        try:
            await self.session.delete(db_order)
            await self.session.commit()
            logger.debug(f"Deleted order {order_id}")

        except Exception as e:
            await self.session.rollback()
            logger.error(f"Failed to delete order {order_id}: {e}")
            raise RepositoryException(
                f"Failed to delete order {order_id}: {e}",
                "ORDER_DELETE_FAILED",
                {"order_id": order_id}
            ) from e

    async def list(self, skip: int = 0, take: int = 10) -> List[Order]:
        try:
            query = select(OrderDB).order_by(OrderDB.id).offset(skip).limit(take)
            result = await self.session.execute(query)
            return [db_order.to_domain_model() for db_order in result.scalars().all()]

        except Exception as e:
            logger.error(f"Failed to list orders: {e}")
            raise RepositoryException(
                f"Failed to list orders: {e}",
                "ORDER_LIST_FAILED",
                {"skip": skip, "take": take}
            ) from e

    async def count(self) -> int:
        try:
            result = await self.session.execute(select(func.count()).select_from(OrderDB))
            return result.scalar_one()

        except Exception as e:
            logger.error(f"Failed to count orders: {e}")
            raise RepositoryException(f"Failed to count orders: {e}", "ORDER_COUNT_FAILED") from e

    async def find_active_by_user(self, user_id: str) -> List[Order]:
        """Orders of a user (case-insensitive) that are not cancelled or released."""
        try:
            query = select(OrderDB).where(
                and_(
                    func.lower(OrderDB.user_id) == user_id.lower(),
                    OrderDB.status.not_in(INACTIVE_ORDER_STATUSES),
                )
            ).order_by(OrderDB.id)
            result = await self.session.execute(query)
            return [db_order.to_domain_model() for db_order in result.scalars().all()]

        except Exception as e:
            logger.error(f"Failed to query active orders for user {user_id}: {e}")
            raise RepositoryException(
                f"Failed to query active orders: {e}",
                "ORDER_QUERY_FAILED",
                {"user_id": user_id}
            ) from e


class SqlAlchemyFieldMeasurementRepository:
    """Repository for field sensor measurements.

    Optimized for per-field time range reads.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _load(self, measurement_id: UUID) -> FieldMeasurementDB:
        try:
            db_measurement = await self.session.get(FieldMeasurementDB, measurement_id)
        except Exception as e:
            logger.error(f"Failed to load measurement {measurement_id}: {e}")
            raise RepositoryException(
                f"Failed to load measurement {measurement_id}: {e}",
                "MEASUREMENT_QUERY_FAILED",
                {"measurement_id": str(measurement_id)}
            ) from e

        if db_measurement is None:
            raise EntityNotFoundException("Measurement", measurement_id)
        return db_measurement

    async def get_by_id(self, measurement_id: UUID) -> FieldMeasurement:
        db_measurement = await self._load(measurement_id)
        return db_measurement.to_domain_model()

    async def add(self, measurement: FieldMeasurement) -> FieldMeasurement:
        try:
            self.session.add(FieldMeasurementDB.from_domain_model(measurement))
            await self.session.commit()

            logger.debug(
                f"Created measurement {measurement.id} for field {measurement.field_id} "
                f"at {measurement.collected_at}"
            )
            return measurement

        except Exception as e:
            await self.session.rollback()
            logger.error(f"Failed to create measurement: {e}")
            raise RepositoryException(
                f"Failed to create measurement: {e}",
                "MEASUREMENT_CREATE_FAILED",
                {"field_id": str(measurement.field_id)}
            ) from e

    async def update(self, measurement: FieldMeasurement) -> FieldMeasurement:
        db_measurement = await self._load(measurement.id)

        try:
            db_measurement.alert_recipient = measurement.alert_recipient
            db_measurement.user_id = measurement.user_id
            await self.session.commit()
            return measurement

        except Exception as e:
            await self.session.rollback()
            logger.error(f"Failed to update measurement {measurement.id}: {e}")
            raise RepositoryException(
                f"Failed to update measurement {measurement.id}: {e}",
                "MEASUREMENT_UPDATE_FAILED",
                {"measurement_id": str(measurement.id)}
            ) from e

    async def delete(self, measurement_id: UUID) -> None:
        db_measurement = await self._load(measurement_id)

        try:
            await self.session.delete(db_measurement)
            await self.session.commit()

        except Exception as e:
            await self.session.rollback()
            logger.error(f"Failed to delete measurement {measurement_id}: {e}")
            raise RepositoryException(
                f"Failed to delete measurement {measurement_id}: {e}",
                "MEASUREMENT_DELETE_FAILED",
                {"measurement_id": str(measurement_id)}
            ) from e

    async def list(self, skip: int = 0, take: int = 10) -> List[FieldMeasurement]:
        try:
            query = select(FieldMeasurementDB).order_by(
                desc(FieldMeasurementDB.collected_at)
            ).offset(skip).limit(take)
            result = await self.session.execute(query)
            return [row.to_domain_model() for row in result.scalars().all()]

        except Exception as e:
            logger.error(f"Failed to list measurements: {e}")
            raise RepositoryException(
                f"Failed to list measurements: {e}",
                "MEASUREMENT_LIST_FAILED",
                {"skip": skip, "take": take}
            ) from e

    async def count(self) -> int:
        try:
            result = await self.session.execute(select(func.count()).select_from(FieldMeasurementDB))
            return result.scalar_one()

        except Exception as e:
            logger.error(f"Failed to count measurements: {e}")
            raise RepositoryException(f"Failed to count measurements: {e}", "MEASUREMENT_COUNT_FAILED") from e

    async def list_by_field(self, field_id: UUID, limit: Optional[int] = None) -> List[FieldMeasurement]:
        """Latest measurements of a field, newest first."""
        try:
            query = select(FieldMeasurementDB).where(
                FieldMeasurementDB.field_id == field_id
            ).order_by(desc(FieldMeasurementDB.collected_at))

            if limit is not None:
                query = query.limit(limit)

            result = await self.session.execute(query)
            return [row.to_domain_model() for row in result.scalars().all()]

        except Exception as e:
            logger.error(f"Failed to get measurements for field {field_id}: {e}")
            raise RepositoryException(
                f"Failed to get measurements for field {field_id}: {e}",
                "MEASUREMENT_QUERY_FAILED",
                {"field_id": str(field_id)}
            ) from e

    async def list_by_field_and_range(
        self,
        field_id: UUID,
        start: datetime,
        end: datetime
    ) -> List[FieldMeasurement]:
        try:
            query = select(FieldMeasurementDB).where(
                and_(
                    FieldMeasurementDB.field_id == field_id,
                    FieldMeasurementDB.collected_at >= start,
                    FieldMeasurementDB.collected_at <= end,
                )
            ).order_by(FieldMeasurementDB.collected_at)

            result = await self.session.execute(query)
            measurements = [row.to_domain_model() for row in result.scalars().all()]

            logger.debug(
                f"Retrieved {len(measurements)} measurements for field {field_id} "
                f"from {start} to {end}"
            )
            return measurements

        except Exception as e:
            logger.error(f"Failed to get measurements in range: {e}")
            raise RepositoryException(
                f"Failed to get measurements in range: {e}",
                "MEASUREMENT_RANGE_QUERY_FAILED",
                {
                    "field_id": str(field_id),
                    "start": start.isoformat(),
                    "end": end.isoformat(),
                }
            ) from e
