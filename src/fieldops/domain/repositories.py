"""Repository contracts used by the application services.

Implementations raise ``EntityNotFoundException`` when an aggregate is missing.
"""

from datetime import datetime
from typing import List, Optional, Protocol
from uuid import UUID

from .entities import FieldMeasurement, Order


class OrderRepository(Protocol):

    async def get_by_id(self, order_id: int) -> Order: ...

    async def add(self, order: Order) -> Order:
        """Persist a new order and assign its ``order_id``."""
        ...

    async def update(self, order: Order) -> Order: ...

    async def delete(self, order_id: int) -> None: ...

    async def list(self, skip: int = 0, take: int = 10) -> List[Order]: ...

    async def count(self) -> int: ...

    async def find_active_by_user(self, user_id: str) -> List[Order]:
        """Orders of a user that are neither cancelled nor released."""
        ...


class FieldMeasurementRepository(Protocol):

    async def get_by_id(self, measurement_id: UUID) -> FieldMeasurement: ...

    async def add(self, measurement: FieldMeasurement) -> FieldMeasurement: ...

    async def update(self, measurement: FieldMeasurement) -> FieldMeasurement: ...

    async def delete(self, measurement_id: UUID) -> None: ...

    async def list(self, skip: int = 0, take: int = 10) -> List[FieldMeasurement]: ...

    async def count(self) -> int: ...

    async def list_by_field(self, field_id: UUID, limit: Optional[int] = None) -> List[FieldMeasurement]: ...

    async def list_by_field_and_range(
        self, field_id: UUID, start: datetime, end: datetime
    ) -> List[FieldMeasurement]:
        """Measurements of a field collected within ``[start, end]``, oldest first."""
        ...
