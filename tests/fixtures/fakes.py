"""In-memory collaborators for service, handler and publisher tests."""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from redis.exceptions import ResponseError

from fieldops.application.messaging import MessagePublisher, MessagePublisherFactory, PublisherKind
from fieldops.domain.entities import FieldMeasurement, Order
from fieldops.domain.exceptions import EntityNotFoundException
from fieldops.domain.models import GameItem


class RecordingPublisher(MessagePublisher):
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.messages: List[Tuple[str, Any, Dict[str, Any]]] = []
        self.error = error
        self.closed = False

    async def publish_message(self, destination, message, properties=None) -> None:
        if self.error is not None:
            raise self.error
        self.messages.append((destination, message, properties or {}))

    async def close(self) -> None:
        self.closed = True


class FakePublisherFactory(MessagePublisherFactory):
    def __init__(self) -> None:
        self.queue = RecordingPublisher()
        self.topic = RecordingPublisher()
        self.requested: List[PublisherKind] = []

    def get_publisher(self, kind) -> MessagePublisher:
        resolved = PublisherKind.parse(kind)
        self.requested.append(resolved)
        return self.queue if resolved is PublisherKind.QUEUE else self.topic

    async def close(self) -> None:
        await self.queue.close()
        await self.topic.close()


class InMemoryOrderRepository:
    def __init__(self, orders: Optional[List[Order]] = None) -> None:
        self.orders: Dict[int, Order] = {}
        self._next_id = 1
        for order in orders or []:
            self.orders[order.order_id] = order
            self._next_id = max(self._next_id, order.order_id + 1)

    async def get_by_id(self, order_id: int) -> Order:
        try:
            return self.orders[order_id]
        except KeyError:
            raise EntityNotFoundException("Order", order_id) from None

    async def add(self, order: Order) -> Order:
        order.order_id = self._next_id
        self._next_id += 1
        self.orders[order.order_id] = order
        return order

    async def update(self, order: Order) -> Order:
        await self.get_by_id(order.order_id)
        self.orders[order.order_id] = order
        return order

    async def delete(self, order_id: int) -> None:
        await self.get_by_id(order_id)
        del self.orders[order_id]

    async def list(self, skip: int = 0, take: int = 10) -> List[Order]:
        ordered = sorted(self.orders.values(), key=lambda o: o.order_id)
        return ordered[skip:skip + take]

    async def count(self) -> int:
        return len(self.orders)

    async def find_active_by_user(self, user_id: str) -> List[Order]:
        return [
            order for order in self.orders.values()
            if order.user_id.lower() == user_id.lower() and order.status.is_active
        ]


class InMemoryFieldMeasurementRepository:
    def __init__(self, measurements: Optional[List[FieldMeasurement]] = None) -> None:
        self.measurements: Dict[UUID, FieldMeasurement] = {m.id: m for m in measurements or []}

    async def get_by_id(self, measurement_id: UUID) -> FieldMeasurement:
        try:
            return self.measurements[measurement_id]
        except KeyError:
            raise EntityNotFoundException("Measurement", measurement_id) from None

    async def add(self, measurement: FieldMeasurement) -> FieldMeasurement:
        self.measurements[measurement.id] = measurement
        return measurement

    async def update(self, measurement: FieldMeasurement) -> FieldMeasurement:
        self.measurements[measurement.id] = measurement
        return measurement

    async def delete(self, measurement_id: UUID) -> None:
        await self.get_by_id(measurement_id)
        del self.measurements[measurement_id]

    async def list(self, skip: int = 0, take: int = 10) -> List[FieldMeasurement]:
        ordered = sorted(self.measurements.values(), key=lambda m: m.collected_at, reverse=True)
        return ordered[skip:skip + take]

    async def count(self) -> int:
        return len(self.measurements)

    async def list_by_field(self, field_id: UUID, limit: Optional[int] = None) -> List[FieldMeasurement]:
        rows = sorted(
            (m for m in self.measurements.values() if m.field_id == field_id),
            key=lambda m: m.collected_at,
            reverse=True,
        )
        return rows[:limit] if limit is not None else rows

    async def list_by_field_and_range(self, field_id: UUID, start: datetime, end: datetime) -> List[FieldMeasurement]:
        return sorted(
            (
                m for m in self.measurements.values()
                if m.field_id == field_id and start <= m.collected_at <= end
            ),
            key=lambda m: m.collected_at,
        )


class FakeGamesCatalog:
    def __init__(self, games: List[GameItem]) -> None:
        self.games = {game.game_id: game for game in games}
        self.correlation_ids: List[Optional[str]] = []

    async def get_game(self, game_id: int, correlation_id: Optional[str] = None) -> Optional[GameItem]:
        self.correlation_ids.append(correlation_id)
        return self.games.get(game_id)


class FakeRedis:
    """Subset of ``redis.asyncio.Redis`` used by the publishers."""

    def __init__(self, ping_error: Optional[Exception] = None) -> None:
        self.ping_error = ping_error
        self.send_error: Optional[Exception] = None
        self.hold: Optional[asyncio.Event] = None
        self.groups: set = set()
        self.streams: Dict[str, List[Dict[str, Any]]] = {}
        self.stream_kwargs: List[Dict[str, Any]] = []
        self.published: List[Tuple[str, str]] = []
        self.closed = False

    async def ping(self) -> bool:
        await asyncio.sleep(0)
        if self.ping_error is not None:
            raise self.ping_error
        return True

    async def xgroup_create(self, name, groupname, id="$", mkstream=False):
        if (name, groupname) in self.groups:
            raise ResponseError("BUSYGROUP Consumer Group name already exists")
        self.groups.add((name, groupname))
        if mkstream:
            self.streams.setdefault(name, [])
        return True

    async def xadd(self, name, fields, maxlen=None, approximate=True):
        if self.send_error is not None:
            raise self.send_error
        self.streams.setdefault(name, []).append(dict(fields))
        self.stream_kwargs.append({"maxlen": maxlen, "approximate": approximate})
        return f"{len(self.streams[name])}-0"

    async def publish(self, channel, message):
        hold, self.hold = self.hold, None
        if hold is not None:
            await hold.wait()
        if self.send_error is not None:
            raise self.send_error
        self.published.append((channel, message))
        return 1

    async def aclose(self) -> None:
        self.closed = True


class FakeRedisFactory:
    """Client factory that records every client it creates."""

    def __init__(self, ping_errors: Optional[List[Optional[Exception]]] = None) -> None:
        self.clients: List[FakeRedis] = []
        self._ping_errors = list(ping_errors or [])

    def __call__(self) -> FakeRedis:
        error = self._ping_errors.pop(0) if self._ping_errors else None
        client = FakeRedis(ping_error=error)
        self.clients.append(client)
        return client
