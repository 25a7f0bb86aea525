"""Aggregates that record domain events as their state changes.

Entities do not inherit an event list. Each one owns an ``EventLog`` exposed as
``entity.events``; the application layer drains it after persisting.
"""

import calendar
from datetime import datetime
from typing import Iterator, List, Optional, Tuple
from uuid import UUID, uuid4

from .events import (
    DomainEvent,
    DroughtAlertRequiredEvent,
    MeasurementCreatedEvent,
    OrderCreatedEvent,
    OrderStatusChangedEvent,
    PaymentMethodSetEvent,
)
from .exceptions import BusinessRuleViolationException, ValidationException
from .models import DroughtCondition, GameItem, OrderStatus, PaymentMethod, PaymentMethodDetails
from .types import (
    ensure_utc,
    utc_now,
    validate_celsius,
    validate_identifier,
    validate_millimeters,
    validate_not_future,
    validate_percentage,
)


CARD_NUMBER_LENGTH = (13, 19)


class EventLog:
    """Ordered, append-only buffer of pending domain events."""

    def __init__(self) -> None:
        self._events: List[DomainEvent] = []

    def record(self, event: DomainEvent) -> None:
        self._events.append(event)

    def pending(self) -> Tuple[DomainEvent, ...]:
        """Snapshot of the recorded events in insertion order."""
        return tuple(self._events)

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[DomainEvent]:
        return iter(tuple(self._events))


class Order:
    """Customer order for one or more games.

    ``order_id`` stays 0 until the order has been persisted. Status changes are
    only allowed through assignment to ``status``; a Released order is final.
    The payment method is read-only.
    """

    def __init__(
        self,
        user_id: str,
        user_email: str,
        payment_method: PaymentMethod,
        games: Optional[List[GameItem]] = None,
        payment_method_details: Optional[PaymentMethodDetails] = None,
        order_id: int = 0,
    ):
        self.events = EventLog()
        self.order_id = order_id
        self.user_id = user_id
        self.user_email = user_email
        self.games: List[GameItem] = list(games or [])
        self._status = OrderStatus.PENDING_PAYMENT
        self._payment_method = PaymentMethod(payment_method)
        self._payment_method_details: Optional[PaymentMethodDetails] = None
        self.payment_method_details = payment_method_details
        self.created_at = utc_now()
        self.updated_at: Optional[datetime] = None

    @classmethod
    def restore(
        cls,
        order_id: int,
        user_id: str,
        user_email: str,
        status: OrderStatus,
        payment_method: PaymentMethod,
        games: List[GameItem],
        payment_method_details: Optional[PaymentMethodDetails],
        created_at: datetime,
        updated_at: Optional[datetime] = None,
    ) -> "Order":
        """Rebuild a persisted order without re-running validation or recording events."""
        order = cls.__new__(cls)
        order.events = EventLog()
        order.order_id = order_id
        order.user_id = user_id
        order.user_email = user_email
        order.games = list(games)
        order._status = OrderStatus(status)
        order._payment_method = PaymentMethod(payment_method)
        order._payment_method_details = payment_method_details
        order.created_at = ensure_utc(created_at)
        order.updated_at = ensure_utc(updated_at) if updated_at else None
        return order

    @property
    def status(self) -> OrderStatus:
        return self._status

    @status.setter
    def status(self, value: OrderStatus) -> None:
        current = self._status
        if current is OrderStatus.RELEASED:
            raise BusinessRuleViolationException(
                "Cannot change the status of an order that is already released.",
                rule="released_is_terminal",
                metadata={"order_id": self.order_id},
            )

        new_status = OrderStatus(value)
        self._status = new_status

        if new_status is not current and self.order_id != 0:
            self.events.record(
                OrderStatusChangedEvent(
                    order_id=self.order_id,
                    old_status=current,
                    new_status=new_status,
                    user_email=self.user_email,
                )
            )

    @property
    def payment_method(self) -> PaymentMethod:
        """Fixed at construction; the card details are validated against it."""
        return self._payment_method

    @property
    def payment_method_details(self) -> Optional[PaymentMethodDetails]:
        return self._payment_method_details

    @payment_method_details.setter
    def payment_method_details(self, value: Optional[PaymentMethodDetails]) -> None:
        if value is None and self.payment_method.requires_details:
            raise BusinessRuleViolationException(
                "Payment method details are required for credit or debit card payments.",
                rule="card_details_required",
                metadata={"payment_method": self.payment_method.value},
            )

        if value is not None:
            if not self.is_valid_card_number(value.card_number):
                raise ValidationException("Invalid card number.", "INVALID_CARD_NUMBER")
            if not self.is_valid_expiry_date(value.expiry_date):
                raise ValidationException(
                    "The card has already expired or is invalid. Provide a new card",
                    "INVALID_CARD_EXPIRY",
                    {"expiry_date": value.expiry_date},
                )

        self._payment_method_details = value

    @property
    def total_price(self) -> float:
        return sum(game.price for game in self.games)

    @staticmethod
    def is_valid_card_number(card_number: str) -> bool:
        if not card_number or not card_number.strip():
            return False
        low, high = CARD_NUMBER_LENGTH
        return low <= len(card_number) <= high

    @staticmethod
    def is_valid_expiry_date(expiry_date: str) -> bool:
        """A card stays valid until the last day of its expiry month (UTC)."""
        try:
            parsed = datetime.strptime(expiry_date, "%Y-%m")
        except (TypeError, ValueError):
            return False

        last_day = calendar.monthrange(parsed.year, parsed.month)[1]
        return parsed.replace(day=last_day).date() >= utc_now().date()

    def mark_as_created(self) -> None:
        """Record the creation events once the order has an identity."""
        if self.order_id == 0:
            raise BusinessRuleViolationException(
                "An order must be persisted before it can be marked as created.",
                rule="order_requires_identity",
            )

        self.events.record(OrderCreatedEvent(order_id=self.order_id, user_email=self.user_email))
        self.events.record(
            PaymentMethodSetEvent(
                order_id=self.order_id,
                payment_method=self.payment_method,
                total_price=self.total_price,
                user_email=self.user_email,
                payment_details=self._payment_method_details,
            )
        )

    def __repr__(self) -> str:
        return (
            f"Order(order_id={self.order_id}, user_id={self.user_id!r}, "
            f"games={len(self.games)}, status={self._status.value})"
        )


class FieldMeasurement:
    """Single sensor reading taken on a field. Immutable once created."""

    def __init__(
        self,
        field_id: UUID,
        soil_moisture: float,
        air_temperature: float,
        precipitation: float,
        collected_at: datetime,
        alert_recipient: Optional[str] = None,
        user_id: Optional[str] = None,
    ):
        self.events = EventLog()
        self._id = uuid4()
        self._field_id = validate_identifier(field_id, "field_id")
        self._soil_moisture = float(validate_percentage(soil_moisture, "soil_moisture"))
        self._air_temperature = float(validate_celsius(air_temperature))
        self._precipitation = float(validate_millimeters(precipitation))
        self._collected_at = validate_not_future(collected_at)
        self._received_at = utc_now()
        self._alert_recipient = alert_recipient
        self._user_id = user_id

    @classmethod
    def restore(
        cls,
        measurement_id: UUID,
        field_id: UUID,
        soil_moisture: float,
        air_temperature: float,
        precipitation: float,
        collected_at: datetime,
        received_at: datetime,
        alert_recipient: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> "FieldMeasurement":
        """Rebuild a stored measurement as-is."""
        measurement = cls.__new__(cls)
        measurement.events = EventLog()
        measurement._id = measurement_id
        measurement._field_id = field_id
        measurement._soil_moisture = float(soil_moisture)
        measurement._air_temperature = float(air_temperature)
        measurement._precipitation = float(precipitation)
        measurement._collected_at = ensure_utc(collected_at)
        measurement._received_at = ensure_utc(received_at)
        measurement._alert_recipient = alert_recipient
        measurement._user_id = user_id
        return measurement

    @property
    def id(self) -> UUID:
        return self._id

    @property
    def field_id(self) -> UUID:
        return self._field_id

    @property
    def soil_moisture(self) -> float:
        return self._soil_moisture

    @property
    def air_temperature(self) -> float:
        return self._air_temperature

    @property
    def precipitation(self) -> float:
        return self._precipitation

    @property
    def collected_at(self) -> datetime:
        return self._collected_at

    @property
    def received_at(self) -> datetime:
        return self._received_at

    @property
    def alert_recipient(self) -> Optional[str]:
        return self._alert_recipient

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    def record_created(self) -> MeasurementCreatedEvent:
        event = MeasurementCreatedEvent(
            measurement_id=self._id,
            field_id=self._field_id,
            soil_moisture=self._soil_moisture,
            air_temperature=self._air_temperature,
            precipitation=self._precipitation,
            collected_at=self._collected_at,
            alert_recipient=self._alert_recipient,
        )
        self.events.record(event)
        return event

    def require_drought_alert(self, condition: DroughtCondition, threshold: float) -> DroughtAlertRequiredEvent:
        event = DroughtAlertRequiredEvent(
            measurement_id=self._id,
            field_id=self._field_id,
            current_soil_moisture=self._soil_moisture,
            first_low_moisture_detected=condition.start_time,
            duration_hours=condition.duration_hours,
            threshold=threshold,
            alert_recipient=self._alert_recipient,
        )
        self.events.record(event)
        return event

    def __repr__(self) -> str:
        return (
            f"FieldMeasurement(id={self._id}, field_id={self._field_id}, "
            f"soil_moisture={self._soil_moisture}, air_temperature={self._air_temperature})"
        )
