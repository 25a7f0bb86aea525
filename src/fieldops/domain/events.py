"""Domain events for the order and field telemetry system."""

from datetime import datetime
from typing import Optional
from enum import Enum
from uuid import UUID, uuid4
from pydantic import BaseModel, ConfigDict, Field

from .models import OrderStatus, PaymentMethod, PaymentMethodDetails
from .types import utc_now


class EventType(str, Enum):
    """Tags identifying each domain event variant."""
    ORDER_CREATED = "order_created"
    ORDER_STATUS_CHANGED = "order_status_changed"
    PAYMENT_METHOD_SET = "payment_method_set"
    MEASUREMENT_CREATED = "measurement_created"
    DROUGHT_ALERT_REQUIRED = "drought_alert_required"


class DomainEvent(BaseModel):
    """Base domain event."""
    model_config = ConfigDict(frozen=True)

    event_type: EventType = Field(description="Type of event")
    event_id: UUID = Field(default_factory=uuid4, description="Unique event identifier")
    occurred_on: datetime = Field(default_factory=utc_now, description="When the event occurred (UTC)")


class OrderCreatedEvent(DomainEvent):
    """Event raised once an order has been persisted for the first time."""
    event_type: EventType = Field(default=EventType.ORDER_CREATED, frozen=True)
    order_id: int = Field(description="Persisted order identifier")
    user_email: str = Field(description="Email of the customer who placed the order")


class OrderStatusChangedEvent(DomainEvent):
    """Event raised when a persisted order moves to a different status."""
    event_type: EventType = Field(default=EventType.ORDER_STATUS_CHANGED, frozen=True)
    order_id: int = Field(description="Order identifier")
    old_status: OrderStatus = Field(description="Status before the change")
    new_status: OrderStatus = Field(description="Status after the change")
    user_email: str = Field(description="Email of the order owner")


class PaymentMethodSetEvent(DomainEvent):
    """Event raised when the payment method of a created order is known."""
    event_type: EventType = Field(default=EventType.PAYMENT_METHOD_SET, frozen=True)
    order_id: int = Field(description="Order identifier")
    payment_method: PaymentMethod = Field(description="Chosen payment method")
    total_price: float = Field(ge=0.0, description="Sum of the order line prices")
    user_email: str = Field(description="Email of the order owner")
    payment_details: Optional[PaymentMethodDetails] = Field(default=None, description="Card data for card payments")


class MeasurementCreatedEvent(DomainEvent):
    """Event raised when a field measurement has been ingested."""
    event_type: EventType = Field(default=EventType.MEASUREMENT_CREATED, frozen=True)
    measurement_id: UUID = Field(description="Measurement identifier")
    field_id: UUID = Field(description="Field the sensor belongs to")
    soil_moisture: float = Field(description="Soil moisture percentage")
    air_temperature: float = Field(description="Air temperature in Celsius")
    precipitation: float = Field(description="Precipitation in millimeters")
    collected_at: datetime = Field(description="When the sensor took the reading")
    alert_recipient: Optional[str] = Field(default=None, description="Email that receives field alerts")


class DroughtAlertRequiredEvent(DomainEvent):
    """Event raised when sustained low soil moisture has been detected."""
    event_type: EventType = Field(default=EventType.DROUGHT_ALERT_REQUIRED, frozen=True)
    measurement_id: UUID = Field(description="Measurement that completed the drought run")
    field_id: UUID = Field(description="Field under drought")
    current_soil_moisture: float = Field(description="Latest soil moisture percentage")
    first_low_moisture_detected: datetime = Field(description="Start of the low-moisture run")
    duration_hours: float = Field(ge=0.0, description="Length of the low-moisture run")
    threshold: float = Field(description="Soil moisture threshold used for detection")
    alert_recipient: Optional[str] = Field(default=None, description="Email that receives the alert")
