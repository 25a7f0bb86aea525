"""Custom types for the order and field telemetry domain."""

from typing import NewType
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID

from .exceptions import FieldValidationException


Percentage = NewType('Percentage', float)
"""Relative value between 0 and 100."""

Celsius = NewType('Celsius', float)
"""Air temperature in degrees Celsius."""

Millimeters = NewType('Millimeters', float)
"""Precipitation in millimeters."""


class Severity(str, Enum):
    """Severity levels attached to outbound alerts."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class HealthStatus(str, Enum):
    """Health states reported by component checks."""
    HEALTHY = "Healthy"
    DEGRADED = "Degraded"
    UNHEALTHY = "Unhealthy"
    UNKNOWN = "Unknown"


# Physical limits accepted from field sensors
SOIL_MOISTURE_RANGE = (0.0, 100.0)
AIR_TEMPERATURE_RANGE = (-50.0, 80.0)


def validate_percentage(value: float, field_name: str = "percentage") -> Percentage:
    """Validate and create a Percentage value."""
    low, high = SOIL_MOISTURE_RANGE
    if not low <= value <= high:
        raise FieldValidationException(field_name, value, f"must be between {low:g} and {high:g}")
    return Percentage(value)


def validate_celsius(value: float, field_name: str = "air_temperature") -> Celsius:
    """Validate and create a Celsius value."""
    low, high = AIR_TEMPERATURE_RANGE
    if not low <= value <= high:
        raise FieldValidationException(field_name, value, f"must be between {low:g} and {high:g}")
    return Celsius(value)


def validate_millimeters(value: float, field_name: str = "precipitation") -> Millimeters:
    """Validate and create a Millimeters value."""
    if value < 0:
        raise FieldValidationException(field_name, value, "cannot be negative")
    return Millimeters(value)


def validate_not_future(value: datetime, field_name: str = "collected_at") -> datetime:
    """Validate that a timestamp is not later than now (UTC)."""
    moment = ensure_utc(value)
    if moment > datetime.now(timezone.utc):
        raise FieldValidationException(field_name, value, "cannot be in the future")
    return moment


def validate_identifier(value: UUID, field_name: str) -> UUID:
    """Validate that a UUID identifier is not the nil UUID."""
    if value.int == 0:
        raise FieldValidationException(field_name, value, "cannot be empty")
    return value


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def hours_between(start: datetime, end: datetime) -> float:
    """Elapsed hours between two datetimes."""
    return (end - start).total_seconds() / 3600
