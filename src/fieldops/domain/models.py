from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, timedelta
from enum import Enum

from .exceptions import InvalidArgumentException


class OrderStatus(str, Enum):
    PENDING_PAYMENT = "PendingPayment"
    PAID = "Paid"
    PROCESSING = "Processing"
    CANCELLED = "Cancelled"
    RELEASED = "Released"  # terminal

    @property
    def is_active(self) -> bool:
        return self not in (OrderStatus.CANCELLED, OrderStatus.RELEASED)


class PaymentMethod(str, Enum):
    PIX = "Pix"
    CREDIT_CARD = "CreditCard"
    DEBIT_CARD = "DebitCard"

    @property
    def requires_details(self) -> bool:
        """Card payments must carry card details; Pix settles instantly."""
        return self is not PaymentMethod.PIX


class PaymentMethodDetails(BaseModel):
    """Card data supplied with a card payment"""
    model_config = ConfigDict(frozen=True)

    card_number: str
    card_holder: str
    expiry_date: str  # "YYYY-MM"
    cvv: str


class GameItem(BaseModel):
    """Game line item of an order"""
    model_config = ConfigDict(frozen=True)

    game_id: int = Field(gt=0)
    name: str = ""
    price: float = Field(default=0.0, ge=0.0)


class DroughtCondition(BaseModel):
    """Detected contiguous period of low soil moisture"""
    model_config = ConfigDict(frozen=True)

    start_time: datetime
    duration: timedelta

    @property
    def end_time(self) -> datetime:
        return self.start_time + self.duration

    @property
    def duration_hours(self) -> float:
        return self.duration.total_seconds() / 3600


class DroughtCriteria(BaseModel):
    """Parameters for drought detection"""
    model_config = ConfigDict(frozen=True)

    threshold: float
    minimum_duration_hours: int

    def validate_criteria(self) -> None:
        if self.threshold < 0 or self.threshold > 100:
            raise InvalidArgumentException("threshold", self.threshold, "must be between 0 and 100")
        if self.minimum_duration_hours <= 0:
            raise InvalidArgumentException(
                "minimum_duration_hours", self.minimum_duration_hours, "must be greater than 0"
            )



class HeatStressLevel(str, Enum):
    NONE = "None"
    MODERATE = "Moderate"  # average 35-37°C
    HIGH = "High"  # average 37-40°C
    SEVERE = "Severe"  # average >= 40°C


class HeatStressCondition(BaseModel):
    """Sustained run of readings at or above the critical temperature"""
    model_config = ConfigDict(frozen=True)

    level: HeatStressLevel
    average_temperature: float
    peak_temperature: float
    duration: timedelta
    start_time: datetime

    @property
    def duration_hours(self) -> float:
        return self.duration.total_seconds() / 3600


class IrrigationUrgency(str, Enum):
    NONE = "None"
    LOW = "Low"  # irrigate within 48-72h
    MEDIUM = "Medium"  # within 24-48h
    HIGH = "High"  # within 12-24h
    CRITICAL = "Critical"  # immediately


MINUTES_PER_MM = 10


class IrrigationRecommendation(BaseModel):
    """Water to apply to bring a field back to its target moisture"""
    model_config = ConfigDict(frozen=True)

    urgency: IrrigationUrgency
    water_amount_mm: float = Field(ge=0.0)
    current_moisture: float
    target_moisture: float
    reason: str

    @property
    def estimated_duration(self) -> timedelta:
        return timedelta(minutes=self.water_amount_mm * MINUTES_PER_MM)

    @property
    def moisture_deficit(self) -> float:
        return self.target_moisture - self.current_moisture


class PestRiskLevel(str, Enum):
    MINIMAL = "Minimal"
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @property
    def rank(self) -> int:
        return list(PestRiskLevel).index(self)


class PestRiskAssessment(BaseModel):
    """Pest pressure estimated from consecutive favorable days"""
    model_config = ConfigDict(frozen=True)

    risk_level: PestRiskLevel
    favorable_days_count: int = Field(ge=0)
    average_temperature: float
    average_moisture: float
    risk_factors: str
