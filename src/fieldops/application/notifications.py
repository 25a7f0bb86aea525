"""Outbound notification payloads and alert message texts."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from fieldops.domain.types import Severity


class Priority(str, Enum):
    LOW = "Low"
    NORMAL = "Normal"
    HIGH = "High"
    URGENT = "Urgent"


class AlertMetadata(BaseModel):
    """Context attached to alert notifications"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    correlation_id: str
    alert_type: str
    subject_entity_id: str  # field id or order id
    detected_at: datetime
    severity: Severity = Severity.MEDIUM


class NotificationRequest(BaseModel):
    """Message consumed by the notification service.

    Carries either a rendered ``subject``/``body`` or a ``template_id`` with flat
    string ``parameters``. Serialized with camelCase keys.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email_to: List[str] = Field(min_length=1)
    email_cc: List[str] = Field(default_factory=list)
    email_bcc: List[str] = Field(default_factory=list)
    subject: Optional[str] = None
    body: Optional[str] = None
    template_id: Optional[str] = None
    parameters: Dict[str, str] = Field(default_factory=dict)
    priority: Priority = Priority.NORMAL
    metadata: Optional[AlertMetadata] = None

    @model_validator(mode="after")
    def check_content(self) -> "NotificationRequest":
        if not self.template_id and not (self.subject and self.body):
            raise ValueError("either template_id or both subject and body must be provided")
        return self


def _stamp(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d %H:%M:%S")


class AlertMessages:
    """Subject lines and bodies for field alerts."""

    EXTREME_HEAT_SUBJECT = "Extreme Heat Alert - Field {0}"
    FREEZING_SUBJECT = "Freezing Temperature Alert - Field {0}"
    EXCESSIVE_RAINFALL_SUBJECT = "Excessive Rainfall Alert - Field {0}"
    DROUGHT_SUBJECT = "Drought Condition Alert - Field {0}"
    HEAT_STRESS_SUBJECT = "Heat Stress Alert - Field {0} ({1})"
    PEST_RISK_SUBJECT = "Pest Risk Alert - Field {0} (Risk {1})"
    IRRIGATION_SUBJECT = "Irrigation Recommendation - Field {0} (Urgency {1})"

    @staticmethod
    def extreme_heat_body(field_id: str, air_temperature: float, threshold: float, detected_at: datetime) -> str:
        excess = air_temperature - threshold
        return (
            "EXTREME HEAT DETECTED\n\n"
            f"Field ID: {field_id}\n"
            f"Air temperature: {air_temperature:.1f}°C\n"
            f"Threshold: {threshold:.1f}°C\n"
            f"Detected at: {_stamp(detected_at)} UTC\n\n"
            f"The reading is {excess:.1f}°C above the extreme heat threshold.\n\n"
            "RECOMMENDED ACTIONS:\n"
            "1. Increase irrigation frequency to offset evapotranspiration\n"
            "2. Monitor soil moisture closely\n"
            "3. Inspect crops for heat stress symptoms\n"
            "4. Move field work to cooler hours"
        )

    @staticmethod
    def freezing_body(field_id: str, air_temperature: float, threshold: float, detected_at: datetime) -> str:
        below = threshold - air_temperature
        return (
            "FREEZING TEMPERATURE DETECTED - FROST RISK\n\n"
            f"Field ID: {field_id}\n"
            f"Air temperature: {air_temperature:.1f}°C\n"
            f"Threshold: {threshold:.1f}°C\n"
            f"Detected at: {_stamp(detected_at)} UTC\n\n"
            f"The reading is {below:.1f}°C below the freezing threshold.\n\n"
            "RECOMMENDED ACTIONS:\n"
            "1. URGENT: activate frost protection measures\n"
            "2. Cover sensitive crops with thermal blankets or row covers\n"
            "3. Monitor temperature through the night\n"
            "4. Assess crop damage once temperatures rise"
        )

    @staticmethod
    def excessive_rainfall_body(field_id: str, precipitation: float, threshold: float, detected_at: datetime) -> str:
        excess = precipitation - threshold
        percent_above = excess / threshold * 100 if threshold else 0.0
        return (
            "EXCESSIVE RAINFALL DETECTED\n\n"
            f"Field ID: {field_id}\n"
            f"Precipitation: {precipitation:.1f} mm\n"
            f"Threshold: {threshold:.1f} mm\n"
            f"Detected at: {_stamp(detected_at)} UTC\n\n"
            f"Excess: {excess:.1f} mm ({percent_above:.1f}% above the threshold)\n\n"
            "RECOMMENDED ACTIONS:\n"
            "1. Inspect drainage to prevent waterlogging\n"
            "2. Monitor soil moisture over the next 24-48 hours\n"
            "3. Postpone irrigation and fertilization until moisture normalizes"
        )

    @staticmethod
    def drought_body(
        field_id: str,
        soil_moisture: float,
        threshold: float,
        first_low_moisture_detected: datetime,
        duration_hours: float,
        detected_at: datetime,
    ) -> str:
        deficit = threshold - soil_moisture
        return (
            "DROUGHT CONDITION DETECTED\n\n"
            f"Field ID: {field_id}\n"
            f"Current soil moisture: {soil_moisture:.1f}%\n"
            f"Drought duration: {duration_hours:.1f} hours ({duration_hours / 24:.1f} days)\n"
            f"First low moisture detected: {_stamp(first_low_moisture_detected)}\n"
            f"Detected at: {_stamp(detected_at)} UTC\n\n"
            f"Moisture deficit: {deficit:.1f}% below the {threshold:.1f}% threshold.\n\n"
            "RECOMMENDED ACTIONS:\n"
            "1. URGENT: schedule irrigation to restore soil moisture\n"
            "2. Monitor crops for wilting and leaf curl\n"
            "3. Adjust the irrigation schedule to prevent recurrence"
        )

    @staticmethod
    def heat_stress_body(
        field_id: str,
        level: str,
        duration_hours: float,
        average_temperature: float,
        peak_temperature: float,
        history_hours: int,
        critical_temperature: float,
        minimum_duration_hours: int,
        detected_at: datetime,
    ) -> str:
        return (
            "HEAT STRESS CONDITION DETECTED\n\n"
            f"Field ID: {field_id}\n"
            f"Stress level: {level}\n"
            f"Duration: {duration_hours:.1f} hours\n"
            f"Average temperature: {average_temperature:.1f}°C\n"
            f"Peak temperature: {peak_temperature:.1f}°C\n"
            f"Detected at: {_stamp(detected_at)} UTC\n\n"
            f"Temperatures of the last {history_hours} hours stayed at or above {critical_temperature:.1f}°C "
            f"for at least {minimum_duration_hours} hours.\n\n"
            "RECOMMENDED ACTIONS:\n"
            "1. Increase irrigation frequency and volume to cool plants and soil\n"
            "2. Monitor soil moisture to prevent additional water stress\n"
            "3. Inspect crops for heat damage (leaf curl, wilting, scorching)\n"
            "4. Adjust the harvest schedule if crops are close to maturity"
        )

    @staticmethod
    def pest_risk_body(
        field_id: str,
        risk_level: str,
        favorable_days_count: int,
        average_temperature: float,
        average_moisture: float,
        risk_factors: str,
        history_days: int,
        min_temperature: float,
        max_temperature: float,
        min_moisture: float,
        detected_at: datetime,
    ) -> str:
        return (
            "PEST RISK CONDITION DETECTED\n\n"
            f"Field ID: {field_id}\n"
            f"Risk level: {risk_level}\n"
            f"Consecutive favorable days: {favorable_days_count}\n"
            f"Average temperature: {average_temperature:.1f}°C\n"
            f"Average soil moisture: {average_moisture:.1f}%\n"
            f"Detected at: {_stamp(detected_at)} UTC\n\n"
            f"Conditions of the last {history_days} days were checked against a temperature range of "
            f"{min_temperature:.1f}-{max_temperature:.1f}°C and a minimum soil moisture of {min_moisture:.1f}%.\n\n"
            f"RISK FACTORS:\n{risk_factors}\n\n"
            "RECOMMENDED ACTIONS:\n"
            "1. Survey the field for current pest presence\n"
            "2. Set up monitoring traps at strategic locations\n"
            "3. Review integrated pest management protocols\n"
            "4. Monitor field conditions daily"
        )

    @staticmethod
    def irrigation_body(
        field_id: str,
        urgency: str,
        current_moisture: float,
        optimal_moisture: float,
        critical_moisture: float,
        water_amount_mm: float,
        estimated_duration_minutes: float,
        soil_water_capacity: float,
        history_days: int,
        reason: str,
        detected_at: datetime,
    ) -> str:
        return (
            "IRRIGATION RECOMMENDATION\n\n"
            f"Field ID: {field_id}\n"
            f"Urgency: {urgency}\n"
            f"Current soil moisture: {current_moisture:.1f}%\n"
            f"Target moisture: {optimal_moisture:.1f}%\n"
            f"Water required: {water_amount_mm:.1f} mm\n"
            f"Estimated duration: {estimated_duration_minutes:.0f} minutes\n"
            f"Detected at: {_stamp(detected_at)} UTC\n\n"
            f"{reason}.\n\n"
            f"Soil moisture of the last {history_days} days was compared with the optimal ({optimal_moisture:.1f}%) "
            f"and critical ({critical_moisture:.1f}%) levels for a soil water capacity of {soil_water_capacity:.0f} mm."
        )
