"""Handlers that analyse a field's recent history whenever a measurement arrives."""

import logging
from abc import abstractmethod
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, List, Optional, Sequence
from uuid import UUID

from fieldops.config.settings import HeatStressSettings, IrrigationSettings, PestRiskSettings
from fieldops.domain.entities import FieldMeasurement
from fieldops.domain.events import EventType, MeasurementCreatedEvent
from fieldops.domain.heat_stress import HeatStressAnalyzer
from fieldops.domain.irrigation import IrrigationAdvisor
from fieldops.domain.models import (
    HeatStressCondition,
    HeatStressLevel,
    IrrigationRecommendation,
    IrrigationUrgency,
    PestRiskAssessment,
    PestRiskLevel,
)
from fieldops.domain.pest_risk import PestRiskAnalyzer
from fieldops.domain.types import Severity, utc_now

from ..context import RequestContext
from ..messaging import MessagePublisherFactory, PublisherKind
from ..notifications import AlertMessages, AlertMetadata, NotificationRequest, Priority
from .base import NotificationHandler

logger = logging.getLogger(__name__)

# (field_id, start, end) -> measurements of the field collected within [start, end]
FieldHistory = Callable[[UUID, datetime, datetime], Awaitable[Sequence[FieldMeasurement]]]


class FieldAnalysisHandler(NotificationHandler):
    """Runs a history-based analysis and publishes an alert when it finds something.

    The history always includes the reading carried by the event, even when the
    store has not returned it.
    """

    event_type = EventType.MEASUREMENT_CREATED
    publisher_kind = PublisherKind.TOPIC
    alert_type = ""

    def __init__(self, publisher_factory: MessagePublisherFactory, destination: str, field_history: FieldHistory) -> None:
        super().__init__(publisher_factory, destination)
        self.field_history = field_history

    @property
    @abstractmethod
    def history_window(self) -> timedelta:
        ...

    @abstractmethod
    def analyze(self, history: List[Any]) -> Optional[Any]:
        ...

    @abstractmethod
    def build_notification(self, event: MeasurementCreatedEvent, result: Any, metadata: AlertMetadata) -> NotificationRequest:
        ...

    @abstractmethod
    def severity(self, result: Any) -> Severity:
        ...

    async def load_history(self, event: MeasurementCreatedEvent) -> List[Any]:
        start = event.collected_at - self.history_window
        history: List[Any] = list(await self.field_history(event.field_id, start, event.collected_at))
        if all(m.id != event.measurement_id for m in history):
            history.append(event)
        return history

    async def handle(self, event: MeasurementCreatedEvent, context: RequestContext) -> None:
        history = await self.load_history(event)
        result = self.analyze(history)
        if result is None:
            return
        if not event.alert_recipient:
            logger.warning(f"No alert recipient for field {event.field_id}, {self.alert_type} alert not sent")
            return

        correlation_id = context.resolve_correlation_id()
        severity = self.severity(result)
        metadata = AlertMetadata(
            correlation_id=correlation_id,
            alert_type=self.alert_type,
            subject_entity_id=str(event.field_id),
            detected_at=utc_now(),
            severity=severity,
        )
        await self.publish(
            self.build_notification(event, result, metadata),
            {
                "CorrelationId": correlation_id,
                "AlertType": self.alert_type,
                "FieldId": str(event.field_id),
                "Severity": severity.value,
            },
        )

        logger.warning(
            f"{self.alert_type} alert published to '{self.destination}' for field {event.field_id} "
            f"({len(history)} readings analysed)"
        )


class HeatStressAnalysisHandler(FieldAnalysisHandler):
    alert_type = "HeatStress"

    def __init__(
        self,
        publisher_factory: MessagePublisherFactory,
        destination: str,
        field_history: FieldHistory,
        settings: HeatStressSettings,
        analyzer: Optional[HeatStressAnalyzer] = None,
    ) -> None:
        super().__init__(publisher_factory, destination, field_history)
        self.settings = settings
        self.analyzer = analyzer or HeatStressAnalyzer()

    @property
    def history_window(self) -> timedelta:
        return timedelta(hours=self.settings.history_hours)

    def analyze(self, history: List[Any]) -> Optional[HeatStressCondition]:
        return self.analyzer.analyze(
            history, self.settings.critical_temperature, self.settings.minimum_duration_hours
        )

    def severity(self, result: HeatStressCondition) -> Severity:
        return Severity.HIGH if result.level is HeatStressLevel.SEVERE else Severity.MEDIUM

    def build_notification(
        self, event: MeasurementCreatedEvent, result: HeatStressCondition, metadata: AlertMetadata
    ) -> NotificationRequest:
        return NotificationRequest(
            email_to=[event.alert_recipient],
            subject=AlertMessages.HEAT_STRESS_SUBJECT.format(event.field_id, result.level.value),
            body=AlertMessages.heat_stress_body(
                str(event.field_id),
                result.level.value,
                result.duration_hours,
                result.average_temperature,
                result.peak_temperature,
                self.settings.history_hours,
                self.settings.critical_temperature,
                self.settings.minimum_duration_hours,
                metadata.detected_at,
            ),
            priority=Priority.HIGH if result.level is HeatStressLevel.SEVERE else Priority.NORMAL,
            metadata=metadata,
        )


URGENCY_ACTIONS = {
    IrrigationUrgency.CRITICAL: "Start irrigating immediately",
    IrrigationUrgency.HIGH: "Start irrigating within the next 12-24 hours",
    IrrigationUrgency.MEDIUM: "Plan irrigation for the next 24-48 hours",
    IrrigationUrgency.LOW: "Consider irrigating within the next 2-3 days",
}

URGENCY_PRIORITY = {
    IrrigationUrgency.CRITICAL: Priority.URGENT,
    IrrigationUrgency.HIGH: Priority.HIGH,
}


class IrrigationAnalysisHandler(FieldAnalysisHandler):
    alert_type = "IrrigationRecommendation"

    def __init__(
        self,
        publisher_factory: MessagePublisherFactory,
        destination: str,
        field_history: FieldHistory,
        settings: IrrigationSettings,
        advisor: Optional[IrrigationAdvisor] = None,
    ) -> None:
        super().__init__(publisher_factory, destination, field_history)
        self.settings = settings
        self.advisor = advisor or IrrigationAdvisor()

    @property
    def history_window(self) -> timedelta:
        return timedelta(days=self.settings.history_days)

    def analyze(self, history: List[Any]) -> Optional[IrrigationRecommendation]:
        return self.advisor.analyze(
            history,
            self.settings.optimal_moisture,
            self.settings.critical_moisture,
            self.settings.soil_water_capacity,
        )

    def severity(self, result: IrrigationRecommendation) -> Severity:
        return Severity.HIGH if result.urgency is IrrigationUrgency.CRITICAL else Severity.MEDIUM

    def build_notification(
        self, event: MeasurementCreatedEvent, result: IrrigationRecommendation, metadata: AlertMetadata
    ) -> NotificationRequest:
        settings = self.settings
        minutes = result.estimated_duration.total_seconds() / 60
        return NotificationRequest(
            email_to=[event.alert_recipient],
            template_id="Irrigation",
            parameters={
                "{fieldId}": str(event.field_id),
                "{urgency}": result.urgency.value,
                "{urgencyAction}": URGENCY_ACTIONS[result.urgency],
                "{currentMoisture}": f"{result.current_moisture:.1f}",
                "{optimalMoisture}": f"{settings.optimal_moisture:.1f}",
                "{criticalMoisture}": f"{settings.critical_moisture:.1f}",
                "{moistureDeficit}": f"{result.moisture_deficit:.1f}",
                "{waterAmountMM}": f"{result.water_amount_mm:.1f}",
                "{estimatedDurationMinutes}": f"{minutes:.0f}",
                "{soilWaterCapacity}": f"{settings.soil_water_capacity:.0f}",
                "{historyDays}": str(settings.history_days),
                "{detectedAt}": metadata.detected_at.isoformat(),
                "{correlationId}": metadata.correlation_id,
            },
            subject=AlertMessages.IRRIGATION_SUBJECT.format(event.field_id, result.urgency.value),
            body=AlertMessages.irrigation_body(
                str(event.field_id),
                result.urgency.value,
                result.current_moisture,
                settings.optimal_moisture,
                settings.critical_moisture,
                result.water_amount_mm,
                minutes,
                settings.soil_water_capacity,
                settings.history_days,
                result.reason,
                metadata.detected_at,
            ),
            priority=URGENCY_PRIORITY.get(result.urgency, Priority.NORMAL),
            metadata=metadata,
        )


class PestRiskAnalysisHandler(FieldAnalysisHandler):
    """Alerts on MEDIUM pest risk or above; LOW and MINIMAL are only logged."""

    alert_type = "PestRisk"

    def __init__(
        self,
        publisher_factory: MessagePublisherFactory,
        destination: str,
        field_history: FieldHistory,
        settings: PestRiskSettings,
        analyzer: Optional[PestRiskAnalyzer] = None,
    ) -> None:
        super().__init__(publisher_factory, destination, field_history)
        self.settings = settings
        self.analyzer = analyzer or PestRiskAnalyzer()

    @property
    def history_window(self) -> timedelta:
        return timedelta(days=self.settings.history_days)

    def analyze(self, history: List[Any]) -> Optional[PestRiskAssessment]:
        settings = self.settings
        assessment = self.analyzer.analyze(
            history,
            settings.min_temperature,
            settings.max_temperature,
            settings.min_moisture,
            settings.minimum_favorable_days,
        )
        if assessment is None:
            return None
        if assessment.risk_level.rank < PestRiskLevel.MEDIUM.rank:
            logger.debug(f"Pest risk {assessment.risk_level.value} is below the alert level")
            return None
        return assessment

    def severity(self, result: PestRiskAssessment) -> Severity:
        if result.risk_level is PestRiskLevel.CRITICAL:
            return Severity.CRITICAL
        if result.risk_level is PestRiskLevel.HIGH:
            return Severity.HIGH
        return Severity.MEDIUM

    def build_notification(
        self, event: MeasurementCreatedEvent, result: PestRiskAssessment, metadata: AlertMetadata
    ) -> NotificationRequest:
        settings = self.settings
        return NotificationRequest(
            email_to=[event.alert_recipient],
            subject=AlertMessages.PEST_RISK_SUBJECT.format(event.field_id, result.risk_level.value),
            body=AlertMessages.pest_risk_body(
                str(event.field_id),
                result.risk_level.value,
                result.favorable_days_count,
                result.average_temperature,
                result.average_moisture,
                result.risk_factors,
                settings.history_days,
                settings.min_temperature,
                settings.max_temperature,
                settings.min_moisture,
                metadata.detected_at,
            ),
            priority=Priority.NORMAL if result.risk_level is PestRiskLevel.MEDIUM else Priority.HIGH,
            metadata=metadata,
        )
