"""Field alert handlers for measurement and drought events."""

import logging
from abc import abstractmethod

from fieldops.domain.events import DroughtAlertRequiredEvent, EventType, MeasurementCreatedEvent
from fieldops.domain.types import Severity, utc_now

from ..context import RequestContext
from ..messaging import MessagePublisherFactory, PublisherKind
from ..notifications import AlertMessages, AlertMetadata, NotificationRequest, Priority
from .base import NotificationHandler

logger = logging.getLogger(__name__)


class DroughtAlertRequiredEventHandler(NotificationHandler):
    event_type = EventType.DROUGHT_ALERT_REQUIRED
    publisher_kind = PublisherKind.TOPIC

    async def handle(self, event: DroughtAlertRequiredEvent, context: RequestContext) -> None:
        logger.warning(
            f"Drought alert required for field {event.field_id}: "
            f"{event.current_soil_moisture}% since {event.first_low_moisture_detected.isoformat()}"
        )
        if not event.alert_recipient:
            logger.warning(f"No alert recipient for field {event.field_id}, drought alert not sent")
            return

        correlation_id = context.resolve_correlation_id()
        notification = NotificationRequest(
            email_to=[event.alert_recipient],
            template_id="Drought",
            parameters={
                "{fieldId}": str(event.field_id),
                "{soilMoisture}": f"{event.current_soil_moisture:.1f}",
                "{threshold}": f"{event.threshold:.1f}",
                "{durationHours}": f"{event.duration_hours:.1f}",
                "{firstLowMoistureDetected}": event.first_low_moisture_detected.isoformat(),
            },
            subject=AlertMessages.DROUGHT_SUBJECT.format(event.field_id),
            body=AlertMessages.drought_body(
                str(event.field_id),
                event.current_soil_moisture,
                event.threshold,
                event.first_low_moisture_detected,
                event.duration_hours,
                event.occurred_on,
            ),
            priority=Priority.HIGH,
            metadata=AlertMetadata(
                correlation_id=correlation_id,
                alert_type="Drought",
                subject_entity_id=str(event.field_id),
                detected_at=event.occurred_on,
                severity=Severity.HIGH,
            ),
        )
        await self.publish(
            notification,
            {
                "CorrelationId": correlation_id,
                "AlertType": "Drought",
                "FieldId": str(event.field_id),
                "Severity": Severity.HIGH.value,
            },
        )

        logger.info(f"Drought alert published to '{self.destination}' for field {event.field_id}")


class ThresholdAlertHandler(NotificationHandler):
    """Publishes an alert when a single reading crosses a configured limit."""

    event_type = EventType.MEASUREMENT_CREATED
    publisher_kind = PublisherKind.TOPIC
    alert_type = ""

    def __init__(self, publisher_factory: MessagePublisherFactory, destination: str, threshold: float) -> None:
        super().__init__(publisher_factory, destination)
        self.threshold = threshold

    @abstractmethod
    def is_triggered(self, event: MeasurementCreatedEvent) -> bool:
        ...

    @abstractmethod
    def build_notification(self, event: MeasurementCreatedEvent, metadata: AlertMetadata) -> NotificationRequest:
        ...

    async def handle(self, event: MeasurementCreatedEvent, context: RequestContext) -> None:
        if not self.is_triggered(event):
            return
        if not event.alert_recipient:
            logger.warning(f"No alert recipient for field {event.field_id}, {self.alert_type} alert not sent")
            return

        correlation_id = context.resolve_correlation_id()
        metadata = AlertMetadata(
            correlation_id=correlation_id,
            alert_type=self.alert_type,
            subject_entity_id=str(event.field_id),
            detected_at=utc_now(),
            severity=Severity.HIGH,
        )
        await self.publish(
            self.build_notification(event, metadata),
            {"CorrelationId": correlation_id, "AlertType": self.alert_type, "FieldId": str(event.field_id)},
        )

        logger.warning(f"{self.alert_type} alert published for field {event.field_id} (threshold {self.threshold})")


class ExtremeHeatAlertHandler(ThresholdAlertHandler):
    alert_type = "ExtremeHeat"

    def is_triggered(self, event: MeasurementCreatedEvent) -> bool:
        return event.air_temperature > self.threshold

    def build_notification(self, event: MeasurementCreatedEvent, metadata: AlertMetadata) -> NotificationRequest:
        return NotificationRequest(
            email_to=[event.alert_recipient],
            subject=AlertMessages.EXTREME_HEAT_SUBJECT.format(event.field_id),
            body=AlertMessages.extreme_heat_body(
                str(event.field_id), event.air_temperature, self.threshold, metadata.detected_at
            ),
            priority=Priority.HIGH,
            metadata=metadata,
        )


class FreezingTemperatureAlertHandler(ThresholdAlertHandler):
    alert_type = "FreezingTemperature"

    def is_triggered(self, event: MeasurementCreatedEvent) -> bool:
        return event.air_temperature < self.threshold

    def build_notification(self, event: MeasurementCreatedEvent, metadata: AlertMetadata) -> NotificationRequest:
        return NotificationRequest(
            email_to=[event.alert_recipient],
            subject=AlertMessages.FREEZING_SUBJECT.format(event.field_id),
            body=AlertMessages.freezing_body(
                str(event.field_id), event.air_temperature, self.threshold, metadata.detected_at
            ),
            priority=Priority.URGENT,
            metadata=metadata.model_copy(update={"severity": Severity.CRITICAL}),
        )


class ExcessiveRainfallAlertHandler(ThresholdAlertHandler):
    alert_type = "ExcessiveRainfall"

    def is_triggered(self, event: MeasurementCreatedEvent) -> bool:
        return event.precipitation > self.threshold

    def build_notification(self, event: MeasurementCreatedEvent, metadata: AlertMetadata) -> NotificationRequest:
        return NotificationRequest(
            email_to=[event.alert_recipient],
            template_id="ExcessiveRainfall",
            parameters={
                "{fieldId}": str(event.field_id),
                "{precipitation}": f"{event.precipitation:.1f}",
                "{threshold}": f"{self.threshold:.1f}",
            },
            subject=AlertMessages.EXCESSIVE_RAINFALL_SUBJECT.format(event.field_id),
            body=AlertMessages.excessive_rainfall_body(
                str(event.field_id), event.precipitation, self.threshold, metadata.detected_at
            ),
            priority=Priority.HIGH,
            metadata=metadata,
        )
