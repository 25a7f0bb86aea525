"""Handlers for order lifecycle events."""

import logging

from fieldops.domain.events import (
    EventType,
    OrderCreatedEvent,
    OrderStatusChangedEvent,
    PaymentMethodSetEvent,
)
from fieldops.domain.types import Severity

from ..context import RequestContext
from ..messaging import PublisherKind
from ..notifications import AlertMetadata, NotificationRequest, Priority
from .base import NotificationHandler

logger = logging.getLogger(__name__)


class OrderCreatedEventHandler(NotificationHandler):
    """Queues the "order received" e-mail for the customer."""

    event_type = EventType.ORDER_CREATED
    publisher_kind = PublisherKind.QUEUE

    async def handle(self, event: OrderCreatedEvent, context: RequestContext) -> None:
        logger.info(f"Processing order created event for order {event.order_id}")

        correlation_id = context.resolve_correlation_id()
        notification = NotificationRequest(
            email_to=[event.user_email],
            template_id="OrderReceived",
            parameters={"{orderId}": str(event.order_id)},
            priority=Priority.NORMAL,
            metadata=AlertMetadata(
                correlation_id=correlation_id,
                alert_type="OrderReceived",
                subject_entity_id=str(event.order_id),
                detected_at=event.occurred_on,
                severity=Severity.LOW,
            ),
        )
        await self.publish(notification, {"CorrelationId": correlation_id})

        logger.info(f"Order created notification queued for order {event.order_id}")


class OrderStatusChangedEventHandler(NotificationHandler):
    """Queues the status change e-mail for the customer."""

    event_type = EventType.ORDER_STATUS_CHANGED
    publisher_kind = PublisherKind.QUEUE

    async def handle(self, event: OrderStatusChangedEvent, context: RequestContext) -> None:
        logger.info(
            f"Processing status change for order {event.order_id}: "
            f"{event.old_status.value} -> {event.new_status.value}"
        )

        correlation_id = context.resolve_correlation_id()
        notification = NotificationRequest(
            email_to=[event.user_email],
            template_id="OrderStatusChanged",
            parameters={
                "{orderId}": str(event.order_id),
                "{newStatus}": event.new_status.value,
            },
            metadata=AlertMetadata(
                correlation_id=correlation_id,
                alert_type="OrderStatusChanged",
                subject_entity_id=str(event.order_id),
                detected_at=event.occurred_on,
                severity=Severity.LOW,
            ),
        )
        await self.publish(notification, {"CorrelationId": correlation_id})


class PaymentMethodSetEventHandler(NotificationHandler):
    """Announces the payment request on the payments topic."""

    event_type = EventType.PAYMENT_METHOD_SET
    publisher_kind = PublisherKind.TOPIC

    async def handle(self, event: PaymentMethodSetEvent, context: RequestContext) -> None:
        logger.info(
            f"Processing payment method {event.payment_method.value} for order {event.order_id}"
        )

        details = event.payment_details
        message = {
            "orderId": event.order_id,
            "amount": event.total_price,
            "paymentMethod": event.payment_method.value,
            "cardNumber": details.card_number if details else None,
            "cardHolder": details.card_holder if details else None,
            "expiryDate": details.expiry_date if details else None,
            "cvv": details.cvv if details else None,
            "email": event.user_email,
            "correlationId": context.resolve_correlation_id(),
        }
        await self.publish(message, {"PaymentMethod": event.payment_method.value})

        logger.info(f"Payment request published for order {event.order_id}")
