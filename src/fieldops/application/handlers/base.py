"""Shared publishing behaviour for notification handlers."""

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, Optional

from fieldops.domain.events import DomainEvent, EventType

from ..context import RequestContext
from ..messaging import MessagePublisherFactory, PublisherKind

logger = logging.getLogger(__name__)


class NotificationHandler(ABC):
    """Turns one event type into a message on a fixed destination."""

    event_type: ClassVar[EventType]
    publisher_kind: ClassVar[PublisherKind]

    def __init__(self, publisher_factory: MessagePublisherFactory, destination: str) -> None:
        self.publisher_factory = publisher_factory
        self.destination = destination

    @abstractmethod
    async def handle(self, event: DomainEvent, context: RequestContext) -> None:
        ...

    async def publish(self, message: Any, properties: Optional[Dict[str, Any]] = None) -> None:
        """Publish through the handler's publisher kind, logging and re-raising failures."""
        try:
            publisher = self.publisher_factory.get_publisher(self.publisher_kind)
            await publisher.publish_message(self.destination, message, properties)
        except Exception as e:
            logger.error(
                f"{type(self).__name__} failed to publish to {self.publisher_kind.value} "
                f"'{self.destination}': {e}"
            )
            raise
