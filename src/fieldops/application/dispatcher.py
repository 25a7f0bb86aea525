"""Routing of recorded domain events to their handlers."""

import logging
from typing import Dict, Iterable, List, Protocol, Sequence, Tuple

from fieldops.domain.events import DomainEvent, EventType

from .context import RequestContext

logger = logging.getLogger(__name__)


class DomainEventHandler(Protocol):
    """Handles one event type. ``event_type`` is the registry key."""

    event_type: EventType

    async def handle(self, event: DomainEvent, context: RequestContext) -> None: ...


class HandlerRegistry:
    """Handlers keyed by event type tag, kept in registration order."""

    def __init__(self, handlers: Iterable[DomainEventHandler] = ()) -> None:
        self._handlers: Dict[EventType, List[DomainEventHandler]] = {}
        for handler in handlers:
            self.register(handler)

    def register(self, handler: DomainEventHandler) -> None:
        self._handlers.setdefault(handler.event_type, []).append(handler)
        logger.debug(f"Registered {type(handler).__name__} for {handler.event_type.value}")

    def handlers_for(self, event_type: EventType) -> Tuple[DomainEventHandler, ...]:
        return tuple(self._handlers.get(event_type, ()))

    def __len__(self) -> int:
        return sum(len(handlers) for handlers in self._handlers.values())


class DomainEventDispatcher:
    """Delivers events to their handlers sequentially.

    Events are processed in the order given and each event's handlers in
    registration order. The first handler failure is logged and re-raised;
    nothing after it runs.
    """

    def __init__(self, registry: HandlerRegistry) -> None:
        self.registry = registry

    async def process(self, events: Sequence[DomainEvent], context: RequestContext) -> None:
        if not events:
            logger.debug("No domain events to dispatch")
            return

        logger.info(f"Dispatching {len(events)} domain event(s) [correlation_id={context.correlation_id}]")

        for event in events:
            handlers = self.registry.handlers_for(event.event_type)
            if not handlers:
                logger.warning(f"No handler registered for {event.event_type.value} (event {event.event_id})")
                continue

            for handler in handlers:
                handler_name = type(handler).__name__
                try:
                    await handler.handle(event, context)
                    logger.debug(f"{handler_name} handled {event.event_type.value} (event {event.event_id})")
                except Exception as e:
                    logger.error(f"{handler_name} failed on {event.event_type.value} (event {event.event_id}): {e}")
                    raise
