"""Unit tests for the handler registry and event dispatcher."""

import logging
from typing import List

import pytest

from fieldops.application.context import RequestContext
from fieldops.application.dispatcher import DomainEventDispatcher, HandlerRegistry
from fieldops.domain.events import DomainEvent, EventType, OrderCreatedEvent, OrderStatusChangedEvent
from fieldops.domain.models import OrderStatus

from ..fixtures.sample_data import CUSTOMER_EMAIL, sample_context


class SpyHandler:
    """Handler that records calls into a shared journal."""

    def __init__(self, name: str, journal: List[str], event_type: EventType = EventType.ORDER_CREATED, error=None):
        self.name = name
        self.journal = journal
        self.event_type = event_type
        self.error = error
        self.contexts: List[RequestContext] = []

    async def handle(self, event: DomainEvent, context: RequestContext) -> None:
        self.journal.append(self.name)
        self.contexts.append(context)
        if self.error is not None:
            raise self.error


def created(order_id: int = 1) -> OrderCreatedEvent:
    return OrderCreatedEvent(order_id=order_id, user_email=CUSTOMER_EMAIL)


def status_changed() -> OrderStatusChangedEvent:
    return OrderStatusChangedEvent(
        order_id=1,
        old_status=OrderStatus.PENDING_PAYMENT,
        new_status=OrderStatus.PAID,
        user_email=CUSTOMER_EMAIL,
    )


class TestHandlerRegistry:
    """Test handler registration."""

    def test_handlers_in_registration_order(self):
        """Test handlers come back in the order registered."""
        journal: List[str] = []
        first = SpyHandler("first", journal)
        second = SpyHandler("second", journal)

        registry = HandlerRegistry([first, second])

        assert registry.handlers_for(EventType.ORDER_CREATED) == (first, second)
        assert len(registry) == 2

    def test_unknown_type_has_no_handlers(self):
        """Test lookup of an unregistered type."""
        assert HandlerRegistry().handlers_for(EventType.PAYMENT_METHOD_SET) == ()

    def test_register_keys_by_event_type(self):
        """Test handlers are separated by their declared event type."""
        journal: List[str] = []
        registry = HandlerRegistry()
        registry.register(SpyHandler("created", journal))
        registry.register(SpyHandler("changed", journal, EventType.ORDER_STATUS_CHANGED))

        assert [h.name for h in registry.handlers_for(EventType.ORDER_STATUS_CHANGED)] == ["changed"]


class TestDomainEventDispatcher:
    """Test sequential dispatch semantics."""

    async def test_empty_input_is_a_no_op(self):
        """Test no handler runs for an empty sequence."""
        journal: List[str] = []
        dispatcher = DomainEventDispatcher(HandlerRegistry([SpyHandler("h", journal)]))

        await dispatcher.process([], sample_context())

        assert journal == []

    async def test_events_in_order_handlers_in_registration_order(self):
        """Test each event runs its handlers before the next event starts."""
        journal: List[str] = []
        registry = HandlerRegistry([
            SpyHandler("created-a", journal),
            SpyHandler("changed", journal, EventType.ORDER_STATUS_CHANGED),
            SpyHandler("created-b", journal),
        ])
        dispatcher = DomainEventDispatcher(registry)

        await dispatcher.process([created(), status_changed(), created(2)], sample_context())

        assert journal == ["created-a", "created-b", "changed", "created-a", "created-b"]

    async def test_context_is_passed_through(self):
        """Test the caller's context reaches the handler unchanged."""
        journal: List[str] = []
        handler = SpyHandler("h", journal)
        context = sample_context("corr-xyz")

        await DomainEventDispatcher(HandlerRegistry([handler])).process([created()], context)

        assert handler.contexts == [context]

    async def test_missing_handler_is_skipped(self, caplog):
        """Test events without handlers are logged and skipped."""
        journal: List[str] = []
        dispatcher = DomainEventDispatcher(HandlerRegistry([SpyHandler("h", journal)]))

        with caplog.at_level(logging.WARNING):
            await dispatcher.process([status_changed(), created()], sample_context())

        assert journal == ["h"]
        assert "No handler registered for order_status_changed" in caplog.text

    async def test_fails_fast_on_handler_error(self):
        """Test the first failing handler stops the whole dispatch."""
        journal: List[str] = []
        registry = HandlerRegistry([
            SpyHandler("first", journal),
            SpyHandler("second", journal, error=RuntimeError("broker down")),
            SpyHandler("third", journal),
        ])
        dispatcher = DomainEventDispatcher(registry)

        with pytest.raises(RuntimeError, match="broker down"):
            await dispatcher.process([created(), created(2)], sample_context())

        assert journal == ["first", "second"]

    async def test_failure_is_logged(self, caplog):
        """Test the failing handler and event are logged at error level."""
        journal: List[str] = []
        registry = HandlerRegistry([SpyHandler("h", journal, error=ValueError("boom"))])

        with caplog.at_level(logging.ERROR):
            with pytest.raises(ValueError):
                await DomainEventDispatcher(registry).process([created()], sample_context())

        assert "SpyHandler failed on order_created" in caplog.text
