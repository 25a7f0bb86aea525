"""Unit tests for the order and field measurement services."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from fieldops.application.dispatcher import DomainEventDispatcher
from fieldops.application.handlers import FieldAnalysisHandler
from fieldops.application.services import (
    AddFieldMeasurementRequest,
    AddOrderRequest,
    FieldMeasurementService,
    OrderService,
    PagedResult,
)
from fieldops.bootstrap import Container, build_handler_registry
from fieldops.domain.drought import DroughtDetector
from fieldops.domain.events import EventType
from fieldops.domain.exceptions import (
    BusinessRuleViolationException,
    EntityNotFoundException,
    FieldValidationException,
    TransportException,
    ValidationException,
)
from fieldops.domain.models import OrderStatus, PaymentMethod

from ..fixtures.fakes import (
    FakeGamesCatalog,
    FakePublisherFactory,
    InMemoryFieldMeasurementRepository,
    InMemoryOrderRepository,
    RecordingPublisher,
)
from ..fixtures.sample_data import (
    ALERT_EMAIL,
    BASE_TIME,
    CUSTOMER_EMAIL,
    FIELD_ID,
    OTHER_FIELD_ID,
    make_settings,
    persisted_order,
    sample_card_details,
    sample_context,
    sample_games,
    sample_measurement,
)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def publishers():
    return FakePublisherFactory()


@pytest.fixture
def measurements():
    return InMemoryFieldMeasurementRepository()


@pytest.fixture
def dispatcher(settings, publishers, measurements):
    return DomainEventDispatcher(
        build_handler_registry(settings, publishers, measurements.list_by_field_and_range)
    )


def alert_types(publisher: RecordingPublisher):
    return [properties["AlertType"] for _, _, properties in publisher.messages]


def order_request(game_ids=(1, 2), user_id: str = "user-1", **overrides) -> AddOrderRequest:
    values = dict(
        user_id=user_id,
        user_email=CUSTOMER_EMAIL,
        game_ids=list(game_ids),
        payment_method=PaymentMethod.CREDIT_CARD,
        payment_method_details=sample_card_details(),
    )
    values.update(overrides)
    return AddOrderRequest(**values)


def measurement_request(soil_moisture: float = 45.0, collected_at=BASE_TIME, **overrides) -> AddFieldMeasurementRequest:
    values = dict(
        field_id=FIELD_ID,
        soil_moisture=soil_moisture,
        air_temperature=22.5,
        precipitation=3.0,
        collected_at=collected_at,
        alert_recipient=ALERT_EMAIL,
    )
    values.update(overrides)
    return AddFieldMeasurementRequest(**values)


class TestOrderService:
    """Test order placement and status changes."""

    @pytest.fixture
    def repository(self):
        return InMemoryOrderRepository()

    @pytest.fixture
    def catalog(self):
        return FakeGamesCatalog(sample_games())

    @pytest.fixture
    def service(self, repository, catalog, dispatcher):
        return OrderService(repository, catalog, dispatcher)

    async def test_add_order_persists_and_publishes(self, service, repository, publishers, settings):
        """Test a new order is stored and both notifications go out."""
        order = await service.add_order(order_request(), sample_context())

        assert order.order_id == 1
        assert repository.orders[1] is order
        assert order.total_price == pytest.approx(59.99)
        assert len(order.events) == 0

        ((queue_dest, received, _),) = publishers.queue.messages
        assert queue_dest == settings.notifications_queue
        assert received.template_id == "OrderReceived"

        ((topic_dest, payment, _),) = publishers.topic.messages
        assert topic_dest == settings.payments_topic
        assert payment["orderId"] == 1
        assert payment["amount"] == pytest.approx(59.99)

    async def test_catalog_receives_correlation_id(self, service, catalog):
        """Test game lookups carry the caller's correlation id."""
        await service.add_order(order_request(), sample_context("corr-777"))

        assert catalog.correlation_ids == ["corr-777", "corr-777"]

    async def test_unknown_game_is_rejected(self, service, repository, publishers):
        """Test nothing is stored or published for an unavailable game."""
        with pytest.raises(ValidationException) as exc_info:
            await service.add_order(order_request(game_ids=[1, 99]), sample_context())

        assert str(exc_info.value) == "Game with id 99 is not available."
        assert exc_info.value.error_code == "GAME_NOT_AVAILABLE"
        assert repository.orders == {}
        assert publishers.queue.messages == []

    async def test_duplicate_active_order_is_rejected(self, catalog, dispatcher):
        """Test a user cannot order a game already in an active order."""
        repository = InMemoryOrderRepository([persisted_order()])
        service = OrderService(repository, catalog, dispatcher)

        with pytest.raises(ValidationException) as exc_info:
            await service.add_order(order_request(game_ids=[2], user_id="User-1"), sample_context())

        assert str(exc_info.value) == (
            "There is already an active order for the user USER-1 with one or more of the games requested."
        )
        assert exc_info.value.error_code == "DUPLICATE_ACTIVE_ORDER"
        assert list(repository.orders) == [42]

    async def test_inactive_orders_do_not_block(self, catalog, dispatcher):
        """Test cancelled and released orders are ignored by the duplicate check."""
        repository = InMemoryOrderRepository([
            persisted_order(status=OrderStatus.CANCELLED, order_id=1),
            persisted_order(status=OrderStatus.RELEASED, order_id=2),
        ])
        service = OrderService(repository, catalog, dispatcher)

        order = await service.add_order(order_request(), sample_context())

        assert order.order_id == 3

    async def test_publish_failure_keeps_stored_order(self, service, repository, publishers):
        """Test a broker failure after persisting propagates but keeps the order."""
        publishers.topic = RecordingPublisher(error=TransportException("down", "payments"))

        with pytest.raises(TransportException):
            await service.add_order(order_request(), sample_context())

        assert 1 in repository.orders
        assert len(publishers.queue.messages) == 1

    async def test_update_order_status(self, catalog, dispatcher, publishers, settings):
        """Test a status change is stored and announced."""
        repository = InMemoryOrderRepository([persisted_order()])
        service = OrderService(repository, catalog, dispatcher)

        order = await service.update_order_status(42, OrderStatus.PAID, sample_context())

        assert order.status is OrderStatus.PAID
        assert len(order.events) == 0
        ((destination, message, _),) = publishers.queue.messages
        assert destination == settings.notifications_queue
        assert message.parameters == {"{orderId}": "42", "{newStatus}": "Paid"}

    async def test_update_released_order_fails(self, catalog, dispatcher, publishers):
        """Test a released order cannot change and nothing is published."""
        repository = InMemoryOrderRepository([persisted_order(status=OrderStatus.RELEASED)])
        service = OrderService(repository, catalog, dispatcher)

        with pytest.raises(BusinessRuleViolationException):
            await service.update_order_status(42, OrderStatus.CANCELLED, sample_context())

        assert publishers.queue.messages == []

    async def test_update_missing_order(self, service):
        """Test unknown ids raise EntityNotFoundException."""
        with pytest.raises(EntityNotFoundException):
            await service.update_order_status(404, OrderStatus.PAID, sample_context())

    async def test_get_and_delete(self, catalog, dispatcher):
        """Test lookup and removal by id."""
        repository = InMemoryOrderRepository([persisted_order()])
        service = OrderService(repository, catalog, dispatcher)

        assert (await service.get_order(42)).order_id == 42

        await service.delete_order(42)

        with pytest.raises(EntityNotFoundException):
            await service.get_order(42)

    async def test_list_orders_paging(self, catalog, dispatcher):
        """Test page metadata."""
        repository = InMemoryOrderRepository([persisted_order(order_id=i) for i in (1, 2, 3)])
        service = OrderService(repository, catalog, dispatcher)

        page = await service.list_orders(skip=1, take=2)

        assert [o.order_id for o in page.items] == [2, 3]
        assert page.total_count == 3
        assert page.total_pages == 2
        assert not page.has_next

    @pytest.mark.parametrize("skip, take", [(-1, 10), (0, 0)])
    async def test_list_orders_invalid_paging(self, service, skip, take):
        """Test negative skip and non-positive take are rejected."""
        with pytest.raises(ValidationException):
            await service.list_orders(skip=skip, take=take)


class TestPagedResult:
    """Test page arithmetic."""

    def test_has_next(self):
        """Test a partial view reports further pages."""
        page = PagedResult(items=[1, 2], total_count=5, skip=0, take=2)

        assert page.has_next
        assert page.total_pages == 3

    def test_empty(self):
        """Test an empty listing."""
        page = PagedResult()

        assert page.total_pages == 0
        assert not page.has_next


class TestFieldMeasurementService:
    """Test measurement ingestion and alerting."""

    @pytest.fixture
    def repository(self, measurements):
        return measurements

    @pytest.fixture
    def service(self, repository, dispatcher, settings):
        return FieldMeasurementService(repository, dispatcher, DroughtDetector(), settings.drought)

    async def test_normal_reading_publishes_nothing(self, service, repository, publishers):
        """Test a reading within limits is stored silently."""
        measurement = await service.add_measurement(measurement_request(), sample_context())

        assert repository.measurements[measurement.id] is measurement
        assert len(measurement.events) == 0
        assert publishers.topic.messages == []
        assert publishers.queue.messages == []

    async def test_invalid_reading_is_not_stored(self, service, repository):
        """Test validation happens before persistence."""
        with pytest.raises(FieldValidationException):
            await service.add_measurement(measurement_request(soil_moisture=120.0), sample_context())

        assert repository.measurements == {}

    async def test_extreme_heat_alert(self, service, publishers, settings):
        """Test a hot reading raises the heat alert."""
        await service.add_measurement(measurement_request(air_temperature=45.0), sample_context())

        ((destination, message, properties),) = publishers.topic.messages
        assert destination == settings.alert_required_destination
        assert properties["AlertType"] == "ExtremeHeat"
        assert message.email_to == [ALERT_EMAIL]

    async def test_drought_alert(self, repository, service, publishers, settings):
        """Test a sustained low-moisture run raises the drought alert after the measurement handlers."""
        for hours_ago, moisture in ((40, 45.0), (30, 25.0), (20, 20.0), (10, 18.0)):
            await repository.add(sample_measurement(soil_moisture=moisture, collected_at=BASE_TIME - timedelta(hours=hours_ago)))

        await service.add_measurement(measurement_request(soil_moisture=15.0), sample_context())

        assert alert_types(publishers.topic) == ["IrrigationRecommendation", "Drought"]
        destination, message, _ = publishers.topic.messages[1]
        assert destination == settings.alert_notifications_destination
        assert message.parameters["{durationHours}"] == "30.0"
        assert message.parameters["{firstLowMoistureDetected}"] == (BASE_TIME - timedelta(hours=30)).isoformat()

    async def test_short_low_run_is_not_a_drought(self, repository, service, publishers):
        """Test a run shorter than the minimum duration raises no drought alert."""
        await repository.add(sample_measurement(soil_moisture=20.0, collected_at=BASE_TIME - timedelta(hours=12)))

        await service.add_measurement(measurement_request(soil_moisture=15.0), sample_context())

        assert "Drought" not in alert_types(publishers.topic)

    async def test_irrigation_recommendation(self, repository, service, publishers, settings):
        """Test a drying field gets an irrigation recommendation from stored history."""
        for hours_ago, moisture in ((48, 58.0), (36, 55.0), (24, 50.0)):
            await repository.add(sample_measurement(soil_moisture=moisture, collected_at=BASE_TIME - timedelta(hours=hours_ago)))

        await service.add_measurement(measurement_request(soil_moisture=45.0), sample_context())

        ((destination, message, properties),) = publishers.topic.messages
        assert destination == settings.alert_notifications_destination
        assert properties["AlertType"] == "IrrigationRecommendation"
        assert message.parameters["{urgency}"] == "High"
        assert message.parameters["{waterAmountMM}"] == "22.5"

    async def test_heat_stress_alert(self, repository, service, publishers, settings):
        """Test sustained heat raises a heat stress alert next to the extreme heat alert."""
        for hours_ago in (8, 4):
            await repository.add(sample_measurement(
                soil_moisture=65.0, air_temperature=38.0, collected_at=BASE_TIME - timedelta(hours=hours_ago)
            ))

        await service.add_measurement(
            measurement_request(soil_moisture=65.0, air_temperature=41.0), sample_context()
        )

        assert alert_types(publishers.topic) == ["ExtremeHeat", "HeatStress"]
        destination, message, properties = publishers.topic.messages[1]
        assert destination == settings.alert_required_destination
        assert properties["Severity"] == "Medium"
        assert message.subject == f"Heat Stress Alert - Field {FIELD_ID} (High)"

    async def test_pest_risk_alert(self, repository, service, publishers, settings):
        """Test a warm, wet week raises a pest risk alert."""
        for days_ago in range(6, 0, -1):
            await repository.add(sample_measurement(
                soil_moisture=72.0, air_temperature=26.0, collected_at=BASE_TIME - timedelta(days=days_ago)
            ))

        await service.add_measurement(
            measurement_request(soil_moisture=72.0, air_temperature=26.0), sample_context()
        )

        ((destination, message, properties),) = publishers.topic.messages
        assert destination == settings.alert_required_destination
        assert properties["AlertType"] == "PestRisk"
        assert properties["Severity"] == "Critical"
        assert message.metadata.subject_entity_id == str(FIELD_ID)

    async def test_other_fields_are_ignored(self, repository, service, publishers):
        """Test history from another field does not count."""
        await repository.add(sample_measurement(
            soil_moisture=10.0, collected_at=BASE_TIME - timedelta(hours=48), field_id=OTHER_FIELD_ID
        ))

        await service.add_measurement(measurement_request(soil_moisture=15.0), sample_context())

        assert publishers.topic.messages == []

    async def test_history_window(self, repository, service, publishers):
        """Test readings older than the history window are ignored."""
        await repository.add(sample_measurement(soil_moisture=10.0, collected_at=BASE_TIME - timedelta(days=8)))

        await service.add_measurement(measurement_request(soil_moisture=15.0), sample_context())

        assert publishers.topic.messages == []

    async def test_list_by_field(self, repository, service):
        """Test per-field listing returns the newest reading first."""
        older = await repository.add(sample_measurement(collected_at=BASE_TIME - timedelta(hours=2)))
        newer = await repository.add(sample_measurement(collected_at=BASE_TIME))
        await repository.add(sample_measurement(field_id=OTHER_FIELD_ID))

        assert [m.id for m in await service.list_by_field(FIELD_ID)] == [newer.id, older.id]

    async def test_get_measurement(self, repository, service):
        """Test lookup by id."""
        stored = await repository.add(sample_measurement())

        assert await service.get_measurement(stored.id) is stored

    async def test_list_measurements(self, repository, service):
        """Test paged listing."""
        for hours in range(3):
            await repository.add(sample_measurement(collected_at=BASE_TIME - timedelta(hours=hours)))

        page = await service.list_measurements(skip=0, take=2)

        assert len(page.items) == 2
        assert page.total_count == 3
        assert page.has_next


class TestContainer:
    """Test the composition root wiring."""

    @pytest.fixture
    def container(self, settings, publishers):
        games_client = MagicMock()
        games_client.close = AsyncMock()
        with patch("fieldops.bootstrap.configure_logging"):
            return Container(settings, publisher_factory=publishers, games_client=games_client)

    def test_registers_every_handler(self, container):
        """Test all ten handlers are registered by event type."""
        registry = container.registry
        analyses = [
            handler for handler in registry.handlers_for(EventType.MEASUREMENT_CREATED)
            if isinstance(handler, FieldAnalysisHandler)
        ]

        assert len(registry) == 10
        assert len(registry.handlers_for(EventType.MEASUREMENT_CREATED)) == 6
        assert [handler.alert_type for handler in analyses] == ["HeatStress", "IrrigationRecommendation", "PestRisk"]
        assert all(handler.field_history == container.field_history for handler in analyses)
        assert len(registry.handlers_for(EventType.DROUGHT_ALERT_REQUIRED)) == 1

    def test_builds_services(self, container):
        """Test services are built on top of the given session."""
        session = MagicMock()

        order_service = container.order_service(session)
        measurement_service = container.measurement_service(session)

        assert order_service.order_repository.session is session
        assert order_service.dispatcher is container.dispatcher
        assert measurement_service.repository.session is session
        assert measurement_service.drought_settings.threshold == 30.0

    async def test_close(self, container, publishers):
        """Test closing releases publishers and the games client."""
        await container.close()

        assert publishers.queue.closed
        assert publishers.topic.closed
        container.games_client.close.assert_awaited_once()
