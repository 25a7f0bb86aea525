"""Unit tests for publisher selection."""

import pytest

from fieldops.application.messaging import PublisherKind
from fieldops.domain.exceptions import UnsupportedPublisherKindException
from fieldops.infrastructure.messaging import RedisPublisherFactory, RedisQueuePublisher, RedisTopicPublisher

from ..fixtures.fakes import FakeRedisFactory
from ..fixtures.sample_data import make_settings


@pytest.fixture
def clients():
    return FakeRedisFactory()


@pytest.fixture
def factory(clients):
    return RedisPublisherFactory.from_settings(make_settings(service_name="fieldops-test"), client_factory=clients)


class TestPublisherKind:
    """Test kind parsing."""

    @pytest.mark.parametrize("raw, expected", [
        ("queue", PublisherKind.QUEUE),
        ("topic", PublisherKind.TOPIC),
        (PublisherKind.QUEUE, PublisherKind.QUEUE),
    ])
    def test_parse(self, raw, expected):
        """Test enum members and their values are accepted."""
        assert PublisherKind.parse(raw) is expected

    @pytest.mark.parametrize("raw", ["fanout", "QUEUE", ""])
    def test_parse_unknown(self, raw):
        """Test unknown kinds are rejected."""
        with pytest.raises(UnsupportedPublisherKindException) as exc_info:
            PublisherKind.parse(raw)

        assert str(exc_info.value) == f"Unknown publisher type: {raw}"


class TestRedisPublisherFactory:
    """Test the factory built from settings."""

    def test_returns_publisher_per_kind(self, factory):
        """Test each kind maps to its publisher class."""
        assert isinstance(factory.get_publisher(PublisherKind.QUEUE), RedisQueuePublisher)
        assert isinstance(factory.get_publisher("topic"), RedisTopicPublisher)

    def test_publishers_are_long_lived(self, factory):
        """Test repeated lookups return the same instance."""
        assert factory.get_publisher("queue") is factory.get_publisher(PublisherKind.QUEUE)

    def test_queue_settings(self, factory):
        """Test the queue publisher takes its group and cap from settings."""
        queue = factory.get_publisher(PublisherKind.QUEUE)

        assert queue.consumer_group == "fieldops-test"
        assert queue.maxlen == 10000
        assert queue.redis_url == "redis://localhost:6379/1"

    def test_no_connection_until_publish(self, factory, clients):
        """Test building the factory does not connect."""
        factory.get_publisher(PublisherKind.TOPIC)

        assert clients.clients == []

    def test_unknown_kind(self, factory):
        """Test unknown kinds raise."""
        with pytest.raises(UnsupportedPublisherKindException):
            factory.get_publisher("fanout")

    def test_unregistered_kind(self):
        """Test a known kind without a publisher raises."""
        factory = RedisPublisherFactory({})

        with pytest.raises(UnsupportedPublisherKindException):
            factory.get_publisher(PublisherKind.QUEUE)

    async def test_close_closes_connected_publishers(self, factory, clients):
        """Test close releases every open connection."""
        await factory.get_publisher("queue").publish_message("orders", {"orderId": 1})
        await factory.get_publisher("topic").publish_message("payments", {"orderId": 1})

        await factory.close()

        assert len(clients.clients) == 2
        assert all(client.closed for client in clients.clients)
