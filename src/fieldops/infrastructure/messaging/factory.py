"""Publisher selection by kind."""

import logging
from typing import Dict, Mapping, Optional, Union

from fieldops.application.messaging import MessagePublisher, MessagePublisherFactory, PublisherKind
from fieldops.config.settings import Settings
from fieldops.domain.exceptions import UnsupportedPublisherKindException

from .base import ClientFactory
from .redis_queue import RedisQueuePublisher
from .redis_topic import RedisTopicPublisher

logger = logging.getLogger(__name__)


class RedisPublisherFactory(MessagePublisherFactory):
    """Holds one long-lived publisher per kind."""

    def __init__(self, publishers: Mapping[PublisherKind, MessagePublisher]) -> None:
        self._publishers: Dict[PublisherKind, MessagePublisher] = dict(publishers)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        client_factory: Optional[ClientFactory] = None,
    ) -> "RedisPublisherFactory":
        return cls({
            PublisherKind.QUEUE: RedisQueuePublisher(
                settings.redis_url,
                consumer_group=settings.service_name,
                maxlen=settings.stream_maxlen,
                client_factory=client_factory,
            ),
            PublisherKind.TOPIC: RedisTopicPublisher(settings.redis_url, client_factory=client_factory),
        })

    def get_publisher(self, kind: Union[PublisherKind, str]) -> MessagePublisher:
        resolved = PublisherKind.parse(kind)
        try:
            return self._publishers[resolved]
        except KeyError:
            raise UnsupportedPublisherKindException(kind) from None

    async def close(self) -> None:
        for kind, publisher in self._publishers.items():
            await publisher.close()
            logger.debug(f"Closed {kind.value} publisher")
