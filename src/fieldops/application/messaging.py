"""Publisher contracts used by the event handlers."""

import json
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel

from fieldops.domain.exceptions import UnsupportedPublisherKindException


class PublisherKind(str, Enum):
    """Broker flavours a handler can publish through."""
    QUEUE = "queue"  # point-to-point, durable
    TOPIC = "topic"  # fan-out to subscribers

    @classmethod
    def parse(cls, kind: Union["PublisherKind", str]) -> "PublisherKind":
        try:
            return cls(kind)
        except ValueError:
            raise UnsupportedPublisherKindException(kind) from None


class MessagePublisher(ABC):
    """Sends messages to a named destination on a broker."""

    @abstractmethod
    async def publish_message(
        self,
        destination: str,
        message: Any,
        properties: Optional[Dict[str, Any]] = None,
    ) -> None:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...


class MessagePublisherFactory(ABC):
    """Hands out one publisher per ``PublisherKind``."""

    @abstractmethod
    def get_publisher(self, kind: Union[PublisherKind, str]) -> MessagePublisher:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...


def to_payload(message: Any) -> Any:
    """Convert a message into JSON-compatible data."""
    if isinstance(message, BaseModel):
        return message.model_dump(mode="json", by_alias=True)
    return message


def serialize_message(message: Any) -> str:
    return json.dumps(to_payload(message), default=str)
