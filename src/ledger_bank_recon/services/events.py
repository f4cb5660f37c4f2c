"""In-process event publishing between the compilation and reconciliation steps."""

from abc import ABC, abstractmethod
from typing import Protocol, TypeVar, Union
import logging

import pydantic
from pydantic import BaseModel

from ..utils.exceptions import ValidationError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class EventHandler(Protocol):
    def process_event(self, event: bytes): ...


class EventPublisher(ABC):
    """Publishes trigger payloads to a named topic."""

    @abstractmethod
    def publish(self, topic: str, key: str, message: BaseModel) -> None:
        pass


class InProcessPublisher(EventPublisher):
    """
    Delivers each message synchronously to the handler subscribed to its topic.

    Handler errors propagate to the publisher's caller.
    """

    def __init__(self):
        self._handlers: dict[str, EventHandler] = {}

    def subscribe(self, topic: str, handler: EventHandler) -> None:
        self._handlers[topic] = handler

    def publish(self, topic: str, key: str, message: BaseModel) -> None:
        payload = message.model_dump_json(by_alias=True).encode("utf-8")

        handler = self._handlers.get(topic)
        if handler is None:
            logger.warning(f"No handler subscribed to {topic}; dropping message {key}")
            return

        logger.info(f"Delivering message {key} on {topic}")
        handler.process_event(payload)


def decode_event(model: type[M], event: Union[bytes, str], stage: str) -> M:
    """Decode a JSON payload into ``model``, reporting bad payloads as validation errors."""
    try:
        return model.model_validate_json(event)
    except pydantic.ValidationError as e:
        raise ValidationError(f"failed to unmarshal event: {e}", stage=stage) from e
