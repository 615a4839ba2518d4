from __future__ import annotations

from threading import Lock
from typing import Protocol

from ddtrace import tracer
from pydantic import AwareDatetime, BaseModel, ConfigDict

from msgbridge.services.errors import normalize


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str
    timestamp: AwareDatetime


class MessageStore(Protocol):
    def list(self) -> list[Message]: ...

    def create(self, message: Message) -> None: ...


class InMemoryMessageStore:
    """Process-local store keeping messages in insertion order."""

    def __init__(self, messages: list[Message] | None = None) -> None:
        self._messages = list(messages or [])
        self._lock = Lock()

    def list(self) -> list[Message]:
        with self._lock:
            return list(self._messages)

    def create(self, message: Message) -> None:
        with self._lock:
            self._messages.append(message)


def list_messages(store: MessageStore) -> list[Message]:
    with tracer.trace("messages.list", resource="GET /messages") as span:
        try:
            messages = store.list()
        except Exception as exc:
            raise normalize(exc) from exc
        span.set_metric("messages.count", len(messages))
        return messages


def create_message(store: MessageStore, message: Message) -> None:
    with tracer.trace("messages.create", resource="POST /messages") as span:
        span.set_metric("message.length", len(message.content))
        try:
            store.create(message)
        except Exception as exc:
            raise normalize(exc) from exc
