from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Generator

import pytest
from fastapi.testclient import TestClient

from msgbridge.core.config import Settings
from msgbridge.main import create_app
from msgbridge.services.messages import Message, MessageStore

SECRET = "secret"
FIXED_NOW = datetime(2021, 3, 4, 5, 6, 7, 891000, tzinfo=timezone.utc)


class RecordingStore:
    """Store stub returning canned messages and recording every create."""

    def __init__(self, messages: list[Message] | None = None) -> None:
        self.messages = list(messages or [])
        self.created: list[Message] = []

    def list(self) -> list[Message]:
        return list(self.messages)

    def create(self, message: Message) -> None:
        self.created.append(message)


class FailingStore:
    def list(self) -> list[Message]:
        raise RuntimeError("store offline")

    def create(self, message: Message) -> None:
        raise RuntimeError("store offline")


@pytest.fixture
def secret() -> str:
    return SECRET


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()


@pytest.fixture
def make_client() -> Generator[Callable[..., TestClient], None, None]:
    clients: list[TestClient] = []

    def _make(store: MessageStore, **overrides: Any) -> TestClient:
        settings = Settings(**{"shared_secret": SECRET, "log_level": "WARNING", **overrides})
        app = create_app(store=store, settings=settings, clock=lambda: FIXED_NOW)
        test_client = TestClient(app)
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        test_client.close()


@pytest.fixture
def client(make_client: Callable[..., TestClient], store: RecordingStore) -> TestClient:
    return make_client(store)
