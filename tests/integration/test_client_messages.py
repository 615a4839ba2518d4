from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Iterator

import httpx
import pytest
from pydantic import ValidationError

from msgbridge.client.messages import AsyncMessagesClient, MessagesClient
from msgbridge.client.models import Message
from msgbridge.core.config import Settings
from msgbridge.services.errors import (
    ApiError,
    DecodeFailure,
    InvalidTimestamp,
    Unexpected,
    UnexpectedStatus,
)
from msgbridge.services.result import Err, Ok

BASE_URL = "http://messages.example.test"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def stubbed_client(status_code: int, payload: object) -> MessagesClient:
    transport = httpx.MockTransport(lambda request: httpx.Response(status_code, json=payload))
    return MessagesClient(BASE_URL, transport=transport)


class TrackingStream(httpx.SyncByteStream):
    def __init__(self, body: bytes) -> None:
        self.body = body
        self.closed = False

    def __iter__(self) -> Iterator[bytes]:
        yield self.body

    def close(self) -> None:
        self.closed = True


def test_returns_messages_for_well_formed_payload() -> None:
    client = stubbed_client(200, [{"value": "hello world", "timestamp": 0}])

    assert client.get_messages("test-input-that-does-not-matter") == [
        Message(value="hello world", timestamp=EPOCH)
    ]


def test_requests_topic_query_param() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[])

    client = MessagesClient(f"{BASE_URL}/api", transport=httpx.MockTransport(handler))

    assert client.get_messages("news") == []
    assert client.get_messages("") == []
    assert seen[0].method == "GET"
    assert seen[0].url.path == "/api/messages"
    assert seen[0].url.params["topicName"] == "news"
    assert seen[1].url.params["topicName"] == ""


def test_wrong_types_fail_with_api_error() -> None:
    client = stubbed_client(200, [{"value": 1234, "timestamp": "oops-not-an-epoch-milli"}])

    result = client.fetch_messages("t")

    assert isinstance(result, Err)
    assert isinstance(result.error, Unexpected)
    assert isinstance(result.error.cause, DecodeFailure)
    assert isinstance(result.error.cause.__cause__, ValidationError)
    with pytest.raises(ApiError):
        client.get_messages("t")


def test_invalid_json_is_unexpected_decode_failure() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"not json"))
    client = MessagesClient(BASE_URL, transport=transport)

    with pytest.raises(Unexpected) as exc:
        client.get_messages("t")
    assert isinstance(exc.value.cause, DecodeFailure)
    assert exc.value.__cause__ is exc.value.cause


def test_one_bad_timestamp_fails_whole_list() -> None:
    client = stubbed_client(
        200,
        [
            {"value": "fine", "timestamp": 0},
            {"value": "string ts", "timestamp": "1970-01-01T00:00:00"},
        ],
    )

    result = client.fetch_messages("t")

    assert result == Err(InvalidTimestamp("1970-01-01T00:00:00"))


def test_out_of_range_timestamp_is_invalid() -> None:
    client = stubbed_client(200, [{"value": "far", "timestamp": 10**17}])

    with pytest.raises(InvalidTimestamp):
        client.get_messages("t")


@pytest.mark.parametrize("status_code", [201, 204, 301, 400, 404, 500, 503])
def test_non_ok_status_is_unexpected_status(status_code: int) -> None:
    client = stubbed_client(status_code, {"error": "nope"})

    result = client.fetch_messages("t")

    assert result == Err(UnexpectedStatus(status_code))
    assert result.error.status_code == status_code


def test_transport_errors_are_wrapped_as_unexpected() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = MessagesClient(BASE_URL, transport=httpx.MockTransport(handler))

    result = client.fetch_messages("t")

    assert isinstance(result, Err)
    assert isinstance(result.error, Unexpected)
    assert isinstance(result.error.cause, httpx.ConnectError)
    assert result.error.__cause__ is result.error.cause


def test_timeout_is_wrapped_as_unexpected() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.extensions["timeout"]["read"] == 0.5
        raise httpx.ReadTimeout("deadline exceeded", request=request)

    client = MessagesClient(BASE_URL, transport=httpx.MockTransport(handler))

    with pytest.raises(Unexpected) as exc:
        client.get_messages("t", timeout=0.5)
    assert isinstance(exc.value.cause, httpx.ReadTimeout)


@pytest.mark.parametrize(
    "status_code, body",
    [(200, b'[{"value": 1}]'), (200, b'[{"value": "x", "timestamp": 0}]'), (500, b"boom")],
)
def test_response_is_released_on_every_path(status_code: int, body: bytes) -> None:
    streams: list[TrackingStream] = []

    def handler(request: httpx.Request) -> httpx.Response:
        stream = TrackingStream(body)
        streams.append(stream)
        return httpx.Response(status_code, stream=stream)

    client = MessagesClient(BASE_URL, transport=httpx.MockTransport(handler))
    client.fetch_messages("t")

    assert streams[0].closed


def test_from_settings_uses_configured_codec() -> None:
    settings = Settings(messages_api_url=BASE_URL, client_timestamp_format="iso_seconds")
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, json=[{"value": "v", "timestamp": "1970-01-01T00:00:00"}])
    )

    with MessagesClient.from_settings(settings, transport=transport) as client:
        assert client.fetch_messages("t") == Ok([Message(value="v", timestamp=EPOCH)])


def test_async_client_matches_sync_behaviour() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["topicName"] == "missing":
            return httpx.Response(404)
        return httpx.Response(200, json=[{"value": "hello world", "timestamp": 0}])

    async def run() -> tuple[list[Message], object]:
        async with AsyncMessagesClient(BASE_URL, transport=httpx.MockTransport(handler)) as client:
            found = await client.get_messages("news")
            missing = await client.fetch_messages("missing")
        return found, missing

    found, missing = asyncio.run(run())

    assert found == [Message(value="hello world", timestamp=EPOCH)]
    assert missing == Err(UnexpectedStatus(404))


def test_fetch_outcomes_follow_client_settings() -> None:
    from msgbridge.observability.metrics import stats

    transport = httpx.MockTransport(lambda request: httpx.Response(503))
    quiet = MessagesClient(
        BASE_URL,
        transport=transport,
        settings=Settings(stats_enabled=False, metrics_enabled=False),
    )
    counted = MessagesClient(BASE_URL, transport=transport, settings=Settings())

    before = stats.snapshot().get("client.fetches.UnexpectedStatus", 0)
    quiet.fetch_messages("t")
    assert stats.snapshot().get("client.fetches.UnexpectedStatus", 0) == before

    counted.fetch_messages("t")
    assert stats.snapshot()["client.fetches.UnexpectedStatus"] == before + 1
