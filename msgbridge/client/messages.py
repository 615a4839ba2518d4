"""HTTP client for the remote messages API.

``fetch_messages`` never raises for expected failures: every outcome is an
``Ok`` holding the decoded messages or an ``Err`` holding one of the
``ApiError`` variants. ``get_messages`` is the raising counterpart.
"""
from __future__ import annotations

from typing import Any

import httpx
from ddtrace import tracer
from pydantic import TypeAdapter, ValidationError

from msgbridge.client.models import DEFAULT_CODEC, Message, MessageDTO
from msgbridge.core.config import Settings, get_settings
from msgbridge.observability.metrics import record_client_fetch
from msgbridge.services.errors import DecodeFailure, Unexpected, UnexpectedStatus, normalize
from msgbridge.services.result import Err, Result, collect
from msgbridge.services.timestamps import TimestampCodec, get_codec

MESSAGES_PATH = "/messages"
TOPIC_PARAM = "topicName"

_DTO_LIST = TypeAdapter(list[MessageDTO])


def decode_messages(response: httpx.Response, codec: TimestampCodec) -> Result[list[Message]]:
    """Validate an already-read response into messages, all or nothing.

    A body that cannot be decoded is reported as ``Unexpected`` wrapping a
    ``DecodeFailure``, whose own cause is the pydantic error.
    """
    if response.status_code != 200:
        return Err(UnexpectedStatus(response.status_code))
    try:
        dtos = _DTO_LIST.validate_json(response.content)
    except ValidationError as exc:
        error = DecodeFailure(f"response body is not a list of messages ({exc.error_count()} errors)")
        error.__cause__ = exc
        return Err(Unexpected(error))
    return collect(dto.to_message(codec) for dto in dtos)


def _finish(result: Result[list[Message]], span: Any, settings: Settings) -> Result[list[Message]]:
    outcome = "ok" if result.is_ok() else type(result.error).__name__  # type: ignore[union-attr]
    span.set_tag("fetch.outcome", outcome)
    record_client_fetch(settings, outcome)
    return result


class MessagesClient:
    """Blocking client; safe to share between threads."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        codec: TimestampCodec = DEFAULT_CODEC,
        transport: httpx.BaseTransport | None = None,
        client: httpx.Client | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._codec = codec
        self._settings = settings or get_settings()
        self._owns_client = client is None
        self._client = client or httpx.Client(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> MessagesClient:
        return cls(
            settings.messages_api_url,
            timeout=settings.client_timeout_seconds,
            codec=get_codec(settings.client_timestamp_format),
            settings=settings,
            **kwargs,
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> MessagesClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def fetch_messages(self, topic: str, timeout: float | None = None) -> Result[list[Message]]:
        with tracer.trace("messages.fetch", resource=f"GET {MESSAGES_PATH}") as span:
            try:
                with self._client.stream(
                    "GET",
                    MESSAGES_PATH,
                    params={TOPIC_PARAM: topic},
                    timeout=httpx.USE_CLIENT_DEFAULT if timeout is None else timeout,
                ) as response:
                    span.set_tag("http.status_code", response.status_code)
                    if response.status_code == 200:
                        response.read()
                    result = decode_messages(response, self._codec)
            except Exception as exc:
                result = Err(normalize(exc))
            return _finish(result, span, self._settings)

    def get_messages(self, topic: str, timeout: float | None = None) -> list[Message]:
        return self.fetch_messages(topic, timeout=timeout).unwrap()


class AsyncMessagesClient:
    """Asyncio counterpart of :class:`MessagesClient`."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        codec: TimestampCodec = DEFAULT_CODEC,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._codec = codec
        self._settings = settings or get_settings()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> AsyncMessagesClient:
        return cls(
            settings.messages_api_url,
            timeout=settings.client_timeout_seconds,
            codec=get_codec(settings.client_timestamp_format),
            settings=settings,
            **kwargs,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> AsyncMessagesClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def fetch_messages(self, topic: str, timeout: float | None = None) -> Result[list[Message]]:
        with tracer.trace("messages.fetch", resource=f"GET {MESSAGES_PATH}") as span:
            try:
                async with self._client.stream(
                    "GET",
                    MESSAGES_PATH,
                    params={TOPIC_PARAM: topic},
                    timeout=httpx.USE_CLIENT_DEFAULT if timeout is None else timeout,
                ) as response:
                    span.set_tag("http.status_code", response.status_code)
                    if response.status_code == 200:
                        await response.aread()
                    result = decode_messages(response, self._codec)
            except Exception as exc:
                result = Err(normalize(exc))
            return _finish(result, span, self._settings)

    async def get_messages(self, topic: str, timeout: float | None = None) -> list[Message]:
        return (await self.fetch_messages(topic, timeout=timeout)).unwrap()
