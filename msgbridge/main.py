from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from msgbridge.api.error_handlers import register_error_handlers
from msgbridge.api.messages import router as messages_router
from msgbridge.core.auth import CredentialExtractor, build_extractor
from msgbridge.core.config import Settings, get_settings
from msgbridge.core.logging import setup_logging
from msgbridge.core.middleware import RequestContextMiddleware
from msgbridge.observability.metrics import metrics_response, stats
from msgbridge.observability.tracing import setup_tracing
from msgbridge.services.messages import InMemoryMessageStore, MessageStore
from msgbridge.services.timestamps import get_codec

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def create_app(
    store: MessageStore | None = None,
    settings: Settings | None = None,
    clock: Clock = utc_now,
    credential_extractor: CredentialExtractor | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    setup_tracing(settings)

    app = FastAPI(title="msgbridge", version=settings.dd_version)
    app.state.settings = settings
    app.state.store = store if store is not None else InMemoryMessageStore()
    app.state.clock = clock
    app.state.codec = get_codec(settings.server_timestamp_format)
    app.state.credential_extractor = credential_extractor or build_extractor(settings)

    app.add_middleware(RequestContextMiddleware)
    register_error_handlers(app)
    app.include_router(messages_router)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/metrics", response_class=PlainTextResponse, include_in_schema=False)
    def metrics() -> PlainTextResponse:
        payload, content_type = metrics_response()
        return PlainTextResponse(content=payload.decode("utf-8"), media_type=content_type)

    @app.get("/stats", include_in_schema=False)
    def stats_endpoint() -> dict[str, Any]:
        counters = stats.snapshot()

        requests_by_method: dict[str, int] = {}
        responses_by_status: dict[str, int] = {}
        errors: dict[str, int] = {}
        for k, v in counters.items():
            if k.startswith("requests.by_method."):
                requests_by_method[k.removeprefix("requests.by_method.")] = v
            elif k.startswith("responses.by_status."):
                responses_by_status[k.removeprefix("responses.by_status.")] = v
            elif k.startswith("errors."):
                errors[k.removeprefix("errors.")] = v

        return {
            "messages": {
                "created": counters.get("messages.created", 0),
                "stored": len(app.state.store.list()),
            },
            "requests": {
                "total": counters.get("requests.total", 0),
                "by_method": requests_by_method,
                "responses_by_status": responses_by_status,
            },
            "errors": errors,
            "counters": counters,
        }

    return app
