from __future__ import annotations

from ddtrace import config as dd_config
from ddtrace import patch, tracer

from msgbridge.core.config import Settings


def setup_tracing(settings: Settings) -> None:
    dd_config.logs_injection = True
    dd_config.fastapi["service_name"] = settings.dd_service
    dd_config.httpx["split_by_domain"] = True
    tracer.set_tags(
        {
            "env": settings.dd_env,
            "version": settings.dd_version,
        }
    )
    if settings.tracing_enabled:
        patch(fastapi=True, httpx=True)
