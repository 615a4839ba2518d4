from __future__ import annotations

import time
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Sequence

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

from msgbridge.core.config import Settings

try:
    from datadog import statsd
except Exception:  # pragma: no cover - optional dependency in some envs
    statsd = None  # type: ignore


REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "path"],
)
MESSAGES_CREATED = Counter("messages_created_total", "Messages created")
API_ERRORS = Counter("api_errors_total", "Errors rendered by the API", ["error"])
CLIENT_FETCHES = Counter(
    "client_message_fetches_total",
    "Outbound message fetches by outcome",
    ["outcome"],
)


@dataclass
class Stats:
    counters: dict[str, int] = field(default_factory=dict)
    _lock: Lock = field(default_factory=Lock, init=False, repr=False)

    def inc(self, key: str, amount: int = 1) -> None:
        with self._lock:
            self.counters[key] = self.counters.get(key, 0) + amount

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self.counters)


stats = Stats()
_statsd_target: tuple[str, int] | None = None


def _statsd_for(settings: Settings) -> Any:
    """DogStatsD client pointed at the agent named in ``settings``, if any."""
    global _statsd_target
    if not settings.dd_agent_host or statsd is None:
        return None
    target = (settings.dd_agent_host, settings.dd_dogstatsd_port)
    if _statsd_target != target:
        statsd.host, statsd.port = target
        statsd.constant_tags = [
            f"service:{settings.dd_service}",
            f"env:{settings.dd_env}",
            f"version:{settings.dd_version}",
        ]
        _statsd_target = target
    return statsd


def _count(
    settings: Settings, counter: Any, statsd_metric: str, stat_key: str, tags: Sequence[str] = ()
) -> None:
    if settings.metrics_enabled:
        counter.inc()
        client = _statsd_for(settings)
        if client is not None:
            client.increment(statsd_metric, tags=list(tags))
    if settings.stats_enabled:
        stats.inc(stat_key)


def metrics_response() -> tuple[bytes, str]:
    payload = generate_latest()
    return payload, CONTENT_TYPE_LATEST


def record_request(
    settings: Settings, method: str, path: str, status_code: int, latency_ms: float
) -> None:
    method = method.upper()
    code = str(status_code)

    if settings.metrics_enabled:
        REQUEST_COUNT.labels(method=method, path=path, status_code=code).inc()
        REQUEST_LATENCY.labels(method=method, path=path).observe(latency_ms / 1000.0)
        client = _statsd_for(settings)
        if client is not None:
            client.increment(
                "http.requests.by_route", tags=[f"method:{method}", f"path:{path}", f"code:{code}"]
            )
            client.histogram("request.latency", latency_ms, tags=[f"path:{path}"])

    if settings.stats_enabled:
        stats.inc("requests.total")
        stats.inc(f"requests.by_method.{method}")
        stats.inc(f"responses.by_status.{code}")


def record_message_created(settings: Settings) -> None:
    _count(settings, MESSAGES_CREATED, "messages.created", "messages.created")


def record_api_error(settings: Settings, error_code: str) -> None:
    _count(
        settings,
        API_ERRORS.labels(error=error_code),
        "api.errors",
        f"errors.{error_code}",
        tags=[f"error:{error_code}"],
    )


def record_client_fetch(settings: Settings, outcome: str) -> None:
    _count(
        settings,
        CLIENT_FETCHES.labels(outcome=outcome),
        "client.fetches",
        f"client.fetches.{outcome}",
        tags=[f"outcome:{outcome}"],
    )


def now_ms() -> float:
    return time.perf_counter() * 1000.0
