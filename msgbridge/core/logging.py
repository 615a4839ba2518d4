from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import TextIO

from pythonjsonlogger import jsonlogger

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

_REQUEST_FIELDS = ("path", "method", "status_code", "latency_ms", "client_ip", "error_code")


class ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get()
        record.timestamp = datetime.now(timezone.utc).isoformat()
        for name in _REQUEST_FIELDS:
            setattr(record, name, getattr(record, name, None))
        try:
            from ddtrace import tracer  # type: ignore

            span = tracer.current_span()
            record.dd_trace_id = span.trace_id if span is not None else None
            record.dd_span_id = span.span_id if span is not None else None
        except Exception:
            record.dd_trace_id = None
            record.dd_span_id = None
        return True


def setup_logging(level: str, stream: TextIO | None = None) -> None:
    logger = logging.getLogger()
    logger.setLevel(level)

    handler = logging.StreamHandler(stream or sys.stdout)
    formatter = jsonlogger.JsonFormatter(
        "%(timestamp)s %(levelname)s %(name)s %(message)s %(request_id)s %(dd_trace_id)s "
        "%(dd_span_id)s %(path)s %(method)s %(status_code)s %(latency_ms)s %(client_ip)s "
        "%(error_code)s"
    )
    handler.setFormatter(formatter)
    handler.addFilter(ContextFilter())

    logger.handlers.clear()
    logger.addHandler(handler)
