import json
import logging
import os
import time
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Awaitable, Callable, NamedTuple, Optional
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from prometheus_fastapi_instrumentator import Instrumentator

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
trace_id_var: ContextVar[str] = ContextVar("trace_id", default="")

_UNMETERED_HANDLERS = ["/metrics", "/health.*", "/api/v1/health.*"]
_access_logger = logging.getLogger("http.access")


class RequestIds(NamedTuple):
    correlation_id: str
    request_id: str
    trace_id: str


class JsonFormatter(logging.Formatter):
    """One JSON object per record, tagged with the ids of the request being served."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "service": os.getenv("SERVICE_NAME", "dao-vote"),
            "environment": os.getenv("ENVIRONMENT", "local"),
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": correlation_id_var.get() or None,
            "request_id": request_id_var.get() or None,
            "trace_id": trace_id_var.get() or None,
        }
        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            entry.update(extra_fields)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(
            {key: value for key, value in entry.items() if value is not None}, default=str
        )


def bind_caller(request: Request, caller_id: str) -> None:
    request.state.caller_id = caller_id


def configure_logging() -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
    root_logger.addHandler(handler)


def inbound_request_ids(request: Request) -> RequestIds:
    return RequestIds(
        correlation_id=request.headers.get("X-Correlation-Id") or f"corr_{uuid4().hex[:12]}",
        request_id=request.headers.get("X-Request-Id") or f"req_{uuid4().hex[:12]}",
        trace_id=_trace_id_from(request.headers.get("traceparent", "")) or uuid4().hex,
    )


def _trace_id_from(traceparent: str) -> Optional[str]:
    parts = traceparent.split("-")
    if len(parts) >= 4 and len(parts[1]) == 32:
        return parts[1]
    return None


def _stamp_response(response: Response, ids: RequestIds) -> None:
    response.headers.setdefault("X-Correlation-Id", ids.correlation_id)
    response.headers["X-Request-Id"] = ids.request_id
    response.headers["X-Trace-Id"] = ids.trace_id
    response.headers["traceparent"] = f"00-{ids.trace_id}-0000000000000001-01"


def setup_observability(app: FastAPI) -> None:
    configure_logging()
    Instrumentator(excluded_handlers=_UNMETERED_HANDLERS).instrument(app).expose(app)

    @app.middleware("http")
    async def _request_observability_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        started = time.perf_counter()
        ids = inbound_request_ids(request)
        tokens = (
            correlation_id_var.set(ids.correlation_id),
            request_id_var.set(ids.request_id),
            trace_id_var.set(ids.trace_id),
        )
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            _access_logger.info(
                "request.completed",
                extra={
                    "extra_fields": {
                        "http_method": request.method,
                        "endpoint": request.url.path,
                        "status_code": status_code,
                        "caller_id": getattr(request.state, "caller_id", None),
                        "latency_ms": round((time.perf_counter() - started) * 1000, 2),
                    }
                },
            )
            for var, token in zip(
                (correlation_id_var, request_id_var, trace_id_var), tokens
            ):
                var.reset(token)

        _stamp_response(response, ids)
        return response
