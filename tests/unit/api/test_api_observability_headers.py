import json
import logging
import re

from fastapi.testclient import TestClient

from src.api.main import app
from src.api.observability import JsonFormatter, correlation_id_var


def test_observability_headers_preserve_inbound_correlation_and_trace_id():
    with TestClient(app) as client:
        response = client.get(
            "/health",
            headers={
                "X-Correlation-Id": "corr-inbound-123",
                "X-Request-Id": "req-inbound-123",
                "traceparent": "00-1234567890abcdef1234567890abcdef-0000000000000001-01",
            },
        )

    assert response.status_code == 200
    assert response.headers["X-Correlation-Id"] == "corr-inbound-123"
    assert response.headers["X-Request-Id"] == "req-inbound-123"
    assert response.headers["X-Trace-Id"] == "1234567890abcdef1234567890abcdef"
    assert (
        response.headers["traceparent"] == "00-1234567890abcdef1234567890abcdef-0000000000000001-01"
    )


def test_observability_headers_generate_ids_when_missing():
    with TestClient(app) as client:
        response = client.get("/health", headers={"traceparent": "garbage"})

    assert response.status_code == 200
    assert re.fullmatch(r"corr_[0-9a-f]{12}", response.headers["X-Correlation-Id"])
    assert re.fullmatch(r"req_[0-9a-f]{12}", response.headers["X-Request-Id"])
    assert re.fullmatch(r"[0-9a-f]{32}", response.headers["X-Trace-Id"])


def test_json_formatter_merges_extra_fields_and_context(monkeypatch):
    monkeypatch.setenv("SERVICE_NAME", "dao-vote-test")
    record = logging.LogRecord(
        name="src.core.governance.votes",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="vote.cast",
        args=(),
        exc_info=None,
    )
    record.extra_fields = {"decision_id": "round-1", "decision": "approve"}
    token = correlation_id_var.set("corr-log-1")
    try:
        payload = json.loads(JsonFormatter().format(record))
    finally:
        correlation_id_var.reset(token)

    assert payload["service"] == "dao-vote-test"
    assert payload["message"] == "vote.cast"
    assert payload["correlation_id"] == "corr-log-1"
    assert payload["decision"] == "approve"
    assert "request_id" not in payload
