"""Tests for the request context middleware.

Every response gets an X-Request-ID header (generated or echoed), and
log lines emitted while handling a request carry its id and user.
"""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from learnhub.middleware.request_context import _RequestContextFilter, request_id_var
from tests.conftest import auth


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    uuid.UUID(req_id)  # raises ValueError if invalid


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    resp = client.get("/health", headers={"X-Request-ID": "my-custom-request-id-123"})
    assert resp.headers.get("x-request-id") == "my-custom-request-id-123"


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    resp = client.get("/v1/enrollments/me")  # no token -> 401
    assert resp.status_code == 401
    assert resp.headers.get("x-request-id") is not None


def test_summary_line_carries_request_and_user(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="learnhub.middleware.request_context"):
        client.get("/v1/enrollments/me", headers={**auth("student-7"), "X-Request-ID": "r-1"})

    (record,) = [r for r in caplog.records if r.getMessage().startswith("GET /v1/enrollments/me")]
    assert record.request_id == "r-1"  # type: ignore[attr-defined]
    assert record.user_id == "student-7"  # type: ignore[attr-defined]
    assert record.status_code == 200  # type: ignore[attr-defined]


def test_filter_fills_missing_context_from_contextvars() -> None:
    token = request_id_var.set("ctx-42")
    try:
        record = logging.LogRecord("t", logging.INFO, "t.py", 1, "msg", (), None)
        _RequestContextFilter().filter(record)
    finally:
        request_id_var.reset(token)
    assert record.request_id == "ctx-42"  # type: ignore[attr-defined]
    assert record.user_id == "-"  # type: ignore[attr-defined]


def test_filter_keeps_explicit_context() -> None:
    record = logging.LogRecord("t", logging.INFO, "t.py", 1, "msg", (), None)
    record.request_id = "explicit"  # type: ignore[attr-defined]
    _RequestContextFilter().filter(record)
    assert record.request_id == "explicit"  # type: ignore[attr-defined]
