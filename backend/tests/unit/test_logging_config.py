"""Unit tests for structured logging and request ID correlation"""

import json
import logging
from uuid import uuid4

import pytest

from observability.logging_config import JSONFormatter, RequestIDFilter, configure_logging
from observability.request_id import NO_REQUEST_ID, get_request_id, request_id_var, set_request_id


def make_record(message="Document moved", **extra):
    record = logging.LogRecord(
        name="documents.service",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:

    def test_lifecycle_context_lifted_to_top_level(self):
        document_id = uuid4()
        record = make_record(document_id=document_id, transition="draft->review", attempt=2)
        RequestIDFilter().filter(record)

        payload = json.loads(JSONFormatter().format(record))

        assert payload["level"] == "INFO"
        assert payload["logger"] == "documents.service"
        assert payload["message"] == "Document moved"
        assert payload["document_id"] == str(document_id)
        assert payload["transition"] == "draft->review"
        assert payload["attempt"] == "2"
        assert "actor_id" not in payload

    def test_request_id_defaults_outside_request(self):
        payload = json.loads(JSONFormatter().format(make_record()))
        assert payload["request_id"] == NO_REQUEST_ID


class TestRequestID:

    def test_set_and_reset(self):
        token = set_request_id("req-123")
        try:
            assert get_request_id() == "req-123"
            record = make_record()
            RequestIDFilter().filter(record)
            assert record.request_id == "req-123"
        finally:
            request_id_var.reset(token)

        assert get_request_id() == NO_REQUEST_ID

    def test_middleware_echoes_request_id(self, client):
        response = client.get("/", headers={"X-Request-ID": "req-abc"})
        assert response.status_code == 200
        assert response.headers["X-Request-ID"] == "req-abc"

    def test_middleware_generates_request_id(self, client):
        response = client.get("/")
        assert response.headers["X-Request-ID"]


class TestConfigureLogging:

    def test_unknown_level_rejected(self):
        with pytest.raises(ValueError):
            configure_logging(level="chatty")

    def test_http_context_fields(self):
        record = make_record("GET /health -> 200", method="GET", path="/health", status_code=200, duration_ms=1.5)

        payload = json.loads(JSONFormatter().format(record))

        assert payload["method"] == "GET"
        assert payload["status_code"] == "200"
        assert payload["duration_ms"] == "1.5"
