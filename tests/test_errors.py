"""Tests for API error construction and MCP fault translation."""

from __future__ import annotations

import pytest

from parasut_mcp.errors import (
    ApiError,
    AuthError,
    ConfigError,
    DecodeError,
    ForbiddenError,
    JobFailureError,
    JobTimeoutError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    RequestTimeoutError,
    ValidationError,
    create_api_error,
    parse_error_document,
    translate_fault,
)


@pytest.mark.parametrize(
    ("status", "error_class"),
    [
        (401, AuthError),
        (403, ForbiddenError),
        (404, NotFoundError),
        (422, ValidationError),
        (429, RateLimitError),
        (500, ApiError),
    ],
)
def test_create_api_error_picks_class_by_status(status: int, error_class: type[ApiError]) -> None:
    error = create_api_error(status, None)

    assert type(error) is error_class
    assert error.status == status


def test_validation_error_keeps_server_details() -> None:
    body = {
        "errors": [
            {"title": "Invalid", "detail": "Name can't be blank", "source": {"pointer": "/name"}},
            "garbage",
        ]
    }

    error = create_api_error(422, body, request_id="req-1")

    assert error.document == body
    assert error.request_id == "req-1"
    assert [detail.detail for detail in error.errors] == ["Name can't be blank"]
    assert error.error_details == "Invalid: Name can't be blank"


def test_parse_error_document_ignores_non_error_bodies() -> None:
    assert parse_error_document({"data": {}}) == []
    assert parse_error_document("Internal Server Error") == []


def test_rate_limit_fault_is_retryable_with_delay() -> None:
    fault = translate_fault(create_api_error(429, None, retry_after=12.0))

    assert fault["code"] == "parasut:429"
    assert fault["retryable"] is True
    assert fault["retry_after"] == 12.0


@pytest.mark.parametrize(
    ("error", "code", "retryable"),
    [
        (create_api_error(404, None), "parasut:404", False),
        (create_api_error(502, None), "parasut:502", True),
        (NetworkError("connection reset"), "parasut:network", True),
        (RequestTimeoutError(30.0), "parasut:timeout", True),
        (DecodeError("bad body", expected="object", actual="list"), "parasut:decode", False),
        (JobFailureError("j1", ["Rejected"]), "parasut:job_failed", False),
        (JobTimeoutError("j1", "running", 60.0), "parasut:job_timeout", True),
        (ConfigError("missing secrets"), "parasut:config", False),
        (RuntimeError("surprise"), "parasut:unknown", False),
    ],
)
def test_translate_fault_codes(error: BaseException, code: str, retryable: bool) -> None:
    fault = translate_fault(error)

    assert fault["code"] == code
    assert fault["retryable"] is retryable
    assert fault["domain"] == "parasut"
    assert fault["message"] == str(error)
