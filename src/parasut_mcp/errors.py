"""Typed errors raised by the Paraşüt resource layer and their MCP translation."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    """One entry of a JSON:API ``errors`` document."""

    model_config = ConfigDict(extra="allow")

    status: str | None = Field(default=None, description="HTTP status reported by the server")
    title: str = Field(default="Error", description="Short error title")
    detail: str = Field(default="Unknown error", description="Human-readable explanation")
    source: dict[str, Any] | None = Field(
        default=None, description="Pointer to the offending request member"
    )


def parse_error_document(body: Any) -> list[ErrorDetail]:
    """Return the ``errors`` entries of a JSON:API error document, or an empty list."""

    if not isinstance(body, dict) or not isinstance(body.get("errors"), list):
        return []

    details: list[ErrorDetail] = []
    for entry in body["errors"]:
        if not isinstance(entry, dict):
            continue
        details.append(
            ErrorDetail(
                status=str(entry["status"]) if entry.get("status") is not None else None,
                title=str(entry.get("title") or "Error"),
                detail=str(entry.get("detail") or "Unknown error"),
                source=entry.get("source") if isinstance(entry.get("source"), dict) else None,
            )
        )
    return details


class ParasutError(Exception):
    """Base class for every error raised by this package."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class ConfigError(ParasutError):
    """Configuration is missing or invalid."""


class TransportError(ParasutError):
    """A request could not be completed: network failure, timeout or non-2xx status."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        errors: list[ErrorDetail] | None = None,
        document: dict[str, Any] | None = None,
        request_id: str | None = None,
        raw_body: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.status = status
        self.errors = errors or []
        self.document = document
        self.request_id = request_id
        self.raw_body = raw_body

    @property
    def error_details(self) -> str:
        return "; ".join(f"{error.title}: {error.detail}" for error in self.errors)


class ApiError(TransportError):
    """The server answered with a non-2xx status."""


class AuthError(ApiError):
    """401 Unauthorized."""


class ForbiddenError(ApiError):
    """403 Forbidden."""


class NotFoundError(ApiError):
    """404 Not Found."""


class ValidationError(ApiError):
    """422 Unprocessable Entity."""


class RateLimitError(ApiError):
    """429 Too Many Requests."""

    def __init__(self, message: str, *, retry_after: float | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class NetworkError(TransportError):
    """The request never produced an HTTP response."""


class RequestTimeoutError(NetworkError):
    """The request exceeded its timeout."""

    def __init__(self, timeout: float, *, cause: BaseException | None = None) -> None:
        super().__init__(f"Request timed out after {timeout:g}s", cause=cause)
        self.timeout = timeout


class DecodeError(ParasutError):
    """A body could not be encoded, or a response did not have the expected shape."""

    def __init__(
        self,
        message: str,
        *,
        expected: str | None = None,
        actual: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.expected = expected
        self.actual = actual


class JobFailureError(ParasutError):
    """A trackable job reached the ``error`` terminal state."""

    def __init__(self, job_id: str, errors: list[str]) -> None:
        joined = ", ".join(errors) if errors else "Unknown error"
        super().__init__(f"Job {job_id} failed: {joined}")
        self.job_id = job_id
        self.errors = list(errors)


class JobTimeoutError(ParasutError):
    """A trackable job did not reach a terminal state before the deadline."""

    def __init__(self, job_id: str, last_status: str, timeout: float) -> None:
        super().__init__(f"Job {job_id} timed out after {timeout:g}s (status: {last_status})")
        self.job_id = job_id
        self.last_status = last_status
        self.timeout = timeout


_STATUS_ERRORS: dict[int, tuple[type[ApiError], str]] = {
    401: (AuthError, "Authentication failed"),
    403: (ForbiddenError, "Access forbidden"),
    404: (NotFoundError, "Resource not found"),
    422: (ValidationError, "Validation failed"),
    429: (RateLimitError, "Rate limit exceeded"),
}


def create_api_error(
    status: int,
    body: Any,
    *,
    request_id: str | None = None,
    raw_body: str | None = None,
    retry_after: float | None = None,
) -> ApiError:
    """Build the ``ApiError`` subclass matching ``status``."""

    errors = parse_error_document(body)
    document = body if isinstance(body, dict) and "errors" in body else None
    kwargs: dict[str, Any] = {
        "status": status,
        "errors": errors,
        "document": document,
        "request_id": request_id,
        "raw_body": raw_body,
    }

    if status == 429:
        return RateLimitError("Rate limit exceeded", retry_after=retry_after, **kwargs)

    error_class, message = _STATUS_ERRORS.get(
        status, (ApiError, f"API request failed with status {status}")
    )
    return error_class(message, **kwargs)


def translate_fault(error: BaseException) -> dict[str, Any]:
    """Convert a package error into an MCP error payload."""

    payload: dict[str, Any] = {
        "code": "parasut:unknown",
        "message": str(error),
        "retryable": False,
        "domain": "parasut",
    }

    if isinstance(error, TransportError):
        payload["status"] = error.status
        payload["details"] = [detail.model_dump(exclude_none=True) for detail in error.errors]
        if isinstance(error, RequestTimeoutError):
            payload.update(code="parasut:timeout", retryable=True)
        elif isinstance(error, NetworkError):
            payload.update(code="parasut:network", retryable=True)
        elif isinstance(error, RateLimitError):
            payload.update(code="parasut:429", retryable=True, retry_after=error.retry_after)
        else:
            payload["code"] = f"parasut:{error.status}"
            payload["retryable"] = error.status in {408, 500, 502, 503, 504}
    elif isinstance(error, DecodeError):
        payload.update(code="parasut:decode", expected=error.expected, actual=error.actual)
    elif isinstance(error, JobFailureError):
        payload.update(code="parasut:job_failed", job_id=error.job_id, details=error.errors)
    elif isinstance(error, JobTimeoutError):
        payload.update(
            code="parasut:job_timeout",
            job_id=error.job_id,
            last_status=error.last_status,
            retryable=True,
        )
    elif isinstance(error, ConfigError):
        payload["code"] = "parasut:config"

    return payload
