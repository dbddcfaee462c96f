"""HTTP transport with ordered request, response and error interceptors."""

from __future__ import annotations

import copy
import inspect
import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Any, Literal, TypeVar

import httpx
from loguru import logger

from .errors import (
    DecodeError,
    NetworkError,
    ParasutError,
    RequestTimeoutError,
    create_api_error,
)
from .query import build_url

JSONAPI_MEDIA_TYPE = "application/vnd.api+json"
DEFAULT_BASE_URL = "https://api.parasut.com/v4"
DEFAULT_TIMEOUT = 30.0

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]

T = TypeVar("T")


@dataclass(slots=True)
class RequestConfig:
    """Describe one outbound request; interceptors may return a modified copy."""

    method: HttpMethod
    path: str
    query: dict[str, Any] | None = None
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float | None = None


@dataclass(slots=True)
class TransportConfig:
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    headers: dict[str, str] = field(default_factory=dict)


RequestInterceptor = Callable[[RequestConfig], RequestConfig | Awaitable[RequestConfig]]
ResponseInterceptor = Callable[[httpx.Response, Any], Any]
ErrorInterceptor = Callable[[ParasutError], ParasutError | Awaitable[ParasutError]]


async def _resolve(value: T | Awaitable[T]) -> T:
    if inspect.isawaitable(value):
        return await value
    return value


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _is_json(content_type: str) -> bool:
    return "application/json" in content_type or JSONAPI_MEDIA_TYPE in content_type


def _retry_after(response: httpx.Response) -> float | None:
    header = response.headers.get("retry-after")
    if header is None:
        return None
    try:
        return float(header)
    except ValueError:
        return None


class HttpTransport:
    """Single chokepoint for every call to the Paraşüt API.

    Interceptors run strictly in registration order. The transport never
    retries and keeps no response cache; retry or token-refresh policies
    belong to interceptors registered by the caller.
    """

    def __init__(self, config: TransportConfig, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._client = client or httpx.AsyncClient()
        self._owns_client = client is None
        self._request_interceptors: list[RequestInterceptor] = []
        self._response_interceptors: list[ResponseInterceptor] = []
        self._error_interceptors: list[ErrorInterceptor] = []

    @property
    def config(self) -> TransportConfig:
        return self._config

    def add_request_interceptor(self, interceptor: RequestInterceptor) -> None:
        self._request_interceptors.append(interceptor)

    def add_response_interceptor(self, interceptor: ResponseInterceptor) -> None:
        self._response_interceptors.append(interceptor)

    def add_error_interceptor(self, interceptor: ErrorInterceptor) -> None:
        self._error_interceptors.append(interceptor)

    async def request(self, config: RequestConfig) -> Any:
        """Run ``config`` through the interceptor chain and return the parsed body."""

        processed = replace(
            config,
            query=dict(config.query) if config.query is not None else None,
            body=copy.deepcopy(config.body),
            headers=dict(config.headers),
        )
        for request_interceptor in self._request_interceptors:
            processed = await _resolve(request_interceptor(processed))

        try:
            return await self._execute(processed)
        except ParasutError as error:
            final = error
            for error_interceptor in self._error_interceptors:
                final = await _resolve(error_interceptor(final))
            raise final

    async def _execute(self, config: RequestConfig) -> Any:
        timeout = config.timeout if config.timeout is not None else self._config.timeout
        url = build_url(self._config.base_url, config.path, config.query)
        headers = {"Accept": JSONAPI_MEDIA_TYPE, **self._config.headers, **config.headers}

        content: str | None = None
        if config.body is not None:
            try:
                content = json.dumps(config.body, default=_json_default)
            except (TypeError, ValueError) as exc:
                raise DecodeError(
                    "Request body could not be serialized as JSON",
                    expected="JSON-serializable body",
                    actual=type(config.body).__name__,
                    cause=exc,
                ) from exc
            if not any(key.lower() == "content-type" for key in headers):
                headers["Content-Type"] = JSONAPI_MEDIA_TYPE

        logger.debug(f"{config.method} {url}")
        try:
            response = await self._client.request(
                config.method, url, content=content, headers=headers, timeout=timeout
            )
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(timeout, cause=exc) from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"Network request failed: {exc}", cause=exc) from exc

        logger.debug(f"{config.method} {url} -> {response.status_code}")
        return await self._handle_response(response)

    async def _handle_response(self, response: httpx.Response) -> Any:
        body: Any = None
        raw_body: str | None = None

        if response.status_code != httpx.codes.NO_CONTENT:
            raw_body = response.text
            content_type = response.headers.get("content-type", "")
            if _is_json(content_type) and raw_body.strip():
                try:
                    body = json.loads(raw_body, parse_float=Decimal)
                except ValueError as exc:
                    if response.is_success:
                        raise DecodeError(
                            "Response body is not valid JSON",
                            expected="JSON document",
                            actual=raw_body[:200],
                            cause=exc,
                        ) from exc
                    body = raw_body
            elif raw_body:
                body = raw_body

        if not response.is_success:
            raise create_api_error(
                response.status_code,
                body,
                request_id=response.headers.get("x-request-id"),
                raw_body=raw_body,
                retry_after=_retry_after(response),
            )

        for interceptor in self._response_interceptors:
            body = await _resolve(interceptor(response, body))
        return body

    async def get(
        self, path: str, query: dict[str, Any] | None = None, **options: Any
    ) -> Any:
        return await self.request(RequestConfig(method="GET", path=path, query=query, **options))

    async def post(self, path: str, body: Any = None, **options: Any) -> Any:
        return await self.request(RequestConfig(method="POST", path=path, body=body, **options))

    async def put(self, path: str, body: Any = None, **options: Any) -> Any:
        return await self.request(RequestConfig(method="PUT", path=path, body=body, **options))

    async def patch(self, path: str, body: Any = None, **options: Any) -> Any:
        return await self.request(RequestConfig(method="PATCH", path=path, body=body, **options))

    async def delete(self, path: str, **options: Any) -> Any:
        return await self.request(RequestConfig(method="DELETE", path=path, **options))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.aclose()
