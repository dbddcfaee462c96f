"""Tests for the HTTP transport, its interceptor chain and error mapping."""

from __future__ import annotations

import json
from decimal import Decimal

import httpx
import pytest
import respx
from conftest import BASE_URL

from parasut_mcp.errors import (
    ApiError,
    DecodeError,
    NetworkError,
    NotFoundError,
    ParasutError,
    RateLimitError,
    RequestTimeoutError,
    ValidationError,
)
from parasut_mcp.transport import JSONAPI_MEDIA_TYPE, HttpTransport, RequestConfig

JSONAPI_HEADERS = {"content-type": JSONAPI_MEDIA_TYPE}


class TestRequests:
    @pytest.mark.asyncio
    @respx.mock
    async def test_get_sends_jsonapi_accept_and_query(self, transport: HttpTransport) -> None:
        route = respx.get(f"{BASE_URL}/1/contacts").mock(
            return_value=httpx.Response(
                200, json={"data": [], "meta": {}}, headers=JSONAPI_HEADERS
            )
        )

        body = await transport.get("/1/contacts", {"filter[name]": "Acme", "page[size]": 5})

        assert body == {"data": [], "meta": {}}
        request = route.calls.last.request
        assert request.headers["accept"] == JSONAPI_MEDIA_TYPE
        assert "content-type" not in request.headers
        assert request.url.params["filter[name]"] == "Acme"
        assert request.url.params["page[size]"] == "5"

    @pytest.mark.asyncio
    @respx.mock
    async def test_post_serializes_body_with_content_type(self, transport: HttpTransport) -> None:
        route = respx.post(f"{BASE_URL}/1/contacts").mock(
            return_value=httpx.Response(201, json={"data": {"id": "1", "type": "contacts"}})
        )

        await transport.post(
            "/1/contacts",
            {"data": {"type": "contacts", "attributes": {"balance": Decimal("10.50")}}},
        )

        request = route.calls.last.request
        assert request.headers["content-type"] == JSONAPI_MEDIA_TYPE
        assert b'"balance": "10.50"' in request.content

    @pytest.mark.asyncio
    @respx.mock
    async def test_monetary_values_parse_as_decimal(self, transport: HttpTransport) -> None:
        respx.get(f"{BASE_URL}/1/sales_invoices/9").mock(
            return_value=httpx.Response(
                200,
                content=b'{"data": {"id": "9", "type": "sales_invoices", '
                b'"attributes": {"net_total": 0.1}}}',
                headers=JSONAPI_HEADERS,
            )
        )

        body = await transport.get("/1/sales_invoices/9")

        assert body["data"]["attributes"]["net_total"] == Decimal("0.1")

    @pytest.mark.asyncio
    @respx.mock
    async def test_no_content_returns_none(self, transport: HttpTransport) -> None:
        respx.delete(f"{BASE_URL}/1/contacts/5").mock(return_value=httpx.Response(204))

        assert await transport.delete("/1/contacts/5") is None


class TestErrors:
    @pytest.mark.asyncio
    @respx.mock
    async def test_not_found_carries_error_document(self, transport: HttpTransport) -> None:
        document = {"errors": [{"status": "404", "title": "Not Found", "detail": "No contact"}]}
        respx.get(f"{BASE_URL}/1/contacts/404").mock(
            return_value=httpx.Response(
                404, json=document, headers={**JSONAPI_HEADERS, "x-request-id": "req-1"}
            )
        )

        with pytest.raises(NotFoundError) as excinfo:
            await transport.get("/1/contacts/404")

        error = excinfo.value
        assert error.status == 404
        assert error.document == document
        assert error.request_id == "req-1"
        assert error.errors[0].detail == "No contact"
        assert error.error_details == "Not Found: No contact"

    @pytest.mark.asyncio
    @respx.mock
    async def test_validation_error_lists_every_problem(self, transport: HttpTransport) -> None:
        respx.post(f"{BASE_URL}/1/contacts").mock(
            return_value=httpx.Response(
                422,
                json={
                    "errors": [
                        {
                            "title": "Invalid",
                            "detail": "name is blank",
                            "source": {"pointer": "/data/attributes/name"},
                        },
                        {"title": "Invalid", "detail": "account_type is blank"},
                    ]
                },
            )
        )

        with pytest.raises(ValidationError) as excinfo:
            await transport.post("/1/contacts", {"data": {"type": "contacts"}})

        assert [error.detail for error in excinfo.value.errors] == [
            "name is blank",
            "account_type is blank",
        ]
        assert excinfo.value.errors[0].source == {"pointer": "/data/attributes/name"}

    @pytest.mark.asyncio
    @respx.mock
    async def test_rate_limit_reads_retry_after(self, transport: HttpTransport) -> None:
        respx.get(f"{BASE_URL}/1/contacts").mock(
            return_value=httpx.Response(429, headers={"retry-after": "7"})
        )

        with pytest.raises(RateLimitError) as excinfo:
            await transport.get("/1/contacts")

        assert excinfo.value.retry_after == 7.0

    @pytest.mark.asyncio
    @respx.mock
    async def test_unmapped_status_is_plain_api_error(self, transport: HttpTransport) -> None:
        respx.get(f"{BASE_URL}/1/contacts").mock(
            return_value=httpx.Response(503, text="upstream down")
        )

        with pytest.raises(ApiError) as excinfo:
            await transport.get("/1/contacts")

        assert type(excinfo.value) is ApiError
        assert excinfo.value.status == 503
        assert excinfo.value.raw_body == "upstream down"

    @pytest.mark.asyncio
    @respx.mock
    async def test_invalid_json_on_success_is_decode_error(self, transport: HttpTransport) -> None:
        respx.get(f"{BASE_URL}/1/contacts").mock(
            return_value=httpx.Response(200, content=b"{not json", headers=JSONAPI_HEADERS)
        )

        with pytest.raises(DecodeError):
            await transport.get("/1/contacts")

    @pytest.mark.asyncio
    @respx.mock
    async def test_connection_failure_is_network_error(self, transport: HttpTransport) -> None:
        respx.get(f"{BASE_URL}/1/contacts").mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(NetworkError) as excinfo:
            await transport.get("/1/contacts")

        assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
        assert excinfo.value.status is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_timeout_is_request_timeout_error(self, transport: HttpTransport) -> None:
        respx.get(f"{BASE_URL}/1/contacts").mock(side_effect=httpx.ReadTimeout("slow"))

        with pytest.raises(RequestTimeoutError):
            await transport.get("/1/contacts", timeout=0.5)

    @pytest.mark.asyncio
    async def test_unserializable_body_is_decode_error(self, transport: HttpTransport) -> None:
        with pytest.raises(DecodeError):
            await transport.post("/1/contacts", {"data": object()})


class TestInterceptors:
    @pytest.mark.asyncio
    @respx.mock
    async def test_request_interceptors_run_in_registration_order(
        self, transport: HttpTransport
    ) -> None:
        """Given two request interceptors, when a request is sent, then the
        second sees the first one's changes."""
        route = respx.get(f"{BASE_URL}/1/contacts").mock(
            return_value=httpx.Response(200, json={"data": []})
        )
        seen: list[str] = []

        def first(config: RequestConfig) -> RequestConfig:
            seen.append("first")
            config.headers["X-Trace"] = "a"
            return config

        async def second(config: RequestConfig) -> RequestConfig:
            seen.append("second")
            config.headers["X-Trace"] += "b"
            return config

        transport.add_request_interceptor(first)
        transport.add_request_interceptor(second)
        await transport.get("/1/contacts")

        assert seen == ["first", "second"]
        assert route.calls.last.request.headers["x-trace"] == "ab"

    @pytest.mark.asyncio
    @respx.mock
    async def test_interceptors_receive_a_copy_of_the_config(
        self, transport: HttpTransport
    ) -> None:
        respx.get(f"{BASE_URL}/1/contacts").mock(return_value=httpx.Response(200, json={}))
        original = RequestConfig(method="GET", path="/1/contacts", headers={"X-Base": "1"})

        def mutate(config: RequestConfig) -> RequestConfig:
            config.headers["X-Extra"] = "2"
            return config

        transport.add_request_interceptor(mutate)
        await transport.request(original)

        assert original.headers == {"X-Base": "1"}

    @pytest.mark.asyncio
    @respx.mock
    async def test_interceptors_cannot_mutate_the_callers_body(
        self, transport: HttpTransport
    ) -> None:
        """Given an interceptor that edits the outgoing body in place, when a
        payload is posted, then the server sees the edit and the caller's
        payload is unchanged."""
        route = respx.post(f"{BASE_URL}/1/contacts").mock(
            return_value=httpx.Response(201, json={})
        )
        body = {"data": {"type": "contacts", "attributes": {"name": "Acme"}}}

        def inject(config: RequestConfig) -> RequestConfig:
            config.body["data"]["attributes"]["injected"] = True
            config.headers["X-Extra"] = "2"
            return config

        transport.add_request_interceptor(inject)
        await transport.post("/1/contacts", body)

        assert body == {"data": {"type": "contacts", "attributes": {"name": "Acme"}}}
        sent = json.loads(route.calls.last.request.content)
        assert sent["data"]["attributes"] == {"name": "Acme", "injected": True}

    @pytest.mark.asyncio
    @respx.mock
    async def test_response_interceptor_transforms_body(self, transport: HttpTransport) -> None:
        respx.get(f"{BASE_URL}/me").mock(return_value=httpx.Response(200, json={"data": 1}))

        transport.add_response_interceptor(lambda response, body: {"wrapped": body})

        assert await transport.get("/me") == {"wrapped": {"data": 1}}

    @pytest.mark.asyncio
    @respx.mock
    async def test_error_interceptor_can_replace_the_error(self, transport: HttpTransport) -> None:
        respx.get(f"{BASE_URL}/1/contacts").mock(return_value=httpx.Response(500))
        seen: list[ParasutError] = []

        class Replaced(ParasutError):
            pass

        def observe(error: ParasutError) -> ParasutError:
            seen.append(error)
            return error

        async def replace(error: ParasutError) -> ParasutError:
            return Replaced("replaced", cause=error)

        transport.add_error_interceptor(observe)
        transport.add_error_interceptor(replace)

        with pytest.raises(Replaced) as excinfo:
            await transport.get("/1/contacts")

        assert isinstance(seen[0], ApiError)
        assert excinfo.value.cause is seen[0]
