"""Tests for the client facade wiring."""

from __future__ import annotations

import httpx
import pytest
import respx
from conftest import BASE_URL, COMPANY_ID, FakeClock, list_json

from parasut_mcp.auth import Credentials
from parasut_mcp.client import ParasutClient
from parasut_mcp.errors import AuthError
from parasut_mcp.ratelimit import RateLimiter


def _token(access: str) -> httpx.Response:
    return httpx.Response(
        200, json={"access_token": access, "refresh_token": "r", "expires_in": 7200}
    )


@pytest.mark.asyncio
@respx.mock
async def test_requests_carry_bearer_token(credentials: Credentials) -> None:
    token = respx.post(credentials.token_url).mock(return_value=_token("access-1"))
    contacts = respx.get(f"{BASE_URL}/{COMPANY_ID}/contacts").mock(
        return_value=httpx.Response(200, json=list_json([]))
    )

    async with ParasutClient(credentials) as client:
        await client.contacts.list()
        await client.contacts.list()

    assert token.call_count == 1
    assert contacts.calls.last.request.headers["authorization"] == "Bearer access-1"


@pytest.mark.asyncio
@respx.mock
async def test_unauthorized_response_clears_cached_token(credentials: Credentials) -> None:
    """Given a token the API rejects, when a call fails with 401, then the
    error propagates and the next call re-authenticates."""
    respx.post(credentials.token_url).mock(side_effect=[_token("stale"), _token("fresh")])
    contacts = respx.get(f"{BASE_URL}/{COMPANY_ID}/contacts").mock(
        side_effect=[httpx.Response(401), httpx.Response(200, json=list_json([]))]
    )

    async with ParasutClient(credentials) as client:
        with pytest.raises(AuthError):
            await client.contacts.list()
        assert client.auth.token is None

        await client.contacts.list()

    assert contacts.calls.last.request.headers["authorization"] == "Bearer fresh"


@pytest.mark.asyncio
@respx.mock
async def test_rate_limiter_runs_before_each_request(
    credentials: Credentials, fake_clock: FakeClock
) -> None:
    respx.post(credentials.token_url).mock(return_value=_token("access-1"))
    respx.get(f"{BASE_URL}/{COMPANY_ID}/tags").mock(
        return_value=httpx.Response(200, json=list_json([]))
    )
    limiter = RateLimiter(2, 10.0, clock=fake_clock, sleep=fake_clock.sleep)

    async with ParasutClient(credentials, rate_limiter=limiter) as client:
        for _ in range(3):
            await client.tags.list()

    assert fake_clock.sleeps == [5.0]


def test_resource_accessors_are_lazy_singletons(credentials: Credentials) -> None:
    client = ParasutClient(credentials, http_client=httpx.AsyncClient())

    assert client.contacts is client.contacts
    assert client.sales_invoices.resource_type == "sales_invoices"
    assert client.e_invoice_inboxes.resource_type == "e_invoice_inboxes"
    assert client.item_categories.resource_type == "item_categories"
    assert client.e_archives._trackable_jobs is client.trackable_jobs
    assert client.e_invoices._trackable_jobs is client.trackable_jobs
    assert client.e_smms._trackable_jobs is client.trackable_jobs
    assert client.sales_offers is client.sales_offers
    assert client.bank_fees.resource_type == "bank_fees"
    assert client.shipment_documents.resource_type == "shipment_documents"
    assert client.company_id == COMPANY_ID
