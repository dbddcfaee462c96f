"""Entry point wiring transport, authentication, rate limiting and resources."""

from __future__ import annotations

import asyncio
import time
from typing import Any, TypeVar

import httpx
from loguru import logger

from .auth import AuthenticationManager, Credentials
from .errors import AuthError, ParasutError
from .ratelimit import RateLimiter
from .resources import (
    AccountsResource,
    BankFeesResource,
    ContactsResource,
    EArchivesResource,
    EInvoiceInboxesResource,
    EInvoicesResource,
    ESmmsResource,
    EmployeesResource,
    InventoryLevelsResource,
    ItemCategoriesResource,
    ProductsResource,
    PurchaseBillsResource,
    ResourceConfig,
    SalariesResource,
    SalesInvoicesResource,
    SalesOffersResource,
    ShipmentDocumentsResource,
    StockMovementsResource,
    TagsResource,
    TaxesResource,
    TrackableJobsResource,
    TransactionsResource,
)
from .resources.base import Clock, Sleep
from .transport import HttpTransport, RequestConfig, TransportConfig

R = TypeVar("R")


class ParasutClient:
    """Typed access to one Paraşüt company.

    Every request passes, in order, through the rate limiter and the bearer
    token interceptor. A 401 clears the cached token so the next call
    re-authenticates; the failing call itself is not retried.
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        http_client: httpx.AsyncClient | None = None,
        auth_manager: AuthenticationManager | None = None,
        rate_limiter: RateLimiter | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._credentials = credentials
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient()
        self._auth = auth_manager or AuthenticationManager(self._http_client, credentials)
        self._rate_limiter = rate_limiter or RateLimiter()
        self._clock = clock
        self._sleep = sleep
        self._resources: dict[str, Any] = {}

        self._transport = HttpTransport(
            TransportConfig(base_url=credentials.base_url, timeout=credentials.timeout),
            client=self._http_client,
        )
        self._transport.add_request_interceptor(self._rate_limiter.as_interceptor())
        self._transport.add_request_interceptor(self._authorize)
        self._transport.add_error_interceptor(self._on_error)

    @property
    def company_id(self) -> int:
        return self._credentials.company_id

    @property
    def transport(self) -> HttpTransport:
        return self._transport

    @property
    def auth(self) -> AuthenticationManager:
        return self._auth

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    async def _authorize(self, config: RequestConfig) -> RequestConfig:
        token = await self._auth.ensure_token()
        config.headers["Authorization"] = f"Bearer {token}"
        return config

    def _on_error(self, error: ParasutError) -> ParasutError:
        if isinstance(error, AuthError):
            logger.warning("Paraşüt rejected the bearer token; clearing cached token")
            self._auth.clear_token()
        return error

    def _config(self) -> ResourceConfig:
        return ResourceConfig(
            transport=self._transport,
            company_id=self.company_id,
            clock=self._clock,
            sleep=self._sleep,
        )

    def _resource(self, name: str, factory: type[R], *args: Any) -> R:
        if name not in self._resources:
            self._resources[name] = factory(self._config(), *args)
        return self._resources[name]

    @property
    def trackable_jobs(self) -> TrackableJobsResource:
        if "trackable_jobs" not in self._resources:
            self._resources["trackable_jobs"] = TrackableJobsResource(
                self._transport, self.company_id, clock=self._clock, sleep=self._sleep
            )
        return self._resources["trackable_jobs"]

    @property
    def accounts(self) -> AccountsResource:
        return self._resource("accounts", AccountsResource)

    @property
    def contacts(self) -> ContactsResource:
        return self._resource("contacts", ContactsResource)

    @property
    def products(self) -> ProductsResource:
        return self._resource("products", ProductsResource)

    @property
    def sales_invoices(self) -> SalesInvoicesResource:
        return self._resource("sales_invoices", SalesInvoicesResource)

    @property
    def purchase_bills(self) -> PurchaseBillsResource:
        return self._resource("purchase_bills", PurchaseBillsResource)

    @property
    def e_archives(self) -> EArchivesResource:
        return self._resource("e_archives", EArchivesResource, self.trackable_jobs)

    @property
    def e_invoices(self) -> EInvoicesResource:
        return self._resource("e_invoices", EInvoicesResource, self.trackable_jobs)

    @property
    def e_invoice_inboxes(self) -> EInvoiceInboxesResource:
        return self._resource("e_invoice_inboxes", EInvoiceInboxesResource)

    @property
    def tags(self) -> TagsResource:
        return self._resource("tags", TagsResource)

    @property
    def item_categories(self) -> ItemCategoriesResource:
        return self._resource("item_categories", ItemCategoriesResource)

    @property
    def sales_offers(self) -> SalesOffersResource:
        return self._resource("sales_offers", SalesOffersResource)

    @property
    def transactions(self) -> TransactionsResource:
        return self._resource("transactions", TransactionsResource)

    @property
    def employees(self) -> EmployeesResource:
        return self._resource("employees", EmployeesResource)

    @property
    def salaries(self) -> SalariesResource:
        return self._resource("salaries", SalariesResource)

    @property
    def taxes(self) -> TaxesResource:
        return self._resource("taxes", TaxesResource)

    @property
    def bank_fees(self) -> BankFeesResource:
        return self._resource("bank_fees", BankFeesResource)

    @property
    def e_smms(self) -> ESmmsResource:
        return self._resource("e_smms", ESmmsResource, self.trackable_jobs)

    @property
    def inventory_levels(self) -> InventoryLevelsResource:
        return self._resource("inventory_levels", InventoryLevelsResource)

    @property
    def stock_movements(self) -> StockMovementsResource:
        return self._resource("stock_movements", StockMovementsResource)

    @property
    def shipment_documents(self) -> ShipmentDocumentsResource:
        return self._resource("shipment_documents", ShipmentDocumentsResource)

    async def me(self) -> Any:
        """Return the authenticated user document (``/me``, outside the company scope)."""

        return await self._transport.get("/me")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()

    async def __aenter__(self) -> ParasutClient:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.aclose()
