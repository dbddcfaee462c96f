"""Sales offers (``/sales_offers``): quotes that can be turned into invoices."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from decimal import Decimal
from typing import Any, TypedDict

from ..jsonapi import Document, ListDocument
from .base import ArchiveMixin, BaseResource, PdfMixin, ResourceConfig
from .invoices import Currency


class SalesOfferAttributes(TypedDict, total=False):
    offer_no: str
    description: str
    issue_date: str
    valid_until_date: str
    currency: Currency
    exchange_rate: Decimal | float
    billing_address: str
    billing_phone: str
    billing_fax: str
    tax_office: str
    tax_number: str
    city: str
    district: str
    note: str
    archived: bool


class SalesOfferFilters(TypedDict, total=False):
    issue_date: str
    contact_id: int | str
    offer_no: str


class SalesOffersResource(
    ArchiveMixin,
    PdfMixin,
    BaseResource[SalesOfferAttributes, SalesOfferFilters],
):
    def __init__(self, config: ResourceConfig) -> None:
        super().__init__(replace(config, base_path="/sales_offers", resource_type="sales_offers"))

    async def convert_to_invoice(
        self, id_: str | int, attributes: Mapping[str, Any] | None = None
    ) -> Document:
        """Create a sales invoice from the offer.

        ``attributes`` may override ``issue_date``, ``due_date`` or
        ``description`` of the new invoice.
        """

        body = {"data": {"attributes": dict(attributes)}} if attributes else None
        return await self._action("POST", id_, "/convert_to_invoice", body)

    async def list_by_contact(self, contact_id: int | str) -> ListDocument:
        return await self.list(filter={"contact_id": contact_id})
