"""Sales invoices and purchase bills.

Both support archiving, cancellation and payments. Payments are posted as a
``payments`` resource to ``{id}/payments``.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Literal, TypedDict

from ..jsonapi import ListDocument
from .base import (
    ArchiveMixin,
    BaseResource,
    CancelMixin,
    PaymentMixin,
    ResourceConfig,
)

Currency = Literal["TRL", "USD", "EUR", "GBP"]
PaymentStatus = Literal["paid", "overdue", "unpaid", "partially_paid"]
InvoiceItemType = Literal[
    "invoice", "export", "estimate", "cancelled", "recurring_invoice", "recurring_estimate", "refund"
]


class PaymentAttributes(TypedDict, total=False):
    date: str
    amount: Decimal | float
    notes: str
    exchange_rate: Decimal | float
    payment_method_id: int


class SalesInvoiceAttributes(TypedDict, total=False):
    item_type: InvoiceItemType
    description: str
    issue_date: str
    due_date: str
    invoice_series: str
    invoice_id: int
    currency: Currency
    exchange_rate: Decimal | float
    withholding_rate: Decimal | float
    vat_withholding_rate: Decimal | float
    invoice_discount_type: Literal["percentage", "amount"]
    invoice_discount: Decimal | float
    billing_address: str
    billing_phone: str
    tax_office: str
    tax_number: str
    city: str
    district: str
    is_abroad: bool
    order_no: str
    order_date: str
    archived: bool


class SalesInvoiceFilters(TypedDict, total=False):
    issue_date: str
    due_date: str
    contact_id: int | str
    invoice_id: int
    invoice_series: str
    item_type: InvoiceItemType
    payment_status: PaymentStatus


class PurchaseBillAttributes(TypedDict, total=False):
    item_type: Literal["purchase_bill", "cancelled", "recurring_purchase_bill", "refund"]
    description: str
    issue_date: str
    due_date: str
    invoice_no: str
    currency: Currency
    exchange_rate: Decimal | float
    net_total: Decimal | float
    total_vat: Decimal | float
    archived: bool


class PurchaseBillFilters(TypedDict, total=False):
    issue_date: str
    due_date: str
    contact_id: int | str
    item_type: str
    payment_status: PaymentStatus


class SalesInvoicesResource(
    ArchiveMixin,
    CancelMixin,
    PaymentMixin,
    BaseResource[SalesInvoiceAttributes, SalesInvoiceFilters],
):
    def __init__(self, config: ResourceConfig) -> None:
        super().__init__(
            replace(config, base_path="/sales_invoices", resource_type="sales_invoices")
        )

    async def list_overdue(self) -> ListDocument:
        return await self.list(filter={"payment_status": "overdue"})

    async def list_unpaid(self) -> ListDocument:
        return await self.list(filter={"payment_status": "unpaid"})

    async def list_by_contact(self, contact_id: int | str) -> ListDocument:
        return await self.list(filter={"contact_id": contact_id})


class PurchaseBillsResource(
    ArchiveMixin,
    CancelMixin,
    PaymentMixin,
    BaseResource[PurchaseBillAttributes, PurchaseBillFilters],
):
    def __init__(self, config: ResourceConfig) -> None:
        super().__init__(
            replace(config, base_path="/purchase_bills", resource_type="purchase_bills")
        )

    async def list_overdue(self) -> ListDocument:
        return await self.list(filter={"payment_status": "overdue"})

    async def list_unpaid(self) -> ListDocument:
        return await self.list(filter={"payment_status": "unpaid"})

    async def list_by_supplier(self, contact_id: int | str) -> ListDocument:
        return await self.list(filter={"contact_id": contact_id})
