"""Products and services (``/products``)."""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Literal, TypedDict

from ..jsonapi import Resource
from .base import ArchiveMixin, BaseResource, ResourceConfig


class ProductAttributes(TypedDict, total=False):
    code: str
    name: str
    vat_rate: Decimal | float
    unit: str
    currency: Literal["TRL", "USD", "EUR", "GBP"]
    list_price: Decimal | float
    buying_price: Decimal | float
    barcode: str
    inventory_tracking: bool
    archived: bool


class ProductFilters(TypedDict, total=False):
    name: str
    code: str
    barcode: str


class ProductsResource(ArchiveMixin, BaseResource[ProductAttributes, ProductFilters]):
    def __init__(self, config: ResourceConfig) -> None:
        super().__init__(replace(config, base_path="/products", resource_type="products"))

    async def find_by_code(self, code: str) -> Resource | None:
        return await self.first(filter={"code": code})

    async def find_by_barcode(self, barcode: str) -> Resource | None:
        return await self.first(filter={"barcode": barcode})
