"""Customers and suppliers (``/contacts``)."""

from __future__ import annotations

from dataclasses import replace
from typing import Literal, TypedDict

from ..jsonapi import ListDocument, Resource
from .base import ArchiveMixin, BaseResource, ResourceConfig

AccountType = Literal["customer", "supplier"]


class ContactAttributes(TypedDict, total=False):
    name: str
    email: str
    account_type: AccountType
    contact_type: Literal["person", "company"]
    short_name: str
    tax_office: str
    tax_number: str
    district: str
    city: str
    address: str
    phone: str
    fax: str
    iban: str
    is_abroad: bool
    archived: bool


class ContactFilters(TypedDict, total=False):
    name: str
    email: str
    tax_number: str
    tax_office: str
    city: str
    account_type: AccountType


class ContactsResource(ArchiveMixin, BaseResource[ContactAttributes, ContactFilters]):
    def __init__(self, config: ResourceConfig) -> None:
        super().__init__(replace(config, base_path="/contacts", resource_type="contacts"))

    async def search_by_name(self, name: str) -> ListDocument:
        """Partial, server-side name match (first page only)."""

        return await self.list(filter={"name": name})

    async def find_by_tax_number(self, tax_number: str) -> Resource | None:
        return await self.first(filter={"tax_number": tax_number})

    async def list_customers(self) -> ListDocument:
        return await self.list(filter={"account_type": "customer"})

    async def list_suppliers(self) -> ListDocument:
        return await self.list(filter={"account_type": "supplier"})
