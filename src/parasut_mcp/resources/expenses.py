"""Employees and the expenses paid out of accounts: salaries, taxes and bank fees."""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import TypedDict

from ..jsonapi import ListDocument
from .base import ArchiveMixin, BaseResource, PaymentMixin, ResourceConfig
from .invoices import Currency


class EmployeeAttributes(TypedDict, total=False):
    name: str
    email: str
    tckn: str
    iban: str
    archived: bool


class EmployeeFilters(TypedDict, total=False):
    name: str
    email: str


class ExpenseAttributes(TypedDict, total=False):
    description: str
    issue_date: str
    due_date: str
    net_total: Decimal | float
    currency: Currency
    exchange_rate: Decimal | float


class ExpenseFilters(TypedDict, total=False):
    issue_date: str
    due_date: str


class SalaryFilters(ExpenseFilters, total=False):
    employee_id: int | str


class EmployeesResource(ArchiveMixin, BaseResource[EmployeeAttributes, EmployeeFilters]):
    def __init__(self, config: ResourceConfig) -> None:
        super().__init__(replace(config, base_path="/employees", resource_type="employees"))

    async def search_by_name(self, name: str) -> ListDocument:
        return await self.list(filter={"name": name})


class SalariesResource(
    ArchiveMixin, PaymentMixin, BaseResource[ExpenseAttributes, SalaryFilters]
):
    """Salary records; create them with an ``employee`` relationship."""

    def __init__(self, config: ResourceConfig) -> None:
        super().__init__(replace(config, base_path="/salaries", resource_type="salaries"))

    async def list_by_employee(self, employee_id: int | str) -> ListDocument:
        return await self.list(filter={"employee_id": employee_id})


class TaxesResource(ArchiveMixin, PaymentMixin, BaseResource[ExpenseAttributes, ExpenseFilters]):
    def __init__(self, config: ResourceConfig) -> None:
        super().__init__(replace(config, base_path="/taxes", resource_type="taxes"))


class BankFeesResource(
    ArchiveMixin, PaymentMixin, BaseResource[ExpenseAttributes, ExpenseFilters]
):
    def __init__(self, config: ResourceConfig) -> None:
        super().__init__(replace(config, base_path="/bank_fees", resource_type="bank_fees"))
