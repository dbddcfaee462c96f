"""Cash and bank accounts (``/accounts``) and their ledger (``/transactions``)."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from decimal import Decimal
from typing import Any, Literal, TypedDict

from ..jsonapi import Document, ListDocument, RelationshipInput, build_resource
from .base import ArchiveMixin, BaseResource, ResourceConfig


class AccountAttributes(TypedDict, total=False):
    name: str
    currency: Literal["TRL", "USD", "EUR", "GBP"]
    account_type: Literal["cash", "bank", "sys"]
    bank_name: str
    bank_branch: str
    bank_account_no: str
    iban: str
    archived: bool


class AccountFilters(TypedDict, total=False):
    name: str
    currency: str
    account_type: Literal["cash", "bank", "sys"]


class TransactionAttributes(TypedDict, total=False):
    date: str
    amount: Decimal | float
    description: str


class AccountsResource(ArchiveMixin, BaseResource[AccountAttributes, AccountFilters]):
    def __init__(self, config: ResourceConfig) -> None:
        super().__init__(replace(config, base_path="/accounts", resource_type="accounts"))

    async def debit(
        self,
        id_: str | int,
        attributes: Mapping[str, Any],
        relationships: Mapping[str, RelationshipInput] | None = None,
    ) -> Document:
        """Withdraw from the account."""

        body = build_resource("transactions", attributes, relationships)
        return await self._action("POST", id_, "/debit_transactions", body)

    async def credit(
        self,
        id_: str | int,
        attributes: Mapping[str, Any],
        relationships: Mapping[str, RelationshipInput] | None = None,
    ) -> Document:
        """Deposit into the account."""

        body = build_resource("transactions", attributes, relationships)
        return await self._action("POST", id_, "/credit_transactions", body)

    async def list_cash_accounts(self) -> ListDocument:
        return await self.list(filter={"account_type": "cash"})

    async def list_bank_accounts(self) -> ListDocument:
        return await self.list(filter={"account_type": "bank"})


class TransactionFilters(TypedDict, total=False):
    account_id: int | str
    date: str


class TransactionsResource(BaseResource[TransactionAttributes, TransactionFilters]):
    """Read-only ledger entries; new ones are posted through ``AccountsResource``."""

    def __init__(self, config: ResourceConfig) -> None:
        super().__init__(
            replace(config, base_path="/transactions", resource_type="transactions")
        )
