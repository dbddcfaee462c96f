"""MCP server exposing Paraşüt accounting records, payments, stock and e-documents as tools."""

from __future__ import annotations

import asyncio
import datetime
import inspect
from collections.abc import Awaitable, Callable, Coroutine
from decimal import Decimal
from importlib import metadata
from typing import Any, Literal, cast

import httpx
from loguru import logger

from .auth import Credentials
from .client import ParasutClient
from .errors import ParasutError, translate_fault
from .jsonapi import ListDocument, Resource, ResourceIdentifier, get_related, rel
from .query import MAX_PAGE_SIZE

ResourceHandler = Callable[[], Awaitable[dict[str, Any]]]
ResourceDecorator = Callable[[ResourceHandler], ResourceHandler]

IRREVERSIBLE_ACK = "YES"
COMPANY_RESOURCE_URI = "parasut://company"

FastMCP: type[Any] | None = None

__all__ = [
    "run_server",
    "run",
    "register_tools",
    "__version__",
    "FastMCP",
    "Credentials",
    "ParasutClient",
    "httpx",
]


def _resolve_version() -> str:
    """Return the installed distribution version or fall back to the project default."""

    try:
        return metadata.version("parasut-mcp")
    except metadata.PackageNotFoundError:
        return "0.1.0"


__version__ = _resolve_version()


def _import_fastmcp() -> type[Any]:
    """Import FastMCP lazily so tests can stub the implementation."""

    global FastMCP
    if FastMCP is not None:
        return FastMCP

    try:
        import fastmcp
        from fastmcp import FastMCP as FastMCPClass

        # stdio transport must not receive the banner
        fastmcp.settings.show_cli_banner = False
    except ModuleNotFoundError as exc:  # pragma: no cover - exercised in tests
        raise ImportError(
            "FastMCP is required to run the Paraşüt MCP server. Install `fastmcp` to proceed."
        ) from exc

    FastMCP = cast(type[Any], FastMCPClass)
    return FastMCP


def _fault(tool: str, error: ParasutError) -> dict[str, Any]:
    logger.warning(f"{tool} failed: {error.message}")
    return {"error": translate_fault(error)}


def _dump(resource: Resource | ResourceIdentifier | None) -> dict[str, Any] | None:
    if resource is None:
        return None
    return resource.model_dump(mode="json")


def _page(document: ListDocument) -> dict[str, Any]:
    return {
        "items": [_dump(item) for item in document.data],
        "meta": document.meta.model_dump(mode="json"),
    }


def _page_params(page: int, page_size: int) -> dict[str, int]:
    return {"number": max(page, 1), "size": max(1, min(page_size, MAX_PAGE_SIZE))}


def _compact(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def register_tools(server: Any, client: ParasutClient) -> None:
    """Attach the Paraşüt resource and tools to ``server``."""

    resource_decorator = cast(ResourceDecorator, server.resource(COMPANY_RESOURCE_URI))

    @resource_decorator
    async def company_resource() -> dict[str, Any]:
        try:
            me = await client.me()
        except ParasutError as error:
            return {
                "resource": COMPANY_RESOURCE_URI,
                "company_id": client.company_id,
                "error": translate_fault(error),
            }
        return {"resource": COMPANY_RESOURCE_URI, "company_id": client.company_id, "me": me}

    @server.tool()  # type: ignore[misc]
    async def search_contacts(
        name: str | None = None,
        tax_number: str | None = None,
        account_type: Literal["customer", "supplier"] | None = None,
        page: int = 1,
        page_size: int = 25,
    ) -> dict[str, Any]:
        """Search customers and suppliers.

        Args:
            name: Partial name match
            tax_number: Exact tax number (VKN/TCKN)
            account_type: "customer" or "supplier"
            page: 1-based page number
            page_size: Items per page (max 25)

        Returns:
            ``items`` (contact resources) and ``meta`` (total_count, current_page, total_pages)
        """
        try:
            document = await client.contacts.list(
                filter=_compact(
                    {"name": name, "tax_number": tax_number, "account_type": account_type}
                ),
                page=_page_params(page, page_size),
            )
        except ParasutError as error:
            return _fault("search_contacts", error)
        return _page(document)

    @server.tool()  # type: ignore[misc]
    async def get_contact(contact_id: str) -> dict[str, Any]:
        """Fetch one contact by id."""
        try:
            document = await client.contacts.get(contact_id)
        except ParasutError as error:
            return _fault("get_contact", error)
        return {"contact": _dump(document.data)}

    @server.tool()  # type: ignore[misc]
    async def create_contact(
        name: str,
        account_type: Literal["customer", "supplier"] = "customer",
        email: str | None = None,
        tax_number: str | None = None,
        tax_office: str | None = None,
        city: str | None = None,
        confirm: bool = False,
    ) -> dict[str, Any]:
        """Create a customer or supplier.

        Without ``confirm=True`` nothing is sent; the attributes that would be
        created are returned for review.
        """
        attributes = _compact(
            {
                "name": name,
                "account_type": account_type,
                "email": email,
                "tax_number": tax_number,
                "tax_office": tax_office,
                "city": city,
            }
        )
        if not confirm:
            return {
                "status": "confirmation_required",
                "preview": attributes,
                "message": "Call again with confirm=true to create this contact.",
            }
        try:
            document = await client.contacts.create({"attributes": attributes})
        except ParasutError as error:
            return _fault("create_contact", error)
        logger.info(f"Created contact {document.data.id}")
        return {"status": "created", "contact": _dump(document.data)}

    @server.tool()  # type: ignore[misc]
    async def search_invoices(
        contact_id: str | None = None,
        payment_status: Literal["paid", "overdue", "unpaid", "partially_paid"] | None = None,
        issue_date: str | None = None,
        due_date: str | None = None,
        invoice_series: str | None = None,
        sort: str = "-issue_date",
        page: int = 1,
        page_size: int = 25,
    ) -> dict[str, Any]:
        """Search sales invoices.

        Args:
            contact_id: Only invoices of this contact
            payment_status: paid, overdue, unpaid or partially_paid
            issue_date: YYYY-MM-DD
            due_date: YYYY-MM-DD
            invoice_series: Invoice series prefix
            sort: Sort field, prefix with "-" for descending
            page: 1-based page number
            page_size: Items per page (max 25)
        """
        try:
            document = await client.sales_invoices.list(
                filter=_compact(
                    {
                        "contact_id": contact_id,
                        "payment_status": payment_status,
                        "issue_date": issue_date,
                        "due_date": due_date,
                        "invoice_series": invoice_series,
                    }
                ),
                page=_page_params(page, page_size),
                sort=sort,
            )
        except ParasutError as error:
            return _fault("search_invoices", error)
        return _page(document)

    @server.tool()  # type: ignore[misc]
    async def get_invoice(invoice_id: str) -> dict[str, Any]:
        """Fetch a sales invoice together with its contact and issued e-document."""
        try:
            document = await client.sales_invoices.get(
                invoice_id, include=["contact", "active_e_document"]
            )
        except ParasutError as error:
            return _fault("get_invoice", error)
        return {
            "invoice": _dump(document.data),
            "contact": _dump(get_related(document, "contact")),
            "e_document": _dump(get_related(document, "active_e_document")),
        }

    @server.tool()  # type: ignore[misc]
    async def count_invoices(
        payment_status: Literal["paid", "overdue", "unpaid", "partially_paid"] | None = None,
        contact_id: str | None = None,
    ) -> dict[str, Any]:
        """Count sales invoices matching the filters without listing them."""
        filters = _compact({"payment_status": payment_status, "contact_id": contact_id})
        try:
            total = await client.sales_invoices.count(filter=filters)
        except ParasutError as error:
            return _fault("count_invoices", error)
        return {"count": total, "filter": filters}

    @server.tool()  # type: ignore[misc]
    async def invoice_pdf(invoice_id: str, timeout: float = 60.0) -> dict[str, Any]:
        """Return a short-lived PDF link for an invoice's e-archive or e-invoice.

        Only invoices that have been issued electronically have a PDF.
        """
        try:
            document = await client.sales_invoices.get(invoice_id, include="active_e_document")
            e_document = get_related(document, "active_e_document")
            if e_document is None:
                return {
                    "error": {
                        "code": "parasut:no_e_document",
                        "message": f"Invoice {invoice_id} has no issued e-archive or e-invoice",
                        "retryable": False,
                        "domain": "parasut",
                    }
                }
            documents = client.e_invoices if e_document.type == "e_invoices" else client.e_archives
            result = await documents.pdf(e_document.id, timeout=timeout)
        except ParasutError as error:
            return _fault("invoice_pdf", error)
        return {
            "invoice_id": invoice_id,
            "e_document": {"type": e_document.type, "id": e_document.id},
            **result.model_dump(mode="json"),
        }

    @server.tool()  # type: ignore[misc]
    async def check_einvoice_inbox(vkn: str) -> dict[str, Any]:
        """Check whether a tax number is registered for e-invoices.

        Registered taxpayers must receive an e-invoice; everyone else gets an
        e-archive.
        """
        try:
            inbox = await client.e_invoice_inboxes.check_by_vkn(vkn)
        except ParasutError as error:
            return _fault("check_einvoice_inbox", error)
        return {
            "vkn": vkn,
            "is_e_invoice_user": inbox is not None,
            "recommended_document": "e_invoice" if inbox is not None else "e_archive",
            "inbox": _dump(inbox),
        }

    async def issue_e_document(
        tool: str,
        documents: Any,
        invoice_id: str,
        attributes: dict[str, Any],
        confirm: bool,
        acknowledgement: str,
        wait_for_completion: bool,
        timeout: float,
    ) -> dict[str, Any]:
        label = documents.resource_type.replace("_", "-").removesuffix("s")
        if not confirm or acknowledgement != IRREVERSIBLE_ACK:
            try:
                document = await client.sales_invoices.get(invoice_id, include="contact")
            except ParasutError as error:
                return _fault(tool, error)
            return {
                "status": "confirmation_required",
                "invoice": _dump(document.data),
                "contact": _dump(get_related(document, "contact")),
                "message": (
                    f"Issuing the {label} is irreversible. Call again with "
                    f'confirm=true and i_understand_this_is_irreversible="{IRREVERSIBLE_ACK}".'
                ),
            }

        payload = documents.payload_for_invoice(invoice_id, attributes)
        try:
            submitted = await documents.submit(payload)
            if not wait_for_completion:
                return {"status": "submitted", "trackable_job_id": submitted.trackable_job_id}
            result = await client.trackable_jobs.wait_for_completion(
                submitted.trackable_job_id, timeout=timeout
            )
        except ParasutError as error:
            return _fault(tool, error)
        return {
            "status": "issued" if result.success else "failed",
            "trackable_job_id": submitted.trackable_job_id,
            **result.model_dump(mode="json"),
        }

    @server.tool()  # type: ignore[misc]
    async def send_earchive(
        invoice_id: str,
        note: str | None = None,
        confirm: bool = False,
        i_understand_this_is_irreversible: str = "",
        wait_for_completion: bool = True,
        timeout: float = 60.0,
    ) -> dict[str, Any]:
        """Issue an e-archive for a sales invoice.

        Issuing is legally binding and cannot be undone. The call is only
        sent when ``confirm=True`` and ``i_understand_this_is_irreversible="YES"``;
        otherwise a preview of the invoice is returned.
        """
        return await issue_e_document(
            "send_earchive",
            client.e_archives,
            invoice_id,
            _compact({"note": note}),
            confirm,
            i_understand_this_is_irreversible,
            wait_for_completion,
            timeout,
        )

    @server.tool()  # type: ignore[misc]
    async def send_einvoice(
        invoice_id: str,
        scenario: Literal["basic", "commercial"] = "basic",
        note: str | None = None,
        confirm: bool = False,
        i_understand_this_is_irreversible: str = "",
        wait_for_completion: bool = True,
        timeout: float = 60.0,
    ) -> dict[str, Any]:
        """Issue an e-invoice for a sales invoice whose customer has an e-invoice inbox.

        Same double confirmation as ``send_earchive``. Use ``check_einvoice_inbox``
        first; customers without an inbox get an e-archive instead.
        """
        return await issue_e_document(
            "send_einvoice",
            client.e_invoices,
            invoice_id,
            _compact({"scenario": scenario, "note": note}),
            confirm,
            i_understand_this_is_irreversible,
            wait_for_completion,
            timeout,
        )

    @server.tool()  # type: ignore[misc]
    async def send_esmm(
        invoice_id: str,
        note: str | None = None,
        confirm: bool = False,
        i_understand_this_is_irreversible: str = "",
        wait_for_completion: bool = True,
        timeout: float = 60.0,
    ) -> dict[str, Any]:
        """Issue a self-employment receipt (e-SMM) for a sales invoice.

        Same double confirmation as ``send_earchive``.
        """
        return await issue_e_document(
            "send_esmm",
            client.e_smms,
            invoice_id,
            _compact({"note": note}),
            confirm,
            i_understand_this_is_irreversible,
            wait_for_completion,
            timeout,
        )

    @server.tool()  # type: ignore[misc]
    async def get_job_status(job_id: str) -> dict[str, Any]:
        """Return the current status of a trackable job."""
        try:
            job = await client.trackable_jobs.get(job_id)
        except ParasutError as error:
            return _fault("get_job_status", error)
        return job.model_dump(mode="json")

    @server.tool()  # type: ignore[misc]
    async def search_products(
        name: str | None = None,
        code: str | None = None,
        page: int = 1,
        page_size: int = 25,
    ) -> dict[str, Any]:
        """Search products and services by name or code."""
        try:
            document = await client.products.list(
                filter=_compact({"name": name, "code": code}),
                page=_page_params(page, page_size),
            )
        except ParasutError as error:
            return _fault("search_products", error)
        return _page(document)

    @server.tool()  # type: ignore[misc]
    async def get_product(product_id: str) -> dict[str, Any]:
        """Fetch one product or service by id."""
        try:
            document = await client.products.get(product_id)
        except ParasutError as error:
            return _fault("get_product", error)
        return {"product": _dump(document.data)}

    @server.tool()  # type: ignore[misc]
    async def update_contact(
        contact_id: str,
        name: str | None = None,
        email: str | None = None,
        phone: str | None = None,
        tax_number: str | None = None,
        tax_office: str | None = None,
        city: str | None = None,
        address: str | None = None,
        confirm: bool = False,
    ) -> dict[str, Any]:
        """Change a contact's details; only the fields given are sent.

        Without ``confirm=True`` the current contact and the requested changes
        are returned for review.
        """
        changes = _compact(
            {
                "name": name,
                "email": email,
                "phone": phone,
                "tax_number": tax_number,
                "tax_office": tax_office,
                "city": city,
                "address": address,
            }
        )
        if not changes:
            return {
                "error": {
                    "code": "parasut:nothing_to_update",
                    "message": "Give at least one field to change",
                    "retryable": False,
                    "domain": "parasut",
                }
            }
        if not confirm:
            try:
                document = await client.contacts.get(contact_id)
            except ParasutError as error:
                return _fault("update_contact", error)
            return {
                "status": "confirmation_required",
                "contact": _dump(document.data),
                "changes": changes,
                "message": "Call again with confirm=true to apply these changes.",
            }
        try:
            document = await client.contacts.update(contact_id, {"attributes": changes})
        except ParasutError as error:
            return _fault("update_contact", error)
        logger.info(f"Updated contact {contact_id}: {sorted(changes)}")
        return {"status": "updated", "contact": _dump(document.data)}

    @server.tool()  # type: ignore[misc]
    async def cancel_invoice(invoice_id: str, confirm: bool = False) -> dict[str, Any]:
        """Cancel a sales invoice. It can be brought back with ``recover_invoice``.

        Invoices already issued as an e-invoice or e-archive also need a
        cancellation with the tax authority; Paraşüt does not do that here.
        """
        if not confirm:
            try:
                document = await client.sales_invoices.get(invoice_id, include="active_e_document")
            except ParasutError as error:
                return _fault("cancel_invoice", error)
            return {
                "status": "confirmation_required",
                "invoice": _dump(document.data),
                "e_document": _dump(get_related(document, "active_e_document")),
                "message": "Call again with confirm=true to cancel this invoice.",
            }
        try:
            document = await client.sales_invoices.cancel(invoice_id)
        except ParasutError as error:
            return _fault("cancel_invoice", error)
        logger.info(f"Cancelled sales invoice {invoice_id}")
        return {"status": "cancelled", "invoice": _dump(document.data)}

    @server.tool()  # type: ignore[misc]
    async def recover_invoice(invoice_id: str) -> dict[str, Any]:
        """Restore a cancelled sales invoice."""
        try:
            document = await client.sales_invoices.recover(invoice_id)
        except ParasutError as error:
            return _fault("recover_invoice", error)
        return {"status": "recovered", "invoice": _dump(document.data)}

    async def record_payment(
        tool: str,
        documents: Any,
        document_id: str,
        amount: float,
        on: str | None,
        account_id: str | None,
        description: str | None,
        confirm: bool,
    ) -> dict[str, Any]:
        attributes = _compact(
            {
                "date": on or datetime.date.today().isoformat(),
                "amount": amount,
                "notes": description,
            }
        )
        if not confirm:
            try:
                document = await documents.get(document_id)
            except ParasutError as error:
                return _fault(tool, error)
            remaining = document.data.attributes.get("remaining")
            return {
                "status": "confirmation_required",
                "payment": {**attributes, "account_id": account_id},
                "remaining": remaining,
                "new_remaining": (
                    str(Decimal(str(remaining)) - Decimal(str(amount)))
                    if remaining is not None
                    else None
                ),
                "message": "Call again with confirm=true to record this payment.",
            }
        relationships = {"account": rel("accounts", account_id)} if account_id else None
        try:
            document = await documents.pay(document_id, attributes, relationships)
        except ParasutError as error:
            return _fault(tool, error)
        logger.info(f"Recorded payment of {amount} on {documents.resource_type}/{document_id}")
        return {"status": "recorded", "payment": _dump(document.data)}

    @server.tool()  # type: ignore[misc]
    async def record_invoice_payment(
        invoice_id: str,
        amount: float,
        date: str | None = None,
        account_id: str | None = None,
        description: str | None = None,
        confirm: bool = False,
    ) -> dict[str, Any]:
        """Record a collection against a sales invoice.

        Args:
            invoice_id: Sales invoice id
            amount: Amount received, in the invoice currency
            date: YYYY-MM-DD, defaults to today
            account_id: Cash or bank account the money went into
            description: Payment note
            confirm: Without it the remaining balance before and after is returned
        """
        return await record_payment(
            "record_invoice_payment",
            client.sales_invoices,
            invoice_id,
            amount,
            date,
            account_id,
            description,
            confirm,
        )

    @server.tool()  # type: ignore[misc]
    async def record_bill_payment(
        bill_id: str,
        amount: float,
        date: str | None = None,
        account_id: str | None = None,
        description: str | None = None,
        confirm: bool = False,
    ) -> dict[str, Any]:
        """Record a payment made against a purchase bill. See ``record_invoice_payment``."""
        return await record_payment(
            "record_bill_payment",
            client.purchase_bills,
            bill_id,
            amount,
            date,
            account_id,
            description,
            confirm,
        )

    @server.tool()  # type: ignore[misc]
    async def search_bills(
        contact_id: str | None = None,
        payment_status: Literal["paid", "overdue", "unpaid", "partially_paid"] | None = None,
        issue_date: str | None = None,
        due_date: str | None = None,
        sort: str = "-issue_date",
        page: int = 1,
        page_size: int = 25,
    ) -> dict[str, Any]:
        """Search purchase bills; the filters mirror ``search_invoices``."""
        try:
            document = await client.purchase_bills.list(
                filter=_compact(
                    {
                        "contact_id": contact_id,
                        "payment_status": payment_status,
                        "issue_date": issue_date,
                        "due_date": due_date,
                    }
                ),
                page=_page_params(page, page_size),
                sort=sort,
            )
        except ParasutError as error:
            return _fault("search_bills", error)
        return _page(document)

    @server.tool()  # type: ignore[misc]
    async def get_bill(bill_id: str) -> dict[str, Any]:
        """Fetch a purchase bill together with its supplier."""
        try:
            document = await client.purchase_bills.get(bill_id, include="supplier")
        except ParasutError as error:
            return _fault("get_bill", error)
        return {
            "bill": _dump(document.data),
            "supplier": _dump(get_related(document, "supplier")),
        }

    @server.tool()  # type: ignore[misc]
    async def list_accounts(
        account_type: Literal["cash", "bank"] | None = None,
        currency: Literal["TRL", "USD", "EUR", "GBP"] | None = None,
        page: int = 1,
        page_size: int = 25,
    ) -> dict[str, Any]:
        """List cash and bank accounts with their balances."""
        try:
            document = await client.accounts.list(
                filter=_compact({"account_type": account_type, "currency": currency}),
                page=_page_params(page, page_size),
            )
        except ParasutError as error:
            return _fault("list_accounts", error)
        return _page(document)

    @server.tool()  # type: ignore[misc]
    async def search_transactions(
        account_id: str | None = None,
        date: str | None = None,
        page: int = 1,
        page_size: int = 25,
    ) -> dict[str, Any]:
        """List ledger entries, newest first.

        With ``account_id`` only that account's transactions are returned.
        """
        try:
            document = await client.transactions.list(
                filter=_compact({"account_id": account_id, "date": date}),
                page=_page_params(page, page_size),
                sort="-date",
            )
        except ParasutError as error:
            return _fault("search_transactions", error)
        return _page(document)

    @server.tool()  # type: ignore[misc]
    async def list_tags(name: str | None = None) -> dict[str, Any]:
        """List tags, optionally filtered by name."""
        try:
            document = await client.tags.list(filter=_compact({"name": name}))
        except ParasutError as error:
            return _fault("list_tags", error)
        return _page(document)

    @server.tool()  # type: ignore[misc]
    async def list_categories(
        category_type: Literal["Product", "Contact", "Employee", "SalesInvoice", "Expenditure"]
        | None = None,
    ) -> dict[str, Any]:
        """List item categories, optionally of one type."""
        try:
            document = await client.item_categories.list(
                filter=_compact({"category_type": category_type})
            )
        except ParasutError as error:
            return _fault("list_categories", error)
        return _page(document)

    @server.tool()  # type: ignore[misc]
    async def list_employees(
        name: str | None = None, page: int = 1, page_size: int = 25
    ) -> dict[str, Any]:
        """List employees, optionally filtered by name."""
        try:
            document = await client.employees.list(
                filter=_compact({"name": name}), page=_page_params(page, page_size)
            )
        except ParasutError as error:
            return _fault("list_employees", error)
        return _page(document)

    async def create_expense(
        tool: str,
        documents: Any,
        attributes: dict[str, Any],
        relationships: dict[str, Any] | None,
        confirm: bool,
    ) -> dict[str, Any]:
        if not confirm:
            return {
                "status": "confirmation_required",
                "preview": {
                    **attributes,
                    **{f"{name}_id": value.id for name, value in (relationships or {}).items()},
                },
                "message": "Call again with confirm=true to record this expense.",
            }
        try:
            document = await documents.create(
                {"attributes": attributes, "relationships": relationships}
            )
        except ParasutError as error:
            return _fault(tool, error)
        logger.info(f"Created {documents.resource_type}/{document.data.id}")
        return {"status": "created", documents.resource_type: _dump(document.data)}

    @server.tool()  # type: ignore[misc]
    async def create_salary(
        employee_id: str,
        amount: float,
        date: str | None = None,
        description: str = "Salary",
        confirm: bool = False,
    ) -> dict[str, Any]:
        """Record a salary expense for an employee, due on ``date`` (default today)."""
        on = date or datetime.date.today().isoformat()
        return await create_expense(
            "create_salary",
            client.salaries,
            {
                "description": description,
                "issue_date": on,
                "due_date": on,
                "net_total": amount,
                "currency": "TRL",
            },
            {"employee": rel("employees", employee_id)},
            confirm,
        )

    @server.tool()  # type: ignore[misc]
    async def create_tax(
        tax_type: Literal["kdv", "stopaj", "sgk", "other"],
        amount: float,
        date: str | None = None,
        due_date: str | None = None,
        description: str | None = None,
        confirm: bool = False,
    ) -> dict[str, Any]:
        """Record a tax liability (VAT, withholding, social security or other)."""
        on = date or datetime.date.today().isoformat()
        return await create_expense(
            "create_tax",
            client.taxes,
            {
                "description": description or f"{tax_type} payment",
                "issue_date": on,
                "due_date": due_date or on,
                "net_total": amount,
                "currency": "TRL",
            },
            None,
            confirm,
        )

    @server.tool()  # type: ignore[misc]
    async def create_bank_fee(
        account_id: str,
        amount: float,
        date: str | None = None,
        description: str = "Bank fee",
        confirm: bool = False,
    ) -> dict[str, Any]:
        """Record a bank charge against an account."""
        on = date or datetime.date.today().isoformat()
        return await create_expense(
            "create_bank_fee",
            client.bank_fees,
            {
                "description": description,
                "issue_date": on,
                "due_date": on,
                "net_total": amount,
                "currency": "TRL",
            },
            {"account": rel("accounts", account_id)},
            confirm,
        )

    @server.tool()  # type: ignore[misc]
    async def get_stock_levels(
        product_id: str | None = None, warehouse_id: str | None = None
    ) -> dict[str, Any]:
        """Per-warehouse stock of products, with the product and warehouse included."""
        try:
            document = await client.inventory_levels.list(
                filter=_compact({"product_id": product_id, "warehouse_id": warehouse_id}),
                include=["product", "warehouse"],
            )
        except ParasutError as error:
            return _fault("get_stock_levels", error)
        return {
            **_page(document),
            "levels": [
                {
                    "level": _dump(level),
                    "product": _dump(get_related(document, level.relationships.get("product"))),
                    "warehouse": _dump(get_related(document, level.relationships.get("warehouse"))),
                }
                for level in document.data
            ],
        }

    @server.tool()  # type: ignore[misc]
    async def search_stock_movements(
        product_id: str | None = None,
        warehouse_id: str | None = None,
        date: str | None = None,
        page: int = 1,
        page_size: int = 25,
    ) -> dict[str, Any]:
        """List stock movements, newest first."""
        try:
            document = await client.stock_movements.list(
                filter=_compact(
                    {"product_id": product_id, "warehouse_id": warehouse_id, "date": date}
                ),
                page=_page_params(page, page_size),
                sort="-date",
            )
        except ParasutError as error:
            return _fault("search_stock_movements", error)
        return _page(document)


async def run_server() -> None:
    """Run the MCP server event loop."""

    credentials = Credentials.from_file()
    fastmcp_class = _import_fastmcp()

    async with httpx.AsyncClient() as http_client:
        client = ParasutClient(credentials, http_client=http_client)

        server = _instantiate_fastmcp(
            fastmcp_class,
            server_id="parasut-mcp",
            name="Paraşüt MCP Server",
            version=__version__,
            description="MCP server exposing Paraşüt accounting data and e-documents.",
        )
        register_tools(server, client)

        logger.info(f"Starting Paraşüt MCP server {__version__} for company {client.company_id}")
        await server.run_async()


def run(main: Callable[[], Coroutine[Any, Any, None]] | None = None) -> None:
    """Synchronous helper for CLI entry points."""
    entry = main or run_server
    try:
        asyncio.run(entry())
    except KeyboardInterrupt:
        logger.warning("MCP server interrupted by user.")
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unhandled MCP server failure: {}", exc)
        raise


def _instantiate_fastmcp(class_: type[Any], **metadata: Any) -> Any:
    parameters = inspect.signature(class_.__init__).parameters

    filtered: dict[str, Any] = {key: value for key, value in metadata.items() if key in parameters}

    if "server_id" in metadata and "server_id" not in filtered and "id" in parameters:
        filtered["id"] = metadata["server_id"]

    if not filtered and any(
        param.kind == inspect.Parameter.VAR_KEYWORD for param in parameters.values()
    ):
        filtered = metadata

    return class_(**filtered)
