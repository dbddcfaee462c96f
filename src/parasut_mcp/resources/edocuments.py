"""Electronic documents: e-archives, e-invoices, e-SMMs and the e-invoice inbox lookup.

Issuing an e-document is asynchronous. ``submit`` returns the id of the
trackable job the server started; ``submit_and_wait`` also polls it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import Any, TypedDict

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from ..jsonapi import Document, Resource, build_resource, parse_document, rel
from .base import BaseResource, PdfMixin, ResourceConfig
from .trackable_jobs import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_TIMEOUT,
    Job,
    TrackableJobsResource,
)


class EDocumentAttributes(TypedDict, total=False):
    vat_withholding_code: str
    vat_exemption_reason_code: str
    vat_exemption_reason: str
    note: str
    excise_duty_codes: list[dict[str, Any]]
    scenario: str
    to: str
    internet_sale: dict[str, Any]


class EDocumentFilters(TypedDict, total=False):
    sales_invoice_id: int | str


class EInvoiceInboxFilters(TypedDict, total=False):
    vkn: str


class SubmitResult(BaseModel):
    """Server acknowledgement of an e-document submission."""

    model_config = ConfigDict(frozen=True)

    document: Document = Field(description="Raw acknowledgement document")
    trackable_job_id: str = Field(description="Job to poll for the issuance outcome")


class _EDocumentResource(PdfMixin, BaseResource[EDocumentAttributes, EDocumentFilters]):
    def __init__(self, config: ResourceConfig, trackable_jobs: TrackableJobsResource) -> None:
        super().__init__(config)
        self._trackable_jobs = trackable_jobs

    def payload_for_invoice(
        self, sales_invoice_id: str | int, attributes: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        """Build the submission body that issues ``sales_invoice_id``."""

        return build_resource(
            self._resource_type,
            attributes or {},
            {"sales_invoice": rel("sales_invoices", sales_invoice_id)},
        )

    async def submit(self, payload: Mapping[str, Any]) -> SubmitResult:
        body = await self._transport.post(self._build_path(), payload)
        document = parse_document(body)
        logger.info(f"{self._resource_type} submitted; trackable job {document.data.id}")
        return SubmitResult(document=document, trackable_job_id=document.data.id)

    async def submit_and_wait(
        self,
        payload: Mapping[str, Any],
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> Job:
        """Submit and poll the resulting job to ``done``.

        A failed job raises ``JobFailureError``; an unfinished one raises
        ``JobTimeoutError``.
        """

        result = await self.submit(payload)
        return await self._trackable_jobs.poll(
            result.trackable_job_id, poll_interval=poll_interval, timeout=timeout
        )


class EArchivesResource(_EDocumentResource):
    def __init__(self, config: ResourceConfig, trackable_jobs: TrackableJobsResource) -> None:
        super().__init__(
            replace(config, base_path="/e_archives", resource_type="e_archives"), trackable_jobs
        )


class EInvoicesResource(_EDocumentResource):
    def __init__(self, config: ResourceConfig, trackable_jobs: TrackableJobsResource) -> None:
        super().__init__(
            replace(config, base_path="/e_invoices", resource_type="e_invoices"), trackable_jobs
        )


class ESmmsResource(_EDocumentResource):
    """Self-employment receipts (e-SMM), issued from a sales invoice like an e-archive."""

    def __init__(self, config: ResourceConfig, trackable_jobs: TrackableJobsResource) -> None:
        super().__init__(
            replace(config, base_path="/e_smms", resource_type="e_smms"), trackable_jobs
        )


class EInvoiceInboxesResource(BaseResource[dict[str, Any], EInvoiceInboxFilters]):
    """Registry of e-invoice users, keyed by tax number (VKN)."""

    def __init__(self, config: ResourceConfig) -> None:
        super().__init__(
            replace(config, base_path="/e_invoice_inboxes", resource_type="e_invoice_inboxes")
        )

    async def check_by_vkn(self, vkn: str) -> Resource | None:
        """Return the inbox registered for ``vkn``, or ``None`` if the taxpayer has none."""

        document = await self.list(filter={"vkn": vkn})
        return document.data[0] if document.data else None

    async def should_use_e_invoice(self, vkn: str) -> bool:
        """``True`` for registered e-invoice users; everyone else gets an e-archive."""

        return await self.check_by_vkn(vkn) is not None
