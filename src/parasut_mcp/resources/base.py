"""Generic paginated JSON:API resource and optional capability protocols."""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

from loguru import logger
from pydantic import BaseModel, Field

from ..errors import JobTimeoutError
from ..jsonapi import (
    Document,
    ListDocument,
    RelationshipInput,
    Resource,
    build_resource,
    build_update_resource,
    parse_document,
    parse_list_document,
)
from ..query import MAX_PAGE_SIZE, PageParams, build_list_query, build_show_query
from ..transport import HttpMethod, HttpTransport, RequestConfig

AttributesT = TypeVar("AttributesT", bound=Mapping[str, Any])
FiltersT = TypeVar("FiltersT", bound=Mapping[str, Any])

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]
ResourceList = list[Resource]

DEFAULT_PAGE_SIZE = MAX_PAGE_SIZE
PDF_URL_LIFETIME = timedelta(hours=1)


@dataclass(slots=True)
class ResourceConfig:
    """Everything a resource needs to address its endpoints."""

    transport: HttpTransport
    company_id: int
    base_path: str = ""
    resource_type: str = ""
    clock: Clock = field(default=time.monotonic)
    sleep: Sleep = field(default=asyncio.sleep)


class PdfResult(BaseModel):
    """Short-lived download location for a generated PDF."""

    url: str = Field(description="Signed PDF URL")
    expires_at: datetime = Field(description="Approximate expiry of the signed URL (UTC)")


class BaseResource(Generic[AttributesT, FiltersT]):
    """CRUD and pagination over one JSON:API collection.

    ``AttributesT`` and ``FiltersT`` are the ``TypedDict`` shapes of a
    concrete resource's attributes and list filters.
    """

    def __init__(self, config: ResourceConfig) -> None:
        self._transport = config.transport
        self._company_id = config.company_id
        self._base_path = config.base_path
        self._resource_type = config.resource_type
        self._clock = config.clock
        self._sleep = config.sleep

    @property
    def resource_type(self) -> str:
        return self._resource_type

    def _build_path(self, id_: str | int | None = None, suffix: str | None = None) -> str:
        path = f"/{self._company_id}{self._base_path}"
        if id_ is not None:
            path += f"/{id_}"
        if suffix:
            path += suffix
        return path

    async def list(
        self,
        *,
        filter: FiltersT | None = None,
        page: PageParams | None = None,
        include: str | Sequence[str] | None = None,
        sort: str | Sequence[str] | None = None,
    ) -> ListDocument:
        """Fetch one page of the collection."""

        query = build_list_query({"filter": filter, "page": page, "include": include, "sort": sort})
        body = await self._transport.get(self._build_path(), query)
        return parse_list_document(body)

    async def get(self, id_: str | int, *, include: str | Sequence[str] | None = None) -> Document:
        body = await self._transport.get(self._build_path(id_), build_show_query({"include": include}))
        return parse_document(body)

    async def create(self, payload: Mapping[str, Any]) -> Document:
        """Create a resource.

        ``payload`` is either a full ``{"data": ...}`` body or a mapping with
        ``attributes`` and optional ``relationships``.
        """

        if "data" not in payload:
            payload = build_resource(
                self._resource_type,
                payload.get("attributes", {}),
                payload.get("relationships"),
            )
        body = await self._transport.post(self._build_path(), payload)
        return parse_document(body)

    async def update(self, id_: str | int, payload: Mapping[str, Any]) -> Document:
        """Partially update a resource; attributes not in ``payload`` are not sent."""

        if "data" not in payload:
            payload = build_update_resource(
                id_,
                self._resource_type,
                payload.get("attributes"),
                payload.get("relationships"),
            )
        body = await self._transport.patch(self._build_path(id_), payload)
        return parse_document(body)

    async def delete(self, id_: str | int) -> None:
        await self._transport.delete(self._build_path(id_))

    async def iterate(
        self,
        *,
        filter: FiltersT | None = None,
        include: str | Sequence[str] | None = None,
        sort: str | Sequence[str] | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_pages: int | None = None,
    ) -> AsyncIterator[Resource]:
        """Yield every matching resource, fetching one page at a time.

        Iteration stops after a short page, after the last page reported by
        ``meta.total_pages``, or after ``max_pages`` pages. Each call starts
        again from page 1.
        """

        page_size = max(1, min(page_size, MAX_PAGE_SIZE))
        page_number = 1
        while max_pages is None or page_number <= max_pages:
            logger.debug(f"{self._resource_type}: fetching page {page_number} (size {page_size})")
            document = await self.list(
                filter=filter,
                page={"number": page_number, "size": page_size},
                include=include,
                sort=sort,
            )
            for item in document.data:
                yield item

            if len(document.data) < page_size or page_number >= document.meta.total_pages:
                return
            page_number += 1

    async def list_all(
        self,
        *,
        filter: FiltersT | None = None,
        include: str | Sequence[str] | None = None,
        sort: str | Sequence[str] | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_pages: int | None = None,
    ) -> ResourceList:
        """Drain :meth:`iterate` into a list. Bound it with ``max_pages`` on large collections."""

        return [
            item
            async for item in self.iterate(
                filter=filter, include=include, sort=sort, page_size=page_size, max_pages=max_pages
            )
        ]

    async def count(self, *, filter: FiltersT | None = None) -> int:
        document = await self.list(filter=filter, page={"number": 1, "size": 1})
        return document.meta.total_count

    async def exists(self, *, filter: FiltersT | None = None) -> bool:
        return await self.count(filter=filter) > 0

    async def first(
        self,
        *,
        filter: FiltersT | None = None,
        include: str | Sequence[str] | None = None,
        sort: str | Sequence[str] | None = None,
    ) -> Resource | None:
        """Return the first match, or ``None`` when nothing matches."""

        document = await self.list(
            filter=filter, page={"number": 1, "size": 1}, include=include, sort=sort
        )
        return document.data[0] if document.data else None

    async def _action(
        self, method: HttpMethod, id_: str | int, suffix: str, body: Any = None
    ) -> Document:
        response = await self._transport.request(
            RequestConfig(method=method, path=self._build_path(id_, suffix), body=body)
        )
        return parse_document(response)

    async def _poll_pdf(
        self, id_: str | int, *, poll_interval: float, timeout: float
    ) -> PdfResult:
        """Poll ``{id}/pdf`` until the server returns a URL (204 means not ready)."""

        path = self._build_path(id_, "/pdf")
        started = self._clock()
        while True:
            if self._clock() - started >= timeout:
                raise JobTimeoutError(f"{self._resource_type}/{id_}/pdf", "pending", timeout)

            body = await self._transport.get(path)
            url = _pdf_url(body)
            if url:
                return PdfResult(url=url, expires_at=datetime.now(UTC) + PDF_URL_LIFETIME)

            logger.debug(f"PDF for {self._resource_type}/{id_} not ready; retrying")
            await self._sleep(poll_interval)


def _pdf_url(body: Any) -> str | None:
    if not isinstance(body, Mapping):
        return None
    data = body.get("data")
    if not isinstance(data, Mapping):
        return None
    url = (data.get("attributes") or {}).get("url")
    return str(url) if url else None


@runtime_checkable
class Archivable(Protocol):
    async def archive(self, id_: str | int) -> Document: ...

    async def unarchive(self, id_: str | int) -> Document: ...


@runtime_checkable
class Cancellable(Protocol):
    async def cancel(self, id_: str | int) -> Document: ...

    async def recover(self, id_: str | int) -> Document: ...


@runtime_checkable
class Payable(Protocol):
    async def pay(
        self,
        id_: str | int,
        attributes: Mapping[str, Any],
        relationships: Mapping[str, RelationshipInput] | None = None,
    ) -> Document: ...


@runtime_checkable
class HasPdf(Protocol):
    async def pdf(
        self, id_: str | int, *, poll_interval: float = 2.0, timeout: float = 60.0
    ) -> PdfResult: ...


class ArchiveMixin:
    """``POST {id}/archive`` and ``POST {id}/unarchive``."""

    async def archive(self: Any, id_: str | int) -> Document:
        return await self._action("POST", id_, "/archive")

    async def unarchive(self: Any, id_: str | int) -> Document:
        return await self._action("POST", id_, "/unarchive")


class CancelMixin:
    """``DELETE {id}/cancel`` and ``PATCH {id}/recover``."""

    async def cancel(self: Any, id_: str | int) -> Document:
        return await self._action("DELETE", id_, "/cancel")

    async def recover(self: Any, id_: str | int) -> Document:
        return await self._action("PATCH", id_, "/recover")


class PaymentMixin:
    async def pay(
        self: Any,
        id_: str | int,
        attributes: Mapping[str, Any],
        relationships: Mapping[str, RelationshipInput] | None = None,
    ) -> Document:
        """Record a payment (``date``, ``amount``, optional ``account`` relationship)."""

        body = build_resource("payments", attributes, relationships)
        return await self._action("POST", id_, "/payments", body)


class PdfMixin:
    async def pdf(
        self: Any, id_: str | int, *, poll_interval: float = 2.0, timeout: float = 60.0
    ) -> PdfResult:
        return await self._poll_pdf(id_, poll_interval=poll_interval, timeout=timeout)
