"""Query string encoding for JSON:API list and show requests.

Filters and pagination use bracket notation (``filter[name]=Acme``,
``page[number]=2``). ``None`` values are dropped instead of being sent as
empty strings, and list values are always comma-joined.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any, TypedDict
from urllib.parse import parse_qsl, urlencode

MAX_PAGE_SIZE = 25

QueryValue = str | int | float | bool | date | Sequence[str | int] | None

_BRACKET_KEY = re.compile(r"^(?P<outer>[^\[\]]+)\[(?P<inner>[^\[\]]+)\]$")


class PageParams(TypedDict, total=False):
    number: int
    size: int


class ListParams(TypedDict, total=False):
    filter: Mapping[str, Any]
    page: PageParams
    include: str | Sequence[str]
    sort: str | Sequence[str]


class ShowParams(TypedDict, total=False):
    include: str | Sequence[str]


def serialize_value(value: Any) -> str | None:
    """Render one query value as a string, or ``None`` when it must be omitted."""

    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        return value
    if isinstance(value, int | float):
        return str(value)
    if isinstance(value, Sequence):
        items = [serialize_value(item) for item in value]
        return ",".join(item for item in items if item is not None)
    return str(value)


def _join(value: str | Sequence[str] | None) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return ",".join(str(item) for item in value)


def build_list_query(params: Mapping[str, Any] | None = None) -> dict[str, str]:
    """Flatten list parameters into bracket-notation query keys."""

    params = params or {}
    query: dict[str, str] = {}

    for key, value in (params.get("filter") or {}).items():
        serialized = serialize_value(value)
        if serialized is not None:
            query[f"filter[{key}]"] = serialized

    page = params.get("page") or {}
    if page.get("number") is not None:
        query["page[number]"] = str(page["number"])
    if page.get("size") is not None:
        query["page[size]"] = str(min(int(page["size"]), MAX_PAGE_SIZE))

    include = _join(params.get("include"))
    if include:
        query["include"] = include

    sort = _join(params.get("sort"))
    if sort:
        query["sort"] = sort

    return query


def build_show_query(params: Mapping[str, Any] | None = None) -> dict[str, str]:
    """Return the ``include`` parameter for single-resource requests."""

    include = _join((params or {}).get("include"))
    return {"include": include} if include else {}


def serialize_query(query: Mapping[str, QueryValue] | None) -> str:
    """Encode a flat query mapping as ``?key=value&...`` (empty string when nothing remains)."""

    if not query:
        return ""

    pairs: list[tuple[str, str]] = []
    for key, value in query.items():
        serialized = serialize_value(value)
        if serialized is not None:
            pairs.append((key, serialized))

    encoded = urlencode(pairs)
    return f"?{encoded}" if encoded else ""


def build_url(base_url: str, path: str, query: Mapping[str, QueryValue] | None = None) -> str:
    return f"{base_url.rstrip('/')}{path}{serialize_query(query)}"


def parse_query(query_string: str) -> dict[str, Any]:
    """Decode a query string produced by :func:`serialize_query` back into nested params.

    ``page[...]`` values come back as ints. Filter values, ``include`` and
    ``sort`` keep their wire form: strings, with lists comma-joined.
    """

    parsed: dict[str, Any] = {}
    for key, value in parse_qsl(query_string.lstrip("?"), keep_blank_values=True):
        match = _BRACKET_KEY.match(key)
        if match is None:
            parsed[key] = value
            continue
        outer = match.group("outer")
        decoded: str | int = int(value) if outer == "page" and value.isdigit() else value
        parsed.setdefault(outer, {})[match.group("inner")] = decoded
    return parsed


class QueryBuilder:
    """Fluent construction of list parameters."""

    def __init__(self) -> None:
        self._params: dict[str, Any] = {}

    def filter(self, key: str, value: Any) -> QueryBuilder:
        self._params.setdefault("filter", {})[key] = value
        return self

    def filters(self, values: Mapping[str, Any]) -> QueryBuilder:
        self._params["filter"] = {**self._params.get("filter", {}), **values}
        return self

    def page_number(self, number: int) -> QueryBuilder:
        self._params.setdefault("page", {})["number"] = number
        return self

    def page_size(self, size: int) -> QueryBuilder:
        self._params.setdefault("page", {})["size"] = size
        return self

    def page(self, number: int, size: int | None = None) -> QueryBuilder:
        self._params["page"] = {"number": number} if size is None else {"number": number, "size": size}
        return self

    def include(self, *resources: str) -> QueryBuilder:
        current = self._params.get("include")
        if current is None:
            self._params["include"] = list(resources)
        elif isinstance(current, str):
            self._params["include"] = [current, *resources]
        else:
            self._params["include"] = [*current, *resources]
        return self

    def sort(self, *fields: str) -> QueryBuilder:
        self._params["sort"] = list(fields)
        return self

    def sort_asc(self, field: str) -> QueryBuilder:
        return self.sort(field)

    def sort_desc(self, field: str) -> QueryBuilder:
        return self.sort(f"-{field}")

    @property
    def params(self) -> dict[str, Any]:
        return self._params

    def build(self) -> dict[str, str]:
        return build_list_query(self._params)

    def reset(self) -> QueryBuilder:
        self._params = {}
        return self


def query() -> QueryBuilder:
    return QueryBuilder()
