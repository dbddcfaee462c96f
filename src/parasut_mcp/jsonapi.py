"""JSON:API envelope models and helpers.

Builds create/update bodies, unwraps response envelopes and resolves
relationships against the ``included`` side-table of a single response.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import DecodeError


class ResourceIdentifier(BaseModel):
    """Minimal ``{type, id}`` reference to a resource."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: str = Field(description="JSON:API resource type", examples=["contacts"])
    id: str = Field(description="Resource identifier", examples=["42"])

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @property
    def key(self) -> str:
        return f"{self.type}:{self.id}"


class Relationship(BaseModel):
    """Relationship object; ``data`` is a single identifier, a list, or ``None``."""

    model_config = ConfigDict(frozen=True, extra="allow")

    data: ResourceIdentifier | list[ResourceIdentifier] | None = None


class Resource(BaseModel):
    """A resource object as returned by the server."""

    model_config = ConfigDict(frozen=True, extra="allow")

    id: str = Field(description="Resource identifier")
    type: str = Field(description="JSON:API resource type")
    attributes: dict[str, Any] = Field(default_factory=dict)
    relationships: dict[str, Relationship] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @property
    def key(self) -> str:
        return f"{self.type}:{self.id}"

    def identifier(self) -> ResourceIdentifier:
        return ResourceIdentifier(type=self.type, id=self.id)


class ListMeta(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    total_count: int
    current_page: int
    total_pages: int


class Document(BaseModel):
    """Single-resource envelope."""

    model_config = ConfigDict(frozen=True, extra="allow")

    data: Resource
    included: list[Resource] | None = None


class ListDocument(BaseModel):
    """List envelope with pagination metadata."""

    model_config = ConfigDict(frozen=True, extra="allow")

    data: list[Resource]
    meta: ListMeta
    included: list[Resource] | None = None


IncludedIndex: TypeAlias = dict[str, Resource]
RelationshipInput: TypeAlias = ResourceIdentifier | Sequence[ResourceIdentifier] | None
Related: TypeAlias = Resource | ResourceIdentifier


def _describe(value: Any) -> str:
    if isinstance(value, Mapping):
        return f"object with keys {sorted(value)}"
    if isinstance(value, list):
        return f"array of {len(value)}"
    return type(value).__name__


def parse_document(body: Any) -> Document:
    """Validate a single-resource envelope, raising ``DecodeError`` on shape mismatch."""

    if isinstance(body, Document):
        return body
    if not isinstance(body, Mapping) or body.get("data") is None:
        raise DecodeError(
            f"Expected a single-resource document, got {_describe(body)}",
            expected="{data: Resource, included?: [Resource]}",
            actual=_describe(body),
        )
    try:
        return Document.model_validate(body)
    except PydanticValidationError as exc:
        raise DecodeError(
            f"Malformed single-resource document: {exc.error_count()} validation error(s)",
            expected="{data: Resource, included?: [Resource]}",
            actual=_describe(body.get("data")),
            cause=exc,
        ) from exc


def parse_list_document(body: Any) -> ListDocument:
    """Validate a list envelope, raising ``DecodeError`` when ``data`` or ``meta`` is off-shape."""

    if isinstance(body, ListDocument):
        return body
    expected = "{data: [Resource], meta: {total_count, current_page, total_pages}}"
    if (
        not isinstance(body, Mapping)
        or not isinstance(body.get("data"), list)
        or not isinstance(body.get("meta"), Mapping)
    ):
        raise DecodeError(
            f"Expected a list document, got {_describe(body)}",
            expected=expected,
            actual=_describe(body),
        )
    try:
        return ListDocument.model_validate(body)
    except PydanticValidationError as exc:
        raise DecodeError(
            f"Malformed list document: {exc.error_count()} validation error(s)",
            expected=expected,
            actual=_describe(body.get("meta")),
            cause=exc,
        ) from exc


def _format_relationships(
    relationships: Mapping[str, RelationshipInput],
) -> dict[str, dict[str, Any]]:
    formatted: dict[str, dict[str, Any]] = {}
    for name, value in relationships.items():
        if value is None:
            formatted[name] = {"data": None}
        elif isinstance(value, ResourceIdentifier):
            formatted[name] = {"data": {"id": value.id, "type": value.type}}
        else:
            formatted[name] = {"data": [{"id": item.id, "type": item.type} for item in value]}
    return formatted


def build_resource(
    type_: str,
    attributes: Mapping[str, Any],
    relationships: Mapping[str, RelationshipInput] | None = None,
) -> dict[str, Any]:
    """Build the ``{data: {...}}`` body for a create request."""

    data: dict[str, Any] = {"type": type_, "attributes": dict(attributes)}
    if relationships:
        data["relationships"] = _format_relationships(relationships)
    return {"data": data}


def build_update_resource(
    id_: str | int,
    type_: str,
    attributes: Mapping[str, Any] | None = None,
    relationships: Mapping[str, RelationshipInput] | None = None,
) -> dict[str, Any]:
    """Build the ``{data: {...}}`` body for a partial update.

    Only the given attributes are sent; anything omitted stays untouched
    server-side.
    """

    data: dict[str, Any] = {"id": str(id_), "type": type_}
    if attributes:
        data["attributes"] = dict(attributes)
    if relationships:
        data["relationships"] = _format_relationships(relationships)
    return {"data": data}


def rel(type_: str, id_: str | int) -> ResourceIdentifier:
    return ResourceIdentifier(type=type_, id=str(id_))


def rel_many(type_: str, ids: Iterable[str | int]) -> list[ResourceIdentifier]:
    return [ResourceIdentifier(type=type_, id=str(id_)) for id_ in ids]


def rel_null() -> None:
    """Explicitly clear a relationship (omitting the key leaves it unchanged)."""
    return None


def extract_data(response: Document | Mapping[str, Any]) -> Resource:
    return parse_document(response).data


def extract_list_data(response: ListDocument | Mapping[str, Any]) -> list[Resource]:
    if isinstance(response, ListDocument):
        return list(response.data)
    data = response.get("data") if isinstance(response, Mapping) else None
    if not isinstance(data, list):
        raise DecodeError(
            f"Expected a list of resources, got {_describe(data)}",
            expected="{data: [Resource]}",
            actual=_describe(data),
        )
    try:
        return [Resource.model_validate(item) for item in data]
    except PydanticValidationError as exc:
        raise DecodeError(
            f"Malformed resource in list: {exc.error_count()} validation error(s)",
            expected="{data: [Resource]}",
            actual=_describe(data),
            cause=exc,
        ) from exc


def _included_of(response: Any) -> Sequence[Resource] | None:
    if isinstance(response, Document | ListDocument):
        return response.included
    if isinstance(response, Mapping) and response.get("included") is not None:
        included = response["included"]
        if not isinstance(included, list):
            raise DecodeError(
                f"Expected a list of included resources, got {_describe(included)}",
                expected="{included: [Resource]}",
                actual=_describe(included),
            )
        try:
            return [Resource.model_validate(item) for item in included]
        except PydanticValidationError as exc:
            raise DecodeError(
                f"Malformed included resource: {exc.error_count()} validation error(s)",
                expected="{included: [Resource]}",
                actual=_describe(included),
                cause=exc,
            ) from exc
    return None


def create_included_map(included: Iterable[Resource] | None = None) -> IncludedIndex:
    """Index included resources by ``"type:id"``."""

    return {resource.key: resource for resource in included or ()}


def lookup_included(index: IncludedIndex, type_: str, id_: str) -> Resource | None:
    return index.get(f"{type_}:{id_}")


def find_included(response: Any, type_: str, id_: str) -> Resource | None:
    return lookup_included(create_included_map(_included_of(response)), type_, id_)


def find_all_included(response: Any, type_: str) -> list[Resource]:
    return [resource for resource in _included_of(response) or () if resource.type == type_]


def has_included(response: Any) -> bool:
    return bool(_included_of(response))


def is_full_resource(value: Related) -> bool:
    return isinstance(value, Resource)


def _relationship_of(response: Any, relationship: Relationship | str | None) -> Relationship | None:
    if isinstance(relationship, str):
        return parse_document(response).data.relationships.get(relationship)
    return relationship


def _resolve(index: IncludedIndex, identifier: ResourceIdentifier) -> Related:
    return index.get(identifier.key, identifier)


def get_related(response: Any, relationship: Relationship | str | None) -> Related | None:
    """Resolve a to-one relationship to its included resource, else its identifier.

    Returns ``None`` when the relationship is absent or explicitly null; a
    dangling reference never raises.
    """

    resolved = _relationship_of(response, relationship)
    if resolved is None or resolved.data is None:
        return None
    index = create_included_map(_included_of(response))
    if isinstance(resolved.data, list):
        return _resolve(index, resolved.data[0]) if resolved.data else None
    return _resolve(index, resolved.data)


def get_related_many(response: Any, relationship: Relationship | str | None) -> list[Related]:
    """Resolve every member of a to-many relationship, preserving order.

    Members missing from ``included`` degrade to their identifier.
    """

    resolved = _relationship_of(response, relationship)
    if resolved is None or resolved.data is None:
        return []
    index = create_included_map(_included_of(response))
    members = resolved.data if isinstance(resolved.data, list) else [resolved.data]
    return [_resolve(index, member) for member in members]


class DenormalizedResource(Resource):
    """Primary resource with the response's included index attached."""

    included_index: IncludedIndex = Field(default_factory=dict, exclude=True, repr=False)

    def related(self, name: str) -> Related | list[Related] | None:
        relationship = self.relationships.get(name)
        if relationship is None or relationship.data is None:
            return None
        if isinstance(relationship.data, list):
            return [_resolve(self.included_index, member) for member in relationship.data]
        return _resolve(self.included_index, relationship.data)


def denormalize(response: Document | Mapping[str, Any]) -> DenormalizedResource:
    """Return a copy of the primary resource carrying the included index.

    The original response is left untouched.
    """

    document = parse_document(response)
    return DenormalizedResource(
        **document.data.model_dump(),
        included_index=create_included_map(document.included),
    )
