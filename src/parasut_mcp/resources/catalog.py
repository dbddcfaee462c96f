"""Tags and item categories."""

from __future__ import annotations

from dataclasses import replace
from typing import Literal, TypedDict

from ..jsonapi import ListDocument
from .base import BaseResource, ResourceConfig

CategoryType = Literal["Product", "Contact", "Employee", "SalesInvoice", "Expenditure"]


class TagAttributes(TypedDict, total=False):
    name: str


class TagFilters(TypedDict, total=False):
    name: str


class ItemCategoryAttributes(TypedDict, total=False):
    name: str
    bg_color: str
    text_color: str
    category_type: CategoryType
    parent_id: int


class ItemCategoryFilters(TypedDict, total=False):
    name: str
    category_type: CategoryType


class TagsResource(BaseResource[TagAttributes, TagFilters]):
    def __init__(self, config: ResourceConfig) -> None:
        super().__init__(replace(config, base_path="/tags", resource_type="tags"))


class ItemCategoriesResource(BaseResource[ItemCategoryAttributes, ItemCategoryFilters]):
    def __init__(self, config: ResourceConfig) -> None:
        super().__init__(
            replace(config, base_path="/item_categories", resource_type="item_categories")
        )

    async def list_by_type(self, category_type: CategoryType) -> ListDocument:
        return await self.list(filter={"category_type": category_type})
