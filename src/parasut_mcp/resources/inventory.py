"""Stock: per-warehouse inventory levels, stock movements and shipment documents.

Levels and movements are read-only; the server derives them from invoices
and shipment documents.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Literal, TypedDict

from ..jsonapi import ListDocument
from .base import BaseResource, ResourceConfig

ShipmentType = Literal["inbound", "outbound", "transfer"]


class InventoryLevelFilters(TypedDict, total=False):
    product_id: int | str
    warehouse_id: int | str


class StockMovementFilters(TypedDict, total=False):
    product_id: int | str
    warehouse_id: int | str
    date: str


class ShipmentDocumentAttributes(TypedDict, total=False):
    document_no: str
    document_date: str
    description: str
    shipment_type: ShipmentType


class ShipmentDocumentFilters(TypedDict, total=False):
    document_date: str
    shipment_type: ShipmentType


class InventoryLevelsResource(BaseResource[dict[str, Any], InventoryLevelFilters]):
    def __init__(self, config: ResourceConfig) -> None:
        super().__init__(
            replace(config, base_path="/inventory_levels", resource_type="inventory_levels")
        )

    async def list_for_product(self, product_id: int | str) -> ListDocument:
        return await self.list(filter={"product_id": product_id})

    async def list_for_warehouse(self, warehouse_id: int | str) -> ListDocument:
        return await self.list(filter={"warehouse_id": warehouse_id})


class StockMovementsResource(BaseResource[dict[str, Any], StockMovementFilters]):
    def __init__(self, config: ResourceConfig) -> None:
        super().__init__(
            replace(config, base_path="/stock_movements", resource_type="stock_movements")
        )


class ShipmentDocumentsResource(
    BaseResource[ShipmentDocumentAttributes, ShipmentDocumentFilters]
):
    def __init__(self, config: ResourceConfig) -> None:
        super().__init__(
            replace(config, base_path="/shipment_documents", resource_type="shipment_documents")
        )
