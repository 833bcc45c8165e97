from __future__ import annotations

from decimal import Decimal
from typing import Any

from stockledger.domain.inventory.engine import LedgerEngine
from stockledger.domain.inventory.status import InventoryStatus


class InventoryStatusAggregator:
    """Read-only entry point for reporting callers; keeps them off the engine's write API."""

    def __init__(self, engine: LedgerEngine):
        self._engine = engine

    def status(self, product_id: str) -> InventoryStatus:
        return self._engine.get_inventory_status(product_id)

    def all_statuses(self) -> list[InventoryStatus]:
        return self._engine.get_all_inventory_status()

    def summary(self) -> dict[str, Any]:
        statuses = self.all_statuses()
        return {
            "productCount": len(statuses),
            "totalQuantity": sum(status.total_quantity for status in statuses),
            "totalValue": sum((status.total_cost for status in statuses), Decimal("0")),
        }
