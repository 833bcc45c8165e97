from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable

from stockledger.core.timeutil import isoformat_z
from stockledger.domain.inventory.aggregates import ZERO, round_money
from stockledger.domain.inventory.records import Batch


@dataclass(frozen=True)
class BatchSummary:
    id: int
    quantity: int
    original_quantity: int
    unit_price: Decimal
    purchase_timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "quantity": self.quantity,
            "originalQuantity": self.original_quantity,
            "unitPrice": self.unit_price,
            "purchaseTimestamp": isoformat_z(self.purchase_timestamp),
        }


@dataclass(frozen=True)
class InventoryStatus:
    product_id: str
    total_quantity: int
    total_cost: Decimal
    average_cost: Decimal
    batches: list[BatchSummary] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "totalQuantity": self.total_quantity,
            "totalCost": self.total_cost,
            "averageCost": self.average_cost,
            "batches": [batch.to_dict() for batch in self.batches],
        }


def build_inventory_status(product_id: str, batches: Iterable[Batch]) -> InventoryStatus:
    """Roll up remaining quantity and value over a product's batches (given in FIFO order)."""
    summaries: list[BatchSummary] = []
    total_quantity = 0
    total_cost = ZERO
    for batch in batches:
        total_quantity += batch.remaining_quantity
        total_cost += batch.remaining_quantity * batch.unit_price
        summaries.append(
            BatchSummary(
                id=batch.id,
                quantity=batch.remaining_quantity,
                original_quantity=batch.quantity,
                unit_price=batch.unit_price,
                purchase_timestamp=batch.purchase_timestamp,
            )
        )
    average_cost = round_money(total_cost / total_quantity) if total_quantity > 0 else ZERO
    return InventoryStatus(
        product_id=product_id,
        total_quantity=total_quantity,
        total_cost=total_cost,
        average_cost=average_cost,
        batches=summaries,
    )
