from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from stockledger.domain.errors import InsufficientInventoryError

MONEY_QUANT = Decimal("0.000001")
ZERO = Decimal("0")


def round_money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


@dataclass
class InventoryLot:
    batch_id: int
    remaining: int
    unit_price: Decimal
    purchase_timestamp: datetime

    def fifo_key(self) -> tuple[datetime, int]:
        return (self.purchase_timestamp, self.batch_id)


@dataclass(frozen=True)
class LotTake:
    batch_id: int
    quantity: int
    unit_price: Decimal

    @property
    def cost(self) -> Decimal:
        return self.quantity * self.unit_price


@dataclass
class ConsumptionPlan:
    requested: int
    takes: list[LotTake] = field(default_factory=list)

    @property
    def total_cost(self) -> Decimal:
        return sum((take.cost for take in self.takes), ZERO)


@dataclass
class InventoryAggregate:
    """FIFO lots of a single product, oldest first."""

    product_id: str
    lots: list[InventoryLot] = field(default_factory=list)

    @classmethod
    def from_lots(cls, product_id: str, lots: Iterable[InventoryLot]) -> "InventoryAggregate":
        return cls(product_id=product_id, lots=sorted(lots, key=InventoryLot.fifo_key))

    def qty_on_hand(self) -> int:
        return sum(lot.remaining for lot in self.lots)

    def plan_consumption(self, qty: int) -> ConsumptionPlan:
        """Work out which lots a sale of ``qty`` draws from without touching them."""
        available = self.qty_on_hand()
        if available < qty:
            raise InsufficientInventoryError(available=available, requested=qty, product_id=self.product_id)
        plan = ConsumptionPlan(requested=qty)
        needed = qty
        for lot in self.lots:
            if needed <= 0:
                break
            if lot.remaining <= 0:
                continue
            take = min(needed, lot.remaining)
            plan.takes.append(LotTake(batch_id=lot.batch_id, quantity=take, unit_price=lot.unit_price))
            needed -= take
        return plan
