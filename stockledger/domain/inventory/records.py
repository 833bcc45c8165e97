from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from stockledger.core.timeutil import isoformat_z, to_utc
from stockledger.persistence.models import (
    BatchModel,
    ProductModel,
    SaleConsumptionDetailModel,
    SaleModel,
)


@dataclass(frozen=True)
class Product:
    product_id: str
    name: str
    created_at: datetime

    @classmethod
    def from_row(cls, row: ProductModel) -> "Product":
        return cls(product_id=row.product_id, name=row.name, created_at=to_utc(row.created_at))

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "created_at": isoformat_z(self.created_at),
        }


@dataclass(frozen=True)
class Batch:
    id: int
    product_id: str
    quantity: int
    unit_price: Decimal
    remaining_quantity: int
    purchase_timestamp: datetime

    @classmethod
    def from_row(cls, row: BatchModel) -> "Batch":
        return cls(
            id=row.id,
            product_id=row.product_id,
            quantity=row.quantity,
            unit_price=row.unit_price,
            remaining_quantity=row.remaining_quantity,
            purchase_timestamp=to_utc(row.purchase_timestamp),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "remaining_quantity": self.remaining_quantity,
            "purchase_timestamp": isoformat_z(self.purchase_timestamp),
        }


@dataclass(frozen=True)
class SaleConsumptionDetail:
    batch_id: int
    quantity_used: int
    unit_price: Decimal

    @classmethod
    def from_row(cls, row: SaleConsumptionDetailModel) -> "SaleConsumptionDetail":
        return cls(batch_id=row.batch_id, quantity_used=row.quantity_used, unit_price=row.unit_price)

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "quantity_used": self.quantity_used,
            "unit_cost": self.unit_price,
        }


@dataclass(frozen=True)
class Sale:
    id: int
    product_id: str
    quantity: int
    total_cost: Decimal
    sale_timestamp: datetime

    @classmethod
    def from_row(cls, row: SaleModel) -> "Sale":
        return cls(
            id=row.id,
            product_id=row.product_id,
            quantity=row.quantity,
            total_cost=row.total_cost,
            sale_timestamp=to_utc(row.sale_timestamp),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "total_cost": self.total_cost,
            "sale_timestamp": isoformat_z(self.sale_timestamp),
        }


@dataclass(frozen=True)
class SaleResult:
    sale: Sale
    details: list[SaleConsumptionDetail] = field(default_factory=list)

    @property
    def total_cost(self) -> Decimal:
        return self.sale.total_cost

    def to_dict(self) -> dict[str, Any]:
        return {
            "sale": self.sale.to_dict(),
            "batch_details": [detail.to_dict() for detail in self.details],
            "total_cost": self.sale.total_cost,
        }
