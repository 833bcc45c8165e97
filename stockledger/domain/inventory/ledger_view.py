from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from stockledger.core.timeutil import isoformat_z, to_utc
from stockledger.domain.errors import InvalidArgumentError
from stockledger.domain.inventory.aggregates import round_money
from stockledger.domain.inventory.repositories import BatchRepository, SaleRepository
from stockledger.persistence.database import Database
from stockledger.persistence.models import BatchModel, SaleModel

LedgerEventType = Literal["purchase", "sale"]

# At equal timestamps a sale sorts ahead of a purchase in the descending ledger.
_TYPE_RANK = {"purchase": 0, "sale": 1}


def _purchase_entry(row: BatchModel) -> dict[str, Any]:
    return {
        "id": row.id,
        "product_id": row.product_id,
        "event_type": "purchase",
        "quantity": row.quantity,
        "unit_price": row.unit_price,
        "remaining_quantity": row.remaining_quantity,
        "timestamp": to_utc(row.purchase_timestamp),
    }


def _sale_entry(row: SaleModel) -> dict[str, Any]:
    return {
        "id": row.id,
        "product_id": row.product_id,
        "event_type": "sale",
        "quantity": row.quantity,
        "total_cost": row.total_cost,
        "unit_cost": round_money(row.total_cost / row.quantity),
        "timestamp": to_utc(row.sale_timestamp),
        "batch_details": [
            {
                "batch_id": detail.batch_id,
                "quantity_used": detail.quantity_used,
                "unit_cost": detail.unit_price,
            }
            for detail in row.details
        ],
    }


def _sort_key(entry: dict[str, Any]) -> tuple[datetime, int, int]:
    return (entry["timestamp"], _TYPE_RANK[entry["event_type"]], entry["id"])


class TransactionLedgerView:
    """Purchases and sales merged into one list, newest first. Rebuilt on every call."""

    def __init__(self, database: Database):
        self.database = database

    def entries(
        self,
        product_id: str | None = None,
        event_type: LedgerEventType | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        if event_type is not None and event_type not in _TYPE_RANK:
            raise InvalidArgumentError(f"unsupported ledger event_type: {event_type}")
        if limit is not None and limit <= 0:
            raise InvalidArgumentError("limit must be > 0")

        entries: list[dict[str, Any]] = []
        with self.database.read_scope() as session:
            if event_type in (None, "purchase"):
                entries.extend(_purchase_entry(row) for row in BatchRepository(session).list_all(product_id))
            if event_type in (None, "sale"):
                entries.extend(_sale_entry(row) for row in SaleRepository(session).list_all(product_id))

        entries.sort(key=_sort_key, reverse=True)
        if limit is not None:
            entries = entries[:limit]
        return entries

    def serialized_entries(self, **filters: Any) -> list[dict[str, Any]]:
        return [{**entry, "timestamp": isoformat_z(entry["timestamp"])} for entry in self.entries(**filters)]
