from __future__ import annotations

import logging
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterator

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session

from stockledger.core.config import Settings
from stockledger.core.timeutil import now_utc, parse_timestamp, to_utc
from stockledger.domain.errors import (
    ConcurrencyConflictError,
    InsufficientInventoryError,
    InvalidArgumentError,
    UnknownProductError,
)
from stockledger.domain.inventory.aggregates import InventoryAggregate, InventoryLot, round_money
from stockledger.domain.inventory.locks import ProductLockRegistry
from stockledger.domain.inventory.records import Batch, Sale, SaleConsumptionDetail, SaleResult
from stockledger.domain.inventory.repositories import (
    BatchRepository,
    ProductRepository,
    SaleRepository,
    set_local_lock_timeout,
)
from stockledger.domain.inventory.status import InventoryStatus, build_inventory_status
from stockledger.persistence.database import Database
from stockledger.persistence.models import MONEY_LIMIT, BatchModel

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected, lock_not_available
_PG_CONFLICT_SQLSTATES = {"40001", "40P01", "55P03"}


def _is_conflict(exc: DBAPIError) -> bool:
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _PG_CONFLICT_SQLSTATES:
        return True
    return isinstance(exc, OperationalError) and "database is locked" in str(orig).lower()


def _require_quantity(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(f"quantity must be a whole number of units, got {value!r}")
    if value <= 0:
        raise InvalidArgumentError(f"quantity must be > 0, got {value}")
    return value


def _require_unit_price(value: Any) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise InvalidArgumentError(f"unit_price must be a decimal amount, got {value!r}")
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidArgumentError(f"unit_price must be a decimal amount, got {value!r}") from exc
    if not price.is_finite():
        raise InvalidArgumentError("unit_price must be finite")
    if price < 0:
        raise InvalidArgumentError(f"unit_price must be >= 0, got {price}")
    if price >= MONEY_LIMIT:
        raise InvalidArgumentError(f"unit_price must be below {MONEY_LIMIT}, got {price}")
    if round_money(price) != price:
        raise InvalidArgumentError(f"unit_price supports at most 6 decimal places, got {price}")
    return price


def _resolve_timestamp(value: datetime | str | None) -> datetime:
    if value is None:
        return now_utc()
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, str):
        try:
            return parse_timestamp(value)
        except ValueError as exc:
            raise InvalidArgumentError(f"timestamp must be ISO-8601, got {value!r}") from exc
    raise InvalidArgumentError(f"timestamp must be a datetime or ISO-8601 string, got {value!r}")


def _to_lot(row: BatchModel) -> InventoryLot:
    return InventoryLot(
        batch_id=row.id,
        remaining=row.remaining_quantity,
        unit_price=row.unit_price,
        purchase_timestamp=to_utc(row.purchase_timestamp),
    )


class LedgerEngine:
    """FIFO costing over the batch and sale tables.

    Every mutation for a product runs under the in-process product lock and inside one
    database transaction that row-locks the product and its open batches before reading
    quantities. A failure anywhere rolls the whole transaction back.
    """

    def __init__(
        self,
        database: Database,
        locks: ProductLockRegistry | None = None,
        settings: Settings | None = None,
    ):
        self.database = database
        self.locks = locks or ProductLockRegistry()
        self.settings = settings or database.settings

    @contextmanager
    def _mutation(self, product_id: str) -> Iterator[Session]:
        with self.locks.hold(product_id):
            try:
                with self.database.session_scope() as session:
                    if self.database.is_postgres:
                        set_local_lock_timeout(session, self.settings.lock_timeout_ms)
                    yield session
            except DBAPIError as exc:
                if _is_conflict(exc):
                    raise ConcurrencyConflictError(product_id, str(exc.orig)) from exc
                raise

    def record_purchase(
        self,
        product_id: str,
        quantity: int,
        unit_price: Decimal | int | str,
        timestamp: datetime | str | None = None,
    ) -> Batch:
        quantity = _require_quantity(quantity)
        price = _require_unit_price(unit_price)
        purchased_at = _resolve_timestamp(timestamp)

        with self._mutation(product_id) as session:
            if ProductRepository(session).get_for_update(product_id) is None:
                raise UnknownProductError(product_id)
            row = BatchRepository(session).add(product_id, quantity, price, purchased_at)
            batch = Batch.from_row(row)

        logger.info(
            "purchase recorded: product_id=%s batch_id=%s quantity=%s unit_price=%s",
            product_id,
            batch.id,
            quantity,
            price,
        )
        return batch

    def record_sale(
        self,
        product_id: str,
        quantity: int,
        timestamp: datetime | str | None = None,
    ) -> SaleResult:
        quantity = _require_quantity(quantity)
        sold_at = _resolve_timestamp(timestamp)

        try:
            with self._mutation(product_id) as session:
                # Lock order: product row, then its open batches. Missing product means no stock.
                ProductRepository(session).get_for_update(product_id)
                rows = BatchRepository(session).lock_available(product_id)
                aggregate = InventoryAggregate.from_lots(product_id, (_to_lot(row) for row in rows))
                plan = aggregate.plan_consumption(quantity)
                if plan.total_cost >= MONEY_LIMIT:
                    raise InvalidArgumentError(f"sale cost {plan.total_cost} exceeds the storable amount")

                rows_by_id = {row.id: row for row in rows}
                sales = SaleRepository(session)
                sale_row = sales.add(product_id, quantity, plan.total_cost, sold_at)
                details: list[SaleConsumptionDetail] = []
                for take in plan.takes:
                    rows_by_id[take.batch_id].remaining_quantity -= take.quantity
                    sales.add_detail(sale_row, take.batch_id, take.quantity, take.unit_price)
                    details.append(
                        SaleConsumptionDetail(
                            batch_id=take.batch_id,
                            quantity_used=take.quantity,
                            unit_price=take.unit_price,
                        )
                    )
                session.flush()
                result = SaleResult(sale=Sale.from_row(sale_row), details=details)
        except InsufficientInventoryError as exc:
            logger.warning(
                "sale rejected: product_id=%s available=%s requested=%s",
                product_id,
                exc.available,
                exc.requested,
            )
            raise

        logger.info(
            "sale recorded: product_id=%s sale_id=%s quantity=%s total_cost=%s batches=%s",
            product_id,
            result.sale.id,
            quantity,
            result.total_cost,
            [detail.batch_id for detail in details],
        )
        return result

    def get_inventory_status(self, product_id: str) -> InventoryStatus:
        with self.database.read_scope() as session:
            batches = [Batch.from_row(row) for row in BatchRepository(session).list_for_product(product_id)]
        return build_inventory_status(product_id, batches)

    def get_all_inventory_status(self) -> list[InventoryStatus]:
        # One transaction for products and batches so the rollup is a single snapshot.
        with self.database.read_scope() as session:
            product_ids = [row.product_id for row in ProductRepository(session).list_all()]
            grouped: dict[str, list[Batch]] = defaultdict(list)
            for row in BatchRepository(session).list_all():
                grouped[row.product_id].append(Batch.from_row(row))
        return [build_inventory_status(product_id, grouped.get(product_id, [])) for product_id in product_ids]
