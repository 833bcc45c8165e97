from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Select, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from stockledger.persistence.models import (
    BatchModel,
    ProductModel,
    SaleConsumptionDetailModel,
    SaleModel,
)


class ProductRepository:
    def __init__(self, session: Session):
        self.session = session

    def get(self, product_id: str) -> ProductModel | None:
        return self.session.get(ProductModel, product_id)

    def get_for_update(self, product_id: str) -> ProductModel | None:
        stmt = select(ProductModel).where(ProductModel.product_id == product_id).with_for_update()
        return self.session.scalar(stmt)

    def list_all(self) -> list[ProductModel]:
        stmt = select(ProductModel).order_by(ProductModel.product_id.asc())
        return list(self.session.scalars(stmt).all())

    def get_or_create(self, product_id: str, name: str | None = None) -> tuple[ProductModel, bool]:
        existing = self.get(product_id)
        if existing is not None:
            return existing, False
        row = ProductModel(product_id=product_id, name=name or product_id)
        try:
            # Savepoint so a concurrent insert of the same id only undoes this insert.
            with self.session.begin_nested():
                self.session.add(row)
                self.session.flush()
        except IntegrityError:
            existing = self.get(product_id)
            if existing is None:
                raise
            return existing, False
        return row, True


class BatchRepository:
    def __init__(self, session: Session):
        self.session = session

    @staticmethod
    def _fifo_order(stmt: Select) -> Select:
        return stmt.order_by(BatchModel.purchase_timestamp.asc(), BatchModel.id.asc())

    def add(self, product_id: str, quantity: int, unit_price: Decimal, purchase_timestamp: datetime) -> BatchModel:
        row = BatchModel(
            product_id=product_id,
            quantity=quantity,
            unit_price=unit_price,
            remaining_quantity=quantity,
            purchase_timestamp=purchase_timestamp,
        )
        self.session.add(row)
        self.session.flush()
        return row

    def lock_available(self, product_id: str) -> list[BatchModel]:
        """Batches with stock left, oldest first, row-locked until the transaction ends."""
        stmt = self._fifo_order(
            select(BatchModel)
            .where(BatchModel.product_id == product_id)
            .where(BatchModel.remaining_quantity > 0)
        ).with_for_update()
        return list(self.session.scalars(stmt).all())

    def list_for_product(self, product_id: str) -> list[BatchModel]:
        stmt = self._fifo_order(select(BatchModel).where(BatchModel.product_id == product_id))
        return list(self.session.scalars(stmt).all())

    def list_all(self, product_id: str | None = None) -> list[BatchModel]:
        stmt = select(BatchModel)
        if product_id is not None:
            stmt = stmt.where(BatchModel.product_id == product_id)
        stmt = stmt.order_by(BatchModel.product_id.asc(), BatchModel.purchase_timestamp.asc(), BatchModel.id.asc())
        return list(self.session.scalars(stmt).all())


class SaleRepository:
    def __init__(self, session: Session):
        self.session = session

    def add(self, product_id: str, quantity: int, total_cost: Decimal, sale_timestamp: datetime) -> SaleModel:
        row = SaleModel(
            product_id=product_id,
            quantity=quantity,
            total_cost=total_cost,
            sale_timestamp=sale_timestamp,
        )
        self.session.add(row)
        self.session.flush()
        return row

    def add_detail(self, sale: SaleModel, batch_id: int, quantity_used: int, unit_price: Decimal) -> SaleConsumptionDetailModel:
        row = SaleConsumptionDetailModel(
            sale_id=sale.id,
            batch_id=batch_id,
            quantity_used=quantity_used,
            unit_price=unit_price,
        )
        self.session.add(row)
        return row

    def list_all(self, product_id: str | None = None) -> list[SaleModel]:
        stmt = select(SaleModel).options(selectinload(SaleModel.details))
        if product_id is not None:
            stmt = stmt.where(SaleModel.product_id == product_id)
        stmt = stmt.order_by(SaleModel.sale_timestamp.desc(), SaleModel.id.desc())
        return list(self.session.scalars(stmt).all())


def set_local_lock_timeout(session: Session, timeout_ms: int) -> None:
    if timeout_ms <= 0:
        return
    session.execute(text(f"SET LOCAL lock_timeout = {int(timeout_ms)}"))
