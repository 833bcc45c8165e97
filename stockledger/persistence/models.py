from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from stockledger.core.timeutil import now_utc

# Unit prices and costs carry six decimal places; inputs with more are rejected.
MONEY_SCALE = 6
MONEY_PRECISION = 18
MONEY_LIMIT = Decimal(10) ** (MONEY_PRECISION - MONEY_SCALE)
_MICROS = Decimal(10) ** MONEY_SCALE
_QUANT = Decimal(1).scaleb(-MONEY_SCALE)


class Money(TypeDecorator):
    """Exact decimal amount with six places.

    PostgreSQL stores it as NUMERIC(18, 6). SQLite has no exact decimal storage
    (NUMERIC columns come back through a float), so there it is kept as integer
    micro-units in a BIGINT column.
    """

    impl = Numeric(MONEY_PRECISION, MONEY_SCALE, asdecimal=True)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(BigInteger())
        return dialect.type_descriptor(Numeric(MONEY_PRECISION, MONEY_SCALE, asdecimal=True))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        amount = Decimal(value).quantize(_QUANT)
        if dialect.name == "sqlite":
            return int(amount * _MICROS)
        return amount

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "sqlite":
            return (Decimal(int(value)) / _MICROS).quantize(_QUANT)
        return Decimal(value).quantize(_QUANT)


class Base(DeclarativeBase):
    pass


class ProductModel(Base):
    __tablename__ = "products"

    product_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=now_utc)


class BatchModel(Base):
    __tablename__ = "inventory_batches"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_batch_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_batch_unit_price_non_negative"),
        CheckConstraint(
            "remaining_quantity >= 0 AND remaining_quantity <= quantity",
            name="ck_batch_remaining_within_quantity",
        ),
    )

    # Autoincrement id is the creation sequence and breaks purchase_timestamp ties.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[str] = mapped_column(String(128), ForeignKey("products.product_id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Money(), nullable=False)
    remaining_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    purchase_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=now_utc)


class SaleModel(Base):
    __tablename__ = "sales"
    __table_args__ = (CheckConstraint("quantity > 0", name="ck_sale_quantity_positive"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[str] = mapped_column(String(128), ForeignKey("products.product_id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(Money(), nullable=False)
    sale_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=now_utc)

    details: Mapped[list["SaleConsumptionDetailModel"]] = relationship(
        back_populates="sale",
        order_by="SaleConsumptionDetailModel.id",
    )


class SaleConsumptionDetailModel(Base):
    __tablename__ = "sale_batch_details"
    __table_args__ = (CheckConstraint("quantity_used > 0", name="ck_detail_quantity_used_positive"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sale_id: Mapped[int] = mapped_column(Integer, ForeignKey("sales.id"), nullable=False)
    batch_id: Mapped[int] = mapped_column(Integer, ForeignKey("inventory_batches.id"), nullable=False)
    quantity_used: Mapped[int] = mapped_column(Integer, nullable=False)
    # Price snapshot taken when the sale consumed the batch.
    unit_price: Mapped[Decimal] = mapped_column(Money(), nullable=False)

    sale: Mapped[SaleModel] = relationship(back_populates="details")


Index("ix_inventory_batches_fifo", BatchModel.product_id, BatchModel.purchase_timestamp, BatchModel.id)
Index("ix_sales_product_id", SaleModel.product_id)
Index("ix_sales_sale_timestamp", SaleModel.sale_timestamp)
Index("ix_sale_batch_details_sale_id", SaleConsumptionDetailModel.sale_id)
Index("ix_sale_batch_details_batch_id", SaleConsumptionDetailModel.batch_id)
