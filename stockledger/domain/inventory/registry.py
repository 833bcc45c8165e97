from __future__ import annotations

import logging

from stockledger.domain.errors import InvalidArgumentError
from stockledger.domain.inventory.records import Product
from stockledger.domain.inventory.repositories import ProductRepository
from stockledger.persistence.database import Database

logger = logging.getLogger(__name__)


class ProductRegistry:
    def __init__(self, database: Database):
        self.database = database

    def ensure_exists(self, product_id: str, display_name: str | None = None) -> Product:
        """Return the product, creating it on first reference. The first stored name wins."""
        if not isinstance(product_id, str) or not product_id.strip():
            raise InvalidArgumentError("product_id must be a non-empty string")
        with self.database.session_scope() as session:
            row, created = ProductRepository(session).get_or_create(product_id, display_name)
            product = Product.from_row(row)
        if created:
            logger.info("product registered: product_id=%s name=%s", product.product_id, product.name)
        return product

    def get(self, product_id: str) -> Product | None:
        with self.database.session_scope() as session:
            row = ProductRepository(session).get(product_id)
            return Product.from_row(row) if row is not None else None

    def list_all(self) -> list[Product]:
        with self.database.session_scope() as session:
            return [Product.from_row(row) for row in ProductRepository(session).list_all()]
