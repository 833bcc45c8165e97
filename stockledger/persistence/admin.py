from __future__ import annotations

import logging

from sqlalchemy import delete

from stockledger.persistence.database import Database
from stockledger.persistence.models import (
    BatchModel,
    ProductModel,
    SaleConsumptionDetailModel,
    SaleModel,
)

logger = logging.getLogger(__name__)

# Children before parents: details -> sales -> batches -> products.
RESET_ORDER = (SaleConsumptionDetailModel, SaleModel, BatchModel, ProductModel)


def reset_all_data(database: Database) -> list[str]:
    cleared: list[str] = []
    with database.session_scope() as session:
        for model in RESET_ORDER:
            result = session.execute(delete(model))
            logger.info("cleared table=%s rows=%s", model.__tablename__, result.rowcount)
            cleared.append(model.__tablename__)
    return cleared
