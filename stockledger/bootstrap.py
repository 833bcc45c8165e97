from __future__ import annotations

from dataclasses import dataclass

from stockledger.core.config import Settings, get_settings
from stockledger.domain.inventory.aggregator import InventoryStatusAggregator
from stockledger.domain.inventory.engine import LedgerEngine
from stockledger.domain.inventory.ledger_view import TransactionLedgerView
from stockledger.domain.inventory.locks import ProductLockRegistry
from stockledger.domain.inventory.registry import ProductRegistry
from stockledger.ingestion.gateway import EventIngestionGateway
from stockledger.persistence.database import Database


@dataclass
class Services:
    """Everything wired to one Database. ``close`` releases the connection pool."""

    settings: Settings
    database: Database
    registry: ProductRegistry
    engine: LedgerEngine
    aggregator: InventoryStatusAggregator
    ledger_view: TransactionLedgerView
    gateway: EventIngestionGateway

    def close(self) -> None:
        self.database.dispose()


def build_services(database: Database | None = None, settings: Settings | None = None) -> Services:
    settings = settings or (database.settings if database is not None else get_settings())
    database = database or Database(settings=settings)
    registry = ProductRegistry(database)
    engine = LedgerEngine(database, locks=ProductLockRegistry(), settings=settings)
    return Services(
        settings=settings,
        database=database,
        registry=registry,
        engine=engine,
        aggregator=InventoryStatusAggregator(engine),
        ledger_view=TransactionLedgerView(database),
        gateway=EventIngestionGateway(registry, engine, settings),
    )
