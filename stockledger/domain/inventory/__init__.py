from stockledger.domain.inventory.aggregates import ConsumptionPlan, InventoryAggregate, InventoryLot, LotTake
from stockledger.domain.inventory.aggregator import InventoryStatusAggregator
from stockledger.domain.inventory.engine import LedgerEngine
from stockledger.domain.inventory.ledger_view import TransactionLedgerView
from stockledger.domain.inventory.locks import ProductLockRegistry
from stockledger.domain.inventory.records import Batch, Product, Sale, SaleConsumptionDetail, SaleResult
from stockledger.domain.inventory.registry import ProductRegistry
from stockledger.domain.inventory.status import BatchSummary, InventoryStatus, build_inventory_status

__all__ = [
    "Batch",
    "BatchSummary",
    "ConsumptionPlan",
    "InventoryAggregate",
    "InventoryLot",
    "InventoryStatus",
    "InventoryStatusAggregator",
    "LedgerEngine",
    "LotTake",
    "Product",
    "ProductLockRegistry",
    "ProductRegistry",
    "Sale",
    "SaleConsumptionDetail",
    "SaleResult",
    "TransactionLedgerView",
    "build_inventory_status",
]
