from stockledger.ingestion.events import (
    EventValidationError,
    InventoryEvent,
    PurchaseEvent,
    SaleEvent,
    UnsupportedEventTypeError,
    parse_event,
)
from stockledger.ingestion.gateway import EventIngestionGateway, IngestOutcome, IngestResult

__all__ = [
    "EventIngestionGateway",
    "EventValidationError",
    "IngestOutcome",
    "IngestResult",
    "InventoryEvent",
    "PurchaseEvent",
    "SaleEvent",
    "UnsupportedEventTypeError",
    "parse_event",
]
