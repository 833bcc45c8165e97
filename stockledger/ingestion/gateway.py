from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Iterable, Literal

from stockledger.core.config import Settings
from stockledger.domain.errors import ConcurrencyConflictError, InventoryError
from stockledger.domain.inventory.engine import LedgerEngine
from stockledger.domain.inventory.records import Batch, SaleResult
from stockledger.domain.inventory.registry import ProductRegistry
from stockledger.ingestion.events import (
    EventValidationError,
    PurchaseEvent,
    SaleEvent,
    UnsupportedEventTypeError,
    parse_event,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestResult:
    event_type: Literal["purchase", "sale"]
    product_id: str
    batch: Batch | None = None
    sale: SaleResult | None = None
    attempts: int = 1

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "event_type": self.event_type,
            "product_id": self.product_id,
            "attempts": self.attempts,
        }
        if self.batch is not None:
            body["batch"] = self.batch.to_dict()
        if self.sale is not None:
            body.update(self.sale.to_dict())
        return body


@dataclass(frozen=True)
class IngestOutcome:
    index: int
    success: bool
    result: IngestResult | None = None
    error: InventoryError | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"index": self.index, "success": self.success}
        if self.result is not None:
            body["result"] = self.result.to_dict()
        if self.error is not None:
            body["error"] = self.error.to_dict()
        return body


class EventIngestionGateway:
    """Validates inbound purchase/sale events and hands them to the ledger engine.

    Delivery is at-least-once with no idempotency key: a sale delivered twice is
    consumed twice.
    """

    def __init__(self, registry: ProductRegistry, engine: LedgerEngine, settings: Settings | None = None):
        self.registry = registry
        self.engine = engine
        self.settings = settings or engine.settings

    def ingest(self, raw: dict[str, Any] | str | bytes) -> IngestResult:
        try:
            event = parse_event(raw)
        except UnsupportedEventTypeError as exc:
            logger.warning("event rejected: unsupported event_type=%r", exc.event_type)
            raise
        except EventValidationError as exc:
            logger.warning("event rejected: %s", exc)
            raise
        return self.dispatch(event)

    def dispatch(self, event: PurchaseEvent | SaleEvent) -> IngestResult:
        self.registry.ensure_exists(event.product_id, event.product_name)

        max_retries = self.settings.conflict_max_retries
        attempt = 0
        while True:
            attempt += 1
            try:
                result = self._apply(event, attempt)
            except ConcurrencyConflictError as exc:
                if attempt > max_retries:
                    logger.error(
                        "giving up after %s attempts: product_id=%s event_type=%s reason=%s",
                        attempt,
                        event.product_id,
                        event.event_type,
                        exc.reason,
                    )
                    raise
                logger.warning(
                    "conflict on attempt %s, retrying: product_id=%s event_type=%s reason=%s",
                    attempt,
                    event.product_id,
                    event.event_type,
                    exc.reason,
                )
                time.sleep(self.settings.conflict_retry_backoff_seconds * attempt)
                continue
            logger.info(
                "processed %s: product_id=%s quantity=%s attempts=%s",
                event.event_type,
                event.product_id,
                event.quantity,
                attempt,
            )
            return result

    def _apply(self, event: PurchaseEvent | SaleEvent, attempt: int) -> IngestResult:
        if isinstance(event, PurchaseEvent):
            batch = self.engine.record_purchase(event.product_id, event.quantity, event.unit_price, event.timestamp)
            return IngestResult(event_type="purchase", product_id=event.product_id, batch=batch, attempts=attempt)
        sale = self.engine.record_sale(event.product_id, event.quantity, event.timestamp)
        return IngestResult(event_type="sale", product_id=event.product_id, sale=sale, attempts=attempt)

    def ingest_many(self, raws: Iterable[dict[str, Any] | str | bytes]) -> list[IngestOutcome]:
        """Process events in order; a failing event is recorded and the rest still run."""
        outcomes: list[IngestOutcome] = []
        for index, raw in enumerate(raws):
            try:
                result = self.ingest(raw)
            except InventoryError as exc:
                outcomes.append(IngestOutcome(index=index, success=False, error=exc))
                continue
            outcomes.append(IngestOutcome(index=index, success=True, result=result))
        return outcomes
