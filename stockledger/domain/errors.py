from __future__ import annotations

from typing import Any


class InventoryError(Exception):
    code: str = "INVENTORY_ERROR"

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "detail": str(self)}


class InvalidArgumentError(InventoryError, ValueError):
    code = "INVALID_ARGUMENT"


class UnknownProductError(InventoryError, LookupError):
    code = "UNKNOWN_PRODUCT"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"unknown product: {product_id}")


class InsufficientInventoryError(InventoryError):
    code = "INSUFFICIENT_INVENTORY"

    def __init__(self, available: int, requested: int, product_id: str | None = None):
        self.available = available
        self.requested = requested
        self.product_id = product_id
        super().__init__(f"Insufficient inventory. Available: {available}, Requested: {requested}")

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "product_id": self.product_id,
            "available": self.available,
            "requested": self.requested,
        }


class ConcurrencyConflictError(InventoryError):
    """Lock contention, lock timeout or serialization failure. The transaction was rolled back."""

    code = "CONCURRENCY_CONFLICT"
    retryable = True

    def __init__(self, product_id: str, reason: str):
        self.product_id = product_id
        self.reason = reason
        super().__init__(f"concurrent update conflict for product {product_id}: {reason}")

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "product_id": self.product_id, "retryable": True}
