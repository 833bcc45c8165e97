from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from stockledger.core.timeutil import to_utc
from stockledger.domain.errors import InventoryError

SUPPORTED_EVENT_TYPES = ("purchase", "sale")


class EventValidationError(InventoryError, ValueError):
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        self.errors = errors or []
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "errors": self.errors}


class UnsupportedEventTypeError(EventValidationError):
    code = "UNSUPPORTED_EVENT_TYPE"

    def __init__(self, event_type: Any):
        self.event_type = event_type
        super().__init__(f"unsupported event_type: {event_type!r}")


class _EventBase(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    product_id: str = Field(min_length=1, max_length=128)
    # no bool or numeric-string coercion
    quantity: int = Field(gt=0, strict=True)
    timestamp: datetime | None = None
    product_name: str | None = Field(default=None, max_length=256)

    @field_validator("product_id")
    @classmethod
    def _strip_product_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("product_id must not be blank")
        return value

    @field_validator("timestamp")
    @classmethod
    def _to_utc(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        return to_utc(value)


class PurchaseEvent(_EventBase):
    event_type: Literal["purchase"]
    unit_price: Decimal = Field(ge=0, max_digits=18, decimal_places=6)


class SaleEvent(_EventBase):
    event_type: Literal["sale"]


InventoryEvent = Annotated[Union[PurchaseEvent, SaleEvent], Field(discriminator="event_type")]

_event_adapter: TypeAdapter[PurchaseEvent | SaleEvent] = TypeAdapter(InventoryEvent)


def _errors_for_json(exc: ValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


def parse_event(raw: dict[str, Any] | str | bytes) -> PurchaseEvent | SaleEvent:
    """Validate an inbound event. Raises before anything reaches the engine."""
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise EventValidationError(f"event is not valid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise EventValidationError("event must be a JSON object")

    event_type = raw.get("event_type")
    if event_type is None:
        raise EventValidationError(
            "missing required field: event_type",
            errors=[{"loc": ["event_type"], "msg": "Field required", "type": "missing"}],
        )
    if event_type not in SUPPORTED_EVENT_TYPES:
        raise UnsupportedEventTypeError(event_type)

    try:
        return _event_adapter.validate_python(raw)
    except ValidationError as exc:
        errors = _errors_for_json(exc)
        fields = sorted({".".join(str(part) for part in err["loc"][1:] or err["loc"]) for err in errors})
        raise EventValidationError(f"invalid {event_type} event: {', '.join(fields)}", errors=errors) from exc
