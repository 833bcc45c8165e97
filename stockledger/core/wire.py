from __future__ import annotations

from decimal import Decimal
from typing import Any

# Every Decimal on the wire is a money amount with six places.
_MONEY_QUANT = Decimal("0.000001")


def to_wire(value: Any) -> Any:
    """Render amounts as fixed-point strings so JSON output never goes through float."""
    if isinstance(value, dict):
        return {key: to_wire(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_wire(item) for item in value]
    if isinstance(value, Decimal):
        return format(value.quantize(_MONEY_QUANT), "f")
    return value
