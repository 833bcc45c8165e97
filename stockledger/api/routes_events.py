from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends

from stockledger.api.deps import get_services
from stockledger.bootstrap import Services
from stockledger.core.wire import to_wire

router = APIRouter(tags=["events"])


@router.post("/events", status_code=201)
def ingest_event(
    payload: dict[str, Any] = Body(...),
    services: Services = Depends(get_services),
):
    result = services.gateway.ingest(payload)
    return to_wire(result.to_dict())


@router.post("/events/batch")
def ingest_events(
    payload: list[dict[str, Any]] = Body(...),
    services: Services = Depends(get_services),
):
    outcomes = services.gateway.ingest_many(payload)
    successful = sum(1 for outcome in outcomes if outcome.success)
    body = {
        "total": len(outcomes),
        "successful": successful,
        "failed": len(outcomes) - successful,
        "details": [outcome.to_dict() for outcome in outcomes],
    }
    return to_wire(body)
