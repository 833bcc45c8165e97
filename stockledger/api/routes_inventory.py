from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query

from stockledger.api.deps import get_services
from stockledger.bootstrap import Services
from stockledger.core.wire import to_wire

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.get("/status")
def list_inventory_status(services: Services = Depends(get_services)):
    return to_wire([status.to_dict() for status in services.aggregator.all_statuses()])


@router.get("/status/{product_id}")
def get_inventory_status(product_id: str, services: Services = Depends(get_services)):
    return to_wire(services.aggregator.status(product_id).to_dict())


@router.get("/summary")
def get_inventory_summary(services: Services = Depends(get_services)):
    return to_wire(services.aggregator.summary())


@router.get("/ledger")
def get_transaction_ledger(
    product_id: str | None = Query(default=None),
    event_type: Literal["purchase", "sale"] | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1, le=10000),
    services: Services = Depends(get_services),
):
    entries = services.ledger_view.serialized_entries(product_id=product_id, event_type=event_type, limit=limit)
    return to_wire({"count": len(entries), "entries": entries})


@router.get("/products")
def list_products(services: Services = Depends(get_services)):
    products = services.registry.list_all()
    return {"count": len(products), "products": [product.to_dict() for product in products]}


@router.get("/products/{product_id}")
def get_product(product_id: str, services: Services = Depends(get_services)):
    product = services.registry.get(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="product not found")
    return product.to_dict()
