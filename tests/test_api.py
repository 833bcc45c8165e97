from __future__ import annotations


def _purchase(client, product_id="PRD001", quantity=100, unit_price="50.00", timestamp="2025-01-01T10:00:00Z"):
    return client.post(
        "/events",
        json={
            "product_id": product_id,
            "event_type": "purchase",
            "quantity": quantity,
            "unit_price": unit_price,
            "timestamp": timestamp,
        },
    )


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_post_events_and_read_status(client):
    assert _purchase(client).status_code == 201
    assert _purchase(client, quantity=50, unit_price="55", timestamp="2025-01-05T10:00:00Z").status_code == 201

    sale = client.post(
        "/events",
        json={"product_id": "PRD001", "event_type": "sale", "quantity": 120, "timestamp": "2025-01-10T10:00:00Z"},
    )
    assert sale.status_code == 201
    body = sale.json()
    assert body["total_cost"] == "6100.000000"
    assert [d["quantity_used"] for d in body["batch_details"]] == [100, 20]

    status = client.get("/inventory/status/PRD001")
    assert status.status_code == 200
    data = status.json()
    assert data["productId"] == "PRD001"
    assert data["totalQuantity"] == 30
    assert data["totalCost"] == "1650.000000"
    assert data["averageCost"] == "55.000000"
    assert [b["quantity"] for b in data["batches"]] == [0, 30]
    assert data["batches"][0]["purchaseTimestamp"] == "2025-01-01T10:00:00Z"

    all_status = client.get("/inventory/status").json()
    assert [s["productId"] for s in all_status] == ["PRD001"]


def test_validation_errors_map_to_4xx(client):
    missing_price = client.post("/events", json={"product_id": "P", "event_type": "purchase", "quantity": 1})
    assert missing_price.status_code == 422
    assert missing_price.json()["error"] == "VALIDATION_ERROR"

    unsupported = client.post("/events", json={"product_id": "P", "event_type": "refund", "quantity": 1})
    assert unsupported.status_code == 400
    assert unsupported.json()["error"] == "UNSUPPORTED_EVENT_TYPE"

    assert client.get("/inventory/products").json()["count"] == 0


def test_insufficient_inventory_is_409(client):
    _purchase(client, quantity=40)

    resp = client.post("/events", json={"product_id": "PRD001", "event_type": "sale", "quantity": 41})

    assert resp.status_code == 409
    assert resp.json()["available"] == 40
    assert resp.json()["requested"] == 41
    assert client.get("/inventory/status/PRD001").json()["totalQuantity"] == 40


def test_batch_endpoint_reports_counts(client):
    resp = client.post(
        "/events/batch",
        json=[
            {"product_id": "A", "event_type": "purchase", "quantity": 10, "unit_price": 2},
            {"product_id": "A", "event_type": "sale", "quantity": 20},
            {"product_id": "A", "event_type": "sale", "quantity": 4},
        ],
    )

    assert resp.status_code == 200
    body = resp.json()
    assert (body["total"], body["successful"], body["failed"]) == (3, 2, 1)
    assert body["details"][1]["error"]["error"] == "INSUFFICIENT_INVENTORY"


def test_ledger_endpoint(client):
    _purchase(client)
    client.post(
        "/events",
        json={"product_id": "PRD001", "event_type": "sale", "quantity": 10, "timestamp": "2025-01-02T10:00:00Z"},
    )

    resp = client.get("/inventory/ledger")
    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 2
    assert [e["event_type"] for e in body["entries"]] == ["sale", "purchase"]
    assert body["entries"][0]["timestamp"] == "2025-01-02T10:00:00Z"

    only_purchases = client.get("/inventory/ledger", params={"event_type": "purchase"}).json()
    assert only_purchases["count"] == 1
    assert client.get("/inventory/ledger", params={"event_type": "refund"}).status_code == 422


def test_products_and_summary(client):
    _purchase(client, product_id="A", quantity=2, unit_price="3")
    _purchase(client, product_id="B", quantity=1, unit_price="4")

    products = client.get("/inventory/products").json()
    assert [p["product_id"] for p in products["products"]] == ["A", "B"]
    assert client.get("/inventory/products/A").json()["name"] == "A"
    assert client.get("/inventory/products/missing").status_code == 404

    summary = client.get("/inventory/summary").json()
    assert summary == {"productCount": 2, "totalQuantity": 3, "totalValue": "10.000000"}


def test_admin_reset_clears_everything(client):
    _purchase(client)
    client.post("/events", json={"product_id": "PRD001", "event_type": "sale", "quantity": 1})

    resp = client.delete("/admin/data")

    assert resp.status_code == 200
    assert resp.json()["tables_cleared"] == ["sale_batch_details", "sales", "inventory_batches", "products"]
    assert client.get("/inventory/status").json() == []
    assert client.get("/inventory/ledger").json()["count"] == 0


def test_money_is_returned_as_exact_strings(client):
    _purchase(client, product_id="BIG", quantity=3, unit_price="41152263004.115226")

    sale = client.post("/events", json={"product_id": "BIG", "event_type": "sale", "quantity": 3}).json()

    assert sale["total_cost"] == "123456789012.345678"
    assert sale["batch_details"][0]["unit_cost"] == "41152263004.115226"
    ledger = client.get("/inventory/ledger", params={"product_id": "BIG", "event_type": "purchase"}).json()
    assert ledger["entries"][0]["unit_price"] == "41152263004.115226"


def test_boolean_quantity_is_rejected(client):
    _purchase(client, quantity=5)

    resp = client.post("/events", json={"product_id": "PRD001", "event_type": "sale", "quantity": True})

    assert resp.status_code == 422
    assert client.get("/inventory/status/PRD001").json()["totalQuantity"] == 5
