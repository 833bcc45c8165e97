#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json

import requests

SAMPLE_EVENTS = [
    {"product_id": "PRD001", "event_type": "purchase", "quantity": 100, "unit_price": "50.00", "timestamp": "2025-01-01T10:00:00Z"},
    {"product_id": "PRD001", "event_type": "purchase", "quantity": 50, "unit_price": "55.00", "timestamp": "2025-01-05T10:00:00Z"},
    {"product_id": "PRD002", "event_type": "purchase", "quantity": 200, "unit_price": "30.00", "timestamp": "2025-01-02T10:00:00Z"},
    {"product_id": "PRD001", "event_type": "sale", "quantity": 60, "timestamp": "2025-01-10T10:00:00Z"},
    {"product_id": "PRD001", "event_type": "sale", "quantity": 30, "timestamp": "2025-01-15T10:00:00Z"},
    {"product_id": "PRD002", "event_type": "sale", "quantity": 100, "timestamp": "2025-01-12T10:00:00Z"},
    {"product_id": "PRD001", "event_type": "purchase", "quantity": 75, "unit_price": "60.00", "timestamp": "2025-01-20T10:00:00Z"},
    {"product_id": "PRD003", "event_type": "purchase", "quantity": 150, "unit_price": "25.00", "timestamp": "2025-01-08T10:00:00Z"},
    {"product_id": "PRD001", "event_type": "sale", "quantity": 80, "timestamp": "2025-01-25T10:00:00Z"},
    {"product_id": "PRD003", "event_type": "sale", "quantity": 50, "timestamp": "2025-01-18T10:00:00Z"},
]


def main() -> None:
    parser = argparse.ArgumentParser(description="Post the sample purchase/sale sequence to a running server")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--reset", action="store_true", help="Clear all data first")
    args = parser.parse_args()

    if args.reset:
        resp = requests.delete(f"{args.base_url}/admin/data", timeout=30)
        resp.raise_for_status()

    resp = requests.post(f"{args.base_url}/events/batch", json=SAMPLE_EVENTS, timeout=60)
    resp.raise_for_status()
    print(json.dumps(resp.json(), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
