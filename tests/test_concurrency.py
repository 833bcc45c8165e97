from __future__ import annotations

import sqlite3
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from stockledger.domain.errors import ConcurrencyConflictError, InsufficientInventoryError
from stockledger.domain.inventory.engine import _is_conflict
from stockledger.domain.inventory.locks import ProductLockRegistry

T0 = datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)


def _run_concurrently(workers: int, fn):
    barrier = threading.Barrier(workers)

    def _task(i):
        barrier.wait()
        try:
            return ("ok", fn(i))
        except Exception as exc:  # collected for assertions
            return ("error", exc)

    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(_task, range(workers)))


def test_concurrent_sales_never_oversell(engine, registry, ledger_view):
    registry.ensure_exists("P")
    engine.record_purchase("P", 60, Decimal("5"), T0)
    engine.record_purchase("P", 40, Decimal("6"), T0 + timedelta(hours=1))

    results = _run_concurrently(10, lambda i: engine.record_sale("P", 15, T0 + timedelta(days=1, seconds=i)))

    successes = [value for kind, value in results if kind == "ok"]
    failures = [value for kind, value in results if kind == "error"]
    assert len(successes) == 6
    assert len(failures) == 4
    assert all(isinstance(exc, InsufficientInventoryError) for exc in failures)
    assert all(exc.requested == 15 and exc.available == 10 for exc in failures)

    status = engine.get_inventory_status("P")
    assert status.total_quantity == 10
    consumed = sum(entry["quantity"] for entry in ledger_view.entries(event_type="sale"))
    assert consumed == 90
    # 60 @ 5 + 30 @ 6 across all successful sales
    assert sum((s.total_cost for s in successes), Decimal("0")) == Decimal("480")


def test_concurrent_mixed_products_keep_per_product_totals(engine, registry):
    for product_id in ("A", "B", "C"):
        registry.ensure_exists(product_id)
        engine.record_purchase(product_id, 50, Decimal("1"), T0)

    def _work(i):
        product_id = ("A", "B", "C")[i % 3]
        if i % 2:
            return engine.record_purchase(product_id, 5, Decimal("2"), T0 + timedelta(hours=1))
        return engine.record_sale(product_id, 4, T0 + timedelta(hours=2, seconds=i))

    results = _run_concurrently(12, _work)

    assert all(kind == "ok" for kind, _ in results)
    totals = {status.product_id: status.total_quantity for status in engine.get_all_inventory_status()}
    # each product: 50 + 2 purchases of 5 - 2 sales of 4
    assert totals == {"A": 52, "B": 52, "C": 52}


def test_concurrent_registration_creates_one_product(registry):
    results = _run_concurrently(8, lambda i: registry.ensure_exists("P", f"name-{i}"))

    assert all(kind == "ok" for kind, _ in results)
    names = {value.name for _, value in results}
    assert len(names) == 1
    assert [p.product_id for p in registry.list_all()] == ["P"]


def test_product_lock_registry_drops_idle_entries():
    locks = ProductLockRegistry()

    with locks.hold("A"):
        with locks.hold("B"):
            assert set(locks._entries) == {"A", "B"}
        assert set(locks._entries) == {"A"}

    assert locks._entries == {}


def test_sales_for_unknown_products_leave_no_lock_entries(engine):
    for product_id in ("ghost-1", "ghost-2"):
        with pytest.raises(InsufficientInventoryError):
            engine.record_sale(product_id, 1, T0)

    assert engine.locks._entries == {}


def test_product_lock_registry_serializes_holders():
    locks = ProductLockRegistry()
    active = {"now": 0, "max": 0}
    guard = threading.Lock()

    def _hold(_):
        with locks.hold("P"):
            with guard:
                active["now"] += 1
                active["max"] = max(active["max"], active["now"])
            threading.Event().wait(0.01)
            with guard:
                active["now"] -= 1

    _run_concurrently(6, _hold)

    assert active["max"] == 1
    assert locks._entries == {}


def test_sqlite_lock_error_is_classified_as_conflict():
    exc = OperationalError("UPDATE inventory_batches", {}, sqlite3.OperationalError("database is locked"))

    assert _is_conflict(exc)
    assert not _is_conflict(OperationalError("SELECT 1", {}, sqlite3.OperationalError("no such table: x")))


def test_gateway_retries_conflicts_against_fresh_state(gateway, engine, monkeypatch):
    original = engine.record_sale
    calls = {"n": 0}

    def conflicting_sale(product_id, quantity, timestamp=None):
        calls["n"] += 1
        if calls["n"] == 1:
            raise ConcurrencyConflictError(product_id, "could not obtain lock")
        return original(product_id, quantity, timestamp)

    gateway.ingest({"product_id": "P", "event_type": "purchase", "quantity": 5, "unit_price": "2"})
    monkeypatch.setattr(engine, "record_sale", conflicting_sale)

    result = gateway.ingest({"product_id": "P", "event_type": "sale", "quantity": 3})

    assert result.attempts == 2
    assert result.sale.total_cost == Decimal("6")
    assert engine.get_inventory_status("P").total_quantity == 2


def test_gateway_gives_up_after_max_retries(gateway, engine, monkeypatch):
    calls = {"n": 0}

    def always_conflict(product_id, quantity, timestamp=None):
        calls["n"] += 1
        raise ConcurrencyConflictError(product_id, "deadlock detected")

    monkeypatch.setattr(engine, "record_sale", always_conflict)

    with pytest.raises(ConcurrencyConflictError):
        gateway.ingest({"product_id": "P", "event_type": "sale", "quantity": 1})

    assert calls["n"] == gateway.settings.conflict_max_retries + 1
