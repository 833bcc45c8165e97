from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal

from sqlalchemy.dialects import postgresql, sqlite

from stockledger.persistence.database import Database
from stockledger.persistence.models import Money


def test_reads_use_repeatable_read_on_postgres(database, monkeypatch):
    assert database._read_options() == {}

    monkeypatch.setattr(Database, "is_postgres", property(lambda self: True))

    assert database._read_options() == {"isolation_level": "REPEATABLE READ"}


def test_multi_query_reads_share_one_read_scope(database, engine, ledger_view, registry, monkeypatch):
    registry.ensure_exists("P")
    engine.record_purchase("P", 1, Decimal("1"))
    calls = []
    original = database.read_scope

    @contextmanager
    def counting_read_scope():
        calls.append(1)
        with original() as session:
            yield session

    monkeypatch.setattr(database, "read_scope", counting_read_scope)

    ledger_view.entries()
    engine.get_all_inventory_status()
    engine.get_inventory_status("P")

    assert len(calls) == 3


def test_money_binds_micro_units_on_sqlite_and_numeric_on_postgres():
    money = Money()
    amount = Decimal("123456789012.345678")

    stored = money.process_bind_param(amount, sqlite.dialect())
    assert stored == 123456789012345678
    assert money.process_result_value(stored, sqlite.dialect()) == amount

    assert money.process_bind_param(Decimal("1.5"), postgresql.dialect()) == Decimal("1.500000")
    assert money.process_bind_param(None, sqlite.dialect()) is None
