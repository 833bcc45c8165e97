from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from stockledger.bootstrap import Services, build_services
from stockledger.core.config import Settings, get_settings
from stockledger.persistence.database import Database


@pytest.fixture()
def test_db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.sqlite"


@pytest.fixture()
def settings() -> Settings:
    return get_settings().model_copy(update={"conflict_retry_backoff_seconds": 0.0})


@pytest.fixture()
def database(test_db_path: Path, settings: Settings):
    db = Database(f"sqlite+pysqlite:///{test_db_path}", settings=settings)
    db.init_db()
    yield db
    db.drop_all()
    db.dispose()


@pytest.fixture()
def services(database: Database) -> Services:
    return build_services(database=database)


@pytest.fixture()
def engine(services: Services):
    return services.engine


@pytest.fixture()
def registry(services: Services):
    return services.registry


@pytest.fixture()
def gateway(services: Services):
    return services.gateway


@pytest.fixture()
def ledger_view(services: Services):
    return services.ledger_view


@pytest.fixture()
def client(services: Services):
    from stockledger.main import create_app

    with TestClient(create_app(services)) as c:
        yield c
