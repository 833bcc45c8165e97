from __future__ import annotations

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from stockledger.core.config import Settings, get_settings
from stockledger.persistence.models import Base


def create_engine_from_url(url: str, settings: Settings | None = None) -> Engine:
    settings = settings or get_settings()
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            future=True,
            echo=settings.database_echo,
            connect_args={"check_same_thread": False, "timeout": settings.sqlite_busy_timeout_seconds},
        )
        _use_immediate_transactions(engine)
        return engine
    return create_engine(url, future=True, echo=settings.database_echo, pool_pre_ping=True)


def _use_immediate_transactions(engine: Engine) -> None:
    # pysqlite defers BEGIN until the first write, so two readers can both pass the
    # availability check. BEGIN IMMEDIATE takes the write lock when the transaction opens.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """Owns the SQLAlchemy engine and session factory for one database URL.

    Constructed explicitly and passed to every component; call ``dispose`` when done.
    """

    def __init__(self, url: str | None = None, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.url = url or self.settings.database_url
        self.engine = create_engine_from_url(self.url, self.settings)
        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
        )

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    @property
    def is_postgres(self) -> bool:
        return self.dialect_name.startswith("postgres")

    def init_db(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _read_options(self) -> dict[str, str]:
        # SQLite holds the database lock for the whole transaction; PostgreSQL needs a snapshot.
        if self.is_postgres:
            return {"isolation_level": "REPEATABLE READ"}
        return {}

    @contextmanager
    def read_scope(self) -> Generator[Session, None, None]:
        """Session whose queries all see one committed state, for multi-query reads."""
        with self.session_scope() as session:
            options = self._read_options()
            if options:
                session.connection(execution_options=options)
            yield session

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc) -> None:
        self.dispose()
