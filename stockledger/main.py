from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from stockledger.api.routes_admin import router as admin_router
from stockledger.api.routes_events import router as events_router
from stockledger.api.routes_inventory import router as inventory_router
from stockledger.bootstrap import Services, build_services
from stockledger.core.config import get_settings
from stockledger.core.logging import configure_logging
from stockledger.domain.errors import (
    ConcurrencyConflictError,
    InsufficientInventoryError,
    InvalidArgumentError,
    InventoryError,
    UnknownProductError,
)
from stockledger.ingestion.events import EventValidationError, UnsupportedEventTypeError

configure_logging()
logger = logging.getLogger(__name__)

# Most specific first.
_ERROR_STATUS: tuple[tuple[type[InventoryError], int], ...] = (
    (UnsupportedEventTypeError, 400),
    (EventValidationError, 422),
    (InvalidArgumentError, 400),
    (UnknownProductError, 404),
    (InsufficientInventoryError, 409),
    (ConcurrencyConflictError, 409),
)


def _status_for(exc: InventoryError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 500


def create_app(services: Services | None = None) -> FastAPI:
    settings = services.settings if services is not None else get_settings()
    app = FastAPI(title=settings.app_name)
    app.state.services = services or build_services(settings=settings)

    @app.on_event("startup")
    def on_startup() -> None:
        app.state.services.database.init_db()
        logger.info("database ready: dialect=%s", app.state.services.database.dialect_name)

    @app.on_event("shutdown")
    def on_shutdown() -> None:
        app.state.services.close()

    @app.exception_handler(InventoryError)
    async def inventory_error_handler(_: Request, exc: InventoryError):
        return JSONResponse(status_code=_status_for(exc), content=exc.to_dict())

    @app.get("/healthz")
    def healthz() -> dict:
        return {"status": "ok"}

    app.include_router(events_router)
    app.include_router(inventory_router)
    app.include_router(admin_router)
    return app


app = create_app()
