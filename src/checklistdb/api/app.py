"""FastAPI application factory for the checklistdb admin API."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from checklistdb import __version__
from checklistdb.api.deps import init_maintenance, reset_maintenance
from checklistdb.api.middleware import RequestTimingMiddleware
from checklistdb.api.routers import migrations, tenants
from checklistdb.api.schemas import ErrorResponse, HealthResponse
from checklistdb.migration.registry import RegistryOrderError
from checklistdb.migration.version_store import CorruptVersionMarkerError
from checklistdb.models.version import InvalidVersionError
from checklistdb.service.maintenance import TenantMaintenance
from checklistdb.settings import Settings
from checklistdb.storage.adapter import (
    DocumentStore,
    StoreError,
    StoreNotFoundError,
    StorePermissionError,
    StoreUnavailableError,
)
from checklistdb.storage.layout import InvalidTenantIdError
from checklistdb.storage.memory import InMemoryDocumentStore
from checklistdb.validation.engine import DocumentPathError, UnknownRuleError

logger = logging.getLogger("checklistdb.api")

_CALLER_ERRORS: tuple[type[ValueError], ...] = (
    DocumentPathError,
    InvalidTenantIdError,
    InvalidVersionError,
    RegistryOrderError,
    UnknownRuleError,
)


def _store_status(exc: StoreError) -> int:
    if isinstance(exc, StorePermissionError):
        return 403
    if isinstance(exc, StoreNotFoundError):
        return 404
    if isinstance(exc, StoreUnavailableError):
        return 503
    return 500


async def _caller_error_handler(request: Request, exc: Exception) -> JSONResponse:
    body = ErrorResponse(error=type(exc).__name__, message=str(exc))
    return JSONResponse(status_code=422, content=body.model_dump())


async def _store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.warning("Store failure on %s %s: %s", request.method, request.url.path, exc)
    body = ErrorResponse(error=type(exc).__name__, message=str(exc))
    return JSONResponse(status_code=_store_status(exc), content=body.model_dump())


async def _data_state_error_handler(
    request: Request, exc: CorruptVersionMarkerError
) -> JSONResponse:
    logger.warning("Unreadable tenant data on %s %s: %s", request.method, request.url.path, exc)
    body = ErrorResponse(error=type(exc).__name__, message=str(exc))
    return JSONResponse(status_code=409, content=body.model_dump())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Build the store and maintenance services alongside the application."""
    settings: Settings = app.state.settings
    store: DocumentStore | None = app.state.store
    if store is None:
        store = InMemoryDocumentStore(max_batch_operations=settings.batch_max_operations)
    init_maintenance(TenantMaintenance(store, settings=settings))
    try:
        yield
    finally:
        reset_maintenance()


def create_app(settings: Settings | None = None, store: DocumentStore | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Without a *store* the app runs against a fresh in-memory document store.
    """
    if settings is None:
        settings = Settings()

    app = FastAPI(
        title="checklistdb",
        description="Schema migration, validation and repair for per-tenant checklist data.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store

    # Middleware
    app.add_middleware(RequestTimingMiddleware)

    for error in _CALLER_ERRORS:
        app.add_exception_handler(error, _caller_error_handler)
    app.exception_handler(StoreError)(_store_error_handler)
    app.exception_handler(CorruptVersionMarkerError)(_data_state_error_handler)

    app.include_router(tenants.router, prefix="/tenants", tags=["tenants"])
    app.include_router(migrations.router, prefix="/migrations", tags=["migrations"])

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    return app


def main() -> None:
    """Run the admin API server using settings from environment / .env file."""
    settings = Settings()

    logging.basicConfig(level=settings.log_level.upper())
    logger.info(
        "checklistdb API server v%s starting (host=%s, port=%d)",
        __version__, settings.api_server_host, settings.effective_port,
    )

    uvicorn.run(
        "checklistdb.api.app:create_app",
        factory=True,
        host=settings.api_server_host,
        port=settings.effective_port,
        log_level=settings.log_level.lower(),
    )
