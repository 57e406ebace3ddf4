"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from datetime import date

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, sessionmaker

from wash_ledger import __version__
from wash_ledger.api.routes import (
    approvals_router,
    cutoff_router,
    health_router,
    vehicles_router,
    wash_entries_router,
)
from wash_ledger.config import Settings, get_settings
from wash_ledger.database import create_schema, init_db
from wash_ledger.errors import (
    ConflictError,
    InvalidStateError,
    NetworkError,
    NotFoundError,
    PermissionDeniedError,
    TemporalPolicyError,
    ValidationError,
    WashLedgerError,
)
from wash_ledger.events import EventEmitter

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[WashLedgerError], int] = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ConflictError: status.HTTP_409_CONFLICT,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    TemporalPolicyError: status.HTTP_423_LOCKED,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidStateError: status.HTTP_409_CONFLICT,
    NetworkError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(exc: WashLedgerError) -> int:
    """HTTP status for an error, resolved along its class hierarchy."""
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return status.HTTP_400_BAD_REQUEST


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    if app.state.session_factory is None:
        engine, factory = init_db(app.state.settings.database_url)
        create_schema(engine)
        app.state.session_factory = factory
    yield


def create_app(
    *,
    settings: Settings | None = None,
    session_factory: sessionmaker[Session] | None = None,
    emitter: EventEmitter | None = None,
    today: Callable[[], date] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Wash Ledger API",
        description="Vehicle wash ledger with cutoff and approval policy",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings or get_settings()
    app.state.session_factory = session_factory
    app.state.emitter = emitter or EventEmitter()
    app.state.today = today

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(WashLedgerError)
    async def wash_ledger_exception_handler(
        request: Request, exc: WashLedgerError
    ) -> JSONResponse:
        """Map domain errors onto status codes."""
        return JSONResponse(
            status_code=status_for(exc),
            content={"detail": exc.message, "code": exc.code},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(vehicles_router, prefix="/api/v1")
    app.include_router(wash_entries_router, prefix="/api/v1")
    app.include_router(approvals_router, prefix="/api/v1")
    app.include_router(cutoff_router, prefix="/api/v1")

    return app
