"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from crew_payroll.api.routes import health_router, payroll_router
from crew_payroll.calculators.rate_book import RateBook
from crew_payroll.config import get_settings
from crew_payroll.database import create_tables, dispose_db, init_db
from crew_payroll.exceptions import (
    InvalidTransitionError,
    NotFound,
    PayrollError,
    PersistenceUnavailable,
)
from crew_payroll.services.entry_store import InMemoryEntryStore, SqlEntryStore
from crew_payroll.services.payroll_service import PayrollService
from crew_payroll.services.rate_store import load_rate_book

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[PayrollError], int] = {
    NotFound: status.HTTP_404_NOT_FOUND,
    PersistenceUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
}


async def build_default_service() -> PayrollService:
    """Build the service from settings (SQL store unless ENTRY_STORE=memory)."""
    settings = get_settings()
    if settings.entry_store == "memory":
        logger.warning("Using in-memory entry store; entries are lost on restart")
        return PayrollService(
            InMemoryEntryStore(),
            RateBook(default_thresholds=settings.default_thresholds),
        )

    engine, session_factory = init_db()
    await create_tables(engine)
    return PayrollService(
        SqlEntryStore(session_factory),
        partial(load_rate_book, session_factory, settings.default_thresholds),
    )


def create_app(service: PayrollService | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Pass ``service`` to run against an existing store (tests, embedding).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler."""
        # Startup
        if service is None:
            app.state.payroll_service = await build_default_service()
        yield
        # Shutdown
        if service is None:
            await dispose_db()

    app = FastAPI(
        title="Crew Payroll API",
        description="Hours classification, review and daily labor cost reports",
        version="0.1.0",
        lifespan=lifespan,
    )
    if service is not None:
        app.state.payroll_service = service

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(PayrollError)
    async def payroll_exception_handler(request: Request, exc: PayrollError) -> JSONResponse:
        """Map engine errors to status codes."""
        status_code = status.HTTP_400_BAD_REQUEST
        for error_type, code in ERROR_STATUS.items():
            if isinstance(exc, error_type):
                status_code = code
                break
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_code, content=exc.to_dict())

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
    app.include_router(payroll_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
