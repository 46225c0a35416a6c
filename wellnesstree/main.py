"""Wellness Tree API application.

Run with ``uvicorn wellnesstree.main:app``.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wellnesstree.api.credits import router as credits_router
from wellnesstree.api.health import router as health_router
from wellnesstree.api.middleware import error_response, setup_middleware
from wellnesstree.api.pricing import router as pricing_router
from wellnesstree.api.shipments import router as shipments_router
from wellnesstree.api.shipping import router as shipping_router
from wellnesstree.application.ledger_service import get_credit_store
from wellnesstree.infrastructure.config import settings
from wellnesstree.infrastructure.courier_client import get_courier_registry
from wellnesstree.infrastructure.logging_config import configure_logging

configure_logging(level=settings.log_level, json_logs=settings.log_json)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Discover couriers and wire the credit store; dispose the SQL engine on shutdown."""
    logger.info(
        "Starting Wellness Tree API",
        version=settings.api_version,
        debug=settings.debug,
        credit_store=settings.credit_store_backend,
    )

    registry = get_courier_registry()
    logger.info(
        "Courier discovery complete",
        courier_count=len(registry.list_couriers()),
        couriers=[c.id for c in registry.list_couriers()],
    )
    get_credit_store()

    yield

    if settings.credit_store_backend == "sql":
        from wellnesstree.infrastructure.database import get_engine

        await get_engine().dispose()

    logger.info("Shutting down Wellness Tree API")


app = FastAPI(
    title="Wellness Tree API",
    description="Pricing, shipment tracking and AI credit ledger for the dispensary marketplace",
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_middleware(app)

app.include_router(health_router, tags=["Health"])
app.include_router(pricing_router)
app.include_router(shipments_router)
app.include_router(shipping_router)
app.include_router(credits_router)


# ============================================================================
# Exception Handlers
# ============================================================================


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render HTTP errors, including mapped domain errors, as the error envelope."""
    detail = exc.detail if isinstance(exc.detail, dict) else {"message": str(exc.detail)}
    return error_response(
        request,
        exc.status_code,
        detail.get("error_code", "ERROR"),
        detail.get("message", ""),
        details=detail.get("details"),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed requests as INVALID_ARGUMENT with one entry per field."""
    errors = [
        {"field": ".".join(str(part) for part in error.get("loc", ())), "message": error.get("msg", "")}
        for error in exc.errors()
    ]
    return error_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        "INVALID_ARGUMENT",
        "Request validation failed",
        details={"errors": errors},
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled exception in handler",
        path=request.url.path,
        method=request.method,
        error=str(exc),
    )
    return error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "An internal error occurred",
    )
