"""
Sales Order Platform API - Main Application.

FastAPI application exposing the sales endpoints. Domain errors raised by the
services are mapped to HTTP responses here:

- NotFoundError -> 404
- InvalidStateTransitionError, ConcurrencyConflictError -> 409
- ValidationFailedError, InvalidArgumentError, QuantityOutOfRangeError,
  malformed requests -> 400
"""

import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import __version__
from api.models import ErrorResponse
from api.settings import get_settings
from domain.errors import (
    ConcurrencyConflictError,
    InvalidArgumentError,
    InvalidStateTransitionError,
    NotFoundError,
    QuantityOutOfRangeError,
    ValidationFailedError,
)

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

logger = logging.getLogger("api")

app = FastAPI(
    title="Sales Order Platform API",
    description="REST API for recording sales with quantity-based discounts",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=False,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    response = await call_next(request)

    duration = round((time.time() - start_time) * 1000, 2)
    logger.info(
        f"{request.method} {request.url.path} "
        f"Status: {response.status_code} "
        f"Time: {duration}ms"
    )
    return response


def _error(status_code: int, error: str, detail: str, errors=None) -> JSONResponse:
    body = ErrorResponse(error=error, detail=detail, errors=list(errors or []), status_code=status_code)
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error(404, "Not found", str(exc))


async def handle_conflict(request: Request, exc: Exception) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} rejected: {exc}")
    return _error(409, "Conflict", str(exc))


async def handle_validation_failed(request: Request, exc: ValidationFailedError) -> JSONResponse:
    return _error(400, "Validation failed", str(exc), exc.errors)


async def handle_invalid_argument(request: Request, exc: Exception) -> JSONResponse:
    return _error(400, "Invalid request", str(exc), [str(exc)])


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', '')}"
        for error in exc.errors()
    ]
    return _error(400, "Validation failed", "; ".join(errors), errors)


app.add_exception_handler(NotFoundError, handle_not_found)
app.add_exception_handler(InvalidStateTransitionError, handle_conflict)
app.add_exception_handler(ConcurrencyConflictError, handle_conflict)
app.add_exception_handler(ValidationFailedError, handle_validation_failed)
app.add_exception_handler(QuantityOutOfRangeError, handle_invalid_argument)
app.add_exception_handler(InvalidArgumentError, handle_invalid_argument)
app.add_exception_handler(RequestValidationError, handle_request_validation)


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status, version and the configured storage backend.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "sales-order-platform-api",
        "repository_backend": settings.repository_backend,
    }


@app.get("/", tags=["Root"])
def root():
    return {
        "message": "Sales Order Platform API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


from api.routers import sales

app.include_router(sales.router, prefix="/api/v1", tags=["Sales"])
