"""
OmniTicket API - FastAPI application entry point
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from apps.api.routers import ledger, normalization, rules, settings as settings_router, sync
from packages.common.config import get_settings
from packages.common.errors import (
    AuthenticationError,
    CollaboratorError,
    DatabaseNotFoundError,
    ResolutionError,
)
from packages.common.log_config import configure_logging

settings = get_settings()
configure_logging(settings.log_level)
logger = structlog.get_logger()

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan context manager"""
    logger.info("starting_omniticket_api",
                environment=settings.environment,
                version=VERSION)
    yield
    logger.info("shutting_down_omniticket_api")


# Create FastAPI application
app = FastAPI(
    title="OmniTicket API",
    description="Grocery receipts from Gmail into a spending ledger on Google Sheets",
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors with structured logging"""
    logger.warning("validation_error",
                   path=request.url.path,
                   errors=exc.errors())
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.errors()},
    )


@app.exception_handler(AuthenticationError)
async def authentication_exception_handler(request: Request, exc: AuthenticationError):
    logger.warning("authentication_failed", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": str(exc)},
    )


@app.exception_handler(DatabaseNotFoundError)
async def database_not_found_handler(request: Request, exc: DatabaseNotFoundError):
    logger.warning("database_not_found", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc)},
    )


@app.exception_handler(CollaboratorError)
async def collaborator_exception_handler(request: Request, exc: CollaboratorError):
    """Mailbox, spreadsheet or model failure"""
    logger.error("collaborator_failed",
                 path=request.url.path,
                 collaborator=exc.collaborator,
                 upstream_status=exc.status_code,
                 error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": str(exc), "collaborator": exc.collaborator},
    )


@app.exception_handler(ResolutionError)
async def resolution_exception_handler(request: Request, exc: ResolutionError):
    logger.error("resolution_failed", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": str(exc)},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors"""
    logger.error("unhandled_exception",
                 path=request.url.path,
                 error=str(exc),
                 exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "request_id": request.headers.get("x-request-id"),
        },
    )


# Include routers
app.include_router(sync.router, prefix="/api/v1/sync", tags=["Sync"])
app.include_router(normalization.router, prefix="/api/v1/normalization", tags=["Normalization"])
app.include_router(rules.router, prefix="/api/v1/rules", tags=["Rules"])
app.include_router(ledger.router, prefix="/api/v1/ledger", tags=["Ledger"])
app.include_router(settings_router.router, prefix="/api/v1/settings", tags=["Settings"])


# Health check endpoint
@app.get("/health", tags=["System"])
async def health_check():
    """Health check endpoint for Docker and monitoring"""
    return {
        "status": "healthy",
        "environment": settings.environment,
        "version": VERSION,
        "services": {
            "google": "service_account" if settings.google_service_account_json else "user_token_only",
            "ai_model": settings.ai_model,
        },
    }


# Metrics endpoint (Prometheus)
@app.get("/metrics", tags=["System"])
async def metrics():
    """Prometheus metrics endpoint"""
    if not settings.metrics_enabled:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": "Metrics disabled"}
        )

    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


# Root endpoint
@app.get("/", tags=["System"])
async def root():
    """API root endpoint"""
    return {
        "name": "OmniTicket API",
        "version": VERSION,
        "environment": settings.environment,
        "docs": "/docs" if settings.environment != "production" else None,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "apps.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
