"""FastAPI application for the document intake and classification service."""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Union

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded  # type: ignore[import-not-found]

from docintake.config import get_settings
from docintake.db.store import SupabaseDocumentStore, get_document_store
from docintake.middleware.errors import register_exception_handlers
from docintake.middleware.logging import RequestLoggingMiddleware, configure_logging
from docintake.middleware.rate_limit import (
    ClientRequestWindow,
    RateLimitMiddleware,
    get_limiter,
    rate_limit_exceeded_handler,
)
from docintake.middleware.security import SecurityHeadersMiddleware
from docintake.routers import documents

logger = logging.getLogger(__name__)

# Application metadata
VERSION = "1.0.0"
COMMIT_HASH = "development"  # Can be replaced by the build process


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan event handler for startup and shutdown."""
    settings = get_settings()
    configure_logging(settings.log_level)

    # Log startup (without exposing secrets)
    logger.info("Starting Document Intake API v%s", VERSION)
    logger.info("Environment: %s", settings.environment)
    logger.info("Model: %s", settings.model_name)
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY not set, AI classification will use the fallback summary")
    logger.info("Document store: %s", get_document_store().backend)

    yield

    logger.info("Shutting down Document Intake API")


settings = get_settings()

app = FastAPI(
    title="Document Intake API",
    description="Document upload, text extraction and hybrid AI + keyword classification",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# slowapi per-route limits (uploads)
app.state.limiter = get_limiter()

# Global per-client window, one per application
app.state.request_window = ClientRequestWindow(max_requests=settings.requests_per_minute)

register_exception_handlers(app)
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]

# Middleware added last runs first
app.add_middleware(RateLimitMiddleware, window=app.state.request_window)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Document-Category", "X-Document-Priority"],
)


@app.get("/")
async def root() -> Dict[str, Any]:
    return {
        "service": "Document Intake API",
        "version": VERSION,
        "endpoints": {
            "health": "GET /health",
            "process_file": "POST /api/process-file",
            "classify": "POST /api/classify",
            "documents": "GET /api/documents",
            "document": "GET /api/documents/{id}",
            "download": "GET /api/download/{id}",
            "statistics": "GET /api/statistics",
            "delete": "DELETE /api/delete/{id}",
        },
    }


@app.get("/health", response_model=None)
async def health_check() -> Union[Dict[str, Any], Response]:
    """
    Health check endpoint reporting classifier configuration and storage status.

    A missing Gemini key only degrades classification, so it does not make
    the service unhealthy; an unreachable document store does.

    Status Codes:
        200: Service operational
        503: Document store unavailable
    """
    settings = get_settings()
    services: Dict[str, str] = {}
    overall_healthy = True

    services["gemini_api"] = "configured" if settings.gemini_api_key else "not configured (fallback classification)"

    try:
        store = get_document_store()
        if isinstance(store, SupabaseDocumentStore):
            await asyncio.to_thread(
                lambda: store.client.table(store.table).select("id").limit(1).execute()
            )
        services["storage"] = f"healthy ({store.backend})"
    except Exception as e:
        services["storage"] = f"unhealthy: {str(e)}"
        overall_healthy = False

    response_data: Dict[str, Any] = {
        "status": "healthy" if overall_healthy else "unhealthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": services,
    }

    if not overall_healthy:
        return JSONResponse(content=response_data, status_code=503)

    return response_data


@app.get("/version")
async def version_info() -> Dict[str, str]:
    """
    Get version information for the API.

    Returns:
        JSON with version number and commit hash.
    """
    return {
        "version": VERSION,
        "commit_hash": COMMIT_HASH,
    }


app.include_router(documents.router)
