"""Logging setup and middleware for request tracking and structured logging."""

import json
import logging
import sys
import time
import uuid
from typing import Any, Awaitable, Callable, Dict, Optional, TextIO

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("docintake.audit")


def configure_logging(level: str = "INFO", stream: TextIO = sys.stdout) -> None:
    """Configure root logging; request lines are pre-formatted JSON."""
    logging.basicConfig(
        level=level,
        format='%(message)s',
        stream=stream,
        force=True,
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that logs request/response information in structured JSON format.

    Logs include:
    - Request ID (UUID, reused from an incoming X-Request-ID header)
    - HTTP method and path
    - Status code
    - Processing time
    - Client IP
    - Classification outcome (category, priority) when the response carries it

    Security notes:
    - Does NOT log API keys, file contents, or extracted text
    - Does NOT log request/response bodies
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        """Process request and log structured information."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()

        log_data: Dict[str, Any] = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "user_ip": request.client.host if request.client else "unknown",
        }

        try:
            response = await call_next(request)
        except Exception as e:
            processing_time_ms = (time.time() - start_time) * 1000
            error_log = {
                **log_data,
                "status_code": 500,
                "processing_time_ms": round(processing_time_ms, 2),
                "error": str(e),
                "error_type": type(e).__name__,
                "message": f"Request failed: {request.method} {request.url.path}",
            }
            logger.error(json.dumps(error_log), exc_info=True)
            raise

        processing_time_ms = (time.time() - start_time) * 1000

        log_data.update({
            "status_code": response.status_code,
            "processing_time_ms": round(processing_time_ms, 2),
        })

        if "X-Document-Category" in response.headers:
            log_data["category"] = response.headers["X-Document-Category"]
        if "X-Document-Priority" in response.headers:
            log_data["priority"] = response.headers["X-Document-Priority"]

        logger.info(json.dumps(log_data))

        response.headers["X-Request-ID"] = request_id

        return response


def get_request_id(request: Request) -> str:
    """
    Get the request ID from the request state.

    Args:
        request: FastAPI request object

    Returns:
        Request ID string (UUID)
    """
    return getattr(request.state, "request_id", "unknown")


def audit(request: Request, action: str, resource: Optional[str] = None) -> None:
    """Write an audit line for a sensitive operation (upload, download, delete)."""
    audit_logger.info(json.dumps({
        "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "event": "audit",
        "action": action,
        "request_id": get_request_id(request),
        "user_ip": request.client.host if request.client else "unknown",
        "user_agent": request.headers.get("user-agent"),
        "resource": resource,
    }))
