"""Rate limiting for abuse prevention.

Two layers:
- ``ClientRequestWindow``: a global sliding one-minute budget per client,
  enforced by ``RateLimitMiddleware`` for every request except health checks.
  One instance is created per application and kept on ``app.state``.
- slowapi ``Limiter``: stricter per-route limits (uploads) applied with
  route decorators.
"""

import json
import threading
import time
from collections import deque
from typing import Any, Callable, Deque, Dict, Tuple

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from docintake.config import get_settings

# Paths never counted against the global window
EXEMPT_PATHS = frozenset({"/health", "/version"})


def get_client_ip(request: Request) -> str:
    """
    Get the client IP address from the request.

    Only trusts X-Forwarded-For header from configured trusted proxies
    to prevent IP spoofing attacks.

    Args:
        request: FastAPI request object

    Returns:
        Client IP address string
    """
    direct_ip: str = get_remote_address(request)

    trusted_proxy_list = get_settings().trusted_proxy_list
    if not trusted_proxy_list:
        return direct_ip  # Prevent spoofing

    if direct_ip in trusted_proxy_list:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

    return direct_ip


class ClientRequestWindow:
    """Sliding-window request counter keyed by client identity.

    slowapi still enforces the per-route upload limits. This window carries
    the global per-client budget because it needs an injectable clock, which
    the storage backends behind slowapi do not expose.

    Args:
        max_requests: Requests allowed per client within ``window_seconds``
        window_seconds: Window length
        clock: Monotonic time source in seconds
        prune_threshold: Tracked-client count above which idle clients are dropped
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        prune_threshold: int = 1000,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._prune_threshold = prune_threshold
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def hit(self, client_id: str) -> Tuple[bool, int, int]:
        """Record a request attempt.

        Returns:
            (allowed, remaining, retry_after_seconds)
        """
        now = self._clock()
        cutoff = now - self.window_seconds

        with self._lock:
            timestamps = self._hits.setdefault(client_id, deque())
            while timestamps and timestamps[0] <= cutoff:
                timestamps.popleft()

            if len(timestamps) >= self.max_requests:
                retry_after = max(1, int(timestamps[0] + self.window_seconds - now + 0.999))
                return False, 0, retry_after

            timestamps.append(now)
            remaining = self.max_requests - len(timestamps)

            if len(self._hits) > self._prune_threshold:
                self._prune(cutoff)

        return True, remaining, 0

    def _prune(self, cutoff: float) -> None:
        for key in list(self._hits):
            timestamps = self._hits[key]
            while timestamps and timestamps[0] <= cutoff:
                timestamps.popleft()
            if not timestamps:
                del self._hits[key]

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._hits)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


def _too_many_requests(retry_after: int, limit: str) -> Response:
    error_body = {
        "success": False,
        "error": {
            "message": f"Too many requests. Please retry after {retry_after} seconds.",
            "status_code": 429,
        },
        "retry_after": retry_after,
    }

    response = Response(
        content=json.dumps(error_body),
        status_code=429,
        media_type="application/json",
    )
    response.headers["Retry-After"] = str(retry_after)
    response.headers["X-RateLimit-Remaining"] = "0"
    response.headers["X-RateLimit-Limit"] = limit
    return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Middleware enforcing the global per-client window.

    Rejected requests get 429; accepted ones carry X-RateLimit-Limit and
    X-RateLimit-Remaining headers.
    """

    def __init__(self, app: ASGIApp, window: ClientRequestWindow) -> None:
        super().__init__(app)
        self.window = window

    async def dispatch(
        self,
        request: Request,
        call_next: Any,
    ) -> Response:
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        limit = f"{self.window.max_requests} per {int(self.window.window_seconds)} seconds"
        allowed, remaining, retry_after = self.window.hit(get_client_ip(request))
        if not allowed:
            return _too_many_requests(retry_after, limit)

        response: Response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = limit
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response


# slowapi limiter for per-route limits, in-memory storage
limiter = Limiter(key_func=get_client_ip)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """
    Custom handler for slowapi rate limit exceeded errors.

    Returns 429 Too Many Requests with Retry-After, X-RateLimit-Limit and
    X-RateLimit-Remaining headers, in the same error envelope as the rest
    of the API.

    Args:
        request: FastAPI request object
        exc: RateLimitExceeded exception with limit details

    Returns:
        Response with 429 status code and rate limit headers
    """
    retry_after = getattr(exc, "retry_after", 60)
    detail = getattr(exc, "detail", None) or "rate limit"
    return _too_many_requests(retry_after, str(detail))


def get_limiter() -> Limiter:
    """
    Get the configured slowapi limiter instance.

    Returns:
        Configured Limiter instance used by route decorators
    """
    return limiter


def upload_rate_limit() -> str:
    """Limit string for the upload endpoint, read from settings at request time."""
    return get_settings().upload_rate_limit
