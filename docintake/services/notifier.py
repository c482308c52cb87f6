"""Outbound notification when a document has been processed.

Delivers a ``document.processed`` event to the operator-configured webhook
with an optional HMAC-SHA256 signature and a short retry schedule. Delivery
problems are logged and reported as False; they never fail the upload that
triggered them.
"""

import asyncio
import hashlib
import hmac
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

import httpx

from docintake.config import get_settings
from docintake.models.document import DocumentRecord

logger = logging.getLogger(__name__)

MAX_WEBHOOK_URL_LENGTH = 2048
RETRY_DELAYS_SECONDS: Sequence[float] = (1, 2, 4)


def sign_payload(payload_bytes: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload_bytes, hashlib.sha256).hexdigest()


def validate_webhook_url(webhook_url: str) -> None:
    """Raise ValueError unless the URL is an HTTPS URL of sane length."""
    if not webhook_url.startswith("https://"):
        raise ValueError(f"Webhook URL must use HTTPS, got: {webhook_url}")
    if len(webhook_url) > MAX_WEBHOOK_URL_LENGTH:
        raise ValueError(
            f"Webhook URL exceeds maximum length ({MAX_WEBHOOK_URL_LENGTH} characters)"
        )


async def send_webhook(
    webhook_url: str,
    payload: Dict[str, Any],
    secret: Optional[str] = None,
    max_attempts: int = 3,
    timeout_seconds: float = 10.0,
) -> bool:
    """POST a JSON payload, retrying with backoff on errors and non-2xx responses.

    Args:
        webhook_url: Target webhook URL (must be HTTPS)
        payload: Event payload
        secret: HMAC key; the X-Webhook-Signature header is omitted without one
        max_attempts: Total delivery attempts (default: 3)
        timeout_seconds: Per-attempt request timeout

    Returns:
        bool: True if delivered, False once all attempts failed

    Raises:
        ValueError: If webhook_url is not acceptable
    """
    validate_webhook_url(webhook_url)

    payload_bytes = json.dumps(payload, default=str).encode("utf-8")
    headers = {
        "Content-Type": "application/json",
        "User-Agent": "DocIntake-Service/1.0",
    }
    if secret:
        headers["X-Webhook-Signature"] = sign_payload(payload_bytes, secret)

    last_error: Optional[str] = None
    for attempt in range(max_attempts):
        try:
            async with httpx.AsyncClient(timeout=timeout_seconds) as client:
                response = await client.post(webhook_url, content=payload_bytes, headers=headers)

            if 200 <= response.status_code < 300:
                logger.info("Webhook delivered: status=%s attempt=%d", response.status_code, attempt + 1)
                return True

            last_error = f"HTTP {response.status_code}: {response.text[:200]}"
        except httpx.TimeoutException as e:
            last_error = f"Timeout: {e}"
        except httpx.HTTPError as e:
            last_error = f"{type(e).__name__}: {e}"

        logger.warning("Webhook attempt %d/%d failed: %s", attempt + 1, max_attempts, last_error)
        if attempt < max_attempts - 1:
            delay = RETRY_DELAYS_SECONDS[min(attempt, len(RETRY_DELAYS_SECONDS) - 1)]
            await asyncio.sleep(delay)

    logger.error("Webhook delivery failed after %d attempts: %s", max_attempts, last_error)
    return False


async def notify_document_processed(record: DocumentRecord) -> bool:
    """Send the document.processed event if a webhook is configured.

    Returns:
        bool: True if delivered, False if not configured or delivery failed
    """
    settings = get_settings()
    if not settings.notification_webhook_url:
        return False

    payload = {
        "event": "document.processed",
        "document_id": record.id,
        "filename": record.filename,
        "category": record.category.value,
        "priority": record.priority.value,
        "status": record.status.value,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    try:
        return await send_webhook(
            settings.notification_webhook_url,
            payload,
            secret=settings.notification_secret,
        )
    except ValueError as e:
        logger.error("Invalid notification webhook URL: %s", e)
        return False
