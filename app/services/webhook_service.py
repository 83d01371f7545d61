"""
Outbound webhooks for ticket events.

Each enabled webhook subscribed to the event (or to ``*``) gets the event
body POSTed with retries and exponential backoff. Every attempt is
recorded in ``webhook_logs``. Delivery problems are logged and counted,
never raised to the caller.
"""
import asyncio
import hashlib
import hmac
import json
import time
from typing import Any, Dict, Optional

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import WebhookDeliveryError
from app.models.webhook import Webhook, WebhookLog
from app.schemas.webhook import WebhookConfig
from app.utils.logger import webhook_logger as logger
from app.utils.time import utc_now

RESPONSE_BODY_LIMIT = 1000

# Module-level so tests can replace it
sleep = asyncio.sleep


def backoff_delay(attempt: int) -> float:
    """Seconds to wait after a failed attempt (1-based): 1, 2, 4, ... capped."""
    return min(1.0 * (2 ** (attempt - 1)), settings.WEBHOOK_MAX_BACKOFF)


def sign_body(secret: str, body: str) -> str:
    return hmac.new(secret.encode("utf-8"), body.encode("utf-8"), hashlib.sha256).hexdigest()


def build_body(event: str, payload: Dict[str, Any]) -> str:
    return json.dumps(
        {"event": event, "timestamp": utc_now().isoformat() + "Z", "data": payload},
        default=str,
    )


def build_headers(webhook: WebhookConfig, body: str) -> Dict[str, str]:
    headers = dict(webhook.headers or {})
    headers["Content-Type"] = "application/json"
    headers["User-Agent"] = settings.WEBHOOK_USER_AGENT
    if webhook.secret:
        headers["X-Webhook-Signature"] = f"sha256={sign_body(webhook.secret, body)}"
    return headers


def subscribes_to(webhook: WebhookConfig, event: str) -> bool:
    events = webhook.events or []
    if isinstance(events, str):
        try:
            events = json.loads(events)
        except ValueError:
            return False
    return event in events or "*" in events


async def _send_once(
    db: AsyncSession, client: httpx.AsyncClient, webhook: WebhookConfig, event: str, body: str, attempt: int
) -> None:
    """One delivery attempt. Raises WebhookDeliveryError on failure after logging it."""
    started = time.monotonic()
    response_code = None
    response_body = None
    error_message = None
    try:
        response = await client.request(
            webhook.method or "POST",
            webhook.url,
            content=body,
            headers=build_headers(webhook, body),
            timeout=webhook.timeout or settings.WEBHOOK_DEFAULT_TIMEOUT,
        )
        response_code = response.status_code
        response_body = response.text[:RESPONSE_BODY_LIMIT]
        if not response.is_success:
            error_message = f"HTTP {response.status_code}: {response.reason_phrase}"
    except httpx.HTTPError as e:
        error_message = str(e) or type(e).__name__

    db.add(WebhookLog(
        webhook_id=webhook.id,
        event=event,
        payload=body,
        response_code=response_code,
        response_body=response_body,
        success=error_message is None,
        error_message=error_message,
        attempt_number=attempt,
        duration_ms=int((time.monotonic() - started) * 1000),
    ))
    await db.commit()

    if error_message is not None:
        raise WebhookDeliveryError(error_message)


async def deliver(db: AsyncSession, client: httpx.AsyncClient, webhook: WebhookConfig, event: str, payload: Dict[str, Any]) -> bool:
    max_attempts = webhook.retry_count or settings.WEBHOOK_DEFAULT_RETRIES
    body = build_body(event, payload)

    for attempt in range(1, max_attempts + 1):
        try:
            await _send_once(db, client, webhook, event, body, attempt)
            return True
        except WebhookDeliveryError as e:
            logger.warning(
                f"Webhook {webhook.id} attempt {attempt}/{max_attempts} failed: {e}",
                extra={"webhook_id": webhook.id, "event": event},
            )
            if attempt < max_attempts:
                await sleep(backoff_delay(attempt))

    logger.error(f"Webhook {webhook.id} gave up on '{event}' after {max_attempts} attempts")
    return False


async def trigger_webhook(
    db: AsyncSession, event: str, payload: Dict[str, Any], client: Optional[httpx.AsyncClient] = None
) -> Dict[str, int]:
    """Send ``event`` to every enabled webhook listening for it. Returns sent/failed counts."""
    sent = failed = 0
    try:
        result = await db.execute(select(Webhook).filter(Webhook.enabled == True).order_by(Webhook.id))
        webhooks = [WebhookConfig.model_validate(w) for w in result.scalars().all()]
        webhooks = [w for w in webhooks if subscribes_to(w, event)]
        if not webhooks:
            return {"sent": 0, "failed": 0}

        owns_client = client is None
        client = client or httpx.AsyncClient()
        try:
            for webhook in webhooks:
                try:
                    if await deliver(db, client, webhook, event, payload):
                        sent += 1
                    else:
                        failed += 1
                except Exception as e:
                    logger.error(f"Error processing webhook {webhook.id}: {e}", exc_info=True)
                    await db.rollback()
                    failed += 1
        finally:
            if owns_client:
                await client.aclose()
    except Exception as e:
        logger.error(f"Error triggering webhooks for '{event}': {e}", exc_info=True)

    return {"sent": sent, "failed": failed}
