import hashlib
import hmac
import json

import httpx
import pytest
from sqlalchemy import select

from app.models.webhook import Webhook, WebhookLog
from app.services import webhook_service


@pytest.fixture
def delays(monkeypatch):
    recorded = []

    async def fake_sleep(seconds):
        recorded.append(seconds)

    monkeypatch.setattr(webhook_service, "sleep", fake_sleep)
    return recorded


def client_for(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def add_webhook(db, **kwargs):
    values = dict(name="Hook", url="https://hooks.example.com/in", events=["ticket.created"], enabled=True)
    values.update(kwargs)
    webhook = Webhook(**values)
    db.add(webhook)
    await db.commit()
    return webhook


async def logs(db):
    result = await db.execute(select(WebhookLog).order_by(WebhookLog.attempt_number))
    return result.scalars().all()


def test_backoff_doubles_and_caps():
    assert [webhook_service.backoff_delay(n) for n in range(1, 7)] == [1, 2, 4, 8, 10, 10]


async def test_delivers_event_body_and_headers(db, delays):
    await add_webhook(db, headers={"X-Team": "support"})
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, text="ok")

    async with client_for(handler) as client:
        result = await webhook_service.trigger_webhook(db, "ticket.created", {"ticket_number": "TKT-1"}, client=client)

    assert result == {"sent": 1, "failed": 0}
    request = seen[0]
    body = json.loads(request.content)
    assert body["event"] == "ticket.created"
    assert body["data"] == {"ticket_number": "TKT-1"}
    assert "timestamp" in body
    assert request.headers["content-type"] == "application/json"
    assert request.headers["user-agent"] == "HelpDesk-Webhook/1.0"
    assert request.headers["x-team"] == "support"
    assert "x-webhook-signature" not in request.headers
    assert delays == []


async def test_signature_uses_the_secret(db, delays):
    await add_webhook(db, secret="s3cret")
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(204)

    async with client_for(handler) as client:
        await webhook_service.trigger_webhook(db, "ticket.created", {"id": 1}, client=client)

    expected = hmac.new(b"s3cret", seen[0].content, hashlib.sha256).hexdigest()
    assert seen[0].headers["x-webhook-signature"] == f"sha256={expected}"


async def test_retries_with_backoff_then_succeeds(db, delays):
    await add_webhook(db, retry_count=3)
    responses = iter([httpx.Response(500, text="boom"), httpx.Response(503), httpx.Response(200, text="ok")])

    async with client_for(lambda request: next(responses)) as client:
        result = await webhook_service.trigger_webhook(db, "ticket.created", {}, client=client)

    assert result == {"sent": 1, "failed": 0}
    assert delays == [1, 2]
    attempts = await logs(db)
    assert [a.attempt_number for a in attempts] == [1, 2, 3]
    assert [a.success for a in attempts] == [False, False, True]
    assert attempts[0].response_code == 500
    assert attempts[0].error_message.startswith("HTTP 500")


async def test_gives_up_after_retry_count(db, delays):
    await add_webhook(db, retry_count=2)

    def handler(request):
        raise httpx.ConnectError("connection refused")

    async with client_for(handler) as client:
        result = await webhook_service.trigger_webhook(db, "ticket.created", {}, client=client)

    assert result == {"sent": 0, "failed": 1}
    attempts = await logs(db)
    assert len(attempts) == 2
    assert all(a.response_code is None and "connection refused" in a.error_message for a in attempts)


async def test_response_body_is_truncated(db, delays):
    await add_webhook(db)

    async with client_for(lambda request: httpx.Response(200, text="x" * 5000)) as client:
        await webhook_service.trigger_webhook(db, "ticket.created", {}, client=client)

    assert len((await logs(db))[0].response_body) == 1000


async def test_only_subscribed_enabled_hooks_fire(db, delays):
    await add_webhook(db, name="Wildcard", events=["*"])
    await add_webhook(db, name="Updates", events=["ticket.updated"])
    await add_webhook(db, name="Disabled", enabled=False)
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200)

    async with client_for(handler) as client:
        result = await webhook_service.trigger_webhook(db, "ticket.created", {}, client=client)

    assert result == {"sent": 1, "failed": 0}
    assert len(calls) == 1


async def test_no_hooks_sends_nothing(db):
    assert await webhook_service.trigger_webhook(db, "ticket.created", {}) == {"sent": 0, "failed": 0}
