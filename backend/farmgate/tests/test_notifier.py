"""Tests for the e-mail and SMS side channel."""
from __future__ import annotations

import json

import httpx
import pytest

from backend.farmgate.app.config import NotificationSettings
from backend.farmgate.app.notifier import NotificationDispatcher


@pytest.mark.asyncio
async def test_mock_mode_only_logs() -> None:
    dispatcher = NotificationDispatcher(NotificationSettings())

    assert await dispatcher.send_email(to="asha@example.com", subject="Hi", body="Hello") is True
    assert await dispatcher.send_sms(phone="+911234567890", message="Hello") is True


@pytest.mark.asyncio
async def test_missing_recipient_is_skipped() -> None:
    dispatcher = NotificationDispatcher(NotificationSettings())

    assert await dispatcher.send_email(to=None, subject="Hi", body="Hello") is False
    assert await dispatcher.send_sms(phone="", message="Hello") is False


@pytest.mark.asyncio
async def test_messages_are_posted_to_relay() -> None:
    received: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(json.loads(request.content))
        return httpx.Response(202)

    dispatcher = NotificationDispatcher(
        NotificationSettings(mock_email=False, mock_sms=False, webhook_url="http://relay.test/send"),
        transport=httpx.MockTransport(handler),
    )

    assert await dispatcher.send_email(to="asha@example.com", subject="Order", body="Shipped") is True
    assert await dispatcher.send_sms(phone="+911234567890", message="Shipped") is True
    assert received == [
        {"channel": "email", "to": "asha@example.com", "subject": "Order", "body": "Shipped"},
        {"channel": "whatsapp", "to": "+911234567890", "message": "Shipped"},
    ]


@pytest.mark.asyncio
async def test_relay_failure_is_reported_not_raised() -> None:
    dispatcher = NotificationDispatcher(
        NotificationSettings(mock_email=False, webhook_url="http://relay.test/send"),
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )

    assert await dispatcher.send_email(to="asha@example.com", subject="Order", body="Shipped") is False


@pytest.mark.asyncio
async def test_no_relay_configured() -> None:
    dispatcher = NotificationDispatcher(NotificationSettings(mock_email=False))

    assert await dispatcher.send_email(to="asha@example.com", subject="Order", body="Shipped") is False
