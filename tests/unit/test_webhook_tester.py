"""
Unit tests for webhook_tester.py - Managed test function client.

httpx.MockTransport stands in for the remote function.
"""

import json

import httpx
import pytest

from booking.services.webhook_tester import WebhookTester

FUNCTION_URL = "http://functions.test/test-webhook"


def make_tester(handler):
    return WebhookTester(function_url=FUNCTION_URL, timeout=2.0, transport=httpx.MockTransport(handler))


class TestWebhookTester:
    @pytest.mark.asyncio
    async def test_posts_url_and_event_type(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True})

        outcome = await make_tester(handler).invoke("https://hooks.example.com/in", "appointment.created")

        assert outcome.success is True
        assert outcome.status_code == 200
        assert seen["url"] == FUNCTION_URL
        assert seen["body"] == {"url": "https://hooks.example.com/in", "event_type": "appointment.created"}

    @pytest.mark.asyncio
    async def test_error_status_is_a_failure(self):
        outcome = await make_tester(lambda request: httpx.Response(500, text="target down")).invoke(
            "https://hooks.example.com/in", "appointment.created"
        )

        assert outcome.success is False
        assert outcome.status_code == 500
        assert outcome.response_body == "target down"
        assert outcome.error_message == "Test function returned HTTP 500"

    @pytest.mark.asyncio
    async def test_transport_error_is_a_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        outcome = await make_tester(handler).invoke("https://hooks.example.com/in", "appointment.created")

        assert outcome.success is False
        assert outcome.status_code is None
        assert "connection refused" in outcome.error_message

    def test_defaults_come_from_settings(self):
        tester = WebhookTester()

        assert tester.function_url == FUNCTION_URL
        assert tester.timeout == 10.0
