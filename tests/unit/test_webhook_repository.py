"""
Unit tests for the webhook repository.

The managed test function is replaced by httpx.MockTransport.
"""

from uuid import uuid4

import httpx
import pytest

from booking.repositories import WebhookRepository
from booking.results import ErrorCode
from booking.services.webhook_tester import WebhookTester


def repository(session_factory, status_code=200):
    transport = httpx.MockTransport(lambda request: httpx.Response(status_code, text="done"))
    tester = WebhookTester(function_url="http://functions.test/test-webhook", transport=transport)
    return WebhookRepository(session_factory, tester=tester)


@pytest.fixture
def webhooks(session_factory):
    return repository(session_factory)


class TestWebhookConfiguration:
    @pytest.mark.asyncio
    async def test_create_defaults_to_active(self, webhooks, company):
        result = await webhooks.create("https://hooks.example.com/a", "appointment.created", company.id)

        assert result.data.is_active is True
        assert result.data.company_id == company.id

    @pytest.mark.asyncio
    async def test_create_requires_url_and_event(self, webhooks):
        assert (await webhooks.create("", "appointment.created")).error_code is ErrorCode.VALIDATION_ERROR
        assert (await webhooks.create("https://hooks.example.com", "")).error_code is ErrorCode.VALIDATION_ERROR

    @pytest.mark.asyncio
    async def test_create_many_skips_rows_without_url(self, webhooks):
        result = await webhooks.create_many(
            [
                {"url": "https://hooks.example.com/a", "event_type": "appointment.created"},
                {"event_type": "appointment.cancelled"},
            ]
        )

        assert len(result.data) == 1
        assert result.details["skipped"] == 1

    @pytest.mark.asyncio
    async def test_create_many_without_valid_rows(self, webhooks):
        result = await webhooks.create_many([{"event_type": "appointment.cancelled"}])
        assert result.error_code is ErrorCode.VALIDATION_ERROR

    @pytest.mark.asyncio
    async def test_update_is_partial(self, webhooks):
        webhook = (await webhooks.create("https://hooks.example.com/a", "appointment.created")).data

        result = await webhooks.update(webhook.id, {"is_active": False})

        assert result.data.is_active is False
        assert result.data.url == "https://hooks.example.com/a"

    @pytest.mark.asyncio
    async def test_fetch_all_filters_by_company(self, webhooks, company):
        await webhooks.create("https://hooks.example.com/a", "appointment.created", company.id)
        await webhooks.create("https://hooks.example.com/b", "appointment.created")

        result = await webhooks.fetch_all(company_id=company.id)

        assert [w.url for w in result.data] == ["https://hooks.example.com/a"]


class TestWebhookTest:
    @pytest.mark.asyncio
    async def test_successful_test_is_logged(self, webhooks):
        webhook = (await webhooks.create("https://hooks.example.com/a", "appointment.created")).data

        result = await webhooks.test(webhook.id)
        logs = await webhooks.fetch_logs()

        assert result.success is True
        assert result.data == {"message": "Webhook tested successfully"}
        assert len(logs.data) == 1
        assert logs.data[0].success is True
        assert logs.data[0].webhook_id == webhook.id
        assert logs.data[0].status_code == 200

    @pytest.mark.asyncio
    async def test_failed_test_reports_error_and_is_logged(self, session_factory):
        webhooks = repository(session_factory, status_code=502)
        webhook = (await webhooks.create("https://hooks.example.com/a", "appointment.created")).data

        result = await webhooks.test(webhook.id)
        logs = await webhooks.fetch_logs()

        assert result.error_code is ErrorCode.WEBHOOK_TEST_FAILED
        assert result.error_message == "Test function returned HTTP 502"
        assert logs.data[0].success is False

    @pytest.mark.asyncio
    async def test_unknown_webhook(self, webhooks):
        result = await webhooks.test(uuid4())
        assert result.error_code is ErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_fetch_logs_respects_limit(self, webhooks):
        webhook = (await webhooks.create("https://hooks.example.com/a", "appointment.created")).data
        for _ in range(3):
            await webhooks.test(webhook.id)

        result = await webhooks.fetch_logs(limit=2)

        assert len(result.data) == 2
