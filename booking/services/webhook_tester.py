"""
Webhook test invoker.

Delivery of webhooks is delegated to a managed function. To test a
configuration we POST {"url", "event_type"} to that function and report
whether it answered with a 2xx status. No retries: a failed attempt is
reported immediately.
"""

import logging
from dataclasses import dataclass

import httpx

from shared.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class WebhookTestOutcome:
    """Result of one test invocation."""

    success: bool
    status_code: int | None = None
    response_body: str | None = None
    error_message: str | None = None


class WebhookTester:
    """
    Client for the managed webhook test function.

    The transport argument exists so tests can plug in httpx.MockTransport.
    """

    def __init__(
        self,
        function_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.function_url = function_url or settings.WEBHOOK_TEST_FUNCTION_URL
        self.timeout = timeout if timeout is not None else settings.WEBHOOK_TEST_TIMEOUT_SECONDS
        self.transport = transport

    async def invoke(self, url: str, event_type: str) -> WebhookTestOutcome:
        payload = {"url": url, "event_type": event_type}
        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
            try:
                response = await client.post(self.function_url, json=payload)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(f"Webhook test function returned {e.response.status_code} for {url}")
                return WebhookTestOutcome(
                    success=False,
                    status_code=e.response.status_code,
                    response_body=e.response.text,
                    error_message=f"Test function returned HTTP {e.response.status_code}",
                )
            except httpx.HTTPError as e:
                logger.error(f"HTTP error testing webhook {url}: {e}")
                return WebhookTestOutcome(success=False, error_message=str(e) or type(e).__name__)

        logger.info(f"Webhook test succeeded for {url}")
        return WebhookTestOutcome(
            success=True,
            status_code=response.status_code,
            response_body=response.text,
        )
