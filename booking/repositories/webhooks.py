"""
Webhook configuration repository.

Stores webhook targets per company and event type, runs test invocations
through WebhookTester and keeps a log of each attempt.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from booking.repositories.base import BaseRepository
from booking.results import ErrorCode, OperationResult
from booking.services.webhook_tester import WebhookTester
from database.models import WebhookConfiguration, WebhookLog
from shared.config import get_settings

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {"url", "event_type", "is_active", "company_id"}


class WebhookRepository(BaseRepository):
    """CRUD, test and log listing for webhook configurations."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        tester: WebhookTester | None = None,
    ):
        super().__init__(session_factory)
        self.tester = tester or WebhookTester()

    async def fetch_all(self, company_id: UUID | None = None) -> OperationResult[list[WebhookConfiguration]]:
        """Newest first."""
        try:
            async with self.session_factory() as session:
                query = select(WebhookConfiguration)
                if company_id is not None:
                    query = query.where(WebhookConfiguration.company_id == company_id)
                result = await session.execute(query.order_by(WebhookConfiguration.created_at.desc()))
                return OperationResult.ok(list(result.scalars().all()))
        except SQLAlchemyError as e:
            return self.database_failure("fetching webhook configurations", e)

    async def fetch_by_id(self, webhook_id: UUID) -> OperationResult[WebhookConfiguration]:
        try:
            async with self.session_factory() as session:
                webhook = await self.get_by_id(session, WebhookConfiguration, webhook_id)
                if webhook is None:
                    return OperationResult.not_found("Webhook", webhook_id)
                return OperationResult.ok(webhook)
        except SQLAlchemyError as e:
            return self.database_failure("fetching webhook configuration", e, webhook_id=str(webhook_id))

    async def create(
        self,
        url: str,
        event_type: str,
        company_id: UUID | None = None,
    ) -> OperationResult[WebhookConfiguration]:
        if not url:
            return OperationResult.fail(ErrorCode.VALIDATION_ERROR, "Webhook URL is required")
        if not event_type:
            return OperationResult.fail(ErrorCode.VALIDATION_ERROR, "Webhook event type is required")

        webhook = WebhookConfiguration(url=url, event_type=event_type, company_id=company_id, is_active=True)
        try:
            async with self.session_factory() as session:
                session.add(webhook)
                await session.commit()
                await session.refresh(webhook)
        except SQLAlchemyError as e:
            return self.database_failure("creating webhook configuration", e)

        logger.info(f"Webhook configured for {event_type}", extra={"webhook_id": webhook.id})
        return OperationResult.ok(webhook)

    async def create_many(self, rows: list[dict[str, Any]]) -> OperationResult[list[WebhookConfiguration]]:
        """Insert several webhooks; rows without url are skipped."""
        valid = [row for row in rows if row.get("url")]
        if not valid:
            return OperationResult.fail(ErrorCode.VALIDATION_ERROR, "No valid webhooks to create")

        webhooks = [
            WebhookConfiguration(**{k: v for k, v in row.items() if k in EDITABLE_FIELDS})
            for row in valid
        ]
        for webhook in webhooks:
            if not webhook.event_type:
                return OperationResult.fail(
                    ErrorCode.VALIDATION_ERROR, "Webhook event type is required", url=webhook.url
                )
            if webhook.is_active is None:
                webhook.is_active = True

        try:
            async with self.session_factory() as session:
                session.add_all(webhooks)
                await session.commit()
                for webhook in webhooks:
                    await session.refresh(webhook)
        except SQLAlchemyError as e:
            return self.database_failure("creating webhook configurations", e)

        return OperationResult.ok(webhooks, skipped=len(rows) - len(valid))

    async def update(self, webhook_id: UUID, changes: dict[str, Any]) -> OperationResult[WebhookConfiguration]:
        """Partial patch."""
        try:
            async with self.session_factory() as session:
                webhook = await self.get_by_id(session, WebhookConfiguration, webhook_id)
                if webhook is None:
                    return OperationResult.not_found("Webhook", webhook_id)

                self.apply_patch(webhook, changes, EDITABLE_FIELDS)
                await session.commit()
                await session.refresh(webhook)
                return OperationResult.ok(webhook)
        except SQLAlchemyError as e:
            return self.database_failure("updating webhook configuration", e, webhook_id=str(webhook_id))

    async def test(self, webhook_id: UUID) -> OperationResult[dict[str, Any]]:
        """
        Send a test event through the managed function and log the attempt.

        Returns success with a message, or WEBHOOK_TEST_FAILED carrying the
        error reported by the function.
        """
        found = await self.fetch_by_id(webhook_id)
        if not found.success:
            return found
        webhook = found.data

        outcome = await self.tester.invoke(webhook.url, webhook.event_type)

        log = WebhookLog(
            webhook_id=webhook.id,
            event_type=webhook.event_type,
            url=webhook.url,
            success=outcome.success,
            status_code=outcome.status_code,
            response_body=outcome.response_body,
            payload={"url": webhook.url, "event_type": webhook.event_type, "test": True},
        )
        try:
            async with self.session_factory() as session:
                session.add(log)
                await session.commit()
        except SQLAlchemyError:
            # Outcome is reported even when the log row is lost
            logger.error("Failed to record webhook log", exc_info=True, extra={"webhook_id": webhook_id})

        if not outcome.success:
            return OperationResult.fail(
                ErrorCode.WEBHOOK_TEST_FAILED,
                outcome.error_message or "Unknown error",
                webhook_id=str(webhook_id),
                status_code=outcome.status_code,
            )
        return OperationResult.ok({"message": "Webhook tested successfully"})

    async def fetch_logs(
        self,
        limit: int | None = None,
        company_id: UUID | None = None,
    ) -> OperationResult[list[WebhookLog]]:
        """Most recent delivery attempts, newest first, optionally for one company's webhooks."""
        limit = limit or get_settings().WEBHOOK_LOG_LIMIT
        try:
            async with self.session_factory() as session:
                query = select(WebhookLog)
                if company_id is not None:
                    query = query.join(
                        WebhookConfiguration, WebhookConfiguration.id == WebhookLog.webhook_id
                    ).where(WebhookConfiguration.company_id == company_id)
                query = query.order_by(WebhookLog.created_at.desc()).limit(limit)

                result = await session.execute(query)
                return OperationResult.ok(list(result.scalars().all()))
        except SQLAlchemyError as e:
            return self.database_failure("fetching webhook logs", e)
