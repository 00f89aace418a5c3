"""
Company (tenant) repository.

Slugs are the public booking URL segment: lowercase letters, digits and
hyphens, unique across companies.
"""

import logging
import re
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from booking.repositories.base import BaseRepository
from booking.results import ErrorCode, OperationResult
from booking.utils.timezone import to_utc
from database.models import Company

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$")

EDITABLE_FIELDS = {
    "name",
    "slug",
    "logo_url",
    "primary_color",
    "secondary_color",
    "plan",
    "plan_value",
    "plan_expiry_date",
    "is_active",
}


def validate_slug(slug: str | None) -> str | None:
    """Return an error message for an invalid slug, None when valid."""
    if not slug:
        return "Company slug is required"
    if not SLUG_PATTERN.match(slug):
        return "Slug must contain only lowercase letters, numbers and hyphens"
    return None


def _normalize(data: dict[str, Any]) -> dict[str, Any]:
    values = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
    if values.get("plan_expiry_date") is not None:
        values["plan_expiry_date"] = to_utc(values["plan_expiry_date"])
    return values


class CompanyRepository(BaseRepository):
    """CRUD and plan management for companies."""

    async def fetch_all(self, is_active: bool | None = None) -> OperationResult[list[Company]]:
        """Newest first."""
        try:
            async with self.session_factory() as session:
                query = select(Company)
                if is_active is not None:
                    query = query.where(Company.is_active == is_active)
                result = await session.execute(query.order_by(Company.created_at.desc()))
                return OperationResult.ok(list(result.scalars().all()))
        except SQLAlchemyError as e:
            return self.database_failure("fetching companies", e)

    async def fetch_by_id(self, company_id: UUID) -> OperationResult[Company]:
        try:
            async with self.session_factory() as session:
                company = await self.get_by_id(session, Company, company_id)
                if company is None:
                    return OperationResult.not_found("Company", company_id)
                return OperationResult.ok(company)
        except SQLAlchemyError as e:
            return self.database_failure("fetching company", e, company_id=str(company_id))

    async def fetch_by_slug(self, slug: str) -> OperationResult[Company]:
        try:
            async with self.session_factory() as session:
                company = await self._get_by_slug(session, slug)
                if company is None:
                    return OperationResult.fail(ErrorCode.NOT_FOUND, "Company not found", slug=slug)
                return OperationResult.ok(company)
        except SQLAlchemyError as e:
            return self.database_failure("fetching company by slug", e, slug=slug)

    async def create(self, data: dict[str, Any]) -> OperationResult[Company]:
        """Create a company after checking name, slug format and slug uniqueness."""
        if not data.get("name"):
            return OperationResult.fail(ErrorCode.VALIDATION_ERROR, "Company name is required")
        error = validate_slug(data.get("slug"))
        if error:
            return OperationResult.fail(ErrorCode.VALIDATION_ERROR, error, slug=data.get("slug"))

        company = Company(**_normalize(data))
        if company.is_active is None:
            company.is_active = True

        try:
            async with self.session_factory() as session:
                if await self._get_by_slug(session, company.slug) is not None:
                    return self._slug_taken(company.slug)
                session.add(company)
                await session.commit()
                await session.refresh(company)
        except SQLAlchemyError as e:
            return self.database_failure("creating company", e, slug=company.slug)

        logger.info(f"Company created: {company.slug}", extra={"company_id": company.id})
        return OperationResult.ok(company)

    async def create_many(self, rows: list[dict[str, Any]]) -> OperationResult[list[Company]]:
        """
        Insert several companies in one transaction.

        Rows without name or slug are skipped; if none remain the call fails
        with VALIDATION_ERROR.
        """
        valid = [row for row in rows if row.get("name") and row.get("slug")]
        if not valid:
            return OperationResult.fail(ErrorCode.VALIDATION_ERROR, "No valid companies to create")

        companies = [Company(**_normalize(row)) for row in valid]
        try:
            async with self.session_factory() as session:
                session.add_all(companies)
                await session.commit()
                for company in companies:
                    await session.refresh(company)
        except SQLAlchemyError as e:
            return self.database_failure("creating companies", e)

        return OperationResult.ok(companies, skipped=len(rows) - len(valid))

    async def update(self, company_id: UUID, changes: dict[str, Any]) -> OperationResult[Company]:
        """Partial patch; a slug change is validated and checked for uniqueness."""
        if "slug" in changes:
            error = validate_slug(changes["slug"])
            if error:
                return OperationResult.fail(ErrorCode.VALIDATION_ERROR, error, slug=changes["slug"])

        try:
            async with self.session_factory() as session:
                company = await self.get_by_id(session, Company, company_id)
                if company is None:
                    return OperationResult.not_found("Company", company_id)

                new_slug = changes.get("slug")
                if new_slug and new_slug != company.slug:
                    if await self._get_by_slug(session, new_slug) is not None:
                        return self._slug_taken(new_slug)

                self.apply_patch(company, _normalize(changes), EDITABLE_FIELDS)
                await session.commit()
                await session.refresh(company)
                return OperationResult.ok(company)
        except SQLAlchemyError as e:
            return self.database_failure("updating company", e, company_id=str(company_id))

    async def update_plan(
        self,
        company_id: UUID,
        plan: str | None,
        plan_value: Decimal | None,
        plan_expiry_date: datetime | None,
    ) -> OperationResult[Company]:
        """Replace the plan metadata (a None expiry means the plan never expires)."""
        return await self.update(
            company_id,
            {"plan": plan, "plan_value": plan_value, "plan_expiry_date": plan_expiry_date},
        )

    async def delete(self, company_id: UUID) -> OperationResult[None]:
        """Physically delete a company; owned rows cascade."""
        try:
            async with self.session_factory() as session:
                company = await self.get_by_id(session, Company, company_id)
                if company is None:
                    return OperationResult.not_found("Company", company_id)
                await session.delete(company)
                await session.commit()
        except SQLAlchemyError as e:
            return self.database_failure("deleting company", e, company_id=str(company_id))

        logger.info("Company deleted", extra={"company_id": company_id})
        return OperationResult.ok(None)

    @staticmethod
    async def _get_by_slug(session: AsyncSession, slug: str) -> Company | None:
        result = await session.execute(select(Company).where(Company.slug == slug))
        return result.scalar_one_or_none()

    @staticmethod
    def _slug_taken(slug: str) -> OperationResult:
        logger.warning(f"Slug already in use: {slug}")
        return OperationResult.fail(ErrorCode.SLUG_TAKEN, "This slug is already in use", slug=slug)
