"""
Professional repository.

Professionals are soft-deleted: `delete` clears the active flag so that past
appointments keep a valid reference, and the row stays fetchable by id.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from booking.repositories.base import BaseRepository
from booking.results import ErrorCode, OperationResult
from database.models import Professional

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {"name", "phone", "bio", "photo_url", "active", "company_id", "user_id"}


class ProfessionalRepository(BaseRepository):
    """CRUD for professionals."""

    async def fetch_all(
        self,
        company_id: UUID | None = None,
        active: bool | None = None,
    ) -> OperationResult[list[Professional]]:
        """List professionals ordered by name, optionally filtered."""
        try:
            async with self.session_factory() as session:
                query = select(Professional)
                if company_id is not None:
                    query = query.where(Professional.company_id == company_id)
                if active is not None:
                    query = query.where(Professional.active == active)
                query = query.order_by(Professional.name.asc())

                result = await session.execute(query)
                return OperationResult.ok(list(result.scalars().all()))
        except SQLAlchemyError as e:
            return self.database_failure("fetching professionals", e)

    async def fetch_by_id(self, professional_id: UUID) -> OperationResult[Professional]:
        try:
            async with self.session_factory() as session:
                professional = await self.get_by_id(session, Professional, professional_id)
                if professional is None:
                    return OperationResult.not_found("Professional", professional_id)
                return OperationResult.ok(professional)
        except SQLAlchemyError as e:
            return self.database_failure("fetching professional", e, professional_id=professional_id)

    async def create(self, data: dict[str, Any]) -> OperationResult[Professional]:
        """Create a professional; `active` defaults to True."""
        if not data.get("name"):
            return OperationResult.fail(ErrorCode.VALIDATION_ERROR, "Professional name is required")

        professional = Professional(**{k: v for k, v in data.items() if k in EDITABLE_FIELDS})
        if professional.active is None:
            professional.active = True

        try:
            async with self.session_factory() as session:
                session.add(professional)
                await session.commit()
                await session.refresh(professional)
        except SQLAlchemyError as e:
            return self.database_failure("creating professional", e)

        logger.info(
            f"Professional created: {professional.name}",
            extra={"professional_id": professional.id, "company_id": professional.company_id},
        )
        return OperationResult.ok(professional)

    async def update(self, professional_id: UUID, changes: dict[str, Any]) -> OperationResult[Professional]:
        """Apply a partial patch: only keys present in changes are written."""
        try:
            async with self.session_factory() as session:
                professional = await self.get_by_id(session, Professional, professional_id)
                if professional is None:
                    return OperationResult.not_found("Professional", professional_id)

                self.apply_patch(professional, changes, EDITABLE_FIELDS)
                await session.commit()
                await session.refresh(professional)
                return OperationResult.ok(professional)
        except SQLAlchemyError as e:
            return self.database_failure("updating professional", e, professional_id=professional_id)

    async def delete(self, professional_id: UUID) -> OperationResult[Professional]:
        """Soft delete (active=False)."""
        result = await self.update(professional_id, {"active": False})
        if result.success:
            logger.info("Professional deactivated", extra={"professional_id": professional_id})
        return result
