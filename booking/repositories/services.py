"""
Service repository and professional ↔ service associations.

Services are soft-deleted like professionals. Associations are plain join
rows and are physically removed.
"""

import logging
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import and_, delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from booking.repositories.base import BaseRepository
from booking.results import ErrorCode, OperationResult
from database.models import ProfessionalService, Service

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {"name", "description", "duration", "price", "active", "company_id"}


def _validate(data: dict[str, Any]) -> str | None:
    if "duration" in data and (data["duration"] is None or data["duration"] <= 0):
        return "Service duration must be a positive number of minutes"
    if "price" in data and (data["price"] is None or Decimal(str(data["price"])) < 0):
        return "Service price cannot be negative"
    return None


class ServiceRepository(BaseRepository):
    """CRUD for services plus professional associations."""

    async def fetch_all(
        self,
        company_id: UUID | None = None,
        active: bool | None = None,
    ) -> OperationResult[list[Service]]:
        """List services ordered by name, optionally filtered."""
        try:
            async with self.session_factory() as session:
                query = select(Service)
                if company_id is not None:
                    query = query.where(Service.company_id == company_id)
                if active is not None:
                    query = query.where(Service.active == active)
                query = query.order_by(Service.name.asc())

                result = await session.execute(query)
                return OperationResult.ok(list(result.scalars().all()))
        except SQLAlchemyError as e:
            return self.database_failure("fetching services", e)

    async def fetch_by_id(self, service_id: UUID) -> OperationResult[Service]:
        try:
            async with self.session_factory() as session:
                service = await self.get_by_id(session, Service, service_id)
                if service is None:
                    return OperationResult.not_found("Service", service_id)
                return OperationResult.ok(service)
        except SQLAlchemyError as e:
            return self.database_failure("fetching service", e, service_id=service_id)

    async def create(self, data: dict[str, Any]) -> OperationResult[Service]:
        """Create a service; `active` defaults to True, `description` to ''."""
        if not data.get("name"):
            return OperationResult.fail(ErrorCode.VALIDATION_ERROR, "Service name is required")
        if "duration" not in data:
            return OperationResult.fail(ErrorCode.VALIDATION_ERROR, "Service duration is required")
        error = _validate(data)
        if error:
            return OperationResult.fail(ErrorCode.VALIDATION_ERROR, error)

        service = Service(**{k: v for k, v in data.items() if k in EDITABLE_FIELDS})
        if service.active is None:
            service.active = True
        if service.description is None:
            service.description = ""

        try:
            async with self.session_factory() as session:
                session.add(service)
                await session.commit()
                await session.refresh(service)
        except SQLAlchemyError as e:
            return self.database_failure("creating service", e)

        logger.info(f"Service created: {service.name}", extra={"company_id": service.company_id})
        return OperationResult.ok(service)

    async def update(self, service_id: UUID, changes: dict[str, Any]) -> OperationResult[Service]:
        """Apply a partial patch: only keys present in changes are written."""
        error = _validate(changes)
        if error:
            return OperationResult.fail(ErrorCode.VALIDATION_ERROR, error)

        try:
            async with self.session_factory() as session:
                service = await self.get_by_id(session, Service, service_id)
                if service is None:
                    return OperationResult.not_found("Service", service_id)

                self.apply_patch(service, changes, EDITABLE_FIELDS)
                await session.commit()
                await session.refresh(service)
                return OperationResult.ok(service)
        except SQLAlchemyError as e:
            return self.database_failure("updating service", e, service_id=service_id)

    async def delete(self, service_id: UUID) -> OperationResult[Service]:
        """Soft delete (active=False)."""
        return await self.update(service_id, {"active": False})

    # ------------------------------------------------------------------
    # Professional associations
    # ------------------------------------------------------------------

    async def fetch_for_professional(self, professional_id: UUID) -> OperationResult[list[Service]]:
        """Services associated with a professional, ordered by name."""
        try:
            async with self.session_factory() as session:
                query = (
                    select(Service)
                    .join(ProfessionalService, ProfessionalService.service_id == Service.id)
                    .where(ProfessionalService.professional_id == professional_id)
                    .order_by(Service.name.asc())
                )
                result = await session.execute(query)
                return OperationResult.ok(list(result.scalars().all()))
        except SQLAlchemyError as e:
            return self.database_failure(
                "fetching professional services", e, professional_id=professional_id
            )

    async def associate(
        self,
        professional_id: UUID,
        service_id: UUID,
        company_id: UUID | None = None,
    ) -> OperationResult[None]:
        """
        Link a professional to a service.

        Idempotent: if the pair already exists the unique constraint fires and
        the call still reports success.
        """
        try:
            async with self.session_factory() as session:
                session.add(
                    ProfessionalService(
                        professional_id=professional_id,
                        service_id=service_id,
                        company_id=company_id,
                    )
                )
                try:
                    await session.commit()
                except IntegrityError as e:
                    await session.rollback()
                    if await self._pair_exists(session, professional_id, service_id):
                        logger.info(
                            "Professional already associated with service",
                            extra={"professional_id": professional_id},
                        )
                        return OperationResult.ok(None, already_associated=True)
                    return self.database_failure(
                        "associating professional with service", e,
                        professional_id=str(professional_id), service_id=str(service_id),
                    )
        except SQLAlchemyError as e:
            return self.database_failure(
                "associating professional with service", e,
                professional_id=str(professional_id), service_id=str(service_id),
            )

        return OperationResult.ok(None, already_associated=False)

    async def dissociate(self, professional_id: UUID, service_id: UUID) -> OperationResult[None]:
        """Remove the association; a missing row is not an error."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    delete(ProfessionalService).where(
                        and_(
                            ProfessionalService.professional_id == professional_id,
                            ProfessionalService.service_id == service_id,
                        )
                    )
                )
                await session.commit()
                return OperationResult.ok(None, removed=result.rowcount)
        except SQLAlchemyError as e:
            return self.database_failure(
                "dissociating professional from service", e,
                professional_id=str(professional_id), service_id=str(service_id),
            )

    @staticmethod
    async def _pair_exists(session, professional_id: UUID, service_id: UUID) -> bool:
        result = await session.execute(
            select(ProfessionalService.id).where(
                and_(
                    ProfessionalService.professional_id == professional_id,
                    ProfessionalService.service_id == service_id,
                )
            )
        )
        return result.first() is not None
