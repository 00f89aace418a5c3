"""
Appointment read queries.

Writes go through BookingTransaction because they must keep the slot
availability in step with the appointment.
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from booking.repositories.base import BaseRepository
from booking.results import OperationResult
from database.models import Appointment, AppointmentStatus

logger = logging.getLogger(__name__)


def _with_relations(query):
    return query.options(
        selectinload(Appointment.professional),
        selectinload(Appointment.service),
        selectinload(Appointment.slot),
    )


class AppointmentRepository(BaseRepository):
    """Appointment listings with professional, service and slot loaded."""

    async def fetch_appointments(
        self,
        status: AppointmentStatus | None = None,
        professional_id: UUID | None = None,
        company_id: UUID | None = None,
    ) -> OperationResult[list[Appointment]]:
        """Newest first, optionally filtered by status/professional/company."""
        try:
            async with self.session_factory() as session:
                query = _with_relations(select(Appointment))
                if status is not None:
                    query = query.where(Appointment.status == status)
                if professional_id is not None:
                    query = query.where(Appointment.professional_id == professional_id)
                if company_id is not None:
                    query = query.where(Appointment.company_id == company_id)
                query = query.order_by(Appointment.created_at.desc())

                result = await session.execute(query)
                return OperationResult.ok(list(result.scalars().all()))
        except SQLAlchemyError as e:
            return self.database_failure("fetching appointments", e)

    async def fetch_by_phone(self, phone: str) -> OperationResult[list[Appointment]]:
        """A client's appointments, newest first."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    _with_relations(select(Appointment))
                    .where(Appointment.client_phone == phone)
                    .order_by(Appointment.created_at.desc())
                )
                return OperationResult.ok(list(result.scalars().all()))
        except SQLAlchemyError as e:
            return self.database_failure("fetching appointments by phone", e)

    async def fetch_by_id(self, appointment_id: UUID) -> OperationResult[Appointment]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    _with_relations(select(Appointment)).where(Appointment.id == appointment_id)
                )
                appointment = result.scalar_one_or_none()
                if appointment is None:
                    return OperationResult.not_found("Appointment", appointment_id)
                return OperationResult.ok(appointment)
        except SQLAlchemyError as e:
            return self.database_failure(
                "fetching appointment", e, appointment_id=str(appointment_id)
            )
