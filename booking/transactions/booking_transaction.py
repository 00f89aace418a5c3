"""
Booking Transaction Handler.

Implements the slot lifecycle around appointments:
- create: reserve the slot with a conditional write, insert the appointment,
  and release the slot again if the insert fails (compensation)
- status change: cancelling a non-cancelled appointment releases its slot

Slot reservation is a single statement:

    UPDATE available_slots SET is_available = false
    WHERE id = :slot AND professional_id = :professional AND is_available = true

Only one concurrent booking can see an affected row count of 1, so two
clients racing for the same slot cannot both succeed.

Compensation is best-effort. If releasing the slot fails after a failed
insert, the slot stays unavailable with no appointment; this is logged and
reported in the result details but not retried.
"""

import logging
from uuid import UUID

from sqlalchemy import and_, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from booking.repositories.base import BaseRepository
from booking.results import ErrorCode, OperationResult
from database.models import Appointment, AppointmentStatus, AvailableSlot, Professional

logger = logging.getLogger(__name__)


class BookingTransaction:
    """
    Transaction handler for creating appointments and changing their status.

    Usage:
        booking = BookingTransaction(session_factory)
        result = await booking.create_appointment(
            professional_id=..., service_id=..., slot_id=...,
            client_name="Ana", client_phone="+5511999990000",
        )
        if result.success:
            appointment_id = result.data.id
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def create_appointment(
        self,
        professional_id: UUID,
        service_id: UUID,
        slot_id: UUID,
        client_name: str,
        client_phone: str,
    ) -> OperationResult[Appointment]:
        """
        Book a slot.

        The appointment belongs to the company that owns the slot (falling back
        to the professional's company for slots created without one).

        Returns:
            Success with the confirmed Appointment, or failure with:
            - VALIDATION_ERROR: missing client data, or slot of another professional
            - NOT_FOUND: slot does not exist
            - SLOT_UNAVAILABLE: slot already booked
            - DATABASE_ERROR / INTEGRITY_ERROR: insert failed (details["slot_restored"]
              tells whether compensation released the slot)
        """
        trace_id = f"{slot_id}_{client_phone}"

        if not client_name or not client_name.strip():
            return OperationResult.fail(ErrorCode.VALIDATION_ERROR, "Client name is required")
        if not client_phone or not client_phone.strip():
            return OperationResult.fail(ErrorCode.VALIDATION_ERROR, "Client phone is required")

        logger.info(
            f"[{trace_id}] Starting booking transaction",
            extra={"slot_id": slot_id, "professional_id": professional_id},
        )

        # Step 1: Reserve the slot
        reservation = await self._reserve_slot(trace_id, slot_id, professional_id)
        if not reservation.success:
            return reservation
        company_id = reservation.data

        # Step 2: Insert the appointment
        try:
            appointment = await self._insert_appointment(
                professional_id=professional_id,
                service_id=service_id,
                slot_id=slot_id,
                client_name=client_name.strip(),
                client_phone=client_phone.strip(),
                company_id=company_id,
            )
        except SQLAlchemyError as e:
            logger.error(
                f"[{trace_id}] Appointment insert failed, releasing slot",
                exc_info=True,
                extra={"slot_id": slot_id},
            )
            # Step 3: Compensation
            slot_restored = await self._release_slot_best_effort(trace_id, slot_id)
            failure = BaseRepository.database_failure(
                "creating appointment", e, slot_id=str(slot_id)
            )
            failure.details["slot_restored"] = slot_restored
            return failure

        logger.info(
            f"[{trace_id}] Appointment confirmed",
            extra={"appointment_id": appointment.id, "slot_id": slot_id},
        )
        return OperationResult.ok(appointment)

    async def update_appointment_status(
        self,
        appointment_id: UUID,
        new_status: AppointmentStatus | str,
    ) -> OperationResult[Appointment]:
        """
        Write a new status, releasing the slot on a first cancellation.

        Any status may be written from any status. Only a transition into
        `cancelled` from something else touches the slot; `completed` never does.
        The status write and slot release commit together.
        """
        try:
            status = AppointmentStatus(new_status)
        except ValueError:
            return OperationResult.fail(
                ErrorCode.VALIDATION_ERROR,
                f"Invalid status: {new_status}. Must be confirmed, cancelled or completed",
            )

        try:
            async with self.session_factory() as session:
                appointment = await BaseRepository.get_by_id(session, Appointment, appointment_id)
                if appointment is None:
                    return OperationResult.not_found("Appointment", appointment_id)

                previous_status = appointment.status
                appointment.status = status

                slot_released = False
                if status is AppointmentStatus.CANCELLED and previous_status is not AppointmentStatus.CANCELLED:
                    logger.info(
                        "Making slot available again",
                        extra={"appointment_id": appointment_id, "slot_id": appointment.slot_id},
                    )
                    await session.execute(
                        update(AvailableSlot)
                        .where(AvailableSlot.id == appointment.slot_id)
                        .values(is_available=True)
                        .execution_options(synchronize_session=False)
                    )
                    slot_released = True

                await session.commit()
                await session.refresh(appointment)
        except SQLAlchemyError as e:
            return BaseRepository.database_failure(
                "updating appointment status", e, appointment_id=str(appointment_id)
            )

        logger.info(
            f"Appointment status changed: {previous_status.value} -> {status.value}",
            extra={"appointment_id": appointment_id},
        )
        return OperationResult.ok(
            appointment,
            previous_status=previous_status.value,
            slot_released=slot_released,
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _reserve_slot(
        self, trace_id: str, slot_id: UUID, professional_id: UUID
    ) -> OperationResult[UUID | None]:
        """Flip is_available true -> false in one conditional write; returns the owning company."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    update(AvailableSlot)
                    .where(
                        and_(
                            AvailableSlot.id == slot_id,
                            AvailableSlot.professional_id == professional_id,
                            AvailableSlot.is_available.is_(True),
                        )
                    )
                    .values(is_available=False)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 1:
                    owner = await session.execute(
                        select(func.coalesce(AvailableSlot.company_id, Professional.company_id))
                        .select_from(AvailableSlot)
                        .join(Professional, Professional.id == AvailableSlot.professional_id)
                        .where(AvailableSlot.id == slot_id)
                    )
                    company_id = owner.scalar_one_or_none()
                    await session.commit()
                    return OperationResult.ok(company_id)

                await session.rollback()
                slot = await BaseRepository.get_by_id(session, AvailableSlot, slot_id)
        except SQLAlchemyError as e:
            return BaseRepository.database_failure("reserving slot", e, slot_id=str(slot_id))

        if slot is None:
            logger.warning(f"[{trace_id}] Slot not found", extra={"slot_id": slot_id})
            return OperationResult.not_found("Slot", slot_id)
        if slot.professional_id != professional_id:
            logger.warning(f"[{trace_id}] Slot belongs to another professional", extra={"slot_id": slot_id})
            return OperationResult.fail(
                ErrorCode.VALIDATION_ERROR,
                "Slot does not belong to this professional",
                slot_id=str(slot_id),
                professional_id=str(professional_id),
            )
        logger.warning(f"[{trace_id}] Slot already booked", extra={"slot_id": slot_id})
        return OperationResult.fail(
            ErrorCode.SLOT_UNAVAILABLE,
            "Slot is no longer available",
            slot_id=str(slot_id),
        )

    async def _insert_appointment(
        self,
        professional_id: UUID,
        service_id: UUID,
        slot_id: UUID,
        client_name: str,
        client_phone: str,
        company_id: UUID | None,
    ) -> Appointment:
        """Insert a confirmed appointment. Raises SQLAlchemyError on failure."""
        appointment = Appointment(
            professional_id=professional_id,
            service_id=service_id,
            slot_id=slot_id,
            client_name=client_name,
            client_phone=client_phone,
            status=AppointmentStatus.CONFIRMED,
            company_id=company_id,
        )
        async with self.session_factory() as session:
            session.add(appointment)
            await session.commit()
            await session.refresh(appointment)
        return appointment

    async def _release_slot_best_effort(self, trace_id: str, slot_id: UUID) -> bool:
        """Mark the slot available again. Failures are logged, never raised."""
        try:
            async with self.session_factory() as session:
                await session.execute(
                    update(AvailableSlot)
                    .where(AvailableSlot.id == slot_id)
                    .values(is_available=True)
                    .execution_options(synchronize_session=False)
                )
                await session.commit()
        except SQLAlchemyError:
            logger.error(
                f"[{trace_id}] Failed to release slot after failed booking; slot left unavailable",
                exc_info=True,
                extra={"slot_id": slot_id},
            )
            return False

        logger.info(f"[{trace_id}] Slot released after failed booking", extra={"slot_id": slot_id})
        return True
