"""
Available slot repository.

Slots are stored in UTC and displayed in the configured timezone. They are
hard-deleted, and only while still available: a booked slot stays until its
appointment is cancelled.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import and_, delete, select
from sqlalchemy.exc import SQLAlchemyError

from booking.repositories.base import BaseRepository
from booking.results import ErrorCode, OperationResult
from booking.services.slot_generation import TimeRange, generate_slot_times
from booking.utils.timezone import day_bounds_utc, format_time, from_db, get_local_tz, to_utc
from database.models import AvailableSlot

logger = logging.getLogger(__name__)


@dataclass
class SlotView:
    """Slot as shown in the booking flow: display time plus raw timestamps."""

    id: UUID
    time: str
    available: bool
    start_time: datetime
    end_time: datetime
    professional_id: UUID

    @classmethod
    def from_model(cls, slot: AvailableSlot) -> "SlotView":
        return cls(
            id=slot.id,
            time=format_time(slot.start_time),
            available=slot.is_available,
            start_time=from_db(slot.start_time),
            end_time=from_db(slot.end_time),
            professional_id=slot.professional_id,
        )


class SlotRepository(BaseRepository):
    """Slot queries, single/bulk creation and deletion."""

    async def fetch_available_slots(self, professional_id: UUID, day: date) -> OperationResult[list[SlotView]]:
        """
        Available slots of a professional starting on day (local calendar).

        Range is [start-of-day, start-of-next-day), ascending by start_time.
        """
        start, end = day_bounds_utc(day)
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(AvailableSlot)
                    .where(
                        and_(
                            AvailableSlot.professional_id == professional_id,
                            AvailableSlot.start_time >= start,
                            AvailableSlot.start_time < end,
                            AvailableSlot.is_available.is_(True),
                        )
                    )
                    .order_by(AvailableSlot.start_time.asc())
                )
                return OperationResult.ok([SlotView.from_model(s) for s in result.scalars().all()])
        except SQLAlchemyError as e:
            return self.database_failure(
                "fetching available slots", e, professional_id=str(professional_id)
            )

    async def fetch_all_slots(
        self,
        professional_id: UUID,
        day: date | None = None,
    ) -> OperationResult[list[SlotView]]:
        """All slots of a professional regardless of availability, optional day filter."""
        try:
            async with self.session_factory() as session:
                query = select(AvailableSlot).where(AvailableSlot.professional_id == professional_id)
                if day is not None:
                    start, end = day_bounds_utc(day)
                    query = query.where(
                        and_(AvailableSlot.start_time >= start, AvailableSlot.start_time < end)
                    )
                query = query.order_by(AvailableSlot.start_time.asc())

                result = await session.execute(query)
                return OperationResult.ok([SlotView.from_model(s) for s in result.scalars().all()])
        except SQLAlchemyError as e:
            return self.database_failure("fetching slots", e, professional_id=str(professional_id))

    async def fetch_by_id(self, slot_id: UUID) -> OperationResult[AvailableSlot]:
        try:
            async with self.session_factory() as session:
                slot = await self.get_by_id(session, AvailableSlot, slot_id)
                if slot is None:
                    return OperationResult.not_found("Slot", slot_id)
                return OperationResult.ok(slot)
        except SQLAlchemyError as e:
            return self.database_failure("fetching slot", e, slot_id=str(slot_id))

    async def create_slot(
        self,
        professional_id: UUID,
        start_time: datetime,
        end_time: datetime,
        company_id: UUID | None = None,
    ) -> OperationResult[SlotView]:
        """Create one available slot."""
        start_utc, end_utc = to_utc(start_time), to_utc(end_time)
        if end_utc <= start_utc:
            return OperationResult.fail(
                ErrorCode.VALIDATION_ERROR, "Slot must end after it starts"
            )

        slot = AvailableSlot(
            professional_id=professional_id,
            start_time=start_utc,
            end_time=end_utc,
            is_available=True,
            company_id=company_id,
        )
        try:
            async with self.session_factory() as session:
                session.add(slot)
                await session.commit()
                await session.refresh(slot)
        except SQLAlchemyError as e:
            return self.database_failure("creating slot", e, professional_id=str(professional_id))

        logger.info(
            f"Slot created at {start_utc.isoformat()}",
            extra={"slot_id": slot.id, "professional_id": professional_id},
        )
        return OperationResult.ok(SlotView.from_model(slot))

    async def create_slots_bulk(
        self,
        professional_id: UUID,
        start_date: date,
        end_date: date,
        weekdays: list[int],
        time_ranges: list[TimeRange],
        company_id: UUID | None = None,
    ) -> OperationResult[int]:
        """
        Generate and insert the slot grid in one transaction.

        Returns the number of slots inserted; an empty grid returns 0.
        """
        invalid = sorted({d for d in weekdays if not 0 <= d <= 6})
        if invalid:
            return OperationResult.fail(
                ErrorCode.VALIDATION_ERROR,
                "Weekdays must be between 0 (Sunday) and 6 (Saturday)",
                weekdays=invalid,
            )

        pairs = generate_slot_times(start_date, end_date, weekdays, time_ranges, get_local_tz())
        logger.info(
            f"Creating {len(pairs)} slots in bulk",
            extra={"professional_id": professional_id},
        )
        if not pairs:
            return OperationResult.ok(0)

        slots = [
            AvailableSlot(
                professional_id=professional_id,
                start_time=to_utc(start),
                end_time=to_utc(end),
                is_available=True,
                company_id=company_id,
            )
            for start, end in pairs
        ]
        try:
            async with self.session_factory() as session:
                session.add_all(slots)
                await session.commit()
        except SQLAlchemyError as e:
            return self.database_failure(
                "creating slots in bulk", e, professional_id=str(professional_id)
            )

        return OperationResult.ok(len(slots))

    async def delete_slot(self, slot_id: UUID) -> OperationResult[None]:
        """
        Physically delete a slot, only while it is still available.

        A booked slot reports SLOT_UNAVAILABLE and is left untouched.
        """
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    delete(AvailableSlot).where(
                        and_(AvailableSlot.id == slot_id, AvailableSlot.is_available.is_(True))
                    )
                )
                if result.rowcount == 1:
                    await session.commit()
                    logger.info("Slot deleted", extra={"slot_id": slot_id})
                    return OperationResult.ok(None)

                await session.rollback()
                if await self.get_by_id(session, AvailableSlot, slot_id) is None:
                    return OperationResult.not_found("Slot", slot_id)
                return OperationResult.fail(
                    ErrorCode.SLOT_UNAVAILABLE,
                    "Slot is booked and cannot be deleted",
                    slot_id=str(slot_id),
                )
        except SQLAlchemyError as e:
            return self.database_failure("deleting slot", e, slot_id=str(slot_id))
