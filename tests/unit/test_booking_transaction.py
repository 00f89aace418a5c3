"""
Unit tests for booking_transaction.py - Slot reservation and status changes.

Tests coverage:
- create_appointment(): success path reserves the slot, company taken from the slot
- Second booking of the same slot fails with SLOT_UNAVAILABLE
- Missing slot / slot of another professional
- Insert failure with compensation (slot restored) and failed compensation
- update_appointment_status(): cancel releases the slot once, complete never does
"""

from datetime import UTC, timedelta
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine

from booking.results import ErrorCode
from booking.transactions import BookingTransaction
from database.connection import create_session_factory
from database.models import Appointment, AppointmentStatus, AvailableSlot, Professional


async def slot_is_available(session_factory, slot_id) -> bool:
    async with session_factory() as session:
        result = await session.execute(select(AvailableSlot.is_available).where(AvailableSlot.id == slot_id))
        return result.scalar_one()


async def count_appointments(session_factory) -> int:
    async with session_factory() as session:
        result = await session.execute(select(Appointment))
        return len(result.scalars().all())


@pytest.fixture
def booking(session_factory):
    return BookingTransaction(session_factory)


@pytest.fixture
def book(booking, professional, service, slot):
    """Book the fixture slot for a client."""

    async def _book(client_name="Maria Lima", client_phone="+5511999990000"):
        return await booking.create_appointment(
            professional_id=professional.id,
            service_id=service.id,
            slot_id=slot.id,
            client_name=client_name,
            client_phone=client_phone,
        )

    return _book


# ============================================================================
# create_appointment
# ============================================================================


class TestCreateAppointment:
    """Test booking a slot."""

    @pytest.mark.asyncio
    async def test_booking_confirms_and_reserves_slot(self, book, session_factory, slot, professional):
        result = await book()

        assert result.success is True
        assert result.data.status is AppointmentStatus.CONFIRMED
        assert result.data.slot_id == slot.id
        assert result.data.professional_id == professional.id
        assert await slot_is_available(session_factory, slot.id) is False

    @pytest.mark.asyncio
    async def test_appointment_belongs_to_slot_company(self, book, company):
        result = await book()

        assert result.data.company_id == company.id

    @pytest.mark.asyncio
    async def test_slot_without_company_uses_professional_company(
        self, booking, add_rows, professional, service, company, slot_start
    ):
        slot = await add_rows(
            AvailableSlot(
                professional_id=professional.id,
                start_time=slot_start.astimezone(UTC),
                end_time=(slot_start + timedelta(minutes=30)).astimezone(UTC),
                is_available=True,
            )
        )

        result = await booking.create_appointment(
            professional_id=professional.id,
            service_id=service.id,
            slot_id=slot.id,
            client_name="Maria",
            client_phone="+5511999990000",
        )

        assert result.success is True
        assert result.data.company_id == company.id

    @pytest.mark.asyncio
    async def test_client_fields_are_trimmed(self, book):
        result = await book(client_name="  Maria Lima ", client_phone=" +5511999990000 ")

        assert result.data.client_name == "Maria Lima"
        assert result.data.client_phone == "+5511999990000"

    @pytest.mark.asyncio
    async def test_second_booking_of_same_slot_fails(self, book, session_factory):
        first = await book()
        second = await book(client_name="João", client_phone="+5511888880000")

        assert first.success is True
        assert second.success is False
        assert second.error_code is ErrorCode.SLOT_UNAVAILABLE
        assert await count_appointments(session_factory) == 1

    @pytest.mark.asyncio
    async def test_missing_slot_is_not_found(self, booking, professional, service, session_factory):
        result = await booking.create_appointment(
            professional_id=professional.id,
            service_id=service.id,
            slot_id=uuid4(),
            client_name="Maria",
            client_phone="+5511999990000",
        )

        assert result.error_code is ErrorCode.NOT_FOUND
        assert await count_appointments(session_factory) == 0

    @pytest.mark.asyncio
    async def test_slot_of_another_professional_is_rejected(
        self, booking, add_rows, service, slot, session_factory
    ):
        other = await add_rows(Professional(name="Bruno", active=True))

        result = await booking.create_appointment(
            professional_id=other.id,
            service_id=service.id,
            slot_id=slot.id,
            client_name="Maria",
            client_phone="+5511999990000",
        )

        assert result.error_code is ErrorCode.VALIDATION_ERROR
        assert await slot_is_available(session_factory, slot.id) is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,phone", [("", "+5511999990000"), ("Maria", "   ")])
    async def test_missing_client_data_writes_nothing(self, book, session_factory, slot, name, phone):
        result = await book(client_name=name, client_phone=phone)

        assert result.error_code is ErrorCode.VALIDATION_ERROR
        assert await slot_is_available(session_factory, slot.id) is True


# ============================================================================
# Compensation
# ============================================================================


class TestCompensation:
    """Test slot release after a failed appointment insert."""

    @pytest.mark.asyncio
    async def test_insert_failure_restores_slot(self, book, booking, session_factory, slot):
        with patch.object(booking, "_insert_appointment", AsyncMock(side_effect=SQLAlchemyError("insert failed"))):
            result = await book()

        assert result.success is False
        assert result.error_code is ErrorCode.DATABASE_ERROR
        assert result.details["slot_restored"] is True
        assert await slot_is_available(session_factory, slot.id) is True
        assert await count_appointments(session_factory) == 0

    @pytest.mark.asyncio
    async def test_failed_compensation_is_reported(self, book, booking, session_factory, slot):
        with patch.object(booking, "_insert_appointment", AsyncMock(side_effect=SQLAlchemyError("insert failed"))), \
             patch.object(booking, "_release_slot_best_effort", AsyncMock(return_value=False)):
            result = await book()

        assert result.success is False
        assert result.details["slot_restored"] is False
        # Slot stays reserved with no appointment
        assert await slot_is_available(session_factory, slot.id) is False

    @pytest.mark.asyncio
    async def test_release_returns_false_when_store_unreachable(self, tmp_path):
        broken_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/missing/dir/db.sqlite")
        booking = BookingTransaction(create_session_factory(broken_engine))

        assert await booking._release_slot_best_effort("trace", uuid4()) is False
        await broken_engine.dispose()


# ============================================================================
# update_appointment_status
# ============================================================================


class TestUpdateAppointmentStatus:
    """Test status changes and slot release."""

    @pytest.mark.asyncio
    async def test_cancel_releases_slot(self, book, booking, session_factory, slot):
        appointment = (await book()).data

        result = await booking.update_appointment_status(appointment.id, AppointmentStatus.CANCELLED)

        assert result.success is True
        assert result.data.status is AppointmentStatus.CANCELLED
        assert result.details == {"previous_status": "confirmed", "slot_released": True}
        assert await slot_is_available(session_factory, slot.id) is True

    @pytest.mark.asyncio
    async def test_cancel_twice_does_not_touch_slots(
        self, book, booking, session_factory, slot, professional, service
    ):
        appointment = (await book()).data
        await booking.update_appointment_status(appointment.id, "cancelled")

        # Slot is rebooked by someone else before the repeated cancel
        rebooked = await booking.create_appointment(
            professional_id=professional.id,
            service_id=service.id,
            slot_id=slot.id,
            client_name="João",
            client_phone="+5511888880000",
        )
        assert rebooked.success is True

        result = await booking.update_appointment_status(appointment.id, "cancelled")

        assert result.success is True
        assert result.details["slot_released"] is False
        assert await slot_is_available(session_factory, slot.id) is False

    @pytest.mark.asyncio
    async def test_complete_keeps_slot_reserved(self, book, booking, session_factory, slot):
        appointment = (await book()).data

        result = await booking.update_appointment_status(appointment.id, "completed")

        assert result.data.status is AppointmentStatus.COMPLETED
        assert result.details["slot_released"] is False
        assert await slot_is_available(session_factory, slot.id) is False

    @pytest.mark.asyncio
    async def test_transitions_are_not_restricted(self, book, booking):
        appointment = (await book()).data
        await booking.update_appointment_status(appointment.id, "cancelled")

        result = await booking.update_appointment_status(appointment.id, "confirmed")

        assert result.success is True
        assert result.data.status is AppointmentStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_unknown_appointment(self, booking):
        result = await booking.update_appointment_status(uuid4(), "cancelled")
        assert result.error_code is ErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_invalid_status(self, book, booking):
        appointment = (await book()).data

        result = await booking.update_appointment_status(appointment.id, "no_show")

        assert result.error_code is ErrorCode.VALIDATION_ERROR
