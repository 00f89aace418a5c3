"""
Public booking API (no authentication).

Provides REST endpoints for the client booking flow:
- Company lookup by slug (booking page branding)
- Active professionals and services
- Available slots of a professional for a day
- Appointment creation, confirmation page and lookup by phone
"""

import logging
from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from api.dependencies import (
    get_appointments,
    get_booking,
    get_companies,
    get_professionals,
    get_services,
    get_slots,
    unwrap,
)
from api.serializers import (
    appointment_to_dict,
    company_to_dict,
    professional_to_dict,
    service_to_dict,
    slot_view_to_dict,
)
from booking.repositories import (
    AppointmentRepository,
    CompanyRepository,
    ProfessionalRepository,
    ServiceRepository,
    SlotRepository,
)
from booking.transactions import BookingTransaction

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["public"])


# =============================================================================
# Catalog
# =============================================================================


@router.get("/companies/{slug}")
async def get_company_by_slug(
    slug: str,
    companies: Annotated[CompanyRepository, Depends(get_companies)],
):
    """Company behind a public booking URL."""
    return company_to_dict(unwrap(await companies.fetch_by_slug(slug)))


@router.get("/professionals")
async def list_active_professionals(
    professionals: Annotated[ProfessionalRepository, Depends(get_professionals)],
    company_id: UUID | None = None,
):
    """Active professionals ordered by name."""
    items = unwrap(await professionals.fetch_all(company_id=company_id, active=True))
    return {"items": [professional_to_dict(p) for p in items], "total": len(items)}


@router.get("/professionals/{professional_id}/services")
async def list_professional_services(
    professional_id: UUID,
    services: Annotated[ServiceRepository, Depends(get_services)],
):
    """Active services offered by a professional."""
    items = [s for s in unwrap(await services.fetch_for_professional(professional_id)) if s.active]
    return {"items": [service_to_dict(s) for s in items], "total": len(items)}


@router.get("/services")
async def list_active_services(
    services: Annotated[ServiceRepository, Depends(get_services)],
    company_id: UUID | None = None,
):
    """Active services ordered by name."""
    items = unwrap(await services.fetch_all(company_id=company_id, active=True))
    return {"items": [service_to_dict(s) for s in items], "total": len(items)}


# =============================================================================
# Availability
# =============================================================================


@router.get("/professionals/{professional_id}/slots")
async def list_available_slots(
    professional_id: UUID,
    slots: Annotated[SlotRepository, Depends(get_slots)],
    day: Annotated[date, Query(alias="date")],
):
    """Available slots of a professional starting on the given local date."""
    items = unwrap(await slots.fetch_available_slots(professional_id, day))
    return {
        "date": day.isoformat(),
        "professional_id": str(professional_id),
        "slots": [slot_view_to_dict(s) for s in items],
    }


# =============================================================================
# Appointments
# =============================================================================


class CreateAppointmentRequest(BaseModel):
    professional_id: UUID
    service_id: UUID
    slot_id: UUID
    client_name: str = Field(..., min_length=1, max_length=200)
    client_phone: str = Field(..., min_length=1, max_length=30)


@router.post("/appointments", status_code=status.HTTP_201_CREATED)
async def create_appointment(
    request: CreateAppointmentRequest,
    booking: Annotated[BookingTransaction, Depends(get_booking)],
):
    """Book a slot. 409 when the slot was taken in the meantime."""
    appointment = unwrap(
        await booking.create_appointment(
            professional_id=request.professional_id,
            service_id=request.service_id,
            slot_id=request.slot_id,
            client_name=request.client_name,
            client_phone=request.client_phone,
        )
    )
    return appointment_to_dict(appointment)


@router.get("/appointments/{appointment_id}")
async def get_appointment(
    appointment_id: UUID,
    appointments: Annotated[AppointmentRepository, Depends(get_appointments)],
):
    """Booking confirmation details."""
    return appointment_to_dict(unwrap(await appointments.fetch_by_id(appointment_id)))


@router.get("/appointments")
async def list_appointments_by_phone(
    appointments: Annotated[AppointmentRepository, Depends(get_appointments)],
    phone: Annotated[str, Query(min_length=1)],
):
    """A client's appointments, newest first."""
    items = unwrap(await appointments.fetch_by_phone(phone))
    return {"items": [appointment_to_dict(a) for a in items], "total": len(items)}
