"""
Admin API Endpoints for the company console.

Provides REST endpoints for:
- Professionals and services CRUD (soft delete)
- Professional ↔ service associations
- Slot management (single, bulk generation, deletion)
- Appointment listing and status changes
- Webhook configuration, testing and logs

Every endpoint requires an authenticated admin or superadmin session. Admins
bound to a company only see, create and change rows of that company; rows of
another company answer 404 as if they did not exist.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, HttpUrl

from api.dependencies import (
    CurrentAdmin,
    PatchRequest,
    get_appointments,
    get_booking,
    get_professionals,
    get_services,
    get_slots,
    get_webhooks,
    unwrap,
)
from api.serializers import (
    appointment_to_dict,
    professional_to_dict,
    service_to_dict,
    slot_view_to_dict,
    webhook_log_to_dict,
    webhook_to_dict,
)
from booking.repositories import (
    AppointmentRepository,
    ProfessionalRepository,
    ServiceRepository,
    SlotRepository,
    WebhookRepository,
)
from booking.results import OperationResult
from booking.services.auth_service import SessionInfo
from booking.services.slot_generation import TimeRange
from booking.transactions import BookingTransaction
from database.models import (
    AppointmentStatus,
    Professional,
    Service,
    WebhookConfiguration,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


def company_scope(session_info: SessionInfo, company_id: UUID | None) -> UUID | None:
    """Company filter for a request: admins are pinned to their own company."""
    user = session_info.user
    if session_info.is_superadmin or user is None or user.company_id is None:
        return company_id
    return user.company_id


def ensure_same_company(
    session_info: SessionInfo,
    company_id: UUID | None,
    entity: str,
    entity_id: UUID,
) -> None:
    """Raise 404 when a company-bound admin touches a row of another company."""
    scope = company_scope(session_info, None)
    if scope is not None and company_id != scope:
        logger.warning(
            f"{entity} of another company requested by {session_info.user.email}",
            extra={"company_id": scope},
        )
        unwrap(OperationResult.not_found(entity, entity_id))


async def load_professional(
    professionals: ProfessionalRepository,
    session_info: SessionInfo,
    professional_id: UUID,
) -> Professional:
    professional = unwrap(await professionals.fetch_by_id(professional_id))
    ensure_same_company(session_info, professional.company_id, "Professional", professional_id)
    return professional


async def load_service(
    services: ServiceRepository,
    session_info: SessionInfo,
    service_id: UUID,
) -> Service:
    service = unwrap(await services.fetch_by_id(service_id))
    ensure_same_company(session_info, service.company_id, "Service", service_id)
    return service


async def load_webhook(
    webhooks: WebhookRepository,
    session_info: SessionInfo,
    webhook_id: UUID,
) -> WebhookConfiguration:
    webhook = unwrap(await webhooks.fetch_by_id(webhook_id))
    ensure_same_company(session_info, webhook.company_id, "Webhook", webhook_id)
    return webhook


# =============================================================================
# Professionals CRUD
# =============================================================================


class CreateProfessionalRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=30)
    bio: str | None = None
    photo_url: str | None = None
    active: bool = True
    company_id: UUID | None = None
    user_id: UUID | None = None


class UpdateProfessionalRequest(PatchRequest):
    NOT_NULL = frozenset({"name", "active"})

    name: str | None = Field(None, min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=30)
    bio: str | None = None
    photo_url: str | None = None
    active: bool | None = None
    user_id: UUID | None = None


@router.get("/professionals")
async def list_professionals(
    current_user: CurrentAdmin,
    professionals: Annotated[ProfessionalRepository, Depends(get_professionals)],
    active: bool | None = None,
    company_id: UUID | None = None,
):
    """List professionals, active and inactive unless filtered."""
    items = unwrap(
        await professionals.fetch_all(company_id=company_scope(current_user, company_id), active=active)
    )
    return {"items": [professional_to_dict(p) for p in items], "total": len(items)}


@router.get("/professionals/{professional_id}")
async def get_professional(
    professional_id: UUID,
    current_user: CurrentAdmin,
    professionals: Annotated[ProfessionalRepository, Depends(get_professionals)],
):
    """Get a single professional by ID (inactive ones included)."""
    return professional_to_dict(await load_professional(professionals, current_user, professional_id))


@router.post("/professionals", status_code=status.HTTP_201_CREATED)
async def create_professional(
    request: CreateProfessionalRequest,
    current_user: CurrentAdmin,
    professionals: Annotated[ProfessionalRepository, Depends(get_professionals)],
):
    """Create a new professional."""
    data = request.model_dump()
    data["company_id"] = company_scope(current_user, request.company_id)
    return professional_to_dict(unwrap(await professionals.create(data)))


@router.put("/professionals/{professional_id}")
async def update_professional(
    professional_id: UUID,
    request: UpdateProfessionalRequest,
    current_user: CurrentAdmin,
    professionals: Annotated[ProfessionalRepository, Depends(get_professionals)],
):
    """Update only the fields present in the body."""
    await load_professional(professionals, current_user, professional_id)
    changes = request.model_dump(exclude_unset=True)
    return professional_to_dict(unwrap(await professionals.update(professional_id, changes)))


@router.delete("/professionals/{professional_id}")
async def delete_professional(
    professional_id: UUID,
    current_user: CurrentAdmin,
    professionals: Annotated[ProfessionalRepository, Depends(get_professionals)],
):
    """Deactivate a professional. The row and its appointments are kept."""
    await load_professional(professionals, current_user, professional_id)
    return professional_to_dict(unwrap(await professionals.delete(professional_id)))


# =============================================================================
# Services CRUD
# =============================================================================


class CreateServiceRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    duration: int = Field(..., gt=0, description="Duration in minutes")
    price: Decimal = Field(Decimal("0"), ge=0)
    active: bool = True
    company_id: UUID | None = None


class UpdateServiceRequest(PatchRequest):
    NOT_NULL = frozenset({"name", "description", "duration", "price", "active"})

    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    duration: int | None = Field(None, gt=0)
    price: Decimal | None = Field(None, ge=0)
    active: bool | None = None


@router.get("/services")
async def list_services(
    current_user: CurrentAdmin,
    services: Annotated[ServiceRepository, Depends(get_services)],
    active: bool | None = None,
    company_id: UUID | None = None,
):
    """List services ordered by name."""
    items = unwrap(await services.fetch_all(company_id=company_scope(current_user, company_id), active=active))
    return {"items": [service_to_dict(s) for s in items], "total": len(items)}


@router.get("/services/{service_id}")
async def get_service(
    service_id: UUID,
    current_user: CurrentAdmin,
    services: Annotated[ServiceRepository, Depends(get_services)],
):
    """Get a single service by ID."""
    return service_to_dict(await load_service(services, current_user, service_id))


@router.post("/services", status_code=status.HTTP_201_CREATED)
async def create_service(
    request: CreateServiceRequest,
    current_user: CurrentAdmin,
    services: Annotated[ServiceRepository, Depends(get_services)],
):
    """Create a new service."""
    data = request.model_dump()
    data["company_id"] = company_scope(current_user, request.company_id)
    return service_to_dict(unwrap(await services.create(data)))


@router.put("/services/{service_id}")
async def update_service(
    service_id: UUID,
    request: UpdateServiceRequest,
    current_user: CurrentAdmin,
    services: Annotated[ServiceRepository, Depends(get_services)],
):
    """Update only the fields present in the body."""
    await load_service(services, current_user, service_id)
    changes = request.model_dump(exclude_unset=True)
    return service_to_dict(unwrap(await services.update(service_id, changes)))


@router.delete("/services/{service_id}")
async def delete_service(
    service_id: UUID,
    current_user: CurrentAdmin,
    services: Annotated[ServiceRepository, Depends(get_services)],
):
    """Deactivate a service."""
    await load_service(services, current_user, service_id)
    return service_to_dict(unwrap(await services.delete(service_id)))


# =============================================================================
# Professional ↔ Service associations
# =============================================================================


@router.get("/professionals/{professional_id}/services")
async def list_professional_services(
    professional_id: UUID,
    current_user: CurrentAdmin,
    professionals: Annotated[ProfessionalRepository, Depends(get_professionals)],
    services: Annotated[ServiceRepository, Depends(get_services)],
):
    """All services associated with a professional, active or not."""
    await load_professional(professionals, current_user, professional_id)
    items = unwrap(await services.fetch_for_professional(professional_id))
    return {"items": [service_to_dict(s) for s in items], "total": len(items)}


@router.post("/professionals/{professional_id}/services/{service_id}")
async def associate_service(
    professional_id: UUID,
    service_id: UUID,
    current_user: CurrentAdmin,
    professionals: Annotated[ProfessionalRepository, Depends(get_professionals)],
    services: Annotated[ServiceRepository, Depends(get_services)],
):
    """Link a professional to a service. Linking twice is not an error."""
    professional = await load_professional(professionals, current_user, professional_id)
    await load_service(services, current_user, service_id)

    result = await services.associate(professional_id, service_id, company_id=professional.company_id)
    unwrap(result)
    return {
        "professional_id": str(professional_id),
        "service_id": str(service_id),
        "already_associated": result.details.get("already_associated", False),
    }


@router.delete(
    "/professionals/{professional_id}/services/{service_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def dissociate_service(
    professional_id: UUID,
    service_id: UUID,
    current_user: CurrentAdmin,
    professionals: Annotated[ProfessionalRepository, Depends(get_professionals)],
    services: Annotated[ServiceRepository, Depends(get_services)],
):
    """Remove the link between a professional and a service."""
    await load_professional(professionals, current_user, professional_id)
    await load_service(services, current_user, service_id)
    unwrap(await services.dissociate(professional_id, service_id))


# =============================================================================
# Slots
# =============================================================================


class CreateSlotRequest(BaseModel):
    professional_id: UUID
    start_time: datetime
    end_time: datetime


class BulkSlotsRequest(BaseModel):
    professional_id: UUID
    start_date: date
    end_date: date
    weekdays: list[Annotated[int, Field(ge=0, le=6)]] = Field(
        ..., description="0=Sunday ... 6=Saturday"
    )
    time_ranges: list[TimeRange]


@router.get("/professionals/{professional_id}/slots")
async def list_professional_slots(
    professional_id: UUID,
    current_user: CurrentAdmin,
    professionals: Annotated[ProfessionalRepository, Depends(get_professionals)],
    slots: Annotated[SlotRepository, Depends(get_slots)],
    day: Annotated[date | None, Query(alias="date")] = None,
):
    """All slots of a professional, booked ones included."""
    await load_professional(professionals, current_user, professional_id)
    items = unwrap(await slots.fetch_all_slots(professional_id, day))
    return {"items": [slot_view_to_dict(s) for s in items], "total": len(items)}


@router.post("/slots", status_code=status.HTTP_201_CREATED)
async def create_slot(
    request: CreateSlotRequest,
    current_user: CurrentAdmin,
    professionals: Annotated[ProfessionalRepository, Depends(get_professionals)],
    slots: Annotated[SlotRepository, Depends(get_slots)],
):
    """Create one available slot in the professional's company. Naive times are local times."""
    professional = await load_professional(professionals, current_user, request.professional_id)
    slot = unwrap(
        await slots.create_slot(
            professional_id=professional.id,
            start_time=request.start_time,
            end_time=request.end_time,
            company_id=professional.company_id,
        )
    )
    return slot_view_to_dict(slot)


@router.post("/slots/bulk", status_code=status.HTTP_201_CREATED)
async def create_slots_bulk(
    request: BulkSlotsRequest,
    current_user: CurrentAdmin,
    professionals: Annotated[ProfessionalRepository, Depends(get_professionals)],
    slots: Annotated[SlotRepository, Depends(get_slots)],
):
    """Generate slots for every matching weekday and time range in the date range."""
    professional = await load_professional(professionals, current_user, request.professional_id)
    count = unwrap(
        await slots.create_slots_bulk(
            professional_id=professional.id,
            start_date=request.start_date,
            end_date=request.end_date,
            weekdays=request.weekdays,
            time_ranges=request.time_ranges,
            company_id=professional.company_id,
        )
    )
    return {"created": count}


@router.delete("/slots/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_slot(
    slot_id: UUID,
    current_user: CurrentAdmin,
    slots: Annotated[SlotRepository, Depends(get_slots)],
):
    """Delete an available slot. Booked slots answer 409."""
    slot = unwrap(await slots.fetch_by_id(slot_id))
    ensure_same_company(current_user, slot.company_id, "Slot", slot_id)
    unwrap(await slots.delete_slot(slot_id))


# =============================================================================
# Appointments
# =============================================================================


class UpdateAppointmentStatusRequest(BaseModel):
    status: AppointmentStatus


@router.get("/appointments")
async def list_appointments(
    current_user: CurrentAdmin,
    appointments: Annotated[AppointmentRepository, Depends(get_appointments)],
    status_filter: Annotated[AppointmentStatus | None, Query(alias="status")] = None,
    professional_id: UUID | None = None,
    company_id: UUID | None = None,
):
    """Appointments newest first with professional, service and slot."""
    items = unwrap(
        await appointments.fetch_appointments(
            status=status_filter,
            professional_id=professional_id,
            company_id=company_scope(current_user, company_id),
        )
    )
    return {"items": [appointment_to_dict(a) for a in items], "total": len(items)}


@router.put("/appointments/{appointment_id}/status")
async def update_appointment_status(
    appointment_id: UUID,
    request: UpdateAppointmentStatusRequest,
    current_user: CurrentAdmin,
    booking: Annotated[BookingTransaction, Depends(get_booking)],
    appointments: Annotated[AppointmentRepository, Depends(get_appointments)],
):
    """Change an appointment status; cancelling frees its slot."""
    current = unwrap(await appointments.fetch_by_id(appointment_id))
    ensure_same_company(current_user, current.company_id, "Appointment", appointment_id)

    result = await booking.update_appointment_status(appointment_id, request.status)
    unwrap(result)

    appointment = unwrap(await appointments.fetch_by_id(appointment_id))
    return {
        **appointment_to_dict(appointment),
        "previous_status": result.details["previous_status"],
        "slot_released": result.details["slot_released"],
    }


# =============================================================================
# Webhooks
# =============================================================================


class CreateWebhookRequest(BaseModel):
    url: HttpUrl
    event_type: str = Field(..., min_length=1, max_length=100)
    company_id: UUID | None = None


class BulkWebhookRow(BaseModel):
    url: str | None = None
    event_type: str | None = None
    is_active: bool = True
    company_id: UUID | None = None


class UpdateWebhookRequest(PatchRequest):
    NOT_NULL = frozenset({"url", "event_type", "is_active"})

    url: HttpUrl | None = None
    event_type: str | None = Field(None, min_length=1, max_length=100)
    is_active: bool | None = None


@router.get("/webhooks")
async def list_webhooks(
    current_user: CurrentAdmin,
    webhooks: Annotated[WebhookRepository, Depends(get_webhooks)],
    company_id: UUID | None = None,
):
    """Webhook configurations, newest first."""
    items = unwrap(await webhooks.fetch_all(company_id=company_scope(current_user, company_id)))
    return {"items": [webhook_to_dict(w) for w in items], "total": len(items)}


@router.post("/webhooks", status_code=status.HTTP_201_CREATED)
async def create_webhook(
    request: CreateWebhookRequest,
    current_user: CurrentAdmin,
    webhooks: Annotated[WebhookRepository, Depends(get_webhooks)],
):
    """Register a webhook target for an event type."""
    webhook = unwrap(
        await webhooks.create(
            url=str(request.url),
            event_type=request.event_type,
            company_id=company_scope(current_user, request.company_id),
        )
    )
    return webhook_to_dict(webhook)


@router.post("/webhooks/bulk", status_code=status.HTTP_201_CREATED)
async def create_webhooks_bulk(
    rows: list[BulkWebhookRow],
    current_user: CurrentAdmin,
    webhooks: Annotated[WebhookRepository, Depends(get_webhooks)],
):
    """Register several webhooks; rows without url are skipped."""
    data = []
    for row in rows:
        values = row.model_dump()
        values["company_id"] = company_scope(current_user, row.company_id)
        data.append(values)

    result = await webhooks.create_many(data)
    items = unwrap(result)
    return {
        "items": [webhook_to_dict(w) for w in items],
        "total": len(items),
        "skipped": result.details.get("skipped", 0),
    }


@router.get("/webhooks/logs")
async def list_webhook_logs(
    current_user: CurrentAdmin,
    webhooks: Annotated[WebhookRepository, Depends(get_webhooks)],
    limit: Annotated[int | None, Query(ge=1, le=1000)] = None,
):
    """Most recent webhook delivery attempts."""
    items = unwrap(await webhooks.fetch_logs(limit, company_id=company_scope(current_user, None)))
    return {"items": [webhook_log_to_dict(log) for log in items], "total": len(items)}


@router.put("/webhooks/{webhook_id}")
async def update_webhook(
    webhook_id: UUID,
    request: UpdateWebhookRequest,
    current_user: CurrentAdmin,
    webhooks: Annotated[WebhookRepository, Depends(get_webhooks)],
):
    """Update only the fields present in the body."""
    await load_webhook(webhooks, current_user, webhook_id)
    changes = request.model_dump(exclude_unset=True)
    if "url" in changes:
        changes["url"] = str(changes["url"])
    return webhook_to_dict(unwrap(await webhooks.update(webhook_id, changes)))


@router.post("/webhooks/{webhook_id}/test")
async def test_webhook(
    webhook_id: UUID,
    current_user: CurrentAdmin,
    webhooks: Annotated[WebhookRepository, Depends(get_webhooks)],
):
    """Send a test event; 502 when the test function reports a failure."""
    await load_webhook(webhooks, current_user, webhook_id)
    return unwrap(await webhooks.test(webhook_id))
