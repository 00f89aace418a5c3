"""
JSON shapes returned by the API routes.

Timestamps are rendered in the configured timezone with their UTC offset.
Appointment relations are included only when they were loaded with the row.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import inspect

from booking.repositories.slots import SlotView
from booking.utils.timezone import format_time, from_db
from database.models import (
    Appointment,
    AvailableSlot,
    Company,
    Professional,
    Service,
    User,
    WebhookConfiguration,
    WebhookLog,
)


def iso(dt: datetime | None) -> str | None:
    return from_db(dt).isoformat() if dt is not None else None


def money(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def company_to_dict(company: Company) -> dict[str, Any]:
    return {
        "id": str(company.id),
        "name": company.name,
        "slug": company.slug,
        "logo_url": company.logo_url,
        "primary_color": company.primary_color,
        "secondary_color": company.secondary_color,
        "plan": company.plan,
        "plan_value": money(company.plan_value),
        "plan_expiry_date": iso(company.plan_expiry_date),
        "is_active": company.is_active,
        "is_effectively_active": company.is_effectively_active(),
        "created_at": iso(company.created_at),
        "updated_at": iso(company.updated_at),
    }


def user_to_dict(user: User) -> dict[str, Any]:
    return {
        "id": str(user.id),
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
        "tipo_usuario": user.user_type.value,
        "auth_id": user.auth_id,
        "company_id": str(user.company_id) if user.company_id else None,
        "created_at": iso(user.created_at),
    }


def professional_to_dict(professional: Professional) -> dict[str, Any]:
    return {
        "id": str(professional.id),
        "name": professional.name,
        "phone": professional.phone,
        "bio": professional.bio,
        "photo_url": professional.photo_url,
        "active": professional.active,
        "company_id": str(professional.company_id) if professional.company_id else None,
        "user_id": str(professional.user_id) if professional.user_id else None,
        "created_at": iso(professional.created_at),
        "updated_at": iso(professional.updated_at),
    }


def service_to_dict(service: Service) -> dict[str, Any]:
    return {
        "id": str(service.id),
        "name": service.name,
        "description": service.description,
        "duration": service.duration,
        "price": money(service.price),
        "active": service.active,
        "company_id": str(service.company_id) if service.company_id else None,
        "created_at": iso(service.created_at),
        "updated_at": iso(service.updated_at),
    }


def slot_view_to_dict(slot: SlotView) -> dict[str, Any]:
    return {
        "id": str(slot.id),
        "time": slot.time,
        "available": slot.available,
        "start_time": slot.start_time.isoformat(),
        "end_time": slot.end_time.isoformat(),
        "professional_id": str(slot.professional_id),
    }


def slot_to_dict(slot: AvailableSlot) -> dict[str, Any]:
    return {
        "id": str(slot.id),
        "time": format_time(slot.start_time),
        "available": slot.is_available,
        "start_time": iso(slot.start_time),
        "end_time": iso(slot.end_time),
        "professional_id": str(slot.professional_id),
    }


def appointment_to_dict(appointment: Appointment) -> dict[str, Any]:
    data = {
        "id": str(appointment.id),
        "professional_id": str(appointment.professional_id),
        "service_id": str(appointment.service_id),
        "slot_id": str(appointment.slot_id),
        "client_name": appointment.client_name,
        "client_phone": appointment.client_phone,
        "status": appointment.status.value,
        "company_id": str(appointment.company_id) if appointment.company_id else None,
        "created_at": iso(appointment.created_at),
    }

    # Unloaded relationships would trigger lazy IO outside the session
    unloaded = inspect(appointment).unloaded
    if "professional" not in unloaded and appointment.professional is not None:
        data["professional"] = {"id": str(appointment.professional.id), "name": appointment.professional.name}
    if "service" not in unloaded and appointment.service is not None:
        data["service"] = {
            "id": str(appointment.service.id),
            "name": appointment.service.name,
            "duration": appointment.service.duration,
            "price": money(appointment.service.price),
        }
    if "slot" not in unloaded and appointment.slot is not None:
        data["slot"] = slot_to_dict(appointment.slot)
    return data


def webhook_to_dict(webhook: WebhookConfiguration) -> dict[str, Any]:
    return {
        "id": str(webhook.id),
        "url": webhook.url,
        "event_type": webhook.event_type,
        "is_active": webhook.is_active,
        "company_id": str(webhook.company_id) if webhook.company_id else None,
        "created_at": iso(webhook.created_at),
        "updated_at": iso(webhook.updated_at),
    }


def webhook_log_to_dict(log: WebhookLog) -> dict[str, Any]:
    return {
        "id": str(log.id),
        "webhook_id": str(log.webhook_id) if log.webhook_id else None,
        "event_type": log.event_type,
        "url": log.url,
        "success": log.success,
        "status_code": log.status_code,
        "response_body": log.response_body,
        "payload": log.payload,
        "created_at": iso(log.created_at),
    }
