"""
SQLAlchemy ORM models for the booking tables.

This module defines the tables:
- companies: tenants, with branding and plan metadata
- users: console users linked to an external identity
- professionals / services: the bookable catalog (soft-deleted)
- professional_services: professional ↔ service association (hard-deleted)
- available_slots: bookable time intervals (hard-deleted while available)
- appointments: bookings referencing a slot
- webhook_configurations / webhook_logs: outbound webhook setup and test history

All models use:
- UUID primary keys (auto-generated)
- TIMESTAMP WITH TIME ZONE for datetime fields
- Portable column types, so the same metadata runs on PostgreSQL and SQLite
"""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    TIMESTAMP,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy import (
    Enum as SQLEnum,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    return datetime.now(UTC)


# ============================================================================
# Base Class
# ============================================================================


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


# ============================================================================
# Enums
# ============================================================================


class AppointmentStatus(str, PyEnum):
    """Appointment lifecycle status."""

    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    def __str__(self):
        return self.value


class UserRole(str, PyEnum):
    """Role of a console user inside its company."""

    ADMIN = "admin"
    PROFESSIONAL = "professional"


class UserType(str, PyEnum):
    """Console access level (stored as tipo_usuario)."""

    ADMIN = "admin"
    SUPERADMIN = "superadmin"


def _enum_values(enum_cls: type[PyEnum]) -> list[str]:
    return [e.value for e in enum_cls]


# ============================================================================
# Tenant Models
# ============================================================================


class Company(Base):
    """
    Company model - A tenant owning its own professionals, services and slots.

    The slug is the public booking URL segment (/{slug}).
    """

    __tablename__ = "companies"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)

    # Branding
    logo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    primary_color: Mapped[str | None] = mapped_column(String(7), nullable=True)
    secondary_color: Mapped[str | None] = mapped_column(String(7), nullable=True)

    # Plan metadata
    plan: Mapped[str | None] = mapped_column(String(50), nullable=True)
    plan_value: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    plan_expiry_date: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def is_effectively_active(self, now: datetime | None = None) -> bool:
        """Active flag set and plan not expired (no expiry date means no expiry)."""
        if not self.is_active:
            return False
        if self.plan_expiry_date is None:
            return True
        now = now or utcnow()
        expiry = self.plan_expiry_date
        # SQLite hands back naive values; they are stored as UTC
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=UTC)
        return expiry > now

    def __repr__(self) -> str:
        return f"<Company(id={self.id}, slug='{self.slug}')>"


class User(Base):
    """
    User model - Console users.

    auth_id links the row to the external identity provider.
    tipo_usuario keeps the column name used by the identity tooling.
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, name="user_role", values_callable=_enum_values),
        default=UserRole.ADMIN,
        nullable=False,
    )
    user_type: Mapped[UserType] = mapped_column(
        "tipo_usuario",
        SQLEnum(UserType, name="user_type", values_callable=_enum_values),
        default=UserType.ADMIN,
        nullable=False,
    )
    auth_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True, index=True)
    company_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("companies.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', tipo_usuario='{self.user_type.value}')>"


# ============================================================================
# Catalog Models
# ============================================================================


class Professional(Base):
    """
    Professional model - People who accept appointments.

    Deleting a professional only clears `active`; appointments keep pointing at it.
    """

    __tablename__ = "professionals"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    company_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=True, index=True
    )
    user_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        Index("idx_professionals_company_active", "company_id", "active"),
    )

    def __repr__(self) -> str:
        return f"<Professional(id={self.id}, name='{self.name}')>"


class Service(Base):
    """Service model - Bookable services with duration and price."""

    __tablename__ = "services"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    company_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=True, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("duration > 0", name="check_service_duration_positive"),
        CheckConstraint("price >= 0", name="check_service_price_non_negative"),
        Index("idx_services_company_active", "company_id", "active"),
    )

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, name='{self.name}')>"


class ProfessionalService(Base):
    """Association between a professional and a service it offers."""

    __tablename__ = "professional_services"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)

    professional_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("professionals.id", ondelete="CASCADE"), nullable=False
    )
    service_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("services.id", ondelete="CASCADE"), nullable=False
    )
    company_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("professional_id", "service_id", name="uq_professional_service"),
    )

    def __repr__(self) -> str:
        return f"<ProfessionalService(professional_id={self.professional_id}, service_id={self.service_id})>"


# ============================================================================
# Scheduling Models
# ============================================================================


class AvailableSlot(Base):
    """
    AvailableSlot model - One bookable interval of a professional.

    is_available is false exactly while a non-cancelled appointment holds the slot.
    """

    __tablename__ = "available_slots"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)

    professional_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("professionals.id", ondelete="CASCADE"), nullable=False
    )
    start_time: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    company_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        Index("idx_slots_professional_start", "professional_id", "start_time"),
    )

    def __repr__(self) -> str:
        return f"<AvailableSlot(id={self.id}, start_time={self.start_time}, is_available={self.is_available})>"


class Appointment(Base):
    """
    Appointment model - A client booking of one slot for one service.

    Creating a confirmed appointment reserves its slot; cancelling releases it.
    """

    __tablename__ = "appointments"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)

    professional_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("professionals.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    service_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("services.id", ondelete="RESTRICT"), nullable=False
    )
    slot_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("available_slots.id", ondelete="RESTRICT"), nullable=False
    )

    client_name: Mapped[str] = mapped_column(String(200), nullable=False)
    client_phone: Mapped[str] = mapped_column(String(30), nullable=False, index=True)

    # values_callable stores the enum .value ("confirmed") instead of .name
    status: Mapped[AppointmentStatus] = mapped_column(
        SQLEnum(AppointmentStatus, name="appointment_status", values_callable=_enum_values),
        default=AppointmentStatus.CONFIRMED,
        nullable=False,
        index=True,
    )

    company_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    # Relationships (load explicitly with selectinload; async sessions cannot lazy load)
    professional: Mapped["Professional"] = relationship("Professional")
    service: Mapped["Service"] = relationship("Service")
    slot: Mapped["AvailableSlot"] = relationship("AvailableSlot")

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, slot_id={self.slot_id}, status='{self.status.value}')>"


# ============================================================================
# Webhook Models
# ============================================================================


class WebhookConfiguration(Base):
    """Outbound webhook target for one event type of a company."""

    __tablename__ = "webhook_configurations"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)

    url: Mapped[str] = mapped_column(Text, nullable=False)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    company_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<WebhookConfiguration(id={self.id}, event_type='{self.event_type}')>"


class WebhookLog(Base):
    """Record of one webhook delivery attempt."""

    __tablename__ = "webhook_logs"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)

    webhook_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("webhook_configurations.id", ondelete="SET NULL"),
        nullable=True,
    )
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status_code: Mapped[int | None] = mapped_column(Integer, nullable=True)
    response_body: Mapped[str | None] = mapped_column(Text, nullable=True)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        Index("idx_webhook_logs_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<WebhookLog(id={self.id}, success={self.success})>"
