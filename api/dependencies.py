"""
FastAPI dependencies: repositories, session guards and result unwrapping.

Repositories are built per request from the injected session factory, so
tests override `get_session_factory` (and `get_webhook_tester`) instead of
patching module globals.
"""

import logging
from typing import Annotated, Any, ClassVar

from fastapi import Depends, HTTPException, status
from fastapi.encoders import jsonable_encoder
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel, model_validator
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from booking.repositories import (
    AppointmentRepository,
    CompanyRepository,
    ProfessionalRepository,
    ServiceRepository,
    SlotRepository,
    UserRepository,
    WebhookRepository,
)
from booking.results import ErrorCode, OperationResult
from booking.services.auth_service import AuthService, SessionInfo
from booking.services.webhook_tester import WebhookTester
from booking.transactions import BookingTransaction
from database.connection import get_session_factory
from shared.config import get_settings

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]

# Error code -> HTTP status
ERROR_STATUS = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.SLOT_UNAVAILABLE: status.HTTP_409_CONFLICT,
    ErrorCode.SLUG_TAKEN: status.HTTP_409_CONFLICT,
    ErrorCode.INTEGRITY_ERROR: status.HTTP_409_CONFLICT,
    ErrorCode.WEBHOOK_TEST_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.DATABASE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def unwrap(result: OperationResult) -> Any:
    """Return result.data or raise the HTTPException matching its error code."""
    if result.success:
        return result.data
    raise HTTPException(
        status_code=ERROR_STATUS.get(result.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=jsonable_encoder(result.to_dict()),
    )


# =============================================================================
# Repositories
# =============================================================================


def get_webhook_tester() -> WebhookTester:
    return WebhookTester()


def get_professionals(factory: SessionFactory) -> ProfessionalRepository:
    return ProfessionalRepository(factory)


def get_services(factory: SessionFactory) -> ServiceRepository:
    return ServiceRepository(factory)


def get_slots(factory: SessionFactory) -> SlotRepository:
    return SlotRepository(factory)


def get_appointments(factory: SessionFactory) -> AppointmentRepository:
    return AppointmentRepository(factory)


def get_booking(factory: SessionFactory) -> BookingTransaction:
    return BookingTransaction(factory)


def get_companies(factory: SessionFactory) -> CompanyRepository:
    return CompanyRepository(factory)


def get_users(factory: SessionFactory) -> UserRepository:
    return UserRepository(factory)


def get_webhooks(
    factory: SessionFactory,
    tester: Annotated[WebhookTester, Depends(get_webhook_tester)],
) -> WebhookRepository:
    return WebhookRepository(factory, tester=tester)


# =============================================================================
# Security
# =============================================================================


def decode_token(token: str) -> dict[str, Any]:
    """
    Verify a session JWT issued by the identity provider.

    The `sub` claim carries the identity id (users.auth_id).
    """
    settings = get_settings()
    if not settings.AUTH_JWT_SECRET:
        raise RuntimeError("AUTH_JWT_SECRET must be set in environment variables")
    try:
        return jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=[settings.AUTH_JWT_ALGORITHM],
            options={"verify_aud": False},
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_session(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    users: Annotated[UserRepository, Depends(get_users)],
) -> SessionInfo:
    """Dependency resolving the caller's session; 401 when not authenticated."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials)
    session_info = unwrap(await AuthService(users).resolve_session(payload.get("sub")))

    if not session_info.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session_info


async def require_admin(
    session_info: Annotated[SessionInfo, Depends(get_current_session)],
) -> SessionInfo:
    """Admin console access (admins and superadmins)."""
    return session_info


async def require_superadmin(
    session_info: Annotated[SessionInfo, Depends(get_current_session)],
) -> SessionInfo:
    """Tenant management access."""
    if not session_info.is_superadmin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Superadmin access required")
    return session_info


CurrentAdmin = Annotated[SessionInfo, Depends(require_admin)]
CurrentSuperadmin = Annotated[SessionInfo, Depends(require_superadmin)]


# =============================================================================
# Request bodies
# =============================================================================


class PatchRequest(BaseModel):
    """Partial update body: fields in NOT_NULL may be omitted but not sent as null."""

    NOT_NULL: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="before")
    @classmethod
    def reject_null(cls, data: Any) -> Any:
        if isinstance(data, dict):
            nulls = sorted(name for name in cls.NOT_NULL if name in data and data[name] is None)
            if nulls:
                raise ValueError(f"Fields cannot be null: {', '.join(nulls)}")
        return data
