"""
Session/role resolution for the admin console.

Given the identity id of an authenticated session, look up the console user
and decide its access level:
- superadmin if tipo_usuario is superadmin or the email is listed in
  SUPERADMIN_EMAILS
- otherwise the stored tipo_usuario (admin by default)

An identity without a user row is treated as not authenticated.
"""

import logging
from dataclasses import dataclass

from booking.repositories.users import UserRepository
from booking.results import ErrorCode, OperationResult
from database.models import User, UserType
from shared.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class SessionInfo:
    """Resolved session state consumed by route guards."""

    is_authenticated: bool
    user_type: UserType | None = None
    user: User | None = None

    @property
    def is_superadmin(self) -> bool:
        return self.user_type is UserType.SUPERADMIN


ANONYMOUS = SessionInfo(is_authenticated=False)


def resolve_user_type(user: User, superadmin_emails: set[str]) -> UserType:
    """Access level of a user row."""
    if user.user_type is UserType.SUPERADMIN:
        return UserType.SUPERADMIN
    if user.email and user.email.lower() in superadmin_emails:
        return UserType.SUPERADMIN
    return user.user_type or UserType.ADMIN


class AuthService:
    """Resolves SessionInfo for an identity id."""

    def __init__(self, users: UserRepository):
        self.users = users

    async def resolve_session(self, auth_id: str | None) -> OperationResult[SessionInfo]:
        """
        Resolve the session of auth_id.

        Unknown identities resolve to an anonymous session (success). Store
        failures are passed through so the caller can answer 5xx instead of 401.
        """
        if not auth_id:
            return OperationResult.ok(ANONYMOUS)

        result = await self.users.get_by_auth_id(auth_id)
        if not result.success:
            if result.error_code is ErrorCode.NOT_FOUND:
                logger.warning(f"No user row for identity {auth_id}")
                return OperationResult.ok(ANONYMOUS)
            return result

        user = result.data
        user_type = resolve_user_type(user, get_settings().superadmin_emails)
        return OperationResult.ok(
            SessionInfo(is_authenticated=True, user_type=user_type, user=user)
        )
