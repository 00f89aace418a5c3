"""
User repository.

Users are rows linked to an identity managed by the external auth provider
through `auth_id`. Creating the identity itself happens outside this service.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from booking.repositories.base import BaseRepository
from booking.results import ErrorCode, OperationResult
from database.models import User, UserRole, UserType

logger = logging.getLogger(__name__)

CREATE_FIELDS = {"name", "email", "role", "user_type", "auth_id", "company_id"}


class UserRepository(BaseRepository):
    """Lookups and creation of console users."""

    async def get_by_auth_id(self, auth_id: str) -> OperationResult[User]:
        """User linked to an identity; NOT_FOUND when the identity has no row."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(select(User).where(User.auth_id == auth_id))
                user = result.scalar_one_or_none()
                if user is None:
                    return OperationResult.fail(ErrorCode.NOT_FOUND, "User not found", auth_id=auth_id)
                return OperationResult.ok(user)
        except SQLAlchemyError as e:
            return self.database_failure("fetching user by auth id", e)

    async def create_many(self, rows: list[dict[str, Any]]) -> OperationResult[list[User]]:
        """
        Insert several users in one transaction.

        Rows missing email, name or role are skipped; VALIDATION_ERROR if
        none remain.
        """
        valid = [row for row in rows if row.get("email") and row.get("name") and row.get("role")]
        if not valid:
            return OperationResult.fail(ErrorCode.VALIDATION_ERROR, "No valid users to create")

        try:
            users = [User(**{k: v for k, v in row.items() if k in CREATE_FIELDS}) for row in valid]
            for user in users:
                user.role = UserRole(user.role)
                user.user_type = UserType(user.user_type or UserType.ADMIN)
        except ValueError as e:
            return OperationResult.fail(ErrorCode.VALIDATION_ERROR, str(e))

        try:
            async with self.session_factory() as session:
                session.add_all(users)
                await session.commit()
                for user in users:
                    await session.refresh(user)
        except SQLAlchemyError as e:
            return self.database_failure("creating users", e)

        return OperationResult.ok(users, skipped=len(rows) - len(valid))

    async def create_for_company(
        self,
        email: str,
        name: str,
        company_id: UUID,
        role: UserRole | str,
        auth_id: str | None = None,
    ) -> OperationResult[User]:
        """Create a company console user; company admins always get tipo_usuario=admin."""
        result = await self.create_many(
            [
                {
                    "email": email,
                    "name": name,
                    "role": role,
                    "user_type": UserType.ADMIN,
                    "auth_id": auth_id,
                    "company_id": company_id,
                }
            ]
        )
        if not result.success:
            return result

        user = result.data[0]
        logger.info(f"User created for company: {email}", extra={"company_id": company_id})
        return OperationResult.ok(user)
