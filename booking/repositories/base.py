"""
Shared plumbing for repositories.

Every repository is constructed with an async session factory and opens one
session per operation. Store errors are logged and turned into failure
results here, so each concrete repository handles them the same way.
"""

import logging
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from booking.results import ErrorCode, OperationResult
from database.models import Base

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository:
    """Base class holding the injected session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @staticmethod
    def database_failure(action: str, error: SQLAlchemyError, **details: Any) -> OperationResult:
        """
        Log a store error and convert it into a failure result.

        Constraint violations get their own code so callers can tell them
        apart from connectivity/query failures.
        """
        logger.error(f"Error {action}: {error}", exc_info=error, extra=details)
        if isinstance(error, IntegrityError):
            return OperationResult.fail(
                ErrorCode.INTEGRITY_ERROR,
                f"Constraint violation while {action}",
                error=str(error.orig),
                **details,
            )
        return OperationResult.fail(
            ErrorCode.DATABASE_ERROR,
            f"Database error while {action}",
            error=str(error),
            **details,
        )

    @staticmethod
    def apply_patch(instance: Base, changes: dict[str, Any], allowed: set[str]) -> list[str]:
        """
        Write only the provided fields onto instance.

        Returns the names of the fields that were applied. Unknown keys are ignored.
        """
        applied = []
        for key, value in changes.items():
            if key in allowed:
                setattr(instance, key, value)
                applied.append(key)
        return applied

    @staticmethod
    async def get_by_id(session: AsyncSession, model: type[ModelT], entity_id: UUID) -> ModelT | None:
        result = await session.execute(select(model).where(model.id == entity_id))
        return result.scalar_one_or_none()
