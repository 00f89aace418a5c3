"""
Operation results returned by every data-access operation.

Repositories and transaction handlers never raise for store failures. They
return an OperationResult that is either a success carrying a payload or a
failure carrying an ErrorCode, a message and free-form details.

Usage:
    result = await professionals.fetch_by_id(professional_id)
    if not result.success:
        if result.error_code is ErrorCode.NOT_FOUND:
            ...
    professional = result.data
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorCode(str, Enum):
    """Failure kinds an operation can report."""

    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    SLOT_UNAVAILABLE = "SLOT_UNAVAILABLE"
    SLUG_TAKEN = "SLUG_TAKEN"
    INTEGRITY_ERROR = "INTEGRITY_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    WEBHOOK_TEST_FAILED = "WEBHOOK_TEST_FAILED"


@dataclass
class OperationResult(Generic[T]):
    """
    Result of a data-access operation.

    Attributes:
        success: Whether the operation succeeded
        data: Payload on success (may be None for operations without one)
        error_code: Failure kind when success is False
        error_message: Human readable failure description
        details: Extra context (ids, counts, underlying error text)
    """

    success: bool
    data: T | None = None
    error_code: ErrorCode | None = None
    error_message: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: T | None = None, **details: Any) -> "OperationResult[T]":
        return cls(success=True, data=data, details=details)

    @classmethod
    def fail(cls, error_code: ErrorCode, error_message: str, **details: Any) -> "OperationResult[T]":
        return cls(
            success=False,
            error_code=error_code,
            error_message=error_message,
            details=details,
        )

    @classmethod
    def not_found(cls, entity: str, entity_id: Any) -> "OperationResult[T]":
        return cls.fail(
            ErrorCode.NOT_FOUND,
            f"{entity} not found",
            **{f"{entity.lower()}_id": str(entity_id)},
        )

    def to_dict(self) -> dict[str, Any]:
        """Error payload shape used by the HTTP layer."""
        return {
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": self.error_message,
            "details": self.details,
        }
