"""Typed lifecycle errors and the result wrapper the engine returns.

Engine operations never raise: they hand back a ``LifecycleResult`` holding
either the outcome or one of the errors below. The errors are still
``Exception`` subclasses so callers (and the persistence layer, which raises
``ConcurrentModificationError``) can ``raise`` them where that reads better.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

from .models import DocumentStatus


class ReasonCode(str, Enum):
    """Why a permission check failed."""
    NOT_OWNER = "NOT_OWNER"
    WRONG_DEPARTMENT = "WRONG_DEPARTMENT"
    PRIVILEGED_TRANSITION = "PRIVILEGED_TRANSITION"
    TERMINAL_STATE = "TERMINAL_STATE"
    ILLEGAL_TRANSITION = "ILLEGAL_TRANSITION"
    WRONG_STATUS = "WRONG_STATUS"
    INSUFFICIENT_ROLE = "INSUFFICIENT_ROLE"


class LifecycleError(Exception):
    """Base class for all lifecycle errors."""

    code = "LIFECYCLE_ERROR"
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API error bodies"""
        return {"code": self.code, "detail": self.message}


class TerminalStateError(LifecycleError):
    """Attempted to move a document out of a terminal status."""

    code = "TERMINAL_STATE"

    def __init__(self, status: DocumentStatus):
        super().__init__(f"Document is {status.value}; no further transitions are permitted")
        self.status = status


class IllegalTransitionError(LifecycleError):
    """(from, to) pair is absent from the transition table."""

    code = "ILLEGAL_TRANSITION"

    def __init__(self, from_status: Optional[DocumentStatus], to_status: DocumentStatus):
        from_label = from_status.value if from_status else "<none>"
        super().__init__(f"Invalid transition: {from_label} -> {to_status.value}")
        self.from_status = from_status
        self.to_status = to_status

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["from_status"] = self.from_status.value if self.from_status else None
        data["to_status"] = self.to_status.value
        return data


class PermissionDeniedError(LifecycleError):
    code = "PERMISSION_DENIED"

    def __init__(self, reason_code: ReasonCode, action: str):
        super().__init__(f"Permission denied for {action}: {reason_code.value}")
        self.reason_code = reason_code
        self.action = action

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["reason_code"] = self.reason_code.value
        data["action"] = self.action
        return data


class ValidationError(LifecycleError):
    """Field-level validation failure (missing or too short/long text)."""

    code = "VALIDATION_ERROR"

    def __init__(self, field: str, rule: str, limit: Optional[int] = None):
        detail = f"{field} failed {rule}" + (f" ({limit})" if limit is not None else "")
        super().__init__(detail)
        self.field = field
        self.rule = rule
        self.limit = limit

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"field": self.field, "rule": self.rule, "limit": self.limit})
        return data


class VersionOverflowError(LifecycleError):
    """Major or minor counter would exceed two digits."""

    code = "VERSION_OVERFLOW"

    def __init__(self, current: str, change_type: str):
        super().__init__(f"Cannot apply {change_type} change to version {current}: counter exceeds 99")
        self.current = current
        self.change_type = change_type


class ConcurrentModificationError(LifecycleError):
    """Raised by the persistence layer when a compare-and-swap commit loses a race."""

    code = "CONCURRENT_MODIFICATION"
    retryable = True

    def __init__(self, document_id: Any, detail: str = "Document was modified by another request"):
        super().__init__(f"{detail} (document {document_id})")
        self.document_id = document_id


class InconsistentHistoryError(LifecycleError):
    """Stored history violates a lifecycle invariant."""

    code = "INCONSISTENT_HISTORY"

    def __init__(self, detail: str):
        super().__init__(detail)


T = TypeVar("T")


@dataclass(frozen=True)
class LifecycleResult(Generic[T]):
    """Tagged success/error result of an engine operation."""
    value: Optional[T] = None
    error: Optional[LifecycleError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, raising the carried error on failure."""
        if self.error is not None:
            raise self.error
        return self.value

    @classmethod
    def success(cls, value: T) -> "LifecycleResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: LifecycleError) -> "LifecycleResult[T]":
        return cls(error=error)
