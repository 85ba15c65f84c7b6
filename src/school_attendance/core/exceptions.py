from __future__ import annotations

from typing import Any, Optional, Sequence


class DomainError(Exception):
    """Base exception for business rule violations.

    ``kind`` is a stable machine-readable identifier; ``message`` is meant
    for humans.
    """

    kind = "domain_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    kind = "validation_failure"


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""

    kind = "authentication_failed"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    kind = "access_denied"

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class OwnershipMismatchError(AuthorizationError):
    """The session and student chains of an attendance record disagree on the owning class."""

    integrity_error = True


class NotFoundError(DomainError):
    kind = "not_found"

    def __init__(self, entity: str, entity_id: Optional[object] = None):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(DomainError):
    """Uniqueness violation or cross-entity mismatch."""

    kind = "conflict"


class BatchRejectedError(ConflictError):
    """An atomic bulk operation was refused; nothing was written."""

    kind = "batch_rejected"

    def __init__(self, failures: Sequence[Any]):
        super().__init__(f"{len(failures)} item(s) rejected, nothing was written")
        self.failures = list(failures)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["failures"] = [f.to_dict() for f in self.failures]
        return data
