from __future__ import annotations


class ServiceError(Exception):
    """Base class for domain/service layer failures."""

    kind = "service_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(ServiceError):
    """Malformed or missing input; carries every problem found."""

    kind = "validation_error"

    def __init__(self, errors: list[str] | str) -> None:
        self.errors = [errors] if isinstance(errors, str) else list(errors)
        super().__init__("; ".join(self.errors))


class UnauthenticatedError(ServiceError):
    kind = "unauthenticated"


class ForbiddenError(ServiceError):
    """Authenticated, but the role or ownership check failed."""

    kind = "forbidden"


class RoleForbiddenError(ForbiddenError):
    kind = "forbidden_role"


class OwnershipForbiddenError(ForbiddenError):
    kind = "forbidden_owner"


class NotFoundError(ServiceError):
    kind = "not_found"

    def __init__(self, resource: str, identifier: str, message: str | None = None):
        self.resource = resource
        self.identifier = identifier
        super().__init__(message or f"{resource} '{identifier}' not found")


class ConflictError(ServiceError):
    """Uniqueness violation or a lost race on a state transition."""

    kind = "conflict"


class InvalidStateError(ServiceError):
    """Operation not valid for the entity's current lifecycle state."""

    kind = "invalid_state"
