"""Domain errors - raised only for unexpected conditions.

Expected outcomes (a full event, a double join) are returned as results by
the capacity tracker. Exceptions here signal malformed input or missing
entities and should fail fast.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    INVALID_INPUT = "INVALID_INPUT"
    ENTITY_NOT_FOUND = "ENTITY_NOT_FOUND"
    ENTITY_EXISTS = "ENTITY_EXISTS"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class InvalidInputError(DomainError):
    """Raised for malformed coordinates, rules or stored documents."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(code=ErrorCode.INVALID_INPUT, message=message)
        object.__setattr__(self, "field", field)


class EntityNotFoundError(DomainError):
    """Raised when an event or playdate is not known to the repository."""

    def __init__(self, entity_id: str) -> None:
        super().__init__(
            code=ErrorCode.ENTITY_NOT_FOUND,
            message=f"Entity not found: {entity_id}",
        )
        object.__setattr__(self, "entity_id", entity_id)


class EntityExistsError(DomainError):
    """Raised when creating an entity whose ID is already stored."""

    def __init__(self, entity_id: str) -> None:
        super().__init__(
            code=ErrorCode.ENTITY_EXISTS,
            message=f"Entity already exists: {entity_id}",
        )
        object.__setattr__(self, "entity_id", entity_id)
