"""Domain errors raised by the voting, karma and thread engine.

Every error carries the HTTP status the API layer answers with, so services
can stay free of FastAPI imports.
"""

from __future__ import annotations

from fastapi import status


class EngineError(Exception):
    """Base class for all engine errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "engine_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidValue(EngineError):
    """Vote value outside {-1, 0, 1}."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_value"


class Unauthenticated(EngineError):
    """No verified actor identity was supplied."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"


class Forbidden(EngineError):
    """The actor may not perform this operation."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class NotFound(EngineError):
    """Votable, comment or user is missing (or soft-deleted where that matters)."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class AcyclicViolation(EngineError):
    """A comment parent would create a cycle or cross-post reference."""

    status_code = status.HTTP_409_CONFLICT
    code = "acyclic_violation"


class AggregationFailure(EngineError):
    """A score or karma recompute could not be persisted."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "aggregation_failure"
