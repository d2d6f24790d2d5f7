"""
Service Errors

Every failure the services raise on purpose is a ServiceError tagged with
an ErrorKind. Services never know about HTTP; the exception handlers in
main.py translate a kind into a status code through STATUS_BY_KIND.

Kinds:
- UNAUTHENTICATED: no or invalid credentials
- FORBIDDEN: authenticated but lacking the required role or ownership
- INVALID_INPUT: malformed body or failed field validation
- NOT_FOUND: referenced movie or review absent
- CONFLICT: duplicate identifier on a conditional write
- INTERNAL: unexpected store failure; details are logged, never returned
"""

from enum import Enum
from typing import TYPE_CHECKING

from fastapi import status

if TYPE_CHECKING:
    from app.services.batching import BatchOutcome


class ErrorKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal"


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

GENERIC_INTERNAL_MESSAGE = "Internal server error"


class ServiceError(Exception):
    """An expected failure of a service operation."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class CascadeDeleteError(ServiceError):
    """
    Some review batches of a movie delete failed.

    The movie record was left in place. Batches that succeeded are not
    rolled back, so retrying the same delete only has the remaining
    reviews left to remove.
    """

    def __init__(self, movie_id: str, outcome: "BatchOutcome") -> None:
        super().__init__(
            ErrorKind.INTERNAL,
            f"Deleting reviews of movie {movie_id} failed "
            f"({'total' if outcome.completely_failed else 'partial'}): "
            f"{len(outcome.failed)} of {outcome.total_batches} batches",
        )
        self.movie_id = movie_id
        self.outcome = outcome


def unauthenticated(message: str = "Authentication required") -> ServiceError:
    return ServiceError(ErrorKind.UNAUTHENTICATED, message)


def forbidden(message: str = "Forbidden") -> ServiceError:
    return ServiceError(ErrorKind.FORBIDDEN, message)


def invalid_input(message: str) -> ServiceError:
    return ServiceError(ErrorKind.INVALID_INPUT, message)


def not_found(message: str) -> ServiceError:
    return ServiceError(ErrorKind.NOT_FOUND, message)


def conflict(message: str = "Conflict detected") -> ServiceError:
    return ServiceError(ErrorKind.CONFLICT, message)


def internal(message: str) -> ServiceError:
    return ServiceError(ErrorKind.INTERNAL, message)
