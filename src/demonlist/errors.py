"""Domain errors for demonlist service.

Each error carries the HTTP status the API layer answers with. Storage
failures are not domain errors; the database layer raises ``RuntimeError``
for those and the API layer turns them into a generic 500.
"""

from http import HTTPStatus


class DemonlistError(Exception):
    """Base class for errors reported back to the caller."""

    status_code: int = HTTPStatus.BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequestError(DemonlistError):
    """Malformed or missing input."""

    status_code = HTTPStatus.BAD_REQUEST


class AuthenticationError(DemonlistError):
    """Missing, malformed or expired bearer token."""

    status_code = HTTPStatus.UNAUTHORIZED


class PermissionDeniedError(DemonlistError):
    """Authenticated caller lacks the role or ownership required."""

    status_code = HTTPStatus.FORBIDDEN


class ResourceNotFoundError(DemonlistError):
    """Target entity does not exist."""

    status_code = HTTPStatus.NOT_FOUND


class ConflictError(DemonlistError):
    """Uniqueness violation or a concurrent write that won the race."""

    status_code = HTTPStatus.CONFLICT
