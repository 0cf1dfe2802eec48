"""Domain exceptions shared by the storage, service and AI layers.

Route handlers never catch these individually; ``setup_error_handlers`` maps
each class to a status code.
"""

from __future__ import annotations


class StayXError(Exception):
    """Base class for all domain errors."""

    status_code = 500

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class ValidationError(StayXError, ValueError):
    """Malformed input to a create/update call."""

    status_code = 400


class NotFoundError(StayXError, LookupError):
    """A referenced record does not exist.

    Storage lookups return ``None`` instead; this is raised by the service
    layer when a missing record makes the requested action impossible.
    """

    status_code = 404


class ConflictError(StayXError, ValueError):
    """Uniqueness violation: duplicate user field or an already-related pair."""

    status_code = 409


class InvalidTransitionError(ConflictError):
    """Connection status change not allowed from its current state."""


class AuthorizationError(StayXError):
    """The acting user may not perform this action."""

    status_code = 403


class NotConnectedError(AuthorizationError):
    """Messaging requires an accepted connection between the two users."""


class UpstreamServiceError(StayXError):
    """The generative-text service failed or returned nothing usable."""

    status_code = 502
