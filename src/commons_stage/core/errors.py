"""Domain exceptions raised by the community services.

Each exception carries the HTTP status and machine-readable code the API
layer renders, so services never import FastAPI.
"""

from __future__ import annotations


class CommunityError(Exception):
    """Base exception for community, membership, item and progress failures."""

    status_code: int = 400
    code: str = "COMMUNITY_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(CommunityError):
    """Raised when a community or item is missing or soft-deleted."""

    status_code = 404
    code = "NOT_FOUND"


class ForbiddenError(CommunityError):
    """Raised when the permission policy denies an action."""

    status_code = 403
    code = "FORBIDDEN"


class LimitReachedError(CommunityError):
    """Raised when a community has reached its member cap."""

    status_code = 400
    code = "LIMIT_REACHED"


class ConflictError(CommunityError):
    """Raised when a unique-key race cannot be resolved by re-reading."""

    status_code = 409
    code = "CONFLICT"


class InvalidRequestError(CommunityError):
    """Raised when a request is well-formed but semantically invalid."""

    status_code = 400
    code = "INVALID_REQUEST"
