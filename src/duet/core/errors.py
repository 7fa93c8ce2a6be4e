"""Error taxonomy shared by the messaging services and the HTTP layer.

Every error carries a stable machine-readable ``kind`` and the HTTP status the
API layer should answer with. Services raise these; ``duet.main`` renders them.
"""

from __future__ import annotations

from fastapi import status


class ChatError(RuntimeError):
    """Base class for every error the messaging core reports to callers."""

    kind: str = "internal"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, *, field: str | None = None) -> None:
        self.message = message or self.default_message
        self.field = field
        super().__init__(self.message)

    def to_payload(self) -> dict[str, str]:
        """Return the JSON body sent to clients."""
        payload = {"kind": self.kind, "message": self.message}
        if self.field is not None:
            payload["field"] = self.field
        return payload


class Unauthenticated(ChatError):
    """Session is absent, invalid, expired, or its user no longer exists."""

    kind = "unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class InvalidArgument(ChatError):
    """Malformed id, missing/empty/oversized text, or a self-chat attempt."""

    kind = "invalid_argument"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class NotFound(ChatError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class Forbidden(ChatError):
    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not a participant in this conversation"


class MethodNotAllowed(ChatError):
    """Route exists but does not accept the request method."""

    kind = "method_not_allowed"
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED
    default_message = "Method not allowed"


class Conflict(ChatError):
    """Uniqueness race; resolved inside the directory, never sent to clients."""

    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflicting write"


class InternalError(ChatError):
    """Storage failure or unexpected state."""


__all__ = [
    "ChatError",
    "Conflict",
    "Forbidden",
    "InternalError",
    "InvalidArgument",
    "MethodNotAllowed",
    "NotFound",
    "Unauthenticated",
]
