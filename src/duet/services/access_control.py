"""Participant-only authorization for conversation operations."""

from __future__ import annotations

from enum import Enum

from duet.core.errors import Forbidden
from duet.models import Conversation


class Operation(str, Enum):
    """Operations gated by participant membership."""

    READ = "read"
    WRITE = "write"
    DELETE = "delete"


def is_participant(conversation: Conversation, user_id: str) -> bool:
    """Return True if the user is one of the conversation's two participants."""
    return user_id in conversation.participants


def authorize(conversation: Conversation, user_id: str, operation: Operation) -> None:
    """Allow the operation only for participants.

    Every operation currently has the same rule; ``operation`` is carried so
    the message and future per-operation rules stay in one place.

    Raises:
        Forbidden: If the user is not a participant.
    """
    if not is_participant(conversation, user_id):
        raise Forbidden(
            f"Access denied. You may not {operation.value} this conversation"
        )


def other_participant(conversation: Conversation, user_id: str) -> str:
    """Return the participant who is not ``user_id``."""
    low, high = conversation.participants
    if user_id == low:
        return high
    if user_id == high:
        return low
    raise Forbidden()
