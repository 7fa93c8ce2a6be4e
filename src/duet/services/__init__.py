"""Business logic services for the Duet application."""

from .access_control import Operation, authorize
from .conversation_directory import ConversationDirectory, normalize_conversation
from .identity import UserIdentity, resolve_identity
from .lifecycle import ConversationLifecycle
from .message_ledger import MessageLedger

__all__ = [
    "ConversationDirectory",
    "ConversationLifecycle",
    "MessageLedger",
    "Operation",
    "UserIdentity",
    "authorize",
    "normalize_conversation",
    "resolve_identity",
]
