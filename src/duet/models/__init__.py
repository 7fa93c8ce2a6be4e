# src/duet/models/__init__.py
"""SQLAlchemy models for the Duet application."""

from .conversation import Conversation
from .message import Message
from .user import User

__all__ = [
    "Conversation",
    "Message",
    "User",
]
