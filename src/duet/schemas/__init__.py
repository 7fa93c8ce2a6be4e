"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .conversation import (
    ConversationListItem,
    ConversationListResponse,
    ConversationResponse,
    ConversationStart,
    DeleteConversationResponse,
    UnreadCountResponse,
)
from .error import ErrorResponse
from .message import MessageCreate, MessageResponse
from .user import UserSummary

__all__ = [
    "ConversationListItem", "ConversationListResponse", "ConversationResponse",
    "ConversationStart", "DeleteConversationResponse", "UnreadCountResponse",
    "ErrorResponse",
    "MessageCreate", "MessageResponse",
    "UserSummary",
]
