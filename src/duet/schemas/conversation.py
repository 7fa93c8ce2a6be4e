"""Conversation-related Pydantic schemas."""

from datetime import datetime

from pydantic import Field

from .common import CamelModel
from .message import MessageResponse
from .user import UserSummary


class ConversationStart(CamelModel):
    """Schema for starting (or resuming) a conversation."""

    receiver_id: str | None = Field(None, description="Identifier of the other participant")


class ConversationResponse(CamelModel):
    """Conversation with its participants and latest message."""

    id: str
    participants: list[UserSummary]
    last_message: MessageResponse | None = None
    created_at: datetime
    updated_at: datetime


class ConversationListItem(ConversationResponse):
    """Conversation entry in the caller's inbox listing."""

    unread_count: int = 0


class ConversationListResponse(CamelModel):
    conversations: list[ConversationListItem]
    total_unread: int


class DeleteConversationResponse(CamelModel):
    conversation_id: str
    messages_deleted: int


class UnreadCountResponse(CamelModel):
    count: int
