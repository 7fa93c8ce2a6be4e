"""Message-related Pydantic schemas."""

from datetime import datetime

from pydantic import Field

from .common import CamelModel


class MessageCreate(CamelModel):
    """Schema for sending a new message.

    Length and blank checks happen in the ledger so the trimmed text is what
    gets measured.
    """

    text: str = Field(..., description="Message body, 1-2000 characters after trimming")


class MessageResponse(CamelModel):
    """Schema for a message returned by the API."""

    id: int
    conversation_id: str
    sender_id: str
    receiver_id: str
    text: str
    is_read: bool
    created_at: datetime
    updated_at: datetime
