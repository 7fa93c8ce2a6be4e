# src/duet/models/message.py
"""Models describing messages exchanged inside a conversation."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, false
from sqlalchemy.orm import Mapped, mapped_column

from duet.db.session import Base
from duet.db.time import utcnow


class Message(Base):
    """Text message appended to a conversation's ledger.

    Rows are immutable after insert except for ``is_read`` flipping from
    False to True.
    """

    __tablename__ = "message"
    __table_args__ = (
        Index("ix_message_conversation_created", "conversation_id", "created_at"),
        Index("ix_message_receiver_unread", "receiver_id", "is_read"),
        Index("ix_message_conversation_receiver_unread", "conversation_id", "receiver_id", "is_read"),
    )

    # Autoincrement id doubles as the tie-breaker when timestamps coincide.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conversation_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("conversation.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_id: Mapped[str] = mapped_column(String(32), nullable=False)
    receiver_id: Mapped[str] = mapped_column(String(32), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)

    is_read: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
