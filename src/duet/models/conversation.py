# src/duet/models/conversation.py
"""Models describing two-party conversations."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from duet.db.session import Base
from duet.db.time import utcnow


def new_conversation_id() -> str:
    """Return a fresh 32-character hex identifier."""
    return uuid.uuid4().hex


class Conversation(Base):
    """Conversation between exactly two distinct users.

    Participants are stored as a canonical pair (``user_low < user_high``).
    ``pair_key`` carries the uniqueness policy: it is set to ``"low:high"`` when
    one conversation per pair is enforced and left NULL otherwise, so the single
    unique constraint below only bites under the singleton policy.
    """

    __tablename__ = "conversation"
    __table_args__ = (
        CheckConstraint("user_low < user_high", name="ck_conversation_canonical_pair"),
        Index("ix_conversation_pair", "user_low", "user_high"),
        Index("ix_conversation_updated_at", "updated_at"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_conversation_id)
    user_low: Mapped[str] = mapped_column(String(32), nullable=False)
    user_high: Mapped[str] = mapped_column(String(32), nullable=False)
    pair_key: Mapped[str | None] = mapped_column(String(65), nullable=True, unique=True)

    # Weak pointer into the ledger; no foreign key so deleting messages never
    # has to touch this row.
    last_message_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    @property
    def participants(self) -> tuple[str, str]:
        """Return the participant ids in canonical order."""
        return (self.user_low, self.user_high)
