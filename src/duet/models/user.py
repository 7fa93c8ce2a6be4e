# src/duet/models/user.py
"""Identity-store model for registered users."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from duet.db.session import Base
from duet.db.time import utcnow


def new_user_id() -> str:
    """Return a fresh 32-character hex identifier."""
    return uuid.uuid4().hex


class User(Base):
    """Registered account referenced by conversations and messages.

    Registration and credential handling live outside this service; the
    messaging core only reads ``id``, ``name`` and ``email``.
    """

    __tablename__ = "user_account"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_user_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    password_hash: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
