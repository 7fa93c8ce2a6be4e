"""Append-only message store with read-state tracking."""
from __future__ import annotations

from collections.abc import Iterable, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from duet.core.errors import InvalidArgument
from duet.db.time import utcnow
from duet.models import Message

DEFAULT_MAX_LENGTH = 2000

__all__ = ["DEFAULT_MAX_LENGTH", "MessageLedger", "clean_text"]


def clean_text(text: object, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Return the trimmed message text or raise InvalidArgument."""
    if not isinstance(text, str) or not text.strip():
        raise InvalidArgument("Message text is required", field="text")
    trimmed = text.strip()
    if len(trimmed) > max_length:
        raise InvalidArgument(
            f"Message text cannot exceed {max_length} characters", field="text"
        )
    return trimmed


class MessageLedger:
    """Ordered per-conversation message storage backed by SQLAlchemy."""

    def __init__(self, session: Session, *, max_length: int = DEFAULT_MAX_LENGTH) -> None:
        """Initialize the ledger with a SQLAlchemy session."""
        self.session = session
        self.max_length = max_length

    def append(
        self,
        conversation_id: str,
        sender_id: str,
        receiver_id: str,
        text: object,
    ) -> Message:
        """Insert a new unread message and return the persisted row.

        Args:
            conversation_id: Owning conversation.
            sender_id: Author of the message.
            receiver_id: The other participant at send time.
            text: Raw text as submitted; stored trimmed.

        Raises:
            InvalidArgument: If the trimmed text is empty or too long, or the
                sender and receiver are the same user.
        """
        body = clean_text(text, self.max_length)
        if sender_id == receiver_id:
            raise InvalidArgument("Sender and receiver must differ")
        now = utcnow()
        message = Message(
            conversation_id=conversation_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            text=body,
            is_read=False,
            created_at=now,
            updated_at=now,
        )
        self.session.add(message)
        self.session.flush()
        return message

    def list_by_conversation(self, conversation_id: str) -> Sequence[Message]:
        """Return messages in chronological order, insertion order on ties."""
        stmt = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
        )
        return self.session.execute(stmt).scalars().all()

    def mark_read_for_recipient(
        self,
        conversation_id: str,
        recipient_id: str,
        *,
        up_to_id: int | None = None,
    ) -> int:
        """Flag unread messages addressed to ``recipient_id`` as read.

        ``up_to_id`` limits the update to messages the caller has already
        observed; rows appended afterwards stay unread. Re-running is a no-op.

        Returns:
            Number of messages that transitioned to read.
        """
        stmt = (
            update(Message)
            .where(
                Message.conversation_id == conversation_id,
                Message.receiver_id == recipient_id,
                Message.is_read.is_(False),
            )
            .values(is_read=True, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        if up_to_id is not None:
            stmt = stmt.where(Message.id <= up_to_id)
        result = self.session.execute(stmt)
        return int(result.rowcount or 0)

    def count_unread(self, recipient_id: str) -> int:
        """Return the number of unread messages addressed to the user."""
        stmt = (
            select(func.count())
            .select_from(Message)
            .where(Message.receiver_id == recipient_id, Message.is_read.is_(False))
        )
        return int(self.session.execute(stmt).scalar() or 0)

    def count_unread_in_conversation(self, conversation_id: str, recipient_id: str) -> int:
        """Return the unread count for one conversation and recipient."""
        stmt = (
            select(func.count())
            .select_from(Message)
            .where(
                Message.conversation_id == conversation_id,
                Message.receiver_id == recipient_id,
                Message.is_read.is_(False),
            )
        )
        return int(self.session.execute(stmt).scalar() or 0)

    def count_unread_by_conversation(self, recipient_id: str) -> dict[str, int]:
        """Return unread counts keyed by conversation in a single aggregate query.

        Conversations without unread messages are absent from the mapping.
        """
        stmt = (
            select(Message.conversation_id, func.count())
            .where(Message.receiver_id == recipient_id, Message.is_read.is_(False))
            .group_by(Message.conversation_id)
        )
        return {conversation_id: int(count) for conversation_id, count in self.session.execute(stmt)}

    def latest_by_ids(self, message_ids: Iterable[int | None]) -> dict[int, Message]:
        """Batch-load messages by id, skipping empty pointers."""
        ids = {message_id for message_id in message_ids if message_id is not None}
        if not ids:
            return {}
        stmt = select(Message).where(Message.id.in_(ids))
        return {message.id: message for message in self.session.execute(stmt).scalars()}

    def latest_for_conversation(self, conversation_id: str) -> Message | None:
        """Return the newest message of a conversation, if any."""
        stmt = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()

    def delete_by_conversation(self, conversation_id: str) -> int:
        """Delete every message of a conversation and return how many were removed."""
        stmt = (
            delete(Message)
            .where(Message.conversation_id == conversation_id)
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        return int(result.rowcount or 0)
