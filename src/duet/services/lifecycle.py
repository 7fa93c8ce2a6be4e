"""Conversation workflows composed from the directory, ledger and access control.

Each public method is one API operation and owns its transaction boundaries.
The ledger is the source of truth; the conversation's ``last_message_id`` and
``updated_at`` are a denormalized pointer that may lag behind after a failed
update and is repaired out of band.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from duet.core.errors import Forbidden, NotFound
from duet.core.settings import Settings, settings
from duet.models import Conversation, Message, User
from duet.services.access_control import Operation, authorize, other_participant
from duet.services.conversation_directory import ConversationDirectory, validate_id
from duet.services.identity import UserIdentity
from duet.services.message_ledger import MessageLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversationView:
    """Conversation joined with participant projections and its latest message."""

    conversation: Conversation
    participants: list[User]
    last_message: Message | None
    unread_count: int = 0

    @property
    def id(self) -> str:
        return self.conversation.id

    @property
    def created_at(self) -> datetime:
        return self.conversation.created_at

    @property
    def updated_at(self) -> datetime:
        return self.conversation.updated_at


@dataclass(frozen=True)
class StartResult:
    view: ConversationView
    created: bool


@dataclass(frozen=True)
class InboxListing:
    conversations: list[ConversationView]
    total_unread: int


@dataclass(frozen=True)
class DeleteResult:
    conversation_id: str
    messages_deleted: int


class ConversationLifecycle:
    """Orchestrates start, send, list and delete for one request."""

    def __init__(self, session: Session, config: Settings = settings) -> None:
        self.session = session
        self.directory = ConversationDirectory(
            session,
            policy=config.conversation_policy,
            verify_counterpart=config.verify_counterpart,
        )
        self.ledger = MessageLedger(session, max_length=config.message_max_length)

    def start_conversation(self, identity: UserIdentity, receiver_id: object) -> StartResult:
        """Return the caller's conversation with ``receiver_id``, creating it if needed."""
        conversation, created = self.directory.start(identity.id, receiver_id)
        if created:
            self.session.commit()
        last_message = None
        if conversation.last_message_id is not None:
            last_message = self.ledger.latest_by_ids([conversation.last_message_id]).get(
                conversation.last_message_id
            )
        view = ConversationView(
            conversation=conversation,
            participants=self._load_participants([conversation]),
            last_message=last_message,
        )
        return StartResult(view=view, created=created)

    def show_conversation(self, identity: UserIdentity, conversation_id: str) -> ConversationView:
        """Return a single conversation the caller participates in."""
        conversation = self.directory.get(validate_id(conversation_id, "conversationId"))
        authorize(conversation, identity.id, Operation.READ)
        last_message = self.ledger.latest_for_conversation(conversation.id)
        unread = self.ledger.count_unread_in_conversation(conversation.id, identity.id)
        return ConversationView(
            conversation=conversation,
            participants=self._load_participants([conversation]),
            last_message=last_message,
            unread_count=unread,
        )

    def send_message(self, identity: UserIdentity, conversation_id: str, text: object) -> Message:
        """Append a message and advance the conversation pointer.

        The message is committed before the pointer is touched. A failed
        pointer update is logged and does not undo or fail the send.
        """
        conversation = self._load_authorized(conversation_id, identity.id, Operation.WRITE)
        receiver_id = other_participant(conversation, identity.id)

        message = self.ledger.append(conversation.id, identity.id, receiver_id, text)
        self.session.commit()
        # Rollback below expires both instances; keep the ids for logging.
        message_id, target_id = message.id, conversation.id

        try:
            self.directory.touch(conversation, message)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(
                "Pointer update failed for conversation %s after message %s from %s",
                target_id,
                message_id,
                identity.id,
            )
        logger.debug("User %s sent message %s in %s", identity.id, message_id, target_id)
        return message

    def list_messages(self, identity: UserIdentity, conversation_id: str) -> Sequence[Message]:
        """Return the conversation's messages and mark the caller's ones as read."""
        conversation = self._load_authorized(conversation_id, identity.id, Operation.READ)
        messages = self.ledger.list_by_conversation(conversation.id)
        if messages:
            marked = self.ledger.mark_read_for_recipient(
                conversation.id,
                identity.id,
                up_to_id=max(message.id for message in messages),
            )
            self.session.commit()
            if marked:
                logger.debug("Marked %d messages read for %s in %s", marked, identity.id, conversation.id)
        return messages

    def list_conversations(self, identity: UserIdentity) -> InboxListing:
        """Return the caller's conversations with per-conversation unread counts."""
        conversations = self.directory.list_for_user(identity.id)
        unread = self.ledger.count_unread_by_conversation(identity.id)
        users = {user.id: user for user in self._load_participants(conversations)}
        last_messages = self.ledger.latest_by_ids(c.last_message_id for c in conversations)

        views = [
            ConversationView(
                conversation=conversation,
                participants=[
                    users[user_id] for user_id in conversation.participants if user_id in users
                ],
                last_message=last_messages.get(conversation.last_message_id)
                if conversation.last_message_id is not None
                else None,
                unread_count=unread.get(conversation.id, 0),
            )
            for conversation in conversations
        ]
        return InboxListing(conversations=views, total_unread=sum(unread.values()))

    def delete_conversation(self, identity: UserIdentity, conversation_id: str) -> DeleteResult:
        """Delete a conversation and all of its messages in one transaction."""
        conversation = self._load_authorized(conversation_id, identity.id, Operation.DELETE)
        deleted_id = conversation.id
        try:
            messages_deleted = self.ledger.delete_by_conversation(deleted_id)
            self.directory.delete(conversation)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.error("Failed to delete conversation %s for %s", deleted_id, identity.id)
            raise
        logger.info(
            "User %s deleted conversation %s (%d messages)", identity.id, deleted_id, messages_deleted
        )
        return DeleteResult(conversation_id=deleted_id, messages_deleted=messages_deleted)

    def unread_count(self, identity: UserIdentity) -> int:
        """Return the caller's total number of unread messages."""
        return self.ledger.count_unread(identity.id)

    def _load_authorized(
        self, conversation_id: str, user_id: str, operation: Operation
    ) -> Conversation:
        # Unknown conversations answer like foreign ones so ids cannot be probed.
        normalized = validate_id(conversation_id, "conversationId")
        try:
            conversation = self.directory.get(normalized)
        except NotFound as err:
            raise Forbidden() from err
        authorize(conversation, user_id, operation)
        return conversation

    def _load_participants(self, conversations: Iterable[Conversation]) -> list[User]:
        ids: list[str] = []
        for conversation in conversations:
            for user_id in conversation.participants:
                if user_id not in ids:
                    ids.append(user_id)
        if not ids:
            return []
        found = {
            user.id: user
            for user in self.session.execute(select(User).where(User.id.in_(ids))).scalars()
        }
        return [found[user_id] for user_id in ids if user_id in found]
