"""Canonical conversation identity for pairs of users.

The directory is the only component aware of the uniqueness policy:

``singleton``
    At most one conversation per unordered pair. ``start`` is idempotent and
    the unique ``pair_key`` column settles concurrent first calls.
``multiple``
    Every ``start`` opens a new conversation; ``pair_key`` stays NULL.

Participants are normalized into a canonical pair before any read or write, so
``start(a, b)`` and ``start(b, a)`` always target the same key.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from duet.core.errors import Conflict, InternalError, InvalidArgument, NotFound
from duet.core.settings import ConversationPolicy
from duet.db.time import latest, utcnow
from duet.models import Conversation, Message, User

logger = logging.getLogger(__name__)

POLICY_SINGLETON: ConversationPolicy = "singleton"
POLICY_MULTIPLE: ConversationPolicy = "multiple"


@dataclass(frozen=True)
class CanonicalPair:
    """Participant ids sorted so that ``low < high``."""

    low: str
    high: str

    @property
    def key(self) -> str:
        return f"{self.low}:{self.high}"


def validate_id(value: object, field: str) -> str:
    """Return ``value`` as a normalized 32-char hex id or raise InvalidArgument."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgument(f"{field} is required and must be a non-empty string", field=field)
    try:
        return uuid.UUID(value.strip()).hex
    except ValueError as err:
        raise InvalidArgument(f"Invalid {field} format", field=field) from err


def normalize_conversation(first: object, second: object) -> CanonicalPair:
    """Validate two participant ids and return them as a canonical pair.

    Raises:
        InvalidArgument: If either id is missing or malformed, or both ids name
            the same user.
    """
    a = validate_id(first, "senderId")
    b = validate_id(second, "receiverId")
    if a == b:
        raise InvalidArgument("Cannot start a conversation with yourself", field="receiverId")
    low, high = sorted((a, b))
    return CanonicalPair(low=low, high=high)


class ConversationDirectory:
    """Create, look up, list and delete conversations."""

    def __init__(
        self,
        session: Session,
        *,
        policy: ConversationPolicy = POLICY_SINGLETON,
        verify_counterpart: bool = True,
    ) -> None:
        if policy not in (POLICY_SINGLETON, POLICY_MULTIPLE):
            raise ValueError(f"Unknown conversation policy: {policy!r}")
        self.session = session
        self.policy = policy
        self.verify_counterpart = verify_counterpart

    def start(self, caller_id: str, other_id: object) -> tuple[Conversation, bool]:
        """Return the conversation between two users, creating it if needed.

        Args:
            caller_id: Authenticated caller.
            other_id: Requested counterpart, as received from the client.

        Returns:
            ``(conversation, is_new)``; ``is_new`` is False when an existing
            conversation was returned, including when a concurrent caller won
            the insert race.

        Raises:
            InvalidArgument: For a missing, malformed or self-referencing id.
            NotFound: If counterpart verification is enabled and the user is
                unknown.
        """
        pair = normalize_conversation(caller_id, other_id)
        counterpart = validate_id(other_id, "receiverId")

        if self.verify_counterpart and self.session.get(User, counterpart) is None:
            raise NotFound("Receiver user not found", field="receiverId")

        if self.policy == POLICY_SINGLETON:
            existing = self.find_by_pair(pair)
            if existing is not None:
                return existing, False

        try:
            conversation = self._insert(pair)
        except Conflict:
            winner = self.find_by_pair(pair)
            if winner is None:
                raise InternalError("Conversation vanished after a uniqueness conflict")
            logger.info(
                "Resolved concurrent start for %s -> %s to conversation %s",
                caller_id,
                counterpart,
                winner.id,
            )
            return winner, False

        logger.info(
            "Created conversation %s between %s and %s", conversation.id, pair.low, pair.high
        )
        return conversation, True

    def _insert(self, pair: CanonicalPair) -> Conversation:
        now = utcnow()
        conversation = Conversation(
            user_low=pair.low,
            user_high=pair.high,
            pair_key=pair.key if self.policy == POLICY_SINGLETON else None,
            created_at=now,
            updated_at=now,
        )
        try:
            # The savepoint confines a constraint violation to this insert so
            # the surrounding transaction stays usable for the re-read.
            with self.session.begin_nested():
                self.session.add(conversation)
        except IntegrityError as err:
            raise Conflict("Conversation already exists for this pair") from err
        return conversation

    def find_by_pair(self, pair: CanonicalPair) -> Conversation | None:
        """Return the most recent conversation for a canonical pair."""
        stmt = (
            select(Conversation)
            .where(Conversation.user_low == pair.low, Conversation.user_high == pair.high)
            .order_by(Conversation.created_at.desc(), Conversation.id)
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()

    def get(self, conversation_id: str) -> Conversation:
        """Return a conversation by id.

        Raises:
            NotFound: If no such conversation exists.
        """
        conversation = self.session.get(Conversation, conversation_id)
        if conversation is None:
            raise NotFound("Conversation not found")
        return conversation

    def list_for_user(self, user_id: str) -> Sequence[Conversation]:
        """Return the user's conversations, most recently active first."""
        stmt = (
            select(Conversation)
            .where(or_(Conversation.user_low == user_id, Conversation.user_high == user_id))
            .order_by(Conversation.updated_at.desc(), Conversation.id)
        )
        return self.session.execute(stmt).scalars().all()

    def touch(self, conversation: Conversation, message: Message) -> None:
        """Point the conversation at its newest message."""
        conversation.last_message_id = message.id
        conversation.updated_at = latest(conversation.updated_at, message.created_at)
        self.session.flush()

    def delete(self, conversation: Conversation) -> None:
        """Remove the conversation row; the ledger must already be emptied."""
        self.session.delete(conversation)
        self.session.flush()
