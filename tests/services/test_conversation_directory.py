# tests/services/test_conversation_directory.py
"""Tests for canonical conversation identity and the uniqueness policies."""

from __future__ import annotations

import threading
import uuid
from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from duet.core.errors import InvalidArgument, NotFound
from duet.db.session import Base, build_engine
from duet.db.time import utcnow
from duet.models import Conversation, User
from duet.services.conversation_directory import (
    POLICY_MULTIPLE,
    POLICY_SINGLETON,
    CanonicalPair,
    ConversationDirectory,
    normalize_conversation,
    validate_id,
)


def _count_conversations(session: Session) -> int:
    return session.execute(select(func.count()).select_from(Conversation)).scalar_one()


def _stale_lookup_once(directory: ConversationDirectory) -> None:
    """Make the directory's first pair lookup miss, as if a peer had not committed yet."""
    real_lookup = directory.find_by_pair
    calls = {"count": 0}

    def lookup(pair: CanonicalPair) -> Conversation | None:
        calls["count"] += 1
        if calls["count"] == 1:
            return None
        return real_lookup(pair)

    directory.find_by_pair = lookup  # type: ignore[method-assign]


class TestNormalizeConversation:
    def test_orders_participants(self) -> None:
        a, b = "f" * 32, "0" * 32
        pair = normalize_conversation(a, b)
        assert pair == CanonicalPair(low=b, high=a)
        assert pair.key == f"{b}:{a}"

    def test_order_of_arguments_does_not_matter(self) -> None:
        a, b = uuid.uuid4().hex, uuid.uuid4().hex
        assert normalize_conversation(a, b) == normalize_conversation(b, a)

    def test_self_chat_is_rejected(self) -> None:
        a = uuid.uuid4().hex
        with pytest.raises(InvalidArgument) as excinfo:
            normalize_conversation(a, a)
        assert excinfo.value.field == "receiverId"

    def test_dashed_and_hex_forms_are_the_same_user(self) -> None:
        value = uuid.uuid4()
        with pytest.raises(InvalidArgument):
            normalize_conversation(value.hex, str(value).upper())

    @pytest.mark.parametrize("value", [None, "", "   ", "not-a-uuid", 42])
    def test_malformed_ids_are_rejected(self, value) -> None:
        with pytest.raises(InvalidArgument) as excinfo:
            validate_id(value, "receiverId")
        assert excinfo.value.field == "receiverId"


class TestStart:
    def test_start_creates_then_returns_existing(self, db_session, alice, bob) -> None:
        directory = ConversationDirectory(db_session)

        first, created = directory.start(alice.id, bob.id)
        second, created_again = directory.start(bob.id, alice.id)

        assert created is True
        assert created_again is False
        assert first.id == second.id
        assert first.participants == tuple(sorted((alice.id, bob.id)))
        assert first.pair_key == f"{first.user_low}:{first.user_high}"
        assert _count_conversations(db_session) == 1

    def test_start_with_self_creates_nothing(self, db_session, alice) -> None:
        directory = ConversationDirectory(db_session)
        with pytest.raises(InvalidArgument):
            directory.start(alice.id, alice.id)
        assert _count_conversations(db_session) == 0

    def test_unknown_counterpart_is_not_found(self, db_session, alice) -> None:
        directory = ConversationDirectory(db_session)
        with pytest.raises(NotFound) as excinfo:
            directory.start(alice.id, uuid.uuid4().hex)
        assert excinfo.value.field == "receiverId"
        assert _count_conversations(db_session) == 0

    def test_unverified_counterpart_is_accepted(self, db_session, alice) -> None:
        directory = ConversationDirectory(db_session, verify_counterpart=False)
        conversation, created = directory.start(alice.id, uuid.uuid4().hex)
        assert created is True
        assert alice.id in conversation.participants

    def test_multiple_policy_opens_a_new_conversation_each_time(
        self, db_session, alice, bob
    ) -> None:
        directory = ConversationDirectory(db_session, policy=POLICY_MULTIPLE)

        first, first_created = directory.start(alice.id, bob.id)
        second, second_created = directory.start(bob.id, alice.id)

        assert first_created and second_created
        assert first.id != second.id
        assert first.pair_key is None and second.pair_key is None
        assert first.participants == second.participants

    def test_unknown_policy_is_rejected(self, db_session) -> None:
        with pytest.raises(ValueError):
            ConversationDirectory(db_session, policy="sometimes")  # type: ignore[arg-type]

    def test_lost_insert_race_returns_the_winner(self, db_session, alice, bob) -> None:
        winner, _ = ConversationDirectory(db_session).start(alice.id, bob.id)

        late = ConversationDirectory(db_session)
        _stale_lookup_once(late)
        conversation, created = late.start(bob.id, alice.id)

        assert created is False
        assert conversation.id == winner.id
        assert _count_conversations(db_session) == 1


class TestSeparateSessions:
    """First calls from separate sessions against a file database converge on one row."""

    @pytest.fixture()
    def file_engine(self, tmp_path):
        engine = build_engine(f"sqlite:///{tmp_path / 'race.db'}")
        Base.metadata.create_all(bind=engine)
        try:
            yield engine
        finally:
            engine.dispose()

    @pytest.fixture()
    def pair_ids(self, file_engine) -> tuple[str, str]:
        a, b = uuid.uuid4().hex, uuid.uuid4().hex
        with Session(file_engine) as session:
            session.add_all(
                [
                    User(id=a, name="A", email="a@example.com"),
                    User(id=b, name="B", email="b@example.com"),
                ]
            )
            session.commit()
        return a, b

    def test_stale_lookups_resolve_to_one_conversation(self, file_engine, pair_ids) -> None:
        a, b = pair_ids
        outcomes: list[tuple[str, bool]] = []

        # Every caller checks for an existing row before any insert lands.
        for index in range(4):
            with Session(file_engine, expire_on_commit=False) as session:
                directory = ConversationDirectory(session, policy=POLICY_SINGLETON)
                _stale_lookup_once(directory)
                caller, other = (a, b) if index % 2 == 0 else (b, a)
                conversation, created = directory.start(caller, other)
                session.commit()
                outcomes.append((conversation.id, created))

        assert len({conversation_id for conversation_id, _ in outcomes}) == 1
        assert [created for _, created in outcomes].count(True) == 1
        with Session(file_engine) as session:
            assert _count_conversations(session) == 1

    def test_simultaneous_first_calls(self, file_engine, pair_ids) -> None:
        a, b = pair_ids
        workers = 4
        barrier = threading.Barrier(workers)
        outcomes: list[tuple[str, bool]] = []
        failures: list[BaseException] = []
        lock = threading.Lock()

        def start(caller: str, other: str) -> None:
            barrier.wait()
            try:
                with Session(file_engine, expire_on_commit=False) as session:
                    conversation, created = ConversationDirectory(session).start(caller, other)
                    session.commit()
                    with lock:
                        outcomes.append((conversation.id, created))
            except Exception as exc:  # collected and asserted below
                with lock:
                    failures.append(exc)

        threads = [
            threading.Thread(target=start, args=(a, b) if index % 2 == 0 else (b, a))
            for index in range(workers)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert failures == []
        assert len(outcomes) == workers
        assert len({conversation_id for conversation_id, _ in outcomes}) == 1
        assert [created for _, created in outcomes].count(True) == 1
        with Session(file_engine) as session:
            assert _count_conversations(session) == 1


class TestLookups:
    def test_get_missing_conversation(self, db_session) -> None:
        with pytest.raises(NotFound):
            ConversationDirectory(db_session).get(uuid.uuid4().hex)

    def test_list_for_user_orders_by_activity(
        self, db_session, alice, bob, carol
    ) -> None:
        directory = ConversationDirectory(db_session)
        with_bob, _ = directory.start(alice.id, bob.id)
        with_carol, _ = directory.start(alice.id, carol.id)
        between_others, _ = directory.start(bob.id, carol.id)

        now = utcnow()
        with_bob.updated_at = now
        with_carol.updated_at = now - timedelta(minutes=5)
        db_session.flush()

        listed = [c.id for c in directory.list_for_user(alice.id)]
        assert listed == [with_bob.id, with_carol.id]
        assert between_others.id not in listed

    def test_touch_moves_pointer_forward(self, db_session, alice, bob) -> None:
        from duet.services.message_ledger import MessageLedger

        directory = ConversationDirectory(db_session)
        conversation, _ = directory.start(alice.id, bob.id)
        message = MessageLedger(db_session).append(conversation.id, alice.id, bob.id, "hello")

        directory.touch(conversation, message)

        assert conversation.last_message_id == message.id
        assert conversation.updated_at == message.created_at

    def test_delete_removes_row(self, db_session, alice, bob) -> None:
        directory = ConversationDirectory(db_session)
        conversation, _ = directory.start(alice.id, bob.id)
        directory.delete(conversation)
        with pytest.raises(NotFound):
            directory.get(conversation.id)
