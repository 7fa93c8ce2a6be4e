# tests/scripts/test_tokens.py
"""Tests for the token minting helper."""

from __future__ import annotations

import uuid

import pytest

from duet.core.security import decode_access_token
from duet.models import User
from duet.scripts import tokens


class _FakeSession:
    def __init__(self, user: User | None) -> None:
        self.user = user
        self.closed = False

    def get(self, model, ident):
        return self.user if self.user is not None and self.user.id == ident else None

    def close(self) -> None:
        self.closed = True


def test_mint_token_for_existing_user(db_session, alice) -> None:
    token = tokens.mint_token(db_session, alice.id)
    assert decode_access_token(token)["sub"] == alice.id


def test_mint_token_for_unknown_user(db_session) -> None:
    with pytest.raises(LookupError):
        tokens.mint_token(db_session, uuid.uuid4().hex)


def test_main_prints_token(monkeypatch, capsys) -> None:
    user = User(id=uuid.uuid4().hex, name="Ops", email="ops@example.com")
    fake = _FakeSession(user)
    monkeypatch.setattr(tokens, "SessionLocal", lambda: fake)

    assert tokens.main([user.id, "--expires-minutes", "5"]) == 0

    printed = capsys.readouterr().out.strip()
    assert decode_access_token(printed)["sub"] == user.id
    assert fake.closed


def test_main_reports_unknown_user(monkeypatch, capsys) -> None:
    monkeypatch.setattr(tokens, "SessionLocal", lambda: _FakeSession(None))

    assert tokens.main([uuid.uuid4().hex]) == 1
    assert "not found" in capsys.readouterr().err
