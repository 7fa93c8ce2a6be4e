"""Helpers shared by test modules."""
from __future__ import annotations

from duet.core.security import create_access_token
from duet.models import User
from duet.services.identity import UserIdentity


def auth_headers(user: User) -> dict[str, str]:
    """Return authorization headers for ``user``."""
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


def identity_of(user: User) -> UserIdentity:
    return UserIdentity.from_user(user)
