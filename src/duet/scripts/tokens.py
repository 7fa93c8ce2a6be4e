# src/duet/scripts/tokens.py
"""Mint an access token for an existing user.

Registration and login live in the authentication service; this helper lets
operators and local developers obtain a bearer token for a known user id.
"""

from __future__ import annotations

import argparse
import sys
from datetime import timedelta

from sqlalchemy.orm import Session

from duet.core.security import create_access_token
from duet.db.session import SessionLocal
from duet.models import User


def mint_token(db: Session, user_id: str, expires_minutes: int | None = None) -> str:
    """Return a signed token for ``user_id``.

    Raises:
        LookupError: If the user does not exist.
    """
    user = db.get(User, user_id)
    if user is None:
        raise LookupError(f"User {user_id} not found")
    expires_in = timedelta(minutes=expires_minutes) if expires_minutes else None
    return create_access_token(user.id, expires_in=expires_in)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Mint a bearer token for a user")
    parser.add_argument("user_id", help="32-character hex user identifier")
    parser.add_argument(
        "--expires-minutes",
        type=int,
        default=None,
        help="Token lifetime (defaults to ACCESS_TOKEN_EXPIRE_MINUTES)",
    )
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        token = mint_token(db, args.user_id, args.expires_minutes)
    except LookupError as exc:
        print(f"[tokens] ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        db.close()

    print(token)
    return 0


if __name__ == "__main__":
    sys.exit(main())
