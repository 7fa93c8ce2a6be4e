"""Identity resolution for authenticated requests.

Turns an opaque bearer token into the caller's canonical user identifier.
Token issuance belongs to the authentication service; this module only
verifies tokens and looks the subject up in the identity store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from jose import JWTError
from sqlalchemy.orm import Session

from duet.core.errors import Unauthenticated
from duet.core.security import decode_access_token
from duet.core.settings import Settings, settings
from duet.models import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserIdentity:
    """Sanitized projection of the authenticated user for one request."""

    id: str
    name: str
    email: str

    @classmethod
    def from_user(cls, user: User) -> UserIdentity:
        return cls(id=user.id, name=user.name, email=user.email)


def resolve_identity(
    db: Session,
    token: str | None,
    *,
    config: Settings = settings,
) -> UserIdentity:
    """Resolve a bearer token to the identity of an existing user.

    Args:
        db: Database session used for the identity-store lookup.
        token: Raw bearer token, or None when the request carried none.
        config: Settings providing the signing key and algorithm.

    Returns:
        Frozen identity of the caller.

    Raises:
        Unauthenticated: If the token is missing, invalid, expired, has no
            subject, or names a user that no longer exists.
    """
    if not token:
        raise Unauthenticated("Authentication required")

    try:
        payload = decode_access_token(token, config=config)
    except JWTError as err:
        raise Unauthenticated("Token invalid or expired") from err

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise Unauthenticated("Token invalid or expired")

    user = db.get(User, subject)
    if user is None:
        logger.info("Rejected token for missing user %s", subject)
        raise Unauthenticated("Token invalid or expired")
    return UserIdentity.from_user(user)
