"""Access-token and credential helpers."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta

from jose import jwt

from duet.core.settings import Settings, settings


def create_access_token(
    subject: str,
    *,
    config: Settings = settings,
    expires_in: timedelta | None = None,
) -> str:
    """Create a JWT access token whose subject is the user id."""
    to_encode: dict[str, object] = {"sub": subject}
    lifetime = expires_in or timedelta(minutes=config.access_token_expire_minutes)
    to_encode["exp"] = datetime.now(UTC) + lifetime
    encoded_jwt: str = jwt.encode(
        to_encode,
        config.secret_key,
        algorithm=config.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str, *, config: Settings = settings) -> dict[str, object]:
    """Verify signature and expiry and return the token claims.

    Raises:
        jose.JWTError: If the token is malformed, expired, or signed differently.
    """
    return jwt.decode(token, config.secret_key, algorithms=[config.jwt_algorithm])
