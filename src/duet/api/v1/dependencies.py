"""Shared API dependencies for authentication and service wiring."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from duet.core.settings import Settings, settings
from duet.db.session import get_db
from duet.services.identity import UserIdentity, resolve_identity
from duet.services.lifecycle import ConversationLifecycle

# Missing credentials are reported through the shared error payload, not
# FastAPI's default 403.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_settings() -> Settings:
    """Return the process-wide settings; overridden in tests."""
    return settings


SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
    config: SettingsDep,
) -> UserIdentity:
    """Resolve the caller's identity from the bearer token.

    Raises:
        Unauthenticated: If the token is missing or invalid, or the user is gone.
    """
    token = credentials.credentials if credentials is not None else None
    return resolve_identity(db, token, config=config)


def get_lifecycle(db: SessionDep, config: SettingsDep) -> ConversationLifecycle:
    """Build the per-request conversation orchestrator."""
    return ConversationLifecycle(db, config)


# Type aliases for route signatures
CurrentIdentityDep = Annotated[UserIdentity, Depends(get_current_identity)]
LifecycleDep = Annotated[ConversationLifecycle, Depends(get_lifecycle)]
