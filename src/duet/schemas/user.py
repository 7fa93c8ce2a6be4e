"""User projection schemas."""

from .common import CamelModel


class UserSummary(CamelModel):
    """Sanitized user identity; never carries credential fields."""

    id: str
    name: str
    email: str
