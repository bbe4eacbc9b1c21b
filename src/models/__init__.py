"""SQLAlchemy models."""
from models.access_token import AccessToken
from models.base import Base, CreatedAtMixin, TimestampMixin
from models.user import User

__all__ = [
    "AccessToken",
    "Base",
    "CreatedAtMixin",
    "TimestampMixin",
    "User",
]
