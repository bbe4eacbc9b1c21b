"""User directory: resolves a user id to account status and authorities."""
import logging
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.user import User
from schemas.user import UserDetails
from services.exceptions import DirectoryError, UnknownUserError

logger = logging.getLogger(__name__)

ROLE_USER = "ROLE_USER"
ROLE_ADMIN = "ROLE_ADMIN"


class UserDirectory(Protocol):
    """Looks up users by id for authentication."""

    async def load(self, user_id: int) -> UserDetails:
        """
        Resolve a user id.

        Raises:
            UnknownUserError: If the id does not resolve.
            DirectoryError: If the directory cannot be reached.
        """
        ...


def grant_authorities(is_admin: bool, roles: list[str] | None) -> frozenset[str]:
    """Every user gets ROLE_USER; administrators also get ROLE_ADMIN."""
    authorities = {ROLE_USER, *(roles or [])}
    if is_admin:
        authorities.add(ROLE_ADMIN)
    return frozenset(authorities)


def to_user_details(user: User) -> UserDetails:
    """Convert a User row into the directory's record type."""
    return UserDetails(
        id=user.id,
        username=user.username,
        display_name=user.display_name,
        enabled=user.enabled,
        authorities=grant_authorities(user.is_admin, user.roles),
    )


class SqlAlchemyUserDirectory:
    """User directory backed by the users table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def load(self, user_id: int) -> UserDetails:
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(User).where(User.id == user_id))
                user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("User lookup for id %s failed: %s", user_id, e, exc_info=True)
            raise DirectoryError("User directory is unavailable") from e

        if user is None:
            raise UnknownUserError(user_id)
        return to_user_details(user)


class InMemoryUserDirectory:
    """Process-local user directory for development and tests."""

    def __init__(self, users: list[UserDetails] | None = None) -> None:
        self._users: dict[int, UserDetails] = {u.id: u for u in users or []}

    def add(self, user: UserDetails) -> None:
        """Add or replace a user."""
        self._users[user.id] = user

    async def load(self, user_id: int) -> UserDetails:
        user = self._users.get(user_id)
        if user is None:
            raise UnknownUserError(user_id)
        return user
