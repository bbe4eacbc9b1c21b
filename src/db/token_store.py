"""
Token store contract and implementations.

The store enforces the uniqueness invariants itself: (owner_id, name) and
secret_value are unique, and a violating insert raises DuplicateConstraintError.
The lifecycle service relies on this because its own existence check and the
insert are not atomic.
"""
import itertools
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from db.errors import DuplicateConstraintError, MissingReferenceError, StoreError
from models.access_token import AccessToken
from schemas.token import AccessTokenRecord, NewAccessToken

logger = logging.getLogger(__name__)

OWNER_NAME_CONSTRAINT = "uq_access_tokens_owner_id_name"
SECRET_VALUE_CONSTRAINT = "ix_access_tokens_secret_value"

# PostgreSQL SQLSTATE codes
FOREIGN_KEY_VIOLATION = "23503"
UNIQUE_VIOLATION = "23505"


class TokenStore(Protocol):
    """Durable keyed storage for access token records."""

    async def insert(self, token: NewAccessToken) -> AccessTokenRecord: ...

    async def find_by_owner_and_name(
        self, owner_id: int, name: str,
    ) -> AccessTokenRecord | None: ...

    async def find_by_secret(self, secret_value: str) -> AccessTokenRecord | None: ...

    async def list_by_owner(self, owner_id: int) -> list[AccessTokenRecord]: ...

    async def delete(self, token_id: int) -> bool: ...


def _translate_integrity_error(error: IntegrityError, operation: str) -> StoreError:
    """Map a database integrity error onto the store's error types."""
    sqlstate = getattr(error.orig, "sqlstate", None) or getattr(error.orig, "pgcode", None)
    if sqlstate == FOREIGN_KEY_VIOLATION:
        return MissingReferenceError()
    if sqlstate == UNIQUE_VIOLATION:
        # asyncpg exposes the violated constraint on the driver exception
        cause = getattr(error.orig, "__cause__", None)
        constraint = getattr(cause, "constraint_name", None) or "unknown"
        return DuplicateConstraintError(constraint)
    logger.error("Token store %s failed: %s", operation, error, exc_info=True)
    return StoreError(f"Token store {operation} failed")


class SqlAlchemyTokenStore:
    """
    Token store backed by the access_tokens table.

    Each operation runs in its own session and commits before returning, so a
    successful insert is visible to every later lookup.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Open a session and translate database failures into StoreError."""
        async with self._session_factory() as session:
            try:
                yield session
            except IntegrityError as e:
                await session.rollback()
                raise _translate_integrity_error(e, operation) from e
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("Token store %s failed: %s", operation, e, exc_info=True)
                raise StoreError(f"Token store {operation} failed") from e

    async def insert(self, token: NewAccessToken) -> AccessTokenRecord:
        """Persist a new token, returning the stored record with its id."""
        async with self._session("insert") as session:
            row = AccessToken(**token.model_dump())
            session.add(row)
            await session.flush()
            await session.refresh(row)
            await session.commit()
            return AccessTokenRecord.model_validate(row)

    async def find_by_owner_and_name(
        self, owner_id: int, name: str,
    ) -> AccessTokenRecord | None:
        """Point lookup on the (owner_id, name) unique index."""
        async with self._session("lookup") as session:
            result = await session.execute(
                select(AccessToken).where(
                    AccessToken.owner_id == owner_id,
                    AccessToken.name == name,
                ),
            )
            row = result.scalar_one_or_none()
            return AccessTokenRecord.model_validate(row) if row is not None else None

    async def find_by_secret(self, secret_value: str) -> AccessTokenRecord | None:
        """Point lookup on the secret_value unique index."""
        async with self._session("lookup") as session:
            result = await session.execute(
                select(AccessToken).where(AccessToken.secret_value == secret_value),
            )
            row = result.scalar_one_or_none()
            return AccessTokenRecord.model_validate(row) if row is not None else None

    async def list_by_owner(self, owner_id: int) -> list[AccessTokenRecord]:
        """Return all tokens for an owner in insertion order."""
        async with self._session("list") as session:
            result = await session.execute(
                select(AccessToken)
                .where(AccessToken.owner_id == owner_id)
                .order_by(AccessToken.id),
            )
            return [AccessTokenRecord.model_validate(row) for row in result.scalars()]

    async def delete(self, token_id: int) -> bool:
        """
        Delete a token by id.

        Returns:
            True if a row was deleted, False if it was already gone.
        """
        async with self._session("delete") as session:
            result = await session.execute(
                delete(AccessToken).where(AccessToken.id == token_id),
            )
            await session.commit()
            return result.rowcount > 0


class InMemoryTokenStore:
    """
    Process-local token store for development and tests.

    No operation awaits, so each one runs to completion on the event loop
    without interleaving.
    """

    def __init__(self) -> None:
        self._tokens: dict[int, AccessTokenRecord] = {}
        self._by_secret: dict[str, int] = {}
        self._by_owner_name: dict[tuple[int, str], int] = {}
        self._ids = itertools.count(1)

    async def insert(self, token: NewAccessToken) -> AccessTokenRecord:
        key = (token.owner_id, token.name)
        if key in self._by_owner_name:
            raise DuplicateConstraintError(OWNER_NAME_CONSTRAINT)
        if token.secret_value in self._by_secret:
            raise DuplicateConstraintError(SECRET_VALUE_CONSTRAINT)

        record = AccessTokenRecord(
            id=next(self._ids),
            created_at=datetime.now(UTC),
            **token.model_dump(),
        )
        self._tokens[record.id] = record
        self._by_secret[record.secret_value] = record.id
        self._by_owner_name[key] = record.id
        return record

    async def find_by_owner_and_name(
        self, owner_id: int, name: str,
    ) -> AccessTokenRecord | None:
        token_id = self._by_owner_name.get((owner_id, name))
        return self._tokens.get(token_id) if token_id is not None else None

    async def find_by_secret(self, secret_value: str) -> AccessTokenRecord | None:
        token_id = self._by_secret.get(secret_value)
        return self._tokens.get(token_id) if token_id is not None else None

    async def list_by_owner(self, owner_id: int) -> list[AccessTokenRecord]:
        return [t for t in self._tokens.values() if t.owner_id == owner_id]

    async def delete(self, token_id: int) -> bool:
        record = self._tokens.pop(token_id, None)
        if record is None:
            return False
        del self._by_secret[record.secret_value]
        del self._by_owner_name[(record.owner_id, record.name)]
        return True
