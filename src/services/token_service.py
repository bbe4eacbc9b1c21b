"""Service layer for access token lifecycle operations."""
import logging
import secrets

from db.errors import DuplicateConstraintError, MissingReferenceError
from db.token_store import TokenStore
from schemas.token import AccessTokenRecord, NewAccessToken
from services.exceptions import (
    DuplicateTokenError,
    TokenNotFoundError,
    TokenValidationError,
)

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 512

# 128 bits of randomness, rendered as 32 uppercase hex characters
SECRET_NUM_BYTES = 16


def generate_secret() -> str:
    """
    Generate a new token secret.

    Returns:
        A 32-character uppercase hexadecimal string with no separators.
    """
    return secrets.token_hex(SECRET_NUM_BYTES).upper()


def validate_token_fields(
    owner_id: int,
    name: str,
    description: str | None,
    expires_at: int,
) -> None:
    """
    Check issuance input before anything touches the store.

    Raises:
        TokenValidationError: Identifying the first offending field.
    """
    if isinstance(owner_id, bool) or not isinstance(owner_id, int) or owner_id <= 0:
        raise TokenValidationError.invalid_owner_id(owner_id)
    if not isinstance(name, str):
        raise TokenValidationError("name", "Token name is required.")
    if len(name) > MAX_NAME_LENGTH:
        raise TokenValidationError(
            "name", f"Token name must not exceed {MAX_NAME_LENGTH} characters.",
        )
    if description is not None and len(description) > MAX_DESCRIPTION_LENGTH:
        raise TokenValidationError(
            "description",
            f"Token description must not exceed {MAX_DESCRIPTION_LENGTH} characters.",
        )
    if isinstance(expires_at, bool) or not isinstance(expires_at, int):
        raise TokenValidationError("expires_at", "Token expiry time is required.")


class AccessTokenService:
    """
    Issues, lists, finds and revokes access tokens for an owner.

    The store is passed in at construction; the service holds no other state.
    """

    def __init__(self, store: TokenStore) -> None:
        self._store = store

    async def issue(
        self,
        owner_id: int,
        name: str,
        description: str | None,
        expires_at: int,
    ) -> str:
        """
        Create a new token for an owner.

        Args:
            owner_id: ID of the owning user. Must be positive.
            name: Token name, unique per owner (exact, case-sensitive).
            description: Optional free text.
            expires_at: Absolute expiry as epoch milliseconds.

        Returns:
            The plaintext secret value. This is the only time it is returned.

        Raises:
            TokenValidationError: If any field is invalid or the owner does not exist.
            DuplicateTokenError: If the owner already has a token with this name.
            StoreError: If the store fails.
        """
        validate_token_fields(owner_id, name, description, expires_at)

        if await self._store.find_by_owner_and_name(owner_id, name) is not None:
            logger.warning("Token '%s' already exists for owner %s", name, owner_id)
            raise DuplicateTokenError(name)

        new_token = NewAccessToken(
            owner_id=owner_id,
            name=name,
            description=description,
            secret_value=generate_secret(),
            expires_at=expires_at,
        )
        try:
            record = await self._store.insert(new_token)
        except DuplicateConstraintError as e:
            # Lost a race with a concurrent issue for the same name
            logger.warning(
                "Insert of token '%s' for owner %s hit constraint %s",
                name, owner_id, e.constraint,
            )
            raise DuplicateTokenError(name) from e
        except MissingReferenceError as e:
            raise TokenValidationError.invalid_owner_id(owner_id) from e

        logger.debug("Token '%s' created for owner %s", record.name, owner_id)
        return record.secret_value

    async def list_tokens(self, owner_id: int) -> list[AccessTokenRecord]:
        """
        Get all tokens for an owner.

        Records still carry the secret value; callers render them through
        TokenResponse, which omits it. Returns an empty list for an owner
        with no tokens.
        """
        return await self._store.list_by_owner(owner_id)

    async def find(self, owner_id: int, name: str) -> AccessTokenRecord | None:
        """Get an owner's token by exact name, or None."""
        return await self._store.find_by_owner_and_name(owner_id, name)

    async def revoke(self, owner_id: int, name: str) -> None:
        """
        Delete an owner's token by name.

        Raises:
            TokenNotFoundError: If no such token exists, including when a
                concurrent revoke deleted it between lookup and delete.
        """
        token = await self._store.find_by_owner_and_name(owner_id, name)
        if token is None or not await self._store.delete(token.id):
            logger.info("The token with name '%s' was not found for owner %s", name, owner_id)
            raise TokenNotFoundError(name)

        logger.debug("Token '%s' revoked for owner %s", name, owner_id)

    async def resolve_by_secret(self, secret_value: str) -> AccessTokenRecord | None:
        """
        Look up a token by its secret value, independent of owner.

        Used by bearer authentication, before the caller's identity is known.
        """
        return await self._store.find_by_secret(secret_value)
