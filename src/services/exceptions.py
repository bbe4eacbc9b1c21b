"""Shared exceptions for token lifecycle, user directory and authentication."""
from db.errors import StoreError


class TokenValidationError(Exception):
    """
    Raised when token issuance input is invalid.

    Validation runs before any store access, so nothing is persisted when
    this is raised.
    """

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(reason)

    @classmethod
    def invalid_owner_id(cls, owner_id: object) -> "TokenValidationError":
        return cls(
            "owner_id",
            f"User id with value '{owner_id}' is not permitted. "
            "Access Token must be associated with a valid user-id.",
        )


class DuplicateTokenError(Exception):
    """Raised when the owner already has a token with the requested name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Token with name '{name}' already exists.")


class TokenNotFoundError(Exception):
    """Raised when a token name does not exist for the owner."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"The token with name '{name}' was not found.")


class DirectoryError(Exception):
    """Raised when the user directory cannot resolve a user."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class UnknownUserError(DirectoryError):
    """Raised when a user id does not resolve to an account."""

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(f"User with id '{user_id}' was not found")


class AuthenticationError(Exception):
    """
    Base exception for a recognized credential that must be rejected.

    Raised inside the bearer filter only; the filter turns it into a 401
    response instead of letting it reach application code.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ExpiredTokenError(AuthenticationError):
    """Raised when a resolved token is past its expiry."""

    def __init__(self) -> None:
        super().__init__("Specified token is expired")


class DisabledUserError(AuthenticationError):
    """Raised when the token owner's account is disabled."""

    def __init__(self) -> None:
        super().__init__("User for the token is disabled by admin")


__all__ = [
    "AuthenticationError",
    "DirectoryError",
    "DisabledUserError",
    "DuplicateTokenError",
    "ExpiredTokenError",
    "StoreError",
    "TokenNotFoundError",
    "TokenValidationError",
    "UnknownUserError",
]
