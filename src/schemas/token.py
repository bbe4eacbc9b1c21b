"""Pydantic schemas for access token records and API endpoints."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class NewAccessToken(BaseModel):
    """Token record handed to the store for insertion (no id assigned yet)."""

    model_config = ConfigDict(frozen=True)

    owner_id: int
    name: str
    description: str | None
    secret_value: str
    expires_at: int


class AccessTokenRecord(BaseModel):
    """
    Stored access token as seen by the service layer.

    Carries the secret value, so it must never be rendered directly in a
    listing response. Use TokenResponse for that.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    owner_id: int
    name: str
    description: str | None
    secret_value: str
    expires_at: int
    created_at: datetime | None = None

    def is_expired(self, now_ms: int) -> bool:
        """Return True once the current time is past expires_at."""
        return self.expires_at < now_ms


class TokenCreate(BaseModel):
    """Schema for creating a new access token."""

    name: str = Field(
        ...,
        min_length=1,
        description="Name for the token, unique per user, e.g. 'ci-token'",
    )
    description: str | None = Field(
        default=None,
        description="Optional free-text description",
    )
    expires_in_hours: int = Field(
        ...,
        ge=1,
        description="Lifetime of the token in hours, counted from creation",
    )


class TokenCreateResponse(BaseModel):
    """
    Response when creating a new token.

    IMPORTANT: The `token` field contains the plaintext secret and is only shown
    once at creation time. It cannot be retrieved again.
    """

    name: str
    description: str | None
    expires_at: int
    token: str = Field(
        ...,
        description="The plaintext token. Store this securely - it won't be shown again.",
    )


class TokenResponse(BaseModel):
    """
    Schema for token list and detail responses.

    Does NOT include the secret value - only metadata for identification.
    """

    model_config = ConfigDict(from_attributes=True)

    name: str
    description: str | None
    expires_at: int
    created_at: datetime | None = None
