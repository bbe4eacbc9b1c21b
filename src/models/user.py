"""User model for accounts that can own access tokens."""
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Boolean, String, true
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from models.access_token import AccessToken


class User(Base, TimestampMixin):
    """User account. Disabled accounts cannot authenticate with their tokens."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
    )
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    enabled: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        server_default=true(),
        comment="Set to false by an administrator to block the account",
    )
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False)
    roles: Mapped[list[str]] = mapped_column(
        JSON,
        default=list,
        comment="Extra role names granted on top of ROLE_USER",
    )

    access_tokens: Mapped[list["AccessToken"]] = relationship(
        back_populates="owner",
        cascade="all, delete-orphan",
    )
