"""Access token model for bearer authentication on behalf of a user."""
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, CreatedAtMixin

if TYPE_CHECKING:
    from models.user import User


class AccessToken(Base, CreatedAtMixin):
    """
    Access token issued to a user for programmatic access.

    Rows are created once and never updated; revocation deletes the row.
    The secret value is the lookup key used by bearer authentication.
    """

    __tablename__ = "access_tokens"
    __table_args__ = (
        UniqueConstraint("owner_id", "name", name="uq_access_tokens_owner_id_name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        comment="User-provided name, unique per owner (case-sensitive)",
    )
    description: Mapped[str | None] = mapped_column(String(512), nullable=True)
    secret_value: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        index=True,
        comment="32-char uppercase hex secret presented as the bearer credential",
    )
    expires_at: Mapped[int] = mapped_column(
        BigInteger,
        comment="Expiry as epoch milliseconds",
    )

    owner: Mapped["User"] = relationship(back_populates="access_tokens")
