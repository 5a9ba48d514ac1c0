"""User SQLAlchemy model for identity and plan assignment."""

from uuid import UUID

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, generate_uuid


class User(Base, TimestampMixin):
    """Account created lazily on first authenticated access."""

    __tablename__ = "Users"

    user_id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    external_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Stable id issued by the identity provider",
    )
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    plan: Mapped[str] = mapped_column(
        String(20),
        default="free",
        nullable=False,
        comment="Plan tier: free, starter, creator or pro",
    )

    __table_args__ = (
        Index("ix_users_external_id", "external_id", unique=True),
        Index("ix_users_email", "email"),
    )
