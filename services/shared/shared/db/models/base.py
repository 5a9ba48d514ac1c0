"""SQLAlchemy Base model and common utilities."""

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def generate_uuid() -> UUID:
    """Generate a new UUID."""
    return uuid4()


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    type_annotation_map = {
        UUID: Uuid,
        datetime: DateTime(timezone=True),
    }


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )


class GenerationRecordMixin(TimestampMixin):
    """Columns shared by every generation record.

    ``record_id`` is allocated before the artifact is uploaded so the
    storage path can embed it. ``audio_path`` is the primary artifact.
    """

    record_id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("Users.user_id"),
        nullable=False,
        index=True,
    )
    audio_path: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        comment="Object storage key of the primary artifact",
    )
    audio_file_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Storage handle allowing delete without a lookup",
    )
    is_favorite: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def artifact_refs(self) -> list[tuple[str, str | None]]:
        """Every stored artifact as (path, file_id) pairs."""
        return [(self.audio_path, self.audio_file_id)]
