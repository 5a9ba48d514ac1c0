"""Usage counters and the usage audit trail."""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import Date, Float, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, generate_uuid, utcnow


class UsageCounter(Base):
    """Consumption per quota dimension for one user and billing period.

    Column names match ``QuotaDimension`` values. Counters only grow
    within a period and are updated with conditional statements so they
    never pass the plan limit.
    """

    __tablename__ = "UsageCounters"

    usage_counter_id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("Users.user_id"),
        nullable=False,
    )
    period_start: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        comment="First day of the UTC calendar month",
    )

    characters: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    generations: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    transcriptions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    transcription_minutes: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    sound_effects: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    music_generations: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    voice_conversions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    voice_conversion_minutes: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    voice_isolations: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    voice_isolation_minutes: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    dubbings: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    dubbing_minutes: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    dialogue_generations: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    dialogue_characters: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cloned_voices: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "period_start", name="uq_usage_counters_user_period"),
    )


class UsageRecord(Base):
    """One committed increment, kept for usage history."""

    __tablename__ = "UsageRecords"

    usage_id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=generate_uuid,
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("Users.user_id"),
        nullable=False,
    )
    dimension: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Quota dimension, e.g. 'characters' or 'transcription_minutes'",
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    resource_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Generation record the consumption belongs to",
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_usage_user_dimension_created", "user_id", "dimension", "created_at"),
    )
