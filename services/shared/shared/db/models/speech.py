"""Speech synthesis records: single-voice TTS and multi-voice dialogue."""

from typing import Any

from sqlalchemy import JSON, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, GenerationRecordMixin


class Generation(Base, GenerationRecordMixin):
    """A text-to-speech generation."""

    __tablename__ = "Generations"

    text: Mapped[str] = mapped_column(Text, nullable=False)
    voice_id: Mapped[str] = mapped_column(String(255), nullable=False)
    provider: Mapped[str] = mapped_column(String(20), nullable=False, default="elevenlabs")
    model_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    stability: Mapped[float | None] = mapped_column(Float, nullable=True)
    similarity_boost: Mapped[float | None] = mapped_column(Float, nullable=True)
    character_count: Mapped[int] = mapped_column(Integer, nullable=False)
    duration_seconds: Mapped[float | None] = mapped_column(
        Float,
        nullable=True,
        comment="Provider-reported length when available",
    )


class DialogueGeneration(Base, GenerationRecordMixin):
    """A multi-speaker dialogue rendered to a single audio file."""

    __tablename__ = "DialogueGenerations"

    title: Mapped[str] = mapped_column(String(255), nullable=False, default="Untitled dialogue")
    inputs: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        comment="Ordered lines: [{text, voice_id}]",
    )
    character_count: Mapped[int] = mapped_column(Integer, nullable=False)
    duration_seconds: Mapped[float | None] = mapped_column(
        Float,
        nullable=True,
        comment="Estimated from character count",
    )
