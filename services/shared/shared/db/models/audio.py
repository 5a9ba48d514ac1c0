"""Audio processing records: transcription, effects, music and voice transforms."""

from typing import Any

from sqlalchemy import JSON, Boolean, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, GenerationRecordMixin


class Transcription(Base, GenerationRecordMixin):
    """Speech-to-text result. ``audio_path`` holds the uploaded source audio."""

    __tablename__ = "Transcriptions"

    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    model_id: Mapped[str] = mapped_column(String(100), nullable=False)
    language_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    language_probability: Mapped[float | None] = mapped_column(Float, nullable=True)
    text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    words: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    speakers: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    keyterms: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    duration_seconds: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.0,
        comment="End timestamp of the last recognised word",
    )


class SoundEffect(Base, GenerationRecordMixin):
    """A generated sound effect."""

    __tablename__ = "SoundEffects"

    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    requested_duration_seconds: Mapped[float | None] = mapped_column(Float, nullable=True)
    prompt_influence: Mapped[float] = mapped_column(Float, nullable=False)
    duration_seconds: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)


class MusicGeneration(Base, GenerationRecordMixin):
    """A generated music track."""

    __tablename__ = "MusicGenerations"

    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    lyrics: Mapped[str | None] = mapped_column(Text, nullable=True)
    provider: Mapped[str] = mapped_column(String(20), nullable=False)
    instrumental: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False)


class VoiceIsolation(Base, GenerationRecordMixin):
    """Background-noise removal. ``audio_path`` is the isolated track."""

    __tablename__ = "VoiceIsolations"

    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    original_audio_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    original_audio_file_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    duration_seconds: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.0,
        comment="Estimated from byte size at 128 kbps",
    )

    def artifact_refs(self) -> list[tuple[str, str | None]]:
        return [
            (self.original_audio_path, self.original_audio_file_id),
            (self.audio_path, self.audio_file_id),
        ]


class VoiceConversion(Base, GenerationRecordMixin):
    """Speech-to-speech conversion. ``audio_path`` is the converted track."""

    __tablename__ = "VoiceConversions"

    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    voice_id: Mapped[str] = mapped_column(String(255), nullable=False)
    model_id: Mapped[str] = mapped_column(String(100), nullable=False)
    voice_settings: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    original_audio_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    original_audio_file_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    duration_seconds: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.0,
        comment="Estimated from byte size at 128 kbps",
    )

    def artifact_refs(self) -> list[tuple[str, str | None]]:
        return [
            (self.original_audio_path, self.original_audio_file_id),
            (self.audio_path, self.audio_file_id),
        ]
