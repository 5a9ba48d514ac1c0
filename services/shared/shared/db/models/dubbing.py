"""Dubbing project model."""

from sqlalchemy import JSON, Float, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, GenerationRecordMixin


class DubbingProject(Base, GenerationRecordMixin):
    """A dubbing job submitted to the provider.

    ``audio_path`` holds the uploaded source media. Dubbed tracks stay with
    the provider and are tracked through ``status``.
    """

    __tablename__ = "DubbingProjects"

    dubbing_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Provider handle used for status polling",
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    source_language: Mapped[str | None] = mapped_column(String(20), nullable=True)
    target_languages: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="dubbing",
        comment="pending, dubbing, dubbed or failed",
    )
    expected_duration_seconds: Mapped[float | None] = mapped_column(Float, nullable=True)
