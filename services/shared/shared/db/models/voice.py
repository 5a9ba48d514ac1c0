"""Cloned voice model."""

from typing import Any

from sqlalchemy import JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, GenerationRecordMixin


class ClonedVoice(Base, GenerationRecordMixin):
    """An instant voice clone. ``audio_path`` is the first training sample."""

    __tablename__ = "ClonedVoices"

    voice_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Provider voice id usable in synthesis requests",
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    samples: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Stored samples: [{path, file_id}]",
    )

    def artifact_refs(self) -> list[tuple[str, str | None]]:
        refs = [(sample["path"], sample.get("file_id")) for sample in self.samples]
        return refs or [(self.audio_path, self.audio_file_id)]
