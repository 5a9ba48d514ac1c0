"""Generation Ledger: persistence of generation records.

Every record kind shares the ``GenerationRecordMixin`` columns, so one
ledger serves all of them; ``RecordKind`` picks the table.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.blob import ArtifactKind
from shared.db.models import (
    ClonedVoice,
    DialogueGeneration,
    DubbingProject,
    Generation,
    GenerationRecordMixin,
    MusicGeneration,
    SoundEffect,
    Transcription,
    VoiceConversion,
    VoiceIsolation,
)
from shared.logging import get_logger

from ..errors import ValidationError

logger = get_logger(__name__)

SORT_ORDERS = ("newest", "oldest", "longest", "shortest")


class RecordKind(str, Enum):
    """Generation record kinds. Values are the URL segments under ``/api``."""

    TTS = "tts"
    STT = "stt"
    SFX = "sfx"
    MUSIC = "music"
    VOICE_ISOLATOR = "voice-isolator"
    VOICE_CHANGER = "voice-changer"
    DIALOGUE = "text-to-dialogue"
    DUBBING = "dubbing"
    VOICES = "voices"


@dataclass(frozen=True)
class RecordSpec:
    """Static facts about one record kind.

    ``search_column`` is matched by library search and ``length_column``
    orders the longest and shortest sorts.
    """

    model: type
    artifact_kind: ArtifactKind
    label: str
    artifact_label: str = "audio"
    search_column: str | None = None
    length_column: str | None = None


RECORD_SPECS: dict[RecordKind, RecordSpec] = {
    RecordKind.TTS: RecordSpec(
        Generation,
        ArtifactKind.AUDIO,
        "generation",
        search_column="text",
        length_column="duration_seconds",
    ),
    RecordKind.STT: RecordSpec(
        Transcription,
        ArtifactKind.TRANSCRIPTS,
        "transcription",
        search_column="text",
        length_column="duration_seconds",
    ),
    RecordKind.SFX: RecordSpec(
        SoundEffect,
        ArtifactKind.SOUND_EFFECTS,
        "sound effect",
        search_column="prompt",
        length_column="duration_seconds",
    ),
    RecordKind.MUSIC: RecordSpec(
        MusicGeneration,
        ArtifactKind.AUDIO,
        "music generation",
        search_column="prompt",
        length_column="duration_ms",
    ),
    RecordKind.VOICE_ISOLATOR: RecordSpec(
        VoiceIsolation,
        ArtifactKind.VOICE_ISOLATIONS,
        "voice isolation",
        search_column="file_name",
        length_column="duration_seconds",
    ),
    RecordKind.VOICE_CHANGER: RecordSpec(
        VoiceConversion,
        ArtifactKind.VOICE_CONVERSIONS,
        "voice conversion",
        search_column="file_name",
        length_column="duration_seconds",
    ),
    RecordKind.DIALOGUE: RecordSpec(
        DialogueGeneration,
        ArtifactKind.DIALOGUES,
        "dialogue",
        search_column="title",
        length_column="duration_seconds",
    ),
    RecordKind.DUBBING: RecordSpec(
        DubbingProject,
        ArtifactKind.DUBBINGS,
        "dubbing project",
        artifact_label="source media",
        search_column="name",
        length_column="expected_duration_seconds",
    ),
    RecordKind.VOICES: RecordSpec(
        ClonedVoice,
        ArtifactKind.VOICES,
        "cloned voice",
        artifact_label="voice samples",
        search_column="name",
    ),
}


@dataclass(frozen=True)
class LibraryCounts:
    total: int
    favorites: int
    voice_ids: list[str]


def record_spec(kind: RecordKind) -> RecordSpec:
    return RECORD_SPECS[kind]


def _as_uuid(record_id: UUID | str) -> UUID | None:
    if isinstance(record_id, UUID):
        return record_id
    try:
        return UUID(str(record_id))
    except ValueError:
        return None


class GenerationLedger:
    """Create, read and delete generation records.

    Each write is its own commit. A failed write rolls the session back
    and re-raises so the caller can compensate.
    """

    def __init__(self, session: AsyncSession):
        """Initialize the ledger.

        Args:
            session: Database session.
        """
        self.session = session

    async def create(self, record: GenerationRecordMixin) -> GenerationRecordMixin:
        """Persist a new record.

        Raises:
            SQLAlchemyError: If the insert fails.
        """
        self.session.add(record)
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        logger.info(
            "Generation record created",
            record_type=type(record).__name__,
            record_id=str(record.record_id),
        )
        return record

    async def save(self, record: GenerationRecordMixin) -> GenerationRecordMixin:
        """Commit changes made to a loaded record."""
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        return record

    async def delete_by_id(self, kind: RecordKind, record_id: UUID | str) -> bool:
        """Delete a record by primary key.

        Returns:
            True if a row was removed.
        """
        model = record_spec(kind).model
        key = _as_uuid(record_id)
        if key is None:
            return False
        try:
            result = await self.session.execute(
                delete(model).where(model.record_id == key)
            )
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        return result.rowcount > 0

    async def get_owned(
        self,
        kind: RecordKind,
        user_id: UUID,
        record_id: UUID | str,
    ) -> Any | None:
        """Get a record if it exists and belongs to the user."""
        model = record_spec(kind).model
        key = _as_uuid(record_id)
        if key is None:
            return None
        result = await self.session.execute(
            select(model).where(model.record_id == key, model.user_id == user_id)
        )
        return result.scalar_one_or_none()

    def _filters(
        self,
        kind: RecordKind,
        user_id: UUID,
        favorites_only: bool = False,
        search: str | None = None,
        voice_id: str | None = None,
    ) -> list[Any]:
        spec = record_spec(kind)
        model = spec.model
        conditions = [model.user_id == user_id]
        if favorites_only:
            conditions.append(model.is_favorite.is_(True))
        if search and spec.search_column:
            pattern = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            column = getattr(model, spec.search_column)
            conditions.append(column.ilike(f"%{pattern}%", escape="\\"))
        if voice_id:
            if not hasattr(model, "voice_id"):
                raise ValidationError(f"voiceId filter is not supported for {kind.value}")
            conditions.append(model.voice_id == voice_id)
        return conditions

    def _ordering(self, kind: RecordKind, sort: str) -> list[Any]:
        spec = record_spec(kind)
        model = spec.model
        if sort not in SORT_ORDERS:
            raise ValidationError(f"sortBy must be one of: {', '.join(SORT_ORDERS)}")
        if sort == "newest":
            return [model.created_at.desc()]
        if sort == "oldest":
            return [model.created_at.asc()]
        if spec.length_column is None:
            raise ValidationError(f"sortBy={sort} is not supported for {kind.value}")
        length = func.coalesce(getattr(model, spec.length_column), 0)
        primary = length.desc() if sort == "longest" else length.asc()
        return [primary, model.created_at.desc()]

    async def list_owned(
        self,
        kind: RecordKind,
        user_id: UUID,
        page: int = 1,
        per_page: int = 20,
        favorites_only: bool = False,
        search: str | None = None,
        voice_id: str | None = None,
        sort: str = "newest",
    ) -> tuple[list[Any], int]:
        """List a user's records.

        Args:
            kind: Record kind.
            user_id: Owner.
            page: 1-based page number.
            per_page: Page size.
            favorites_only: Only favorited records.
            search: Case-insensitive substring of the kind's text column.
            voice_id: Only records made with this voice.
            sort: One of ``SORT_ORDERS``; length sorts use the kind's
                duration column, missing durations counting as zero.

        Returns:
            The page of records and the total count.

        Raises:
            ValidationError: Unknown sort, or a filter the kind cannot apply.
        """
        model = record_spec(kind).model
        conditions = self._filters(kind, user_id, favorites_only, search, voice_id)
        ordering = self._ordering(kind, sort)

        total = await self.session.scalar(
            select(func.count()).select_from(model).where(*conditions)
        )
        result = await self.session.execute(
            select(model)
            .where(*conditions)
            .order_by(*ordering)
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        return list(result.scalars().all()), total or 0

    async def stats_owned(self, kind: RecordKind, user_id: UUID) -> LibraryCounts:
        """Totals over all of a user's records of one kind."""
        model = record_spec(kind).model
        total = await self.session.scalar(
            select(func.count()).select_from(model).where(model.user_id == user_id)
        )
        favorites = await self.session.scalar(
            select(func.count())
            .select_from(model)
            .where(model.user_id == user_id, model.is_favorite.is_(True))
        )
        voices: list[str] = []
        if hasattr(model, "voice_id"):
            result = await self.session.execute(
                select(model.voice_id)
                .where(model.user_id == user_id)
                .distinct()
                .order_by(model.voice_id)
            )
            voices = list(result.scalars().all())
        return LibraryCounts(total=total or 0, favorites=favorites or 0, voice_ids=voices)

    async def list_owned_by_ids(
        self,
        kind: RecordKind,
        user_id: UUID,
        record_ids: list[UUID | str],
    ) -> list[Any]:
        """The user's records among ``record_ids``; others' ids are skipped."""
        model = record_spec(kind).model
        keys = [key for key in (_as_uuid(record_id) for record_id in record_ids) if key is not None]
        if not keys:
            return []
        result = await self.session.execute(
            select(model).where(model.user_id == user_id, model.record_id.in_(keys))
        )
        return list(result.scalars().all())

    async def delete_owned(
        self,
        kind: RecordKind,
        user_id: UUID,
        record_ids: list[UUID],
    ) -> int:
        """Delete the user's records among ``record_ids`` in one statement.

        Returns:
            Number of rows removed.
        """
        if not record_ids:
            return 0
        model = record_spec(kind).model
        try:
            result = await self.session.execute(
                delete(model).where(model.user_id == user_id, model.record_id.in_(record_ids))
            )
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        return result.rowcount
