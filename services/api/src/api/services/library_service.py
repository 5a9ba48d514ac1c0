"""Library service for browsing and managing a user's generation records."""

import asyncio
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from shared.blob import ArtifactNotFoundError, ArtifactStore, DownloadedArtifact
from shared.db.models import DubbingProject, User
from shared.logging import get_logger
from shared.telemetry import GENERATION_DELETED, AnalyticsClient

from ..errors import NotFoundError, ProviderError, ValidationError
from ..models.generation import DubbingStatusResult
from ..models.library import (
    BulkDeleteResult,
    DeleteResult,
    LibraryListResponse,
    LibraryStats,
    RecordItem,
    RecordListResponse,
)
from ..providers import DubbedAudioRequest, DubbingStatusRequest, ProviderGateway, ProviderName
from .dubbing_service import DUBBING_STATUSES
from .generation_ledger import GenerationLedger, RecordKind
from .pipeline import retrieval_url

logger = get_logger(__name__)

# Columns every record has, or that point into storage and stay internal
_HIDDEN_COLUMNS = frozenset({
    "record_id",
    "user_id",
    "audio_path",
    "audio_file_id",
    "original_audio_path",
    "original_audio_file_id",
    "samples",
    "is_favorite",
    "created_at",
    "updated_at",
})

AUDIO_VARIANTS = ("original",)


@dataclass(frozen=True)
class DubbedAudio:
    content: bytes
    content_type: str
    file_name: str


def record_details(record: Any) -> dict[str, Any]:
    """Kind-specific columns of a record, keyed in camelCase."""
    return {
        to_camel(column.key): getattr(record, column.key)
        for column in record.__table__.columns
        if column.key not in _HIDDEN_COLUMNS
    }


class LibraryService:
    """Service for library browsing operations."""

    def __init__(
        self,
        session: AsyncSession,
        store: ArtifactStore,
        gateway: ProviderGateway | None = None,
        analytics: AnalyticsClient | None = None,
    ):
        """Initialize the library service.

        Args:
            session: Database session.
            store: Artifact store holding the records' audio.
            gateway: Provider gateway, needed for dubbing status refresh.
            analytics: Analytics sink for deletion events.
        """
        self.records = GenerationLedger(session)
        self.store = store
        self.gateway = gateway
        self.analytics = analytics

    def _to_item(self, kind: RecordKind, record: Any) -> RecordItem:
        return RecordItem(
            record_id=record.record_id,
            kind=kind.value,
            is_favorite=record.is_favorite,
            audio_url=retrieval_url(kind, record.record_id),
            details=record_details(record),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    async def list_records(
        self,
        kind: RecordKind,
        user: User,
        page: int = 1,
        per_page: int = 20,
        favorites_only: bool = False,
        search: str | None = None,
        voice_id: str | None = None,
        sort: str = "newest",
    ) -> RecordListResponse:
        """List the user's records of one kind, newest first by default."""
        records, total = await self.records.list_owned(
            kind,
            user.user_id,
            page=page,
            per_page=per_page,
            favorites_only=favorites_only,
            search=(search or "").strip() or None,
            voice_id=(voice_id or "").strip() or None,
            sort=sort,
        )
        return RecordListResponse.create(
            items=[self._to_item(kind, record) for record in records],
            page=page,
            per_page=per_page,
            total=total,
        )

    async def browse_library(
        self,
        kind: RecordKind,
        user: User,
        page: int = 1,
        per_page: int = 12,
        favorites_only: bool = False,
        search: str | None = None,
        voice_id: str | None = None,
        sort: str = "newest",
    ) -> LibraryListResponse:
        """A filtered page of records plus totals for the library header."""
        listing = await self.list_records(
            kind,
            user,
            page=page,
            per_page=per_page,
            favorites_only=favorites_only,
            search=search,
            voice_id=voice_id,
            sort=sort,
        )
        counts = await self.records.stats_owned(kind, user.user_id)
        return LibraryListResponse(
            items=listing.items,
            pagination=listing.pagination,
            stats=LibraryStats(
                total_items=counts.total,
                total_favorites=counts.favorites,
                voices=counts.voice_ids,
            ),
        )

    async def get_record(self, kind: RecordKind, user: User, record_id: UUID | str) -> Any:
        """Get a record owned by the user.

        Raises:
            NotFoundError: If it does not exist or belongs to someone else.
        """
        record = await self.records.get_owned(kind, user.user_id, record_id)
        if record is None:
            raise NotFoundError(f"{kind.value} record not found: {record_id}")
        return record

    async def get_record_item(self, kind: RecordKind, user: User, record_id: UUID | str) -> RecordItem:
        return self._to_item(kind, await self.get_record(kind, user, record_id))

    async def toggle_favorite(self, kind: RecordKind, user: User, record_id: UUID | str) -> bool:
        """Flip the favorite flag and return the new value."""
        record = await self.get_record(kind, user, record_id)
        record.is_favorite = not record.is_favorite
        await self.records.save(record)
        return record.is_favorite

    async def delete_record(self, kind: RecordKind, user: User, record_id: UUID | str) -> DeleteResult:
        """Delete a record and, best effort, every artifact it references.

        Artifact delete failures are logged and counted, never raised.
        """
        record = await self.get_record(kind, user, record_id)
        record_uuid = record.record_id
        external_id = user.external_id
        refs = record.artifact_refs()

        outcomes = await asyncio.gather(
            *(self.store.delete(path, file_id) for path, file_id in refs)
        )
        deleted = sum(1 for ok in outcomes if ok)

        await self.records.delete_by_id(kind, record_uuid)
        logger.info(
            "Generation record deleted",
            kind=kind.value,
            record_id=str(record_uuid),
            artifacts_deleted=deleted,
            artifacts_failed=len(refs) - deleted,
        )

        if self.analytics is not None:
            self.analytics.capture(
                external_id,
                GENERATION_DELETED,
                {"kind": kind.value, "recordId": str(record_uuid)},
            )

        return DeleteResult(
            record_id=record_uuid,
            artifacts_deleted=deleted,
            artifacts_failed=len(refs) - deleted,
        )

    async def bulk_delete(
        self,
        kind: RecordKind,
        user: User,
        record_ids: list[UUID],
    ) -> BulkDeleteResult:
        """Delete several records and, best effort, their artifacts.

        Ids that do not exist or belong to another user are skipped.

        Raises:
            ValidationError: If no ids were given.
        """
        if not record_ids:
            raise ValidationError("No IDs provided")

        external_id = user.external_id
        records = await self.records.list_owned_by_ids(kind, user.user_id, record_ids)
        record_uuids = [record.record_id for record in records]
        refs = [ref for record in records for ref in record.artifact_refs()]

        outcomes = await asyncio.gather(
            *(self.store.delete(path, file_id) for path, file_id in refs)
        )
        deleted_artifacts = sum(1 for ok in outcomes if ok)

        deleted = await self.records.delete_owned(kind, user.user_id, record_uuids)
        logger.info(
            "Generation records bulk deleted",
            kind=kind.value,
            requested=len(record_ids),
            deleted=deleted,
            artifacts_deleted=deleted_artifacts,
            artifacts_failed=len(refs) - deleted_artifacts,
        )

        if self.analytics is not None:
            for record_uuid in record_uuids:
                self.analytics.capture(
                    external_id,
                    GENERATION_DELETED,
                    {"kind": kind.value, "recordId": str(record_uuid)},
                )

        return BulkDeleteResult(
            requested=len(record_ids),
            deleted_count=deleted,
            artifacts_deleted=deleted_artifacts,
            artifacts_failed=len(refs) - deleted_artifacts,
        )

    async def open_audio(
        self,
        kind: RecordKind,
        user: User,
        record_id: UUID | str,
        variant: str | None = None,
    ) -> DownloadedArtifact:
        """Download a record's audio after checking ownership.

        Args:
            kind: Record kind.
            user: Requesting user.
            record_id: Record id.
            variant: ``original`` for the source audio of isolation,
                conversion and dubbing records.

        Raises:
            ValidationError: Unknown variant.
            NotFoundError: Missing record, variant or stored object.
        """
        if variant is not None and variant not in AUDIO_VARIANTS:
            raise ValidationError(f"Unknown audio variant: {variant}")

        record = await self.get_record(kind, user, record_id)
        path = record.audio_path
        if variant == "original" and kind != RecordKind.DUBBING:
            path = getattr(record, "original_audio_path", None)
            if not path:
                raise NotFoundError(f"No original audio for {kind.value} record {record_id}")

        try:
            return await self.store.download(path)
        except ArtifactNotFoundError as e:
            logger.warning("Audio missing from storage", kind=kind.value, path=path)
            raise NotFoundError("Audio not found") from e

    async def open_dubbed_audio(
        self,
        user: User,
        record_id: UUID | str,
        language_code: str,
    ) -> DubbedAudio:
        """Fetch a finished dub from the provider; it is never stored here.

        Raises:
            NotFoundError: Missing record.
            ValidationError: The project is not dubbed yet, or the
                language was not one of its targets.
        """
        record: DubbingProject = await self.get_record(RecordKind.DUBBING, user, record_id)
        if record.status != "dubbed":
            raise ValidationError(f"Dubbing is not ready yet. Status: {record.status}")
        if language_code not in (record.target_languages or []):
            raise ValidationError(f"Language {language_code} is not a target for this project")
        if self.gateway is None:
            raise ProviderError(ProviderName.ELEVENLABS.value, "Provider gateway unavailable")

        result = await self.gateway.invoke(
            DubbedAudioRequest(dubbing_id=record.dubbing_id, language_code=language_code),
            ProviderName.ELEVENLABS,
        )
        return DubbedAudio(
            content=result.content,
            content_type=result.content_type or "audio/mpeg",
            file_name=f"{record.name}_{language_code}.mp3",
        )

    async def refresh_dubbing_status(self, user: User, record_id: UUID | str) -> DubbingStatusResult:
        """Poll the provider for a dubbing project's status and store it."""
        record: DubbingProject = await self.get_record(RecordKind.DUBBING, user, record_id)

        if record.status in ("pending", "dubbing") and self.gateway is not None:
            result = await self.gateway.invoke(
                DubbingStatusRequest(dubbing_id=record.dubbing_id),
                ProviderName.ELEVENLABS,
            )
            status = result.metadata.get("status")
            if status in DUBBING_STATUSES and status != record.status:
                logger.info(
                    "Dubbing status changed",
                    record_id=str(record.record_id),
                    previous=record.status,
                    status=status,
                )
                record.status = status
                await self.records.save(record)

        return DubbingStatusResult(
            record_id=record.record_id,
            dubbing_id=record.dubbing_id,
            status=record.status,
        )
