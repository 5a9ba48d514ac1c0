"""Library models for browsing a user's generation records."""

from typing import Any
from uuid import UUID

from pydantic import Field

from .base import BaseRequest, BaseResponse, PaginatedResponse, TimestampMixin


class RecordItem(BaseResponse, TimestampMixin):
    """One generation record in library listings."""

    record_id: UUID = Field(description="Generation record id")
    kind: str = Field(description="Record kind, e.g. tts or stt")
    is_favorite: bool = Field(default=False)
    audio_url: str = Field(description="Proxy URL serving the audio")
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Kind-specific fields (text, prompt, language, ...)",
    )


RecordListResponse = PaginatedResponse[RecordItem]


class FavoriteResult(BaseResponse):
    record_id: UUID
    is_favorite: bool


class DeleteResult(BaseResponse):
    record_id: UUID
    deleted: bool = True
    artifacts_deleted: int = Field(description="Artifacts removed from storage")
    artifacts_failed: int = Field(default=0, description="Artifacts left for manual cleanup")


class LibraryStats(BaseResponse):
    """Totals over all of the user's records, ignoring page and filters."""

    total_items: int = Field(ge=0)
    total_favorites: int = Field(ge=0)
    voices: list[str] = Field(default_factory=list, description="Distinct voice ids used")


class LibraryListResponse(PaginatedResponse[RecordItem]):
    stats: LibraryStats


class BulkDeleteBody(BaseRequest):
    ids: list[UUID] = Field(default_factory=list, description="Record ids to delete")


class BulkDeleteResult(BaseResponse):
    requested: int
    deleted_count: int = Field(description="Records removed; ids not owned are skipped")
    artifacts_deleted: int
    artifacts_failed: int = 0
