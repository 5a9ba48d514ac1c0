"""Library endpoints: browse, favorite, delete and stream generation records."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response

from shared.db.models import User

from ..constants import AUDIO_CACHE_CONTROL, LIBRARY_DEFAULT_PAGE_SIZE, LIBRARY_MAX_PAGE_SIZE
from ..dependencies import get_current_account, get_library_service
from ..errors import NotFoundError
from ..models import (
    ApiResponse,
    BulkDeleteBody,
    BulkDeleteResult,
    DeleteResult,
    DubbingStatusResult,
    FavoriteResult,
    LibraryListResponse,
    RecordItem,
    RecordListResponse,
)
from ..services.generation_ledger import RecordKind
from ..services.library_service import LibraryService

router = APIRouter(prefix="/api", tags=["Library"])


def _record_kind(kind: str) -> RecordKind:
    try:
        return RecordKind(kind)
    except ValueError as e:
        raise NotFoundError(f"Unknown record kind: {kind}") from e


def _audio_response(content: bytes, content_type: str, length: int) -> Response:
    return Response(
        content=content,
        media_type=content_type,
        headers={
            "Cache-Control": AUDIO_CACHE_CONTROL,
            "Content-Length": str(length),
        },
    )


@router.get("/audio/{record_id}", summary="Stream text-to-speech audio")
async def get_speech_audio(
    record_id: UUID,
    user: User = Depends(get_current_account),
    library: LibraryService = Depends(get_library_service),
) -> Response:
    artifact = await library.open_audio(RecordKind.TTS, user, record_id)
    return _audio_response(artifact.content, artifact.content_type, artifact.length)


@router.get(
    "/dubbing/{record_id}/status",
    response_model=ApiResponse[DubbingStatusResult],
    summary="Refresh a dubbing project's status",
)
async def get_dubbing_status(
    record_id: UUID,
    user: User = Depends(get_current_account),
    library: LibraryService = Depends(get_library_service),
) -> ApiResponse[DubbingStatusResult]:
    return ApiResponse.of(await library.refresh_dubbing_status(user, record_id))


@router.get(
    "/dubbing/{record_id}/audio/{language_code}",
    summary="Stream a finished dub for one target language",
)
async def get_dubbed_audio(
    record_id: UUID,
    language_code: str,
    user: User = Depends(get_current_account),
    library: LibraryService = Depends(get_library_service),
) -> Response:
    audio = await library.open_dubbed_audio(user, record_id, language_code)
    file_name = audio.file_name.replace('"', "")
    return Response(
        content=audio.content,
        media_type=audio.content_type,
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )


# Text-to-speech library with totals, and the older per-feature listing paths


@router.get(
    "/library",
    response_model=ApiResponse[LibraryListResponse],
    summary="Browse the text-to-speech library",
)
async def browse_library(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=LIBRARY_DEFAULT_PAGE_SIZE, ge=1, le=LIBRARY_MAX_PAGE_SIZE),
    search: str | None = Query(default=None),
    voice_id: str | None = Query(default=None, alias="voiceId"),
    favorites: bool = Query(default=False),
    sort_by: str = Query(default="newest", alias="sortBy"),
    user: User = Depends(get_current_account),
    library: LibraryService = Depends(get_library_service),
) -> ApiResponse[LibraryListResponse]:
    listing = await library.browse_library(
        RecordKind.TTS,
        user,
        page=page,
        per_page=limit,
        favorites_only=favorites,
        search=search,
        voice_id=voice_id,
        sort=sort_by,
    )
    return ApiResponse.of(listing)


@router.delete(
    "/library",
    response_model=ApiResponse[BulkDeleteResult],
    summary="Delete several text-to-speech records",
)
async def bulk_delete_library(
    body: BulkDeleteBody,
    user: User = Depends(get_current_account),
    library: LibraryService = Depends(get_library_service),
) -> ApiResponse[BulkDeleteResult]:
    return ApiResponse.of(await library.bulk_delete(RecordKind.TTS, user, body.ids))


@router.post(
    "/library/{record_id}/favorite",
    response_model=ApiResponse[FavoriteResult],
    summary="Toggle the favorite flag of a text-to-speech record",
)
async def toggle_library_favorite(
    record_id: UUID,
    user: User = Depends(get_current_account),
    library: LibraryService = Depends(get_library_service),
) -> ApiResponse[FavoriteResult]:
    is_favorite = await library.toggle_favorite(RecordKind.TTS, user, record_id)
    return ApiResponse.of(FavoriteResult(record_id=record_id, is_favorite=is_favorite))


@router.get(
    "/generations",
    response_model=ApiResponse[RecordListResponse],
    summary="List text-to-speech records",
)
async def list_generations(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=LIBRARY_MAX_PAGE_SIZE),
    user: User = Depends(get_current_account),
    library: LibraryService = Depends(get_library_service),
) -> ApiResponse[RecordListResponse]:
    return ApiResponse.of(await library.list_records(RecordKind.TTS, user, page=page, per_page=limit))


@router.get(
    "/music/history",
    response_model=ApiResponse[RecordListResponse],
    summary="List music records",
)
async def list_music_history(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=LIBRARY_MAX_PAGE_SIZE),
    user: User = Depends(get_current_account),
    library: LibraryService = Depends(get_library_service),
) -> ApiResponse[RecordListResponse]:
    return ApiResponse.of(await library.list_records(RecordKind.MUSIC, user, page=page, per_page=limit))


@router.get(
    "/generations/{record_id}",
    response_model=ApiResponse[RecordItem],
    summary="Get one text-to-speech record",
)
async def get_generation(
    record_id: UUID,
    user: User = Depends(get_current_account),
    library: LibraryService = Depends(get_library_service),
) -> ApiResponse[RecordItem]:
    return ApiResponse.of(await library.get_record_item(RecordKind.TTS, user, record_id))


# Generic per-kind routes; declared last so the fixed paths above win


@router.get(
    "/{kind}",
    response_model=ApiResponse[RecordListResponse],
    summary="List generation records",
)
async def list_records(
    kind: str,
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100, alias="perPage"),
    favorites: bool = Query(default=False),
    search: str | None = Query(default=None),
    voice_id: str | None = Query(default=None, alias="voiceId"),
    sort_by: str = Query(default="newest", alias="sortBy"),
    user: User = Depends(get_current_account),
    library: LibraryService = Depends(get_library_service),
) -> ApiResponse[RecordListResponse]:
    records = await library.list_records(
        _record_kind(kind),
        user,
        page=page,
        per_page=per_page,
        favorites_only=favorites,
        search=search,
        voice_id=voice_id,
        sort=sort_by,
    )
    return ApiResponse.of(records)


@router.delete(
    "/{kind}",
    response_model=ApiResponse[BulkDeleteResult],
    summary="Delete several generation records and their audio",
)
async def bulk_delete_records(
    kind: str,
    body: BulkDeleteBody,
    user: User = Depends(get_current_account),
    library: LibraryService = Depends(get_library_service),
) -> ApiResponse[BulkDeleteResult]:
    return ApiResponse.of(await library.bulk_delete(_record_kind(kind), user, body.ids))


@router.get(
    "/{kind}/{record_id}",
    response_model=ApiResponse[RecordItem],
    summary="Get one generation record",
)
async def get_record(
    kind: str,
    record_id: UUID,
    user: User = Depends(get_current_account),
    library: LibraryService = Depends(get_library_service),
) -> ApiResponse[RecordItem]:
    return ApiResponse.of(await library.get_record_item(_record_kind(kind), user, record_id))


@router.delete(
    "/{kind}/{record_id}",
    response_model=ApiResponse[DeleteResult],
    summary="Delete a generation record and its audio",
)
async def delete_record(
    kind: str,
    record_id: UUID,
    user: User = Depends(get_current_account),
    library: LibraryService = Depends(get_library_service),
) -> ApiResponse[DeleteResult]:
    return ApiResponse.of(await library.delete_record(_record_kind(kind), user, record_id))


@router.post(
    "/{kind}/{record_id}/favorite",
    response_model=ApiResponse[FavoriteResult],
    summary="Toggle the favorite flag",
)
async def toggle_favorite(
    kind: str,
    record_id: UUID,
    user: User = Depends(get_current_account),
    library: LibraryService = Depends(get_library_service),
) -> ApiResponse[FavoriteResult]:
    is_favorite = await library.toggle_favorite(_record_kind(kind), user, record_id)
    return ApiResponse.of(FavoriteResult(record_id=record_id, is_favorite=is_favorite))


@router.get("/{kind}/{record_id}/audio", summary="Stream a record's audio")
async def get_record_audio(
    kind: str,
    record_id: UUID,
    variant: str | None = Query(default=None),
    user: User = Depends(get_current_account),
    library: LibraryService = Depends(get_library_service),
) -> Response:
    artifact = await library.open_audio(_record_kind(kind), user, record_id, variant=variant)
    return _audio_response(artifact.content, artifact.content_type, artifact.length)
