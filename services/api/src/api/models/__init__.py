"""Pydantic model modules for the API."""

from .base import (
    ApiResponse,
    BaseRequest,
    BaseResponse,
    ErrorEnvelope,
    PaginatedResponse,
    PaginationMeta,
)
from .generation import (
    DialogueBody,
    DialogueLineBody,
    DialogueResult,
    DubbingResult,
    DubbingStatusResult,
    MusicBody,
    MusicResult,
    SoundEffectBody,
    SoundEffectResult,
    SpeechResult,
    TextToSpeechBody,
    TranscriptionResult,
    VoiceCloneResult,
    VoiceConversionResult,
    VoiceIsolationResult,
)
from .library import (
    BulkDeleteBody,
    BulkDeleteResult,
    DeleteResult,
    FavoriteResult,
    LibraryListResponse,
    LibraryStats,
    RecordItem,
    RecordListResponse,
)
from .usage import (
    ActivityItem,
    DimensionUsageItem,
    UsageHistoryPoint,
    UsageSummaryResponse,
    VoiceUsageItem,
)

__all__ = [
    "ActivityItem",
    "ApiResponse",
    "BaseRequest",
    "BaseResponse",
    "BulkDeleteBody",
    "BulkDeleteResult",
    "DeleteResult",
    "DialogueBody",
    "DialogueLineBody",
    "DialogueResult",
    "DimensionUsageItem",
    "DubbingResult",
    "DubbingStatusResult",
    "ErrorEnvelope",
    "FavoriteResult",
    "LibraryListResponse",
    "LibraryStats",
    "MusicBody",
    "MusicResult",
    "PaginatedResponse",
    "PaginationMeta",
    "RecordItem",
    "RecordListResponse",
    "SoundEffectBody",
    "SoundEffectResult",
    "SpeechResult",
    "TextToSpeechBody",
    "TranscriptionResult",
    "UsageHistoryPoint",
    "UsageSummaryResponse",
    "VoiceCloneResult",
    "VoiceConversionResult",
    "VoiceIsolationResult",
    "VoiceUsageItem",
]
