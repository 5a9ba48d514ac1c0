"""Voice changer: re-voice a recording with another voice."""

from typing import Any

from shared.blob import StoredArtifact, content_type_for, extension_for
from shared.db.models import VoiceConversion
from shared.quota import QuotaDimension, QuotaRequest

from ..constants import (
    VOICE_CHANGER_DEFAULT_SETTINGS,
    VOICE_CHANGER_FORMATS,
    VOICE_CHANGER_MAX_FILE_SIZE,
    VOICE_CHANGER_MODEL,
)
from ..errors import ValidationError
from ..models.generation import VoiceConversionResult
from ..providers import ProviderName, ProviderResult, UploadedFile, VoiceConversionRequest
from .generation_ledger import RecordKind
from .pipeline import ArtifactUpload, GenerationJob, RunContext, retrieval_url
from .validation import estimate_seconds_from_size, require_file, require_range, require_text

# Settings that must lie in [0, 1]
UNIT_RANGE_SETTINGS = ("stability", "similarity_boost", "style")


class VoiceConversionJob(GenerationJob):
    kind = RecordKind.VOICE_CHANGER
    feature = "voice_changer"
    event_name = "voice_conversion_created"
    provider = ProviderName.ELEVENLABS

    def __init__(
        self,
        file: UploadedFile | None,
        voice_id: str,
        model_id: str = VOICE_CHANGER_MODEL,
        voice_settings: dict[str, Any] | None = None,
        remove_background_noise: bool = False,
    ):
        self.file = file
        self.voice_id = voice_id
        self.model_id = model_id or VOICE_CHANGER_MODEL
        self.voice_settings = {**VOICE_CHANGER_DEFAULT_SETTINGS, **(voice_settings or {})}
        self.remove_background_noise = remove_background_noise

    def validate(self) -> None:
        self.file = require_file(self.file, VOICE_CHANGER_MAX_FILE_SIZE, VOICE_CHANGER_FORMATS)
        self.voice_id = require_text(self.voice_id, "Voice ID")
        for name in UNIT_RANGE_SETTINGS:
            value = self.voice_settings.get(name)
            if value is None:
                continue
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise ValidationError(f"{name} must be a number")
            require_range(value, name, 0, 1)

    def quota_requests(self) -> list[QuotaRequest]:
        return [QuotaRequest(QuotaDimension.VOICE_CONVERSIONS, 1)]

    def provider_request(self) -> VoiceConversionRequest:
        return VoiceConversionRequest(
            file=self.file,
            voice_id=self.voice_id,
            model_id=self.model_id,
            voice_settings=self.voice_settings,
            remove_background_noise=self.remove_background_noise,
        )

    def measured_quota_requests(self, result: ProviderResult) -> list[QuotaRequest]:
        seconds = estimate_seconds_from_size(len(result.content))
        return [QuotaRequest(QuotaDimension.VOICE_CONVERSION_MINUTES, seconds / 60)]

    def artifacts(self, result: ProviderResult) -> list[ArtifactUpload]:
        extension = extension_for(self.file.file_name)
        return [
            ArtifactUpload(
                "original",
                self.file.content,
                extension=extension,
                content_type=content_type_for(extension),
                suffix="original",
            ),
            ArtifactUpload("converted", result.content, suffix="converted"),
        ]

    def build_record(
        self,
        ctx: RunContext,
        result: ProviderResult,
        stored: dict[str, StoredArtifact],
    ) -> VoiceConversion:
        return VoiceConversion(
            record_id=ctx.record_id,
            user_id=ctx.user_id,
            audio_path=stored["converted"].path,
            audio_file_id=stored["converted"].file_id,
            original_audio_path=stored["original"].path,
            original_audio_file_id=stored["original"].file_id,
            file_name=self.file.file_name,
            voice_id=result.metadata.get("voice_id", self.voice_id),
            model_id=self.model_id,
            voice_settings=self.voice_settings,
            duration_seconds=estimate_seconds_from_size(len(result.content)),
            created_at=ctx.created_at,
            updated_at=ctx.created_at,
        )

    def event_properties(self, ctx: RunContext, result: ProviderResult, record: VoiceConversion) -> dict:
        return {
            "recordId": str(ctx.record_id),
            "voiceId": record.voice_id,
            "modelId": self.model_id,
            "durationSeconds": round(record.duration_seconds, 2),
        }

    def build_response(
        self, ctx: RunContext, result: ProviderResult, record: VoiceConversion
    ) -> VoiceConversionResult:
        url = retrieval_url(self.kind, ctx.record_id)
        return VoiceConversionResult(
            record_id=ctx.record_id,
            audio_url=url,
            original_audio_url=f"{url}?variant=original",
            voice_id=record.voice_id,
            duration_seconds=record.duration_seconds,
        )
