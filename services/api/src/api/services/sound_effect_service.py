"""Sound effect generation."""

from shared.blob import StoredArtifact
from shared.db.models import SoundEffect
from shared.quota import QuotaDimension, QuotaRequest

from ..constants import (
    SFX_DEFAULT_PROMPT_INFLUENCE,
    SFX_ESTIMATE_BYTES_PER_SECOND,
    SFX_MAX_DURATION,
    SFX_MAX_PROMPT_LENGTH,
    SFX_MIN_DURATION,
)
from ..models.generation import SoundEffectResult
from ..providers import ProviderName, ProviderResult, SoundEffectRequest
from .generation_ledger import RecordKind
from .pipeline import ArtifactUpload, GenerationJob, RunContext, retrieval_url
from .validation import require_range, require_text


class SoundEffectJob(GenerationJob):
    kind = RecordKind.SFX
    feature = "sfx"
    event_name = "sound_effect_created"
    provider = ProviderName.ELEVENLABS

    def __init__(
        self,
        text: str,
        duration_seconds: float | None = None,
        prompt_influence: float = SFX_DEFAULT_PROMPT_INFLUENCE,
    ):
        self.text = text
        self.duration_seconds = duration_seconds
        self.prompt_influence = prompt_influence

    def validate(self) -> None:
        self.text = require_text(self.text, "Prompt", SFX_MAX_PROMPT_LENGTH)
        if self.duration_seconds is not None:
            require_range(self.duration_seconds, "Duration", SFX_MIN_DURATION, SFX_MAX_DURATION)
        require_range(self.prompt_influence, "Prompt influence", 0, 1)

    def quota_requests(self) -> list[QuotaRequest]:
        return [QuotaRequest(QuotaDimension.SOUND_EFFECTS, 1)]

    def provider_request(self) -> SoundEffectRequest:
        return SoundEffectRequest(
            text=self.text,
            prompt_influence=self.prompt_influence,
            duration_seconds=self.duration_seconds,
        )

    def estimated_duration(self, result: ProviderResult) -> float:
        """Requested length, else a size-based guess at ~16 KB/s."""
        if self.duration_seconds:
            return self.duration_seconds
        return round(len(result.content) / SFX_ESTIMATE_BYTES_PER_SECOND)

    def artifacts(self, result: ProviderResult) -> list[ArtifactUpload]:
        return [ArtifactUpload("audio", result.content, content_type=result.content_type)]

    def build_record(
        self,
        ctx: RunContext,
        result: ProviderResult,
        stored: dict[str, StoredArtifact],
    ) -> SoundEffect:
        audio = stored["audio"]
        return SoundEffect(
            record_id=ctx.record_id,
            user_id=ctx.user_id,
            audio_path=audio.path,
            audio_file_id=audio.file_id,
            prompt=self.text,
            requested_duration_seconds=self.duration_seconds,
            prompt_influence=self.prompt_influence,
            duration_seconds=self.estimated_duration(result),
            created_at=ctx.created_at,
            updated_at=ctx.created_at,
        )

    def event_properties(self, ctx: RunContext, result: ProviderResult, record: SoundEffect) -> dict:
        return {
            "recordId": str(ctx.record_id),
            "durationSeconds": self.duration_seconds if self.duration_seconds is not None else "auto",
            "promptInfluence": self.prompt_influence,
        }

    def build_response(self, ctx: RunContext, result: ProviderResult, record: SoundEffect) -> SoundEffectResult:
        return SoundEffectResult(
            record_id=ctx.record_id,
            audio_url=retrieval_url(self.kind, ctx.record_id),
            duration_seconds=record.duration_seconds,
        )
