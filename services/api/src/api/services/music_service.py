"""Music generation through ElevenLabs or Minimax."""

from shared.blob import StoredArtifact
from shared.db.models import MusicGeneration
from shared.quota import QuotaDimension, QuotaRequest

from ..constants import (
    MUSIC_DEFAULT_DURATION_MS,
    MUSIC_MAX_DURATION_MS,
    MUSIC_MAX_PROMPT_LENGTH,
    MUSIC_MIN_DURATION_MS,
)
from ..errors import ValidationError
from ..models.generation import MusicResult
from ..providers import MusicRequest, ProviderName, ProviderResult
from .generation_ledger import RecordKind
from .pipeline import ArtifactUpload, GenerationJob, RunContext, retrieval_url
from .validation import require_text


class MusicJob(GenerationJob):
    """Compose a track.

    Minimax writes lyrics itself when none are given; the lyrics it used
    come back in the result metadata and are stored on the record.
    """

    kind = RecordKind.MUSIC
    feature = "music"
    event_name = "music_generated"

    def __init__(
        self,
        prompt: str,
        provider: ProviderName = ProviderName.ELEVENLABS,
        duration_ms: int = MUSIC_DEFAULT_DURATION_MS,
        instrumental: bool = False,
        lyrics: str | None = None,
    ):
        self.prompt = prompt
        self.provider = provider
        self.duration_ms = duration_ms
        self.instrumental = instrumental
        self.lyrics = (lyrics or "").strip() or None

    def validate(self) -> None:
        self.prompt = require_text(self.prompt, "Prompt", MUSIC_MAX_PROMPT_LENGTH)
        if not MUSIC_MIN_DURATION_MS <= self.duration_ms <= MUSIC_MAX_DURATION_MS:
            raise ValidationError(
                f"Duration must be between {MUSIC_MIN_DURATION_MS} and "
                f"{MUSIC_MAX_DURATION_MS} milliseconds"
            )

    def quota_requests(self) -> list[QuotaRequest]:
        return [QuotaRequest(QuotaDimension.MUSIC_GENERATIONS, 1)]

    def provider_request(self) -> MusicRequest:
        return MusicRequest(
            prompt=self.prompt,
            duration_ms=self.duration_ms,
            instrumental=self.instrumental,
            lyrics=self.lyrics,
        )

    def artifacts(self, result: ProviderResult) -> list[ArtifactUpload]:
        return [ArtifactUpload("audio", result.content, content_type=result.content_type)]

    def build_record(
        self,
        ctx: RunContext,
        result: ProviderResult,
        stored: dict[str, StoredArtifact],
    ) -> MusicGeneration:
        audio = stored["audio"]
        return MusicGeneration(
            record_id=ctx.record_id,
            user_id=ctx.user_id,
            audio_path=audio.path,
            audio_file_id=audio.file_id,
            prompt=self.prompt,
            lyrics=result.metadata.get("lyrics") or self.lyrics,
            provider=self.provider.value,
            instrumental=self.instrumental,
            duration_ms=int(result.metadata.get("duration_ms") or self.duration_ms),
            created_at=ctx.created_at,
            updated_at=ctx.created_at,
        )

    def event_properties(self, ctx: RunContext, result: ProviderResult, record: MusicGeneration) -> dict:
        return {
            "recordId": str(ctx.record_id),
            "provider": self.provider.value,
            "durationMs": record.duration_ms,
            "instrumental": self.instrumental,
        }

    def build_response(self, ctx: RunContext, result: ProviderResult, record: MusicGeneration) -> MusicResult:
        return MusicResult(
            record_id=ctx.record_id,
            audio_url=retrieval_url(self.kind, ctx.record_id),
            provider=self.provider.value,
            duration_ms=record.duration_ms,
            lyrics=record.lyrics,
        )
