"""Text-to-speech generation."""

from shared.blob import StoredArtifact
from shared.db.models import Generation
from shared.quota import QuotaDimension, QuotaRequest

from ..constants import (
    TTS_DEFAULT_MODEL,
    TTS_DEFAULT_SIMILARITY_BOOST,
    TTS_DEFAULT_STABILITY,
    TTS_MAX_TEXT_LENGTH,
)
from ..models.generation import SpeechResult
from ..providers import ProviderName, ProviderResult, SpeechRequest
from .generation_ledger import RecordKind
from .pipeline import ArtifactUpload, GenerationJob, RunContext, retrieval_url
from .validation import require_range, require_text


class TextToSpeechJob(GenerationJob):
    """Synthesize one text with one voice.

    Charges one generation plus one character per input character.
    """

    kind = RecordKind.TTS
    feature = "tts"
    event_name = "generation_created"

    def __init__(
        self,
        text: str,
        voice_id: str,
        provider: ProviderName = ProviderName.ELEVENLABS,
        model_id: str = TTS_DEFAULT_MODEL,
        stability: float = TTS_DEFAULT_STABILITY,
        similarity_boost: float = TTS_DEFAULT_SIMILARITY_BOOST,
        emotion: str | None = None,
    ):
        self.text = text
        self.voice_id = voice_id
        self.provider = provider
        self.model_id = model_id
        self.stability = stability
        self.similarity_boost = similarity_boost
        self.emotion = emotion

    def validate(self) -> None:
        self.text = require_text(self.text, "Text", TTS_MAX_TEXT_LENGTH)
        self.voice_id = require_text(self.voice_id, "Voice ID")
        require_range(self.stability, "Stability", 0, 1)
        require_range(self.similarity_boost, "Similarity boost", 0, 1)

    @property
    def character_count(self) -> int:
        return len(self.text)

    def quota_requests(self) -> list[QuotaRequest]:
        return [
            QuotaRequest(QuotaDimension.GENERATIONS, 1),
            QuotaRequest(QuotaDimension.CHARACTERS, self.character_count),
        ]

    def provider_request(self) -> SpeechRequest:
        return SpeechRequest(
            text=self.text,
            voice_id=self.voice_id,
            model_id=self.model_id,
            stability=self.stability,
            similarity_boost=self.similarity_boost,
            emotion=self.emotion,
        )

    def artifacts(self, result: ProviderResult) -> list[ArtifactUpload]:
        return [ArtifactUpload("audio", result.content, content_type=result.content_type)]

    def build_record(
        self,
        ctx: RunContext,
        result: ProviderResult,
        stored: dict[str, StoredArtifact],
    ) -> Generation:
        audio = stored["audio"]
        return Generation(
            record_id=ctx.record_id,
            user_id=ctx.user_id,
            audio_path=audio.path,
            audio_file_id=audio.file_id,
            text=self.text,
            voice_id=result.metadata.get("voice_id", self.voice_id),
            provider=self.provider.value,
            model_id=result.metadata.get("model_id", self.model_id),
            stability=self.stability,
            similarity_boost=self.similarity_boost,
            character_count=self.character_count,
            duration_seconds=result.metadata.get("duration_seconds"),
            created_at=ctx.created_at,
            updated_at=ctx.created_at,
        )

    def event_properties(self, ctx: RunContext, result: ProviderResult, record: Generation) -> dict:
        return {
            "recordId": str(ctx.record_id),
            "provider": self.provider.value,
            "voiceId": record.voice_id,
            "characterCount": self.character_count,
        }

    def build_response(self, ctx: RunContext, result: ProviderResult, record: Generation) -> SpeechResult:
        return SpeechResult(
            record_id=ctx.record_id,
            audio_url=retrieval_url(self.kind, ctx.record_id),
            provider=self.provider.value,
            voice_id=record.voice_id,
            character_count=self.character_count,
            duration_seconds=record.duration_seconds,
        )
