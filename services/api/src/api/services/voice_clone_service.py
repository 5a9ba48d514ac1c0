"""Instant voice cloning from uploaded samples."""

from shared.blob import StoredArtifact, content_type_for, extension_for
from shared.db.models import ClonedVoice
from shared.quota import QuotaDimension, QuotaRequest

from ..constants import VOICE_CLONE_FORMATS, VOICE_CLONE_MAX_SAMPLE_SIZE, VOICE_CLONE_MAX_SAMPLES
from ..errors import ProviderError, ValidationError
from ..models.generation import VoiceCloneResult
from ..providers import ProviderName, ProviderResult, UploadedFile, VoiceCloneRequest
from .generation_ledger import RecordKind
from .pipeline import ArtifactUpload, GenerationJob, RunContext
from .validation import require_file, require_text


class VoiceCloneJob(GenerationJob):
    """Create a voice from samples and keep the samples in storage."""

    kind = RecordKind.VOICES
    feature = "voice_clone"
    event_name = "voice_cloned"
    provider = ProviderName.ELEVENLABS

    def __init__(self, name: str, files: list[UploadedFile], description: str | None = None):
        self.name = name
        self.files = files
        self.description = (description or "").strip() or None

    def validate(self) -> None:
        self.name = require_text(self.name, "Voice name", 100)
        if not self.files:
            raise ValidationError("At least one audio sample is required")
        if len(self.files) > VOICE_CLONE_MAX_SAMPLES:
            raise ValidationError(f"At most {VOICE_CLONE_MAX_SAMPLES} samples are allowed")
        for sample in self.files:
            require_file(sample, VOICE_CLONE_MAX_SAMPLE_SIZE, VOICE_CLONE_FORMATS, label="Sample")

    def quota_requests(self) -> list[QuotaRequest]:
        return [QuotaRequest(QuotaDimension.CLONED_VOICES, 1)]

    def provider_request(self) -> VoiceCloneRequest:
        return VoiceCloneRequest(
            name=self.name,
            files=tuple(self.files),
            description=self.description,
        )

    def artifacts(self, result: ProviderResult) -> list[ArtifactUpload]:
        if not result.metadata.get("voice_id"):
            raise ProviderError(self.provider.value, "ElevenLabs did not return a voice id")
        uploads = []
        for index, sample in enumerate(self.files, start=1):
            extension = extension_for(sample.file_name)
            uploads.append(
                ArtifactUpload(
                    f"sample{index}",
                    sample.content,
                    extension=extension,
                    content_type=content_type_for(extension),
                    suffix=f"sample{index}",
                )
            )
        return uploads

    def build_record(
        self,
        ctx: RunContext,
        result: ProviderResult,
        stored: dict[str, StoredArtifact],
    ) -> ClonedVoice:
        samples = [stored[f"sample{index}"] for index in range(1, len(self.files) + 1)]
        return ClonedVoice(
            record_id=ctx.record_id,
            user_id=ctx.user_id,
            audio_path=samples[0].path,
            audio_file_id=samples[0].file_id,
            voice_id=result.metadata["voice_id"],
            name=self.name,
            description=self.description,
            samples=[{"path": s.path, "file_id": s.file_id} for s in samples],
            created_at=ctx.created_at,
            updated_at=ctx.created_at,
        )

    def event_properties(self, ctx: RunContext, result: ProviderResult, record: ClonedVoice) -> dict:
        return {
            "recordId": str(ctx.record_id),
            "voiceId": record.voice_id,
            "sampleCount": len(self.files),
        }

    def build_response(self, ctx: RunContext, result: ProviderResult, record: ClonedVoice) -> VoiceCloneResult:
        return VoiceCloneResult(
            record_id=ctx.record_id,
            voice_id=record.voice_id,
            name=record.name,
            sample_count=len(self.files),
        )
