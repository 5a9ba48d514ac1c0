"""Voice isolation: strip background noise from a recording."""

from shared.blob import StoredArtifact, content_type_for, extension_for
from shared.db.models import VoiceIsolation
from shared.quota import QuotaDimension, QuotaRequest

from ..constants import VOICE_ISOLATOR_FORMATS, VOICE_ISOLATOR_MAX_FILE_SIZE
from ..models.generation import VoiceIsolationResult
from ..providers import ProviderName, ProviderResult, UploadedFile, VoiceIsolationRequest
from .generation_ledger import RecordKind
from .pipeline import ArtifactUpload, GenerationJob, RunContext, retrieval_url
from .validation import estimate_seconds_from_size, require_file


class VoiceIsolationJob(GenerationJob):
    """Isolate speech and keep both the source and the cleaned audio.

    Minutes are estimated from the size of the isolated output.
    """

    kind = RecordKind.VOICE_ISOLATOR
    feature = "voice_isolator"
    event_name = "voice_isolation_created"
    provider = ProviderName.ELEVENLABS

    def __init__(self, file: UploadedFile | None):
        self.file = file

    def validate(self) -> None:
        self.file = require_file(self.file, VOICE_ISOLATOR_MAX_FILE_SIZE, VOICE_ISOLATOR_FORMATS)

    def quota_requests(self) -> list[QuotaRequest]:
        return [QuotaRequest(QuotaDimension.VOICE_ISOLATIONS, 1)]

    def provider_request(self) -> VoiceIsolationRequest:
        return VoiceIsolationRequest(file=self.file)

    def measured_quota_requests(self, result: ProviderResult) -> list[QuotaRequest]:
        seconds = estimate_seconds_from_size(len(result.content))
        return [QuotaRequest(QuotaDimension.VOICE_ISOLATION_MINUTES, seconds / 60)]

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
            ArtifactUpload("isolated", result.content, suffix="isolated"),
        ]

    def build_record(
        self,
        ctx: RunContext,
        result: ProviderResult,
        stored: dict[str, StoredArtifact],
    ) -> VoiceIsolation:
        return VoiceIsolation(
            record_id=ctx.record_id,
            user_id=ctx.user_id,
            audio_path=stored["isolated"].path,
            audio_file_id=stored["isolated"].file_id,
            original_audio_path=stored["original"].path,
            original_audio_file_id=stored["original"].file_id,
            file_name=self.file.file_name,
            duration_seconds=estimate_seconds_from_size(len(result.content)),
            created_at=ctx.created_at,
            updated_at=ctx.created_at,
        )

    def event_properties(self, ctx: RunContext, result: ProviderResult, record: VoiceIsolation) -> dict:
        return {
            "recordId": str(ctx.record_id),
            "durationSeconds": round(record.duration_seconds, 2),
            "fileSize": self.file.size,
        }

    def build_response(
        self, ctx: RunContext, result: ProviderResult, record: VoiceIsolation
    ) -> VoiceIsolationResult:
        url = retrieval_url(self.kind, ctx.record_id)
        return VoiceIsolationResult(
            record_id=ctx.record_id,
            audio_url=url,
            original_audio_url=f"{url}?variant=original",
            duration_seconds=record.duration_seconds,
        )
