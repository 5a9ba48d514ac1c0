"""Dubbing projects.

The provider dubs asynchronously: the pipeline run submits the source
media, stores it, and records the provider's dubbing id. Status is
refreshed later through ``LibraryService.refresh_dubbing_status``.
"""

from shared.blob import StoredArtifact, content_type_for, extension_for
from shared.db.models import DubbingProject
from shared.quota import QuotaDimension, QuotaRequest

from ..constants import DUBBING_FORMATS, DUBBING_MAX_FILE_SIZE
from ..errors import ProviderError, ValidationError
from ..models.generation import DubbingResult
from ..providers import DubbingRequest, ProviderName, ProviderResult, UploadedFile
from .generation_ledger import RecordKind
from .pipeline import ArtifactUpload, GenerationJob, RunContext
from .validation import estimate_seconds_from_size, require_file

# Provider statuses a project can be in
DUBBING_STATUSES = ("pending", "dubbing", "dubbed", "failed")


class DubbingJob(GenerationJob):
    kind = RecordKind.DUBBING
    feature = "dubbing"
    event_name = "dubbing_created"
    provider = ProviderName.ELEVENLABS

    def __init__(
        self,
        file: UploadedFile | None,
        target_languages: list[str],
        source_language: str | None = None,
        name: str | None = None,
        num_speakers: int = 0,
    ):
        self.file = file
        self.target_languages = [lang.strip() for lang in target_languages if lang and lang.strip()]
        self.source_language = (source_language or "").strip() or None
        self.name = (name or "").strip()
        self.num_speakers = num_speakers

    def validate(self) -> None:
        self.file = require_file(self.file, DUBBING_MAX_FILE_SIZE, DUBBING_FORMATS, label="Media file")
        if not self.target_languages:
            raise ValidationError("At least one target language is required")
        if self.num_speakers < 0:
            raise ValidationError("Number of speakers cannot be negative")
        if not self.name:
            self.name = self.file.file_name.rsplit(".", 1)[0] or "Untitled dubbing"

    def quota_requests(self) -> list[QuotaRequest]:
        return [QuotaRequest(QuotaDimension.DUBBINGS, 1)]

    def provider_request(self) -> DubbingRequest:
        return DubbingRequest(
            file=self.file,
            name=self.name,
            target_languages=tuple(self.target_languages),
            source_language=self.source_language,
            num_speakers=self.num_speakers,
        )

    def duration_seconds(self, result: ProviderResult) -> float:
        """Provider's expected duration, else a size-based estimate of the source."""
        expected = result.metadata.get("expected_duration_sec")
        if expected:
            return float(expected)
        return estimate_seconds_from_size(self.file.size)

    def measured_quota_requests(self, result: ProviderResult) -> list[QuotaRequest]:
        if not result.metadata.get("dubbing_id"):
            raise ProviderError(self.provider.value, "ElevenLabs did not return a dubbing id")
        return [QuotaRequest(QuotaDimension.DUBBING_MINUTES, self.duration_seconds(result) / 60)]

    def artifacts(self, result: ProviderResult) -> list[ArtifactUpload]:
        extension = extension_for(self.file.file_name)
        return [
            ArtifactUpload(
                "original",
                self.file.content,
                extension=extension,
                content_type=content_type_for(extension),
                suffix="original",
            )
        ]

    def build_record(
        self,
        ctx: RunContext,
        result: ProviderResult,
        stored: dict[str, StoredArtifact],
    ) -> DubbingProject:
        original = stored["original"]
        return DubbingProject(
            record_id=ctx.record_id,
            user_id=ctx.user_id,
            audio_path=original.path,
            audio_file_id=original.file_id,
            dubbing_id=result.metadata["dubbing_id"],
            name=self.name,
            file_name=self.file.file_name,
            source_language=self.source_language or "auto",
            target_languages=self.target_languages,
            status="dubbing",
            expected_duration_seconds=self.duration_seconds(result),
            created_at=ctx.created_at,
            updated_at=ctx.created_at,
        )

    def event_properties(self, ctx: RunContext, result: ProviderResult, record: DubbingProject) -> dict:
        return {
            "recordId": str(ctx.record_id),
            "dubbingId": record.dubbing_id,
            "targetLanguages": ",".join(self.target_languages),
            "durationSeconds": record.expected_duration_seconds,
        }

    def build_response(self, ctx: RunContext, result: ProviderResult, record: DubbingProject) -> DubbingResult:
        return DubbingResult(
            record_id=ctx.record_id,
            dubbing_id=record.dubbing_id,
            status=record.status,
            target_languages=record.target_languages,
            expected_duration_seconds=record.expected_duration_seconds,
        )
