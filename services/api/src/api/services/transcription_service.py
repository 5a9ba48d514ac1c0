"""Speech-to-text transcription."""

from typing import Any

from shared.blob import StoredArtifact, content_type_for, extension_for
from shared.db.models import Transcription
from shared.quota import QuotaDimension, QuotaRequest

from ..constants import STT_FORMATS, STT_MAX_FILE_SIZE, STT_MAX_KEYTERMS, STT_MODEL
from ..errors import ValidationError
from ..models.generation import TranscriptionResult
from ..providers import ProviderName, ProviderResult, TranscriptionRequest, UploadedFile
from .generation_ledger import RecordKind
from .pipeline import ArtifactUpload, GenerationJob, RunContext, retrieval_url
from .validation import require_file


def transcript_duration(words: list[dict[str, Any]]) -> float:
    """Audio length estimated from the end timestamp of the last word."""
    if not words:
        return 0.0
    return float(words[-1].get("end") or 0.0)


class TranscriptionJob(GenerationJob):
    """Transcribe an uploaded audio file.

    The transcription slot is charged up front; minutes are only known
    from the word timings the provider returns.
    """

    kind = RecordKind.STT
    feature = "stt"
    event_name = "transcription_created"
    provider = ProviderName.ELEVENLABS

    def __init__(
        self,
        file: UploadedFile | None,
        language_code: str | None = None,
        tag_audio_events: bool = True,
        diarize: bool = False,
        keyterms: list[str] | None = None,
        model_id: str = STT_MODEL,
    ):
        self.file = file
        self.language_code = language_code or None
        self.tag_audio_events = tag_audio_events
        self.diarize = diarize
        self.keyterms = [k.strip() for k in keyterms or [] if k and k.strip()]
        self.model_id = model_id

    def validate(self) -> None:
        self.file = require_file(self.file, STT_MAX_FILE_SIZE, STT_FORMATS)
        if len(self.keyterms) > STT_MAX_KEYTERMS:
            raise ValidationError(f"At most {STT_MAX_KEYTERMS} keyterms are allowed")

    def quota_requests(self) -> list[QuotaRequest]:
        return [QuotaRequest(QuotaDimension.TRANSCRIPTIONS, 1)]

    def provider_request(self) -> TranscriptionRequest:
        return TranscriptionRequest(
            file=self.file,
            model_id=self.model_id,
            language_code=self.language_code,
            tag_audio_events=self.tag_audio_events,
            diarize=self.diarize,
            keyterms=tuple(self.keyterms),
        )

    def measured_quota_requests(self, result: ProviderResult) -> list[QuotaRequest]:
        seconds = transcript_duration(result.metadata.get("words") or [])
        return [QuotaRequest(QuotaDimension.TRANSCRIPTION_MINUTES, seconds / 60)]

    def artifacts(self, result: ProviderResult) -> list[ArtifactUpload]:
        extension = extension_for(self.file.file_name)
        return [
            ArtifactUpload(
                "audio",
                self.file.content,
                extension=extension,
                content_type=content_type_for(extension),
            )
        ]

    def build_record(
        self,
        ctx: RunContext,
        result: ProviderResult,
        stored: dict[str, StoredArtifact],
    ) -> Transcription:
        audio = stored["audio"]
        words = result.metadata.get("words") or []
        return Transcription(
            record_id=ctx.record_id,
            user_id=ctx.user_id,
            audio_path=audio.path,
            audio_file_id=audio.file_id,
            file_name=self.file.file_name,
            model_id=self.model_id,
            language_code=result.metadata.get("language_code"),
            language_probability=result.metadata.get("language_probability"),
            text=result.metadata.get("text") or "",
            words=words,
            speakers=result.metadata.get("speakers") or [],
            keyterms=self.keyterms,
            duration_seconds=transcript_duration(words),
            created_at=ctx.created_at,
            updated_at=ctx.created_at,
        )

    def event_properties(self, ctx: RunContext, result: ProviderResult, record: Transcription) -> dict:
        return {
            "recordId": str(ctx.record_id),
            "languageCode": record.language_code,
            "durationSeconds": record.duration_seconds,
            "wordCount": len(record.words),
        }

    def build_response(
        self, ctx: RunContext, result: ProviderResult, record: Transcription
    ) -> TranscriptionResult:
        return TranscriptionResult(
            record_id=ctx.record_id,
            audio_url=retrieval_url(self.kind, ctx.record_id),
            text=record.text,
            language_code=record.language_code,
            language_probability=record.language_probability,
            words=record.words,
            speakers=record.speakers,
            duration_seconds=record.duration_seconds,
        )
