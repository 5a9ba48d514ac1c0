"""Multi-speaker text-to-dialogue."""

from dataclasses import dataclass

from shared.blob import StoredArtifact
from shared.db.models import DialogueGeneration
from shared.quota import QuotaDimension, QuotaRequest

from ..constants import (
    DIALOGUE_CHARS_PER_WORD,
    DIALOGUE_MAX_CHARS_PER_LINE,
    DIALOGUE_MAX_LINES,
    DIALOGUE_MAX_TOTAL_CHARS,
    DIALOGUE_WORDS_PER_MINUTE,
)
from ..errors import ValidationError
from ..models.generation import DialogueResult
from ..providers import DialogueLine, DialogueRequest, ProviderName, ProviderResult
from .generation_ledger import RecordKind
from .pipeline import ArtifactUpload, GenerationJob, RunContext, retrieval_url

DEFAULT_TITLE = "Untitled dialogue"


def estimate_dialogue_seconds(total_chars: int) -> float:
    """Spoken length at 150 words per minute and 5 characters per word."""
    words = total_chars / DIALOGUE_CHARS_PER_WORD
    return words / DIALOGUE_WORDS_PER_MINUTE * 60


@dataclass
class DialogueInput:
    text: str
    voice_id: str


class DialogueJob(GenerationJob):
    """Render an ordered list of lines, each with its own voice, to one file.

    Charges one dialogue generation and the total character count; both
    must fit before anything is charged.
    """

    kind = RecordKind.DIALOGUE
    feature = "text_to_dialogue"
    event_name = "dialogue_generated"
    provider = ProviderName.ELEVENLABS

    def __init__(self, inputs: list[DialogueInput], title: str | None = None):
        self.inputs = inputs
        self.title = (title or "").strip() or DEFAULT_TITLE

    def validate(self) -> None:
        if not self.inputs:
            raise ValidationError("At least one dialogue line is required")
        if len(self.inputs) > DIALOGUE_MAX_LINES:
            raise ValidationError(f"At most {DIALOGUE_MAX_LINES} dialogue lines are allowed")

        cleaned = []
        for index, line in enumerate(self.inputs, start=1):
            text = (line.text or "").strip()
            voice_id = (line.voice_id or "").strip()
            if not text:
                raise ValidationError(f"Line {index}: text is required")
            if not voice_id:
                raise ValidationError(f"Line {index}: voice ID is required")
            if len(text) > DIALOGUE_MAX_CHARS_PER_LINE:
                raise ValidationError(
                    f"Line {index}: text must be at most {DIALOGUE_MAX_CHARS_PER_LINE} characters"
                )
            cleaned.append(DialogueInput(text=text, voice_id=voice_id))
        self.inputs = cleaned

        if self.total_characters > DIALOGUE_MAX_TOTAL_CHARS:
            raise ValidationError(
                f"Dialogue must be at most {DIALOGUE_MAX_TOTAL_CHARS} characters in total"
            )

    @property
    def total_characters(self) -> int:
        return sum(len(line.text) for line in self.inputs)

    def quota_requests(self) -> list[QuotaRequest]:
        return [
            QuotaRequest(QuotaDimension.DIALOGUE_GENERATIONS, 1),
            QuotaRequest(QuotaDimension.DIALOGUE_CHARACTERS, self.total_characters),
        ]

    def provider_request(self) -> DialogueRequest:
        return DialogueRequest(
            inputs=tuple(DialogueLine(text=line.text, voice_id=line.voice_id) for line in self.inputs)
        )

    def artifacts(self, result: ProviderResult) -> list[ArtifactUpload]:
        return [ArtifactUpload("audio", result.content, content_type=result.content_type)]

    def build_record(
        self,
        ctx: RunContext,
        result: ProviderResult,
        stored: dict[str, StoredArtifact],
    ) -> DialogueGeneration:
        audio = stored["audio"]
        return DialogueGeneration(
            record_id=ctx.record_id,
            user_id=ctx.user_id,
            audio_path=audio.path,
            audio_file_id=audio.file_id,
            title=self.title,
            inputs=[{"text": line.text, "voice_id": line.voice_id} for line in self.inputs],
            character_count=self.total_characters,
            duration_seconds=estimate_dialogue_seconds(self.total_characters),
            created_at=ctx.created_at,
            updated_at=ctx.created_at,
        )

    def event_properties(self, ctx: RunContext, result: ProviderResult, record: DialogueGeneration) -> dict:
        return {
            "recordId": str(ctx.record_id),
            "lineCount": len(self.inputs),
            "characterCount": self.total_characters,
            "voiceCount": len({line.voice_id for line in self.inputs}),
        }

    def build_response(
        self, ctx: RunContext, result: ProviderResult, record: DialogueGeneration
    ) -> DialogueResult:
        return DialogueResult(
            record_id=ctx.record_id,
            audio_url=retrieval_url(self.kind, ctx.record_id),
            character_count=record.character_count,
            duration_seconds=record.duration_seconds,
        )
