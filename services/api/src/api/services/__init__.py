"""API services: ledgers, the generation pipeline and feature jobs."""

from .dialogue_service import DialogueInput, DialogueJob
from .dubbing_service import DubbingJob
from .generation_ledger import RECORD_SPECS, GenerationLedger, RecordKind, record_spec
from .library_service import LibraryService
from .music_service import MusicJob
from .pipeline import ArtifactUpload, GenerationJob, GenerationPipeline, RunContext, retrieval_url
from .quota_ledger import QuotaLedger, UsageSummary
from .sound_effect_service import SoundEffectJob
from .transcription_service import TranscriptionJob
from .tts_service import TextToSpeechJob
from .usage_service import UsageService
from .voice_clone_service import VoiceCloneJob
from .voice_conversion_service import VoiceConversionJob
from .voice_isolation_service import VoiceIsolationJob

__all__ = [
    "ArtifactUpload",
    "DialogueInput",
    "DialogueJob",
    "DubbingJob",
    "GenerationJob",
    "GenerationLedger",
    "GenerationPipeline",
    "LibraryService",
    "MusicJob",
    "QuotaLedger",
    "RECORD_SPECS",
    "RecordKind",
    "RunContext",
    "SoundEffectJob",
    "TextToSpeechJob",
    "TranscriptionJob",
    "UsageService",
    "UsageSummary",
    "VoiceCloneJob",
    "VoiceConversionJob",
    "VoiceIsolationJob",
    "record_spec",
    "retrieval_url",
]
