"""Request and response models for the generation endpoints.

JSON bodies are only type-checked here; range and length rules live in
each job's ``validate()`` so every feature reports them the same way.
Multipart endpoints take their fields as form parameters in the routes.
"""

from typing import Any
from uuid import UUID

from pydantic import Field

from ..constants import (
    MUSIC_DEFAULT_DURATION_MS,
    SFX_DEFAULT_PROMPT_INFLUENCE,
    TTS_DEFAULT_MODEL,
    TTS_DEFAULT_SIMILARITY_BOOST,
    TTS_DEFAULT_STABILITY,
)
from .base import BaseRequest, BaseResponse


# ============================================================================
# Requests
# ============================================================================


class TextToSpeechBody(BaseRequest):
    """Text-to-speech request."""

    text: str = Field(description="Text to synthesize")
    voice_id: str = Field(description="Provider voice id or configured alias")
    provider: str | None = Field(default=None, description="elevenlabs, minimax or noiz")
    model_id: str = Field(default=TTS_DEFAULT_MODEL, description="Synthesis model")
    stability: float = Field(default=TTS_DEFAULT_STABILITY)
    similarity_boost: float = Field(default=TTS_DEFAULT_SIMILARITY_BOOST)
    emotion: str | None = Field(default=None, description="Minimax delivery hint")


class SoundEffectBody(BaseRequest):
    """Sound effect request."""

    text: str = Field(description="Description of the sound")
    duration_seconds: float | None = Field(default=None, description="Fixed length in seconds")
    prompt_influence: float = Field(default=SFX_DEFAULT_PROMPT_INFLUENCE)


class MusicBody(BaseRequest):
    """Music generation request."""

    prompt: str = Field(description="Style and content of the track")
    duration_ms: int = Field(default=MUSIC_DEFAULT_DURATION_MS, alias="musicLengthMs")
    force_instrumental: bool = Field(default=False)
    lyrics: str | None = Field(default=None, description="Lyrics; Minimax writes them when empty")
    provider: str | None = Field(default=None, description="elevenlabs or minimax")


class DialogueLineBody(BaseRequest):
    text: str
    voice_id: str


class DialogueBody(BaseRequest):
    """Text-to-dialogue request."""

    inputs: list[DialogueLineBody] = Field(description="Ordered dialogue lines")
    title: str | None = Field(default=None)


# ============================================================================
# Responses
# ============================================================================


class GenerationResultBase(BaseResponse):
    record_id: UUID | str = Field(description="Generation record id")
    audio_url: str = Field(description="Proxy URL serving the audio")


class SpeechResult(GenerationResultBase):
    provider: str
    voice_id: str
    character_count: int
    duration_seconds: float | None = None


class TranscriptionResult(GenerationResultBase):
    text: str
    language_code: str | None = None
    language_probability: float | None = None
    words: list[dict[str, Any]] = Field(default_factory=list)
    speakers: list[Any] = Field(default_factory=list)
    duration_seconds: float


class SoundEffectResult(GenerationResultBase):
    duration_seconds: float


class MusicResult(GenerationResultBase):
    provider: str
    duration_ms: int
    lyrics: str | None = None


class VoiceIsolationResult(GenerationResultBase):
    original_audio_url: str
    duration_seconds: float


class VoiceConversionResult(GenerationResultBase):
    original_audio_url: str
    voice_id: str
    duration_seconds: float


class DialogueResult(GenerationResultBase):
    character_count: int
    duration_seconds: float


class DubbingResult(BaseResponse):
    record_id: UUID | str
    dubbing_id: str
    status: str
    target_languages: list[str]
    expected_duration_seconds: float | None = None


class DubbingStatusResult(BaseResponse):
    record_id: UUID | str
    dubbing_id: str
    status: str


class VoiceCloneResult(BaseResponse):
    record_id: UUID | str
    voice_id: str
    name: str
    sample_count: int
