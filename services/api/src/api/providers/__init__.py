"""External generation provider clients."""

from .base import (
    BaseProvider,
    DialogueLine,
    DialogueRequest,
    DubbedAudioRequest,
    DubbingRequest,
    DubbingStatusRequest,
    MusicRequest,
    ProviderName,
    ProviderRequest,
    ProviderResult,
    SoundEffectRequest,
    SpeechRequest,
    TranscriptionRequest,
    UploadedFile,
    VoiceCloneRequest,
    VoiceConversionRequest,
    VoiceIsolationRequest,
)
from .elevenlabs import ElevenLabsProvider, resolve_voice_id
from .gateway import (
    ProviderGateway,
    close_provider_gateway,
    create_provider_gateway,
    get_provider_gateway,
)
from .minimax import MinimaxProvider
from .noiz import NoizProvider

__all__ = [
    "BaseProvider",
    "DialogueLine",
    "DialogueRequest",
    "DubbedAudioRequest",
    "DubbingRequest",
    "DubbingStatusRequest",
    "ElevenLabsProvider",
    "MinimaxProvider",
    "MusicRequest",
    "NoizProvider",
    "ProviderGateway",
    "ProviderName",
    "ProviderRequest",
    "ProviderResult",
    "SoundEffectRequest",
    "SpeechRequest",
    "TranscriptionRequest",
    "UploadedFile",
    "VoiceCloneRequest",
    "VoiceConversionRequest",
    "VoiceIsolationRequest",
    "close_provider_gateway",
    "create_provider_gateway",
    "get_provider_gateway",
    "resolve_voice_id",
]
