"""Provider-neutral request and result types and the client base class."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

from shared.logging import get_logger

from ..constants import (
    STT_MODEL,
    TTS_DEFAULT_MODEL,
    TTS_DEFAULT_SIMILARITY_BOOST,
    TTS_DEFAULT_STABILITY,
    VOICE_CHANGER_MODEL,
    VOICE_CHANGER_OUTPUT_FORMAT,
)
from ..errors import ProviderError

logger = get_logger(__name__)


class ProviderName(str, Enum):
    """External generation providers."""

    ELEVENLABS = "elevenlabs"
    MINIMAX = "minimax"
    NOIZ = "noiz"


@dataclass(frozen=True)
class UploadedFile:
    """A file received from the caller and forwarded to a provider."""

    file_name: str
    content: bytes = field(repr=False)
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)

    def as_multipart(self) -> tuple[str, bytes, str]:
        return (self.file_name, self.content, self.content_type)


@dataclass(frozen=True)
class SpeechRequest:
    text: str
    voice_id: str
    model_id: str = TTS_DEFAULT_MODEL
    stability: float = TTS_DEFAULT_STABILITY
    similarity_boost: float = TTS_DEFAULT_SIMILARITY_BOOST
    emotion: str | None = None


@dataclass(frozen=True)
class TranscriptionRequest:
    file: UploadedFile
    model_id: str = STT_MODEL
    language_code: str | None = None
    tag_audio_events: bool = True
    diarize: bool = False
    keyterms: tuple[str, ...] = ()


@dataclass(frozen=True)
class SoundEffectRequest:
    text: str
    prompt_influence: float
    duration_seconds: float | None = None


@dataclass(frozen=True)
class MusicRequest:
    prompt: str
    duration_ms: int
    instrumental: bool = False
    lyrics: str | None = None


@dataclass(frozen=True)
class VoiceIsolationRequest:
    file: UploadedFile


@dataclass(frozen=True)
class VoiceConversionRequest:
    file: UploadedFile
    voice_id: str
    model_id: str = VOICE_CHANGER_MODEL
    voice_settings: dict[str, Any] = field(default_factory=dict)
    remove_background_noise: bool = False
    output_format: str = VOICE_CHANGER_OUTPUT_FORMAT


@dataclass(frozen=True)
class DialogueLine:
    text: str
    voice_id: str


@dataclass(frozen=True)
class DialogueRequest:
    inputs: tuple[DialogueLine, ...]


@dataclass(frozen=True)
class DubbingRequest:
    file: UploadedFile
    name: str
    target_languages: tuple[str, ...]
    source_language: str | None = None
    num_speakers: int = 0


@dataclass(frozen=True)
class DubbingStatusRequest:
    dubbing_id: str


@dataclass(frozen=True)
class DubbedAudioRequest:
    """Fetch the finished dub of a project for one target language."""

    dubbing_id: str
    language_code: str


@dataclass(frozen=True)
class VoiceCloneRequest:
    name: str
    files: tuple[UploadedFile, ...]
    description: str | None = None


ProviderRequest = (
    SpeechRequest
    | TranscriptionRequest
    | SoundEffectRequest
    | MusicRequest
    | VoiceIsolationRequest
    | VoiceConversionRequest
    | DialogueRequest
    | DubbingRequest
    | DubbingStatusRequest
    | DubbedAudioRequest
    | VoiceCloneRequest
)


@dataclass
class ProviderResult:
    """Raw output of a provider call.

    ``content`` is empty for operations that only return metadata
    (transcription, dubbing submission, voice cloning).
    """

    content: bytes = field(default=b"", repr=False)
    content_type: str = "audio/mpeg"
    metadata: dict[str, Any] = field(default_factory=dict)


Handler = Callable[[Any], Awaitable[ProviderResult]]


class BaseProvider(ABC):
    """HTTP client for one provider.

    Subclasses map request types to handler coroutines. The client never
    retries: non-2xx responses, timeouts and transport failures all
    become ``ProviderError``.
    """

    name: ProviderName
    display_name: str
    api_key_env: str

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the provider client.

        Args:
            api_key: Provider API key.
            base_url: API base URL without trailing slash.
            timeout: Request timeout in seconds.
            client: Optional preconfigured HTTP client.
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    @abstractmethod
    def handlers(self) -> dict[type, Handler]:
        """Request type to handler mapping."""

    def supports(self, request: ProviderRequest) -> bool:
        return type(request) in self.handlers()

    async def invoke(self, request: ProviderRequest) -> ProviderResult:
        """Run one request against the provider.

        Raises:
            ProviderError: On unsupported requests, missing credentials,
                non-2xx responses, timeouts and transport failures.
        """
        handler = self.handlers().get(type(request))
        if handler is None:
            raise ProviderError(
                self.name.value,
                f"{self.display_name} does not support {type(request).__name__}",
                upstream_status=400,
            )
        if not self.api_key:
            raise ProviderError(
                self.name.value,
                f"Missing {self.api_key_env} environment variable",
            )

        try:
            return await handler(request)
        except httpx.TimeoutException as e:
            raise ProviderError(
                self.name.value,
                f"{self.display_name} request timed out",
                upstream_status=504,
            ) from e
        except httpx.TransportError as e:
            raise ProviderError(
                self.name.value,
                f"{self.display_name} request failed: {e}",
            ) from e

    def check_response(self, response: httpx.Response) -> None:
        """Convert a non-2xx response into a ProviderError."""
        if response.is_success:
            return
        body = response.text
        logger.warning(
            "Provider returned error status",
            provider=self.name.value,
            status_code=response.status_code,
            url=str(response.request.url),
        )
        raise ProviderError(
            self.name.value,
            f"{self.display_name} API error ({response.status_code}): {body}",
            upstream_status=response.status_code,
            body=body,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
