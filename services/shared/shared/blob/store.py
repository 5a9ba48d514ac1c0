"""Artifact storage contract and deterministic artifact paths."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID

from ..logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONTENT_TYPE = "audio/mpeg"
DEFAULT_EXTENSION = "mp3"

CONTENT_TYPES: dict[str, str] = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "m4a": "audio/mp4",
    "flac": "audio/flac",
    "ogg": "audio/ogg",
    "webm": "audio/webm",
    "mp4": "video/mp4",
    "avi": "video/x-msvideo",
    "mov": "video/quicktime",
    "mkv": "video/x-matroska",
}


class ArtifactKind(str, Enum):
    """Top-level path prefix per artifact family."""

    AUDIO = "audio"
    TRANSCRIPTS = "transcripts"
    SOUND_EFFECTS = "soundeffects"
    VOICE_ISOLATIONS = "voiceisolations"
    VOICE_CONVERSIONS = "voiceconversions"
    DIALOGUES = "dialogues"
    DUBBINGS = "dubbings"
    VOICES = "voices"


class ArtifactStoreError(Exception):
    """Storage backend failure."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.context = context or {}


class ArtifactNotFoundError(ArtifactStoreError):
    """No artifact exists at the requested path."""


def extension_for(file_name: str | None, default: str = DEFAULT_EXTENSION) -> str:
    """Lower-cased extension of a file name, or ``default``."""
    if not file_name or "." not in file_name:
        return default
    extension = file_name.rsplit(".", 1)[1].strip().lower()
    return extension or default


def content_type_for(extension: str) -> str:
    """MIME type for a file extension, defaulting to audio/mpeg."""
    return CONTENT_TYPES.get(extension.lower().lstrip("."), DEFAULT_CONTENT_TYPE)


def build_artifact_path(
    kind: ArtifactKind | str,
    user_id: str,
    record_id: UUID | str,
    extension: str = DEFAULT_EXTENSION,
    suffix: str | None = None,
    created_at: datetime | None = None,
) -> str:
    """Build the storage key ``<kind>/<user>/<YYYY>/<MM>/<record>[_<suffix>].<ext>``.

    The time bucket is the UTC year and zero-padded month. Keys never start
    with a slash.

    Args:
        kind: Artifact family prefix.
        user_id: External identity id of the owner.
        record_id: Id of the generation record the artifact belongs to.
        extension: File extension without the dot.
        suffix: Optional variant marker (e.g. "original", "isolated").
        created_at: Timestamp for the time bucket, defaults to now.

    Returns:
        The object storage key.
    """
    when = created_at or datetime.now(timezone.utc)
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    when = when.astimezone(timezone.utc)

    prefix = kind.value if isinstance(kind, ArtifactKind) else kind
    name = f"{record_id}_{suffix}" if suffix else str(record_id)
    ext = extension.lower().lstrip(".") or DEFAULT_EXTENSION
    return f"{prefix}/{user_id}/{when.year:04d}/{when.month:02d}/{name}.{ext}"


@dataclass(frozen=True)
class ArtifactKey:
    """The components an artifact path is derived from."""

    kind: ArtifactKind
    user_id: str
    record_id: UUID | str
    extension: str = DEFAULT_EXTENSION
    suffix: str | None = None
    created_at: datetime | None = None

    @property
    def path(self) -> str:
        return build_artifact_path(
            self.kind,
            self.user_id,
            self.record_id,
            extension=self.extension,
            suffix=self.suffix,
            created_at=self.created_at,
        )


@dataclass(frozen=True)
class StoredArtifact:
    """Result of a successful upload."""

    path: str
    file_id: str | None
    url: str
    size: int = 0
    content_type: str = DEFAULT_CONTENT_TYPE


@dataclass(frozen=True)
class DownloadedArtifact:
    """Artifact bytes with their metadata."""

    content: bytes = field(repr=False)
    content_type: str
    length: int


class ArtifactStore(ABC):
    """Object storage for generated artifacts.

    ``upload`` either returns a usable path or raises; no partially written
    artifact is ever reported as stored.
    """

    @abstractmethod
    async def upload(
        self,
        key: ArtifactKey,
        content: bytes,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> StoredArtifact:
        """Store bytes under the path derived from ``key``.

        Raises:
            ArtifactStoreError: If the payload is empty or the backend fails.
        """

    @abstractmethod
    async def download(self, path: str) -> DownloadedArtifact:
        """Fetch an artifact.

        Raises:
            ArtifactNotFoundError: If nothing is stored at ``path``.
            ArtifactStoreError: On backend failure.
        """

    @abstractmethod
    async def remove(self, path: str, file_id: str | None = None) -> None:
        """Delete an artifact, raising on failure.

        Raises:
            ArtifactNotFoundError: If nothing is stored at ``path``.
            ArtifactStoreError: On backend failure.
        """

    async def delete(self, path: str, file_id: str | None = None) -> bool:
        """Best-effort delete.

        Failures are logged and reported through the return value only.

        Returns:
            True if the artifact was deleted.
        """
        try:
            await self.remove(path, file_id)
        except Exception as e:
            logger.warning(
                "Artifact delete failed",
                path=path,
                file_id=file_id,
                error=str(e),
            )
            return False
        logger.info("Artifact deleted", path=path)
        return True

    async def close(self) -> None:
        """Release network resources held by the backend."""
