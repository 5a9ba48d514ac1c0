"""Input checks shared by the feature jobs."""

from collections.abc import Iterable

from shared.blob import extension_for

from ..constants import ESTIMATE_BYTES_PER_SECOND, MB
from ..errors import ValidationError
from ..providers import ProviderName, UploadedFile


def require_text(value: str | None, field: str, max_length: int | None = None) -> str:
    """Return the stripped text or raise if it is empty or too long."""
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} is required")
    if max_length is not None and len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return text


def require_range(value: float, field: str, minimum: float, maximum: float) -> None:
    if not minimum <= value <= maximum:
        raise ValidationError(f"{field} must be between {minimum:g} and {maximum:g}")


def require_file(
    file: UploadedFile | None,
    max_size: int,
    formats: Iterable[str],
    label: str = "Audio file",
) -> UploadedFile:
    """Check presence, size and extension of an uploaded file.

    Raises:
        ValidationError: If the file is missing, empty, too large or of an
            unsupported format.
    """
    if file is None or file.size == 0:
        raise ValidationError(f"{label} is required")
    if file.size > max_size:
        raise ValidationError(f"{label} must be at most {max_size // MB} MB")
    allowed = tuple(formats)
    extension = extension_for(file.file_name, default="")
    if extension not in allowed:
        raise ValidationError(
            f"Unsupported file format '{extension or 'unknown'}'. Allowed: {', '.join(allowed)}"
        )
    return file


def parse_provider(
    value: str | ProviderName | None,
    default: ProviderName,
    allowed: Iterable[str] | None = None,
) -> ProviderName:
    """Map a request-supplied provider name onto the closed provider set."""
    if value is None or value == "":
        provider = default
    else:
        try:
            provider = ProviderName(value)
        except ValueError as e:
            raise ValidationError(f"Unknown provider: {value}") from e
    if allowed is not None and provider.value not in tuple(allowed):
        raise ValidationError(f"Provider {provider.value} is not supported for this feature")
    return provider


def estimate_seconds_from_size(byte_length: int) -> float:
    """Approximate audio length assuming a 128 kbps MP3."""
    return byte_length / ESTIMATE_BYTES_PER_SECOND
