"""Helpers for multipart form input."""

import json

from fastapi import UploadFile

from ..constants import MB
from ..errors import ValidationError
from ..providers import UploadedFile


def _too_large(label: str, max_size: int) -> ValidationError:
    return ValidationError(f"{label} must be at most {max_size // MB} MB")


async def read_upload(
    upload: UploadFile | None,
    max_size: int | None = None,
    label: str = "Audio file",
) -> UploadedFile | None:
    """Read a multipart file into memory; None when no file was sent.

    Args:
        upload: The multipart file, if any.
        max_size: Byte limit. A declared size over the limit is rejected
            before reading, and at most ``max_size + 1`` bytes are read
            when the size is unknown.
        label: Field name used in the error message.

    Raises:
        ValidationError: If the file exceeds ``max_size``.
    """
    if upload is None or not upload.filename:
        return None
    if max_size is None:
        content = await upload.read()
    else:
        if upload.size is not None and upload.size > max_size:
            raise _too_large(label, max_size)
        content = await upload.read(max_size + 1)
        if len(content) > max_size:
            raise _too_large(label, max_size)
    return UploadedFile(
        file_name=upload.filename,
        content=content,
        content_type=upload.content_type or "application/octet-stream",
    )


def parse_list(value: str | None, field: str) -> list[str]:
    """Parse a JSON array or a comma-separated string into a list of strings."""
    if value is None or not value.strip():
        return []
    raw = value.strip()
    if raw.startswith("["):
        try:
            items = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValidationError(f"{field} must be a JSON array or comma-separated list") from e
        if not isinstance(items, list):
            raise ValidationError(f"{field} must be a list")
        return [str(item).strip() for item in items if str(item).strip()]
    return [item.strip() for item in raw.split(",") if item.strip()]
