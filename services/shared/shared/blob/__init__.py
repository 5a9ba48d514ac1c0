"""Artifact storage module."""

from .b2 import B2ArtifactStore, B2Authorization
from .client import (
    AzureBlobArtifactStore,
    close_artifact_store,
    create_artifact_store,
    create_async_blob_service_client,
    get_artifact_store,
)
from .store import (
    CONTENT_TYPES,
    ArtifactKey,
    ArtifactKind,
    ArtifactNotFoundError,
    ArtifactStore,
    ArtifactStoreError,
    DownloadedArtifact,
    StoredArtifact,
    build_artifact_path,
    content_type_for,
    extension_for,
)

__all__ = [
    "ArtifactKey",
    "ArtifactKind",
    "ArtifactNotFoundError",
    "ArtifactStore",
    "ArtifactStoreError",
    "AzureBlobArtifactStore",
    "B2ArtifactStore",
    "B2Authorization",
    "CONTENT_TYPES",
    "DownloadedArtifact",
    "StoredArtifact",
    "build_artifact_path",
    "close_artifact_store",
    "content_type_for",
    "create_artifact_store",
    "create_async_blob_service_client",
    "extension_for",
    "get_artifact_store",
]
