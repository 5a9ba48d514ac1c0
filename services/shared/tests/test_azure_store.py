"""Tests for the Azure Blob artifact store with a mocked service client."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError

from shared.blob import ArtifactKey, ArtifactKind, ArtifactNotFoundError, ArtifactStoreError
from shared.blob.client import AzureBlobArtifactStore, create_async_blob_service_client


@pytest.fixture
def blob_client():
    blob = MagicMock()
    blob.url = "https://acct.blob.core.windows.net/artifacts/audio/u1/2026/03/g1.mp3"
    blob.upload_blob = AsyncMock(return_value={"etag": '"0x8DC"'})
    blob.delete_blob = AsyncMock()
    return blob


@pytest.fixture
def service_client(blob_client):
    container = MagicMock()
    container.create_container = AsyncMock(side_effect=ResourceExistsError("exists"))
    client = MagicMock()
    client.get_container_client.return_value = container
    client.get_blob_client.return_value = blob_client
    client.close = AsyncMock()
    return client


@pytest.fixture
def store(service_client):
    return AzureBlobArtifactStore(container_name="artifacts", client=service_client)


KEY = ArtifactKey(
    ArtifactKind.AUDIO, "u1", "g1", created_at=datetime(2026, 3, 1, tzinfo=timezone.utc)
)


class TestAzureUpload:
    """Tests for uploads."""

    @pytest.mark.asyncio
    async def test_upload_uses_etag_as_file_id(self, store, service_client, blob_client):
        stored = await store.upload(KEY, b"abc", content_type="audio/mpeg")

        service_client.get_blob_client.assert_called_with("artifacts", "audio/u1/2026/03/g1.mp3")
        assert stored.path == "audio/u1/2026/03/g1.mp3"
        assert stored.file_id == '"0x8DC"'
        assert stored.size == 3
        assert blob_client.upload_blob.await_args.kwargs["overwrite"] is True

    @pytest.mark.asyncio
    async def test_existing_container_is_reused(self, store, service_client):
        """An existing container is not an error and is only checked once."""
        await store.upload(KEY, b"a")
        await store.upload(KEY, b"b")
        container = service_client.get_container_client.return_value
        assert container.create_container.await_count == 1

    @pytest.mark.asyncio
    async def test_empty_payload_rejected(self, store, blob_client):
        with pytest.raises(ArtifactStoreError):
            await store.upload(KEY, b"")
        blob_client.upload_blob.assert_not_called()


class TestAzureDownloadAndRemove:
    """Tests for download and removal."""

    @pytest.mark.asyncio
    async def test_download(self, store, blob_client):
        downloader = MagicMock()
        downloader.readall = AsyncMock(return_value=b"wave")
        downloader.properties.content_settings.content_type = "audio/wav"
        blob_client.download_blob = AsyncMock(return_value=downloader)

        downloaded = await store.download("audio/u1/2026/03/g1.wav")
        assert downloaded.content == b"wave"
        assert downloaded.content_type == "audio/wav"
        assert downloaded.length == 4

    @pytest.mark.asyncio
    async def test_download_missing(self, store, blob_client):
        blob_client.download_blob = AsyncMock(side_effect=ResourceNotFoundError("gone"))
        with pytest.raises(ArtifactNotFoundError):
            await store.download("audio/u1/2026/03/g1.mp3")

    @pytest.mark.asyncio
    async def test_remove_missing_raises_and_delete_reports(self, store, blob_client):
        blob_client.delete_blob.side_effect = ResourceNotFoundError("gone")
        with pytest.raises(ArtifactNotFoundError):
            await store.remove("audio/u1/2026/03/g1.mp3")
        assert await store.delete("audio/u1/2026/03/g1.mp3") is False

    @pytest.mark.asyncio
    async def test_close_releases_client(self, store, service_client):
        await store.close()
        service_client.close.assert_awaited_once()


class TestServiceClientFactory:
    """Tests for create_async_blob_service_client."""

    def test_requires_connection_string(self):
        with pytest.raises(ArtifactStoreError, match="AZURE_STORAGE_CONNECTION_STRING"):
            create_async_blob_service_client()

    def test_managed_identity_requires_account_url(self):
        with pytest.raises(ArtifactStoreError, match="account_url"):
            create_async_blob_service_client(use_managed_identity=True)
