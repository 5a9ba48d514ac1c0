"""Azure Blob Storage artifact store and the configured store factory."""

from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError
from azure.identity.aio import DefaultAzureCredential
from azure.storage.blob import ContentSettings
from azure.storage.blob.aio import BlobServiceClient as AsyncBlobServiceClient
from tenacity import retry, stop_after_attempt, wait_exponential

from ..config import get_settings
from ..logging import get_logger
from .b2 import B2ArtifactStore
from .store import (
    DEFAULT_CONTENT_TYPE,
    ArtifactKey,
    ArtifactNotFoundError,
    ArtifactStore,
    ArtifactStoreError,
    DownloadedArtifact,
    StoredArtifact,
)

logger = get_logger(__name__)

DEFAULT_CONTAINER = "artifacts"


def create_async_blob_service_client(
    connection_string: str | None = None,
    use_managed_identity: bool = False,
    account_url: str | None = None,
) -> AsyncBlobServiceClient:
    """Create an async BlobServiceClient.

    Args:
        connection_string: Azure Storage connection string.
        use_managed_identity: If True, use DefaultAzureCredential.
        account_url: Storage account URL (required if using managed identity).

    Returns:
        AsyncBlobServiceClient instance.

    Raises:
        ArtifactStoreError: If neither credential form is configured.
    """
    if use_managed_identity:
        if not account_url:
            raise ArtifactStoreError("account_url is required when using managed identity")
        return AsyncBlobServiceClient(account_url, credential=DefaultAzureCredential())

    if not connection_string:
        raise ArtifactStoreError(
            "Missing required environment variable: AZURE_STORAGE_CONNECTION_STRING"
        )
    return AsyncBlobServiceClient.from_connection_string(connection_string)


class AzureBlobArtifactStore(ArtifactStore):
    """Artifact store backed by a private Azure Blob Storage container.

    The blob etag is reported as the artifact ``file_id``.
    """

    def __init__(
        self,
        container_name: str = DEFAULT_CONTAINER,
        connection_string: str | None = None,
        use_managed_identity: bool = False,
        account_url: str | None = None,
        client: AsyncBlobServiceClient | None = None,
    ):
        """Initialize the store.

        Args:
            container_name: Container holding all artifacts.
            connection_string: Azure Storage connection string.
            use_managed_identity: If True, use DefaultAzureCredential.
            account_url: Storage account URL (required if using managed identity).
            client: Optional preconfigured service client.
        """
        self._container_name = container_name
        self._connection_string = connection_string
        self._use_managed_identity = use_managed_identity
        self._account_url = account_url
        self._client = client
        self._container_ready = False

    @property
    def client(self) -> AsyncBlobServiceClient:
        """Get or create the blob service client."""
        if self._client is None:
            self._client = create_async_blob_service_client(
                connection_string=self._connection_string,
                use_managed_identity=self._use_managed_identity,
                account_url=self._account_url,
            )
        return self._client

    async def ensure_container(self) -> None:
        """Ensure the container exists, creating it if needed."""
        if self._container_ready:
            return
        container_client = self.client.get_container_client(self._container_name)
        try:
            await container_client.create_container()
        except ResourceExistsError:
            pass  # Container already exists
        self._container_ready = True

    async def upload(
        self,
        key: ArtifactKey,
        content: bytes,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> StoredArtifact:
        if not content:
            raise ArtifactStoreError("Cannot upload empty artifact", context={"path": key.path})

        stored = await self._upload_once(key.path, content, content_type)
        logger.info("Artifact uploaded", path=stored.path, size=stored.size)
        return stored

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def _upload_once(self, path: str, content: bytes, content_type: str) -> StoredArtifact:
        await self.ensure_container()
        blob_client = self.client.get_blob_client(self._container_name, path)
        result = await blob_client.upload_blob(
            content,
            content_settings=ContentSettings(content_type=content_type),
            overwrite=True,
        )
        return StoredArtifact(
            path=path,
            file_id=result.get("etag"),
            url=blob_client.url,
            size=len(content),
            content_type=content_type,
        )

    async def download(self, path: str) -> DownloadedArtifact:
        blob_client = self.client.get_blob_client(self._container_name, path)
        try:
            downloader = await blob_client.download_blob()
        except ResourceNotFoundError as e:
            raise ArtifactNotFoundError("Blob not found", status_code=404, context={"path": path}) from e

        content = await downloader.readall()
        content_type = downloader.properties.content_settings.content_type
        return DownloadedArtifact(
            content=content,
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            length=len(content),
        )

    async def remove(self, path: str, file_id: str | None = None) -> None:
        blob_client = self.client.get_blob_client(self._container_name, path)
        try:
            await blob_client.delete_blob()
        except ResourceNotFoundError as e:
            raise ArtifactNotFoundError("Blob not found", status_code=404, context={"path": path}) from e

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None


# Global artifact store instance
_artifact_store: ArtifactStore | None = None


def create_artifact_store() -> ArtifactStore:
    """Build the store selected by STORAGE_BACKEND."""
    settings = get_settings()
    if settings.storage.backend == "azure":
        azure = settings.azure_storage
        return AzureBlobArtifactStore(
            container_name=settings.storage.container,
            connection_string=azure.connection_string or None,
            use_managed_identity=azure.use_managed_identity,
            account_url=azure.account_url or None,
        )

    b2 = settings.b2
    return B2ArtifactStore(
        key_id=b2.key_id,
        app_key=b2.app_key,
        bucket_id=b2.bucket_id,
        bucket_name=b2.bucket_name,
        api_url=b2.api_url,
    )


def get_artifact_store() -> ArtifactStore:
    """Get the global artifact store instance."""
    global _artifact_store
    if _artifact_store is None:
        _artifact_store = create_artifact_store()
    return _artifact_store


async def close_artifact_store() -> None:
    """Close and forget the global artifact store."""
    global _artifact_store
    if _artifact_store is not None:
        await _artifact_store.close()
        _artifact_store = None
