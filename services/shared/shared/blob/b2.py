"""Backblaze B2 artifact store using the native B2 API.

Flow: ``b2_authorize_account`` (HTTP Basic with key id and application
key) yields an API URL, a download URL and an account token. Uploads
fetch a one-off upload URL with ``b2_get_upload_url``. Deletes need a
file id; when the caller has none it is looked up with
``b2_list_file_versions``. The bucket is private, so downloads always
carry the account token. A request rejected with 401 re-authorizes once
and is retried, since account tokens expire after 24 hours.
"""

import hashlib
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..logging import get_logger
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

DEFAULT_API_URL = "https://api.backblazeb2.com"


@dataclass(frozen=True)
class B2Authorization:
    """Account authorization returned by b2_authorize_account."""

    api_url: str
    download_url: str
    authorization_token: str


def encode_file_name_for_header(file_name: str) -> str:
    """URL-encode a file name for the X-Bz-File-Name header."""
    return quote(file_name, safe="")


def encode_file_name_for_url_path(file_name: str) -> str:
    """URL-encode each path segment, keeping the slashes."""
    return "/".join(quote(segment, safe="") for segment in file_name.split("/"))


def compute_sha1(content: bytes) -> str:
    """Hex SHA-1 of the payload, as B2 expects in X-Bz-Content-Sha1."""
    return hashlib.sha1(content).hexdigest()


class B2ArtifactStore(ArtifactStore):
    """Artifact store backed by a private Backblaze B2 bucket."""

    def __init__(
        self,
        key_id: str,
        app_key: str,
        bucket_id: str,
        bucket_name: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the store.

        Args:
            key_id: B2 application key id.
            app_key: B2 application key.
            bucket_id: Id of the private bucket.
            bucket_name: Name of the private bucket (used in download URLs).
            api_url: Base URL for account authorization.
            timeout: HTTP timeout in seconds.
            client: Optional preconfigured HTTP client.
        """
        self._key_id = key_id
        self._app_key = app_key
        self._bucket_id = bucket_id
        self._bucket_name = bucket_name
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._client = client
        self._authorization: B2Authorization | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    def _require_config(self) -> None:
        missing = [
            name
            for name, value in (
                ("B2_KEY_ID", self._key_id),
                ("B2_APP_KEY", self._app_key),
                ("B2_BUCKET_ID", self._bucket_id),
                ("B2_BUCKET_NAME", self._bucket_name),
            )
            if not value
        ]
        if missing:
            raise ArtifactStoreError(
                f"Missing required environment variable: {missing[0]}",
                context={"missing": missing},
            )

    def _raise_for_status(self, response: httpx.Response, op: str, **context: Any) -> None:
        if response.is_success:
            return
        body = response.text
        if response.status_code == 401:
            # Account tokens expire after 24 hours
            self._authorization = None
        error_cls = ArtifactNotFoundError if response.status_code == 404 else ArtifactStoreError
        raise error_cls(
            f"Backblaze request failed ({response.status_code})",
            status_code=response.status_code,
            context={"op": op, "body": body, **context},
        )

    async def authorize(self) -> B2Authorization:
        """Authorize the account, reusing a cached token when present."""
        if self._authorization is not None:
            return self._authorization

        self._require_config()
        response = await self.client.get(
            f"{self._api_url}/b2api/v2/b2_authorize_account",
            auth=(self._key_id, self._app_key),
        )
        self._raise_for_status(response, "b2_authorize_account")

        payload = response.json()
        if not all(payload.get(k) for k in ("apiUrl", "downloadUrl", "authorizationToken")):
            raise ArtifactStoreError(
                "Unexpected Backblaze authorize response",
                context={"op": "b2_authorize_account"},
            )

        self._authorization = B2Authorization(
            api_url=payload["apiUrl"],
            download_url=payload["downloadUrl"],
            authorization_token=payload["authorizationToken"],
        )
        return self._authorization

    async def _send_authorized(
        self,
        send: Callable[[B2Authorization], Awaitable[httpx.Response]],
    ) -> httpx.Response:
        """Send with the account token, re-authorizing once on 401."""
        auth = await self.authorize()
        response = await send(auth)
        if response.status_code == 401:
            logger.info("Backblaze token rejected, re-authorizing")
            self._authorization = None
            auth = await self.authorize()
            response = await send(auth)
        return response

    async def _api_call(self, operation: str, body: dict[str, Any]) -> dict[str, Any]:
        response = await self._send_authorized(
            lambda auth: self.client.post(
                f"{auth.api_url}/b2api/v2/{operation}",
                headers={"Authorization": auth.authorization_token},
                json=body,
            )
        )
        self._raise_for_status(response, operation)
        return response.json()

    async def upload(
        self,
        key: ArtifactKey,
        content: bytes,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> StoredArtifact:
        """Upload bytes to ``key.path``.

        Raises:
            ArtifactStoreError: If the payload is empty or every attempt fails.
        """
        if not content:
            raise ArtifactStoreError("Cannot upload empty artifact", context={"path": key.path})

        stored = await self._upload_once(key.path, content, content_type)
        logger.info(
            "Artifact uploaded",
            path=stored.path,
            file_id=stored.file_id,
            size=stored.size,
        )
        return stored

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((ArtifactStoreError, httpx.TransportError)),
        reraise=True,
    )
    async def _upload_once(self, path: str, content: bytes, content_type: str) -> StoredArtifact:
        target = await self._api_call("b2_get_upload_url", {"bucketId": self._bucket_id})
        upload_url = target.get("uploadUrl")
        upload_token = target.get("authorizationToken")
        if not upload_url or not upload_token:
            raise ArtifactStoreError(
                "Unexpected Backblaze upload URL response",
                context={"op": "b2_get_upload_url"},
            )

        response = await self.client.post(
            upload_url,
            headers={
                "Authorization": upload_token,
                "X-Bz-File-Name": encode_file_name_for_header(path),
                "Content-Type": content_type,
                "X-Bz-Content-Sha1": compute_sha1(content),
            },
            content=content,
        )
        self._raise_for_status(response, "b2_upload_file", path=path)

        payload = response.json()
        auth = await self.authorize()
        return StoredArtifact(
            path=payload.get("fileName", path),
            file_id=payload.get("fileId"),
            url=self._file_url(auth, path),
            size=len(content),
            content_type=content_type,
        )

    def _file_url(self, auth: B2Authorization, path: str) -> str:
        return f"{auth.download_url}/file/{self._bucket_name}/{encode_file_name_for_url_path(path)}"

    async def download(self, path: str) -> DownloadedArtifact:
        response = await self._send_authorized(
            lambda auth: self.client.get(
                self._file_url(auth, path),
                headers={"Authorization": auth.authorization_token},
            )
        )
        self._raise_for_status(response, "b2_download_file_by_name", path=path)

        content = response.content
        return DownloadedArtifact(
            content=content,
            content_type=response.headers.get("content-type") or DEFAULT_CONTENT_TYPE,
            length=len(content),
        )

    async def find_file_id(self, path: str) -> str | None:
        """Look up the id of the newest version stored under ``path``."""
        payload = await self._api_call(
            "b2_list_file_versions",
            {"bucketId": self._bucket_id, "startFileName": path, "maxFileCount": 1},
        )
        files = payload.get("files") or []
        if not files or files[0].get("fileName") != path:
            return None
        return files[0].get("fileId")

    async def remove(self, path: str, file_id: str | None = None) -> None:
        if not file_id:
            file_id = await self.find_file_id(path)
            if not file_id:
                raise ArtifactNotFoundError(
                    "Backblaze file not found",
                    status_code=404,
                    context={"op": "b2_list_file_versions", "path": path},
                )

        await self._api_call("b2_delete_file_version", {"fileId": file_id, "fileName": path})

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
