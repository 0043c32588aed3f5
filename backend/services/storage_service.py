"""
Object storage for report images.

Two backends implement the same narrow interface:

- ``LocalObjectStorage`` writes files under ``UPLOAD_DIR`` (served by the app
  at ``UPLOAD_URL_PREFIX``). File I/O runs in a worker thread.
- ``CloudinaryStorage`` uploads through the ``cloudinary`` SDK, with its
  blocking calls pushed to a worker thread.

Routes get a backend through ``get_storage`` so tests can swap in a fake.
"""

import asyncio
import mimetypes
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import cloudinary
import cloudinary.uploader
import httpx
from cloudinary.exceptions import Error as CloudinaryError
from loguru import logger

from models.config import settings
from models.exceptions import (
    StorageUploadException,
    UploadTimeoutException,
    UpstreamDegradedException,
)


@dataclass(frozen=True)
class StoredObject:
    url: str
    public_id: str


@dataclass(frozen=True)
class DownloadedObject:
    data: bytes
    content_type: str


class ObjectStorage(Protocol):
    async def upload(
        self, data: bytes, folder: str, filename: str, content_type: str
    ) -> StoredObject:
        """
        Store ``data`` and return where it lives.

        Raises:
            UploadTimeoutException: If the backend did not answer in time
            StorageUploadException: On any other upload failure
        """
        ...

    async def destroy(self, public_id: str) -> None:
        """Delete a stored object. Raises on failure; callers decide whether to care."""
        ...

    async def download(self, url: str) -> DownloadedObject:
        """
        Fetch a stored object's bytes.

        Raises:
            UpstreamDegradedException: If the object cannot be fetched
        """
        ...


def _extension_for(filename: str, content_type: str) -> str:
    suffix = Path(filename).suffix.lower()
    if suffix:
        return suffix
    return mimetypes.guess_extension(content_type) or ""


async def _http_download(url: str, timeout: float) -> DownloadedObject:
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.get(url)
            response.raise_for_status()
    except httpx.HTTPError as e:
        raise UpstreamDegradedException(f"Could not download {url}: {e}") from e
    content_type = response.headers.get("content-type", "application/octet-stream")
    return DownloadedObject(
        data=response.content, content_type=content_type.split(";")[0].strip()
    )


class LocalObjectStorage:
    """Stores objects on the local filesystem."""

    def __init__(
        self,
        root: str | Path | None = None,
        url_prefix: str | None = None,
    ):
        self.root = Path(root or settings.UPLOAD_DIR)
        self.url_prefix = (url_prefix or settings.UPLOAD_URL_PREFIX).rstrip("/")

    def _path_for(self, public_id: str) -> Path:
        path = (self.root / public_id).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"Refusing to touch path outside storage root: {public_id}")
        return path

    async def upload(
        self, data: bytes, folder: str, filename: str, content_type: str
    ) -> StoredObject:
        public_id = f"{folder}/{uuid.uuid4().hex}{_extension_for(filename, content_type)}"
        path = self._path_for(public_id)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            raise StorageUploadException(f"Could not store {filename}: {e}") from e

        logger.debug(f"Stored {len(data)} bytes at {public_id}")
        return StoredObject(url=f"{self.url_prefix}/{public_id}", public_id=public_id)

    async def destroy(self, public_id: str) -> None:
        path = self._path_for(public_id)
        await asyncio.to_thread(path.unlink, missing_ok=True)
        logger.debug(f"Deleted stored object {public_id}")

    async def download(self, url: str) -> DownloadedObject:
        if not url.startswith(self.url_prefix + "/"):
            return await _http_download(url, settings.STORAGE_TIMEOUT_SECONDS)

        public_id = url[len(self.url_prefix) + 1 :]
        path = self._path_for(public_id)
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise UpstreamDegradedException(f"Could not read {public_id}: {e}") from e
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return DownloadedObject(data=data, content_type=content_type)


class CloudinaryStorage:
    """Stores objects in Cloudinary through the ``cloudinary`` SDK."""

    def __init__(
        self,
        cloud_name: str | None = None,
        api_key: str | None = None,
        api_secret: str | None = None,
        timeout: float | None = None,
    ):
        self.timeout = timeout or settings.STORAGE_TIMEOUT_SECONDS
        cloudinary.config(
            cloud_name=cloud_name or settings.CLOUDINARY_CLOUD_NAME,
            api_key=api_key or settings.CLOUDINARY_API_KEY,
            api_secret=api_secret or settings.CLOUDINARY_API_SECRET,
            secure=True,
        )

    async def upload(
        self, data: bytes, folder: str, filename: str, content_type: str
    ) -> StoredObject:
        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(
                    cloudinary.uploader.upload,
                    data,
                    folder=folder,
                    resource_type="image",
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.warning(
                f"Cloudinary upload of {filename} timed out after {self.timeout}s"
            )
            raise UploadTimeoutException() from e
        except CloudinaryError as e:
            raise StorageUploadException(f"Cloudinary rejected {filename}: {e}") from e

        return StoredObject(url=result["secure_url"], public_id=result["public_id"])

    async def destroy(self, public_id: str) -> None:
        result = await asyncio.to_thread(
            cloudinary.uploader.destroy, public_id, resource_type="image"
        )
        if result.get("result") not in ("ok", "not found"):
            raise StorageUploadException(
                f"Cloudinary could not delete {public_id}: {result.get('result')}"
            )

    async def download(self, url: str) -> DownloadedObject:
        return await _http_download(url, self.timeout)


def get_storage() -> ObjectStorage:
    """FastAPI dependency returning the configured storage backend."""
    if settings.STORAGE_BACKEND == "cloudinary":
        return CloudinaryStorage()
    return LocalObjectStorage()


async def destroy_quietly(storage: ObjectStorage, public_ids: list[str]) -> None:
    """
    Delete stored objects, logging and ignoring individual failures.

    Used for rollback and for cleanup after a report is deleted; a leftover
    object is preferable to failing the surrounding operation.
    """
    for public_id in public_ids:
        try:
            await storage.destroy(public_id)
        except Exception as e:
            logger.warning(f"Could not delete stored object {public_id}: {e}")
