# camfleet/services/blob_storage.py
"""
Blob storage for layout background images.

Backends:
  LocalBlobStorage: files under STORAGE_DIR/<bucket>/<path>, served by the app at /media
  HttpBlobStorage:  object storage REST API (Supabase-style endpoints) via httpx

Both raise StorageError with the backend's own message so the layout editor can
tell a policy denial from a transport failure.
"""

import os
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import urlparse, unquote
import httpx
from camfleet.config import settings
from camfleet.errors import StorageError
from camfleet.utils.logger import get_logger

logger = get_logger(__name__)


class BlobStorage(ABC):
    @abstractmethod
    async def upload(self, bucket: str, path: str, data: bytes,
                     content_type: Optional[str] = None) -> None: ...

    @abstractmethod
    def get_public_url(self, bucket: str, path: str) -> Optional[str]: ...

    @abstractmethod
    async def remove(self, bucket: str, paths: list[str]) -> None: ...


def object_path_from_url(url: Optional[str], bucket: str) -> Optional[str]:
    """Recover the object path inside `bucket` from a public URL, or None."""
    if not url:
        return None
    marker = f"/{bucket}/"
    path = unquote(urlparse(url).path)
    if marker not in path:
        return None
    return path.split(marker, 1)[1] or None


class LocalBlobStorage(BlobStorage):
    def __init__(self, root_dir: str, public_base_url: str):
        self.root_dir = root_dir
        self.public_base_url = public_base_url.rstrip("/")

    def _file_path(self, bucket: str, path: str) -> str:
        root = os.path.abspath(os.path.join(self.root_dir, bucket))
        full = os.path.abspath(os.path.join(root, path))
        if not full.startswith(root + os.sep):
            raise StorageError(f"Invalid object path: {path}")
        return full

    async def upload(self, bucket, path, data, content_type=None):
        full = self._file_path(bucket, path)
        if os.path.exists(full):
            raise StorageError(f"The resource already exists: {bucket}/{path}")
        try:
            os.makedirs(os.path.dirname(full), exist_ok=True)
            with open(full, "wb") as f:
                f.write(data)
        except PermissionError as e:
            raise StorageError(f"permission denied: {e}")
        except OSError as e:
            raise StorageError(str(e))
        logger.info(f"[STORAGE] Saved {bucket}/{path} ({len(data)} bytes)")

    def get_public_url(self, bucket, path):
        return f"{self.public_base_url}/{bucket}/{path}"

    async def remove(self, bucket, paths):
        for path in paths:
            full = self._file_path(bucket, path)
            try:
                os.remove(full)
            except FileNotFoundError:
                continue
            except OSError as e:
                raise StorageError(str(e))
            logger.info(f"[STORAGE] Removed {bucket}/{path}")


class HttpBlobStorage(BlobStorage):
    """
    Object storage over HTTP.
    Upload:  POST   {api}/storage/v1/object/{bucket}/{path}
    Public:         {api}/storage/v1/object/public/{bucket}/{path}
    Remove:  DELETE {api}/storage/v1/object/{bucket}  body {"prefixes": [...]}
    """

    def __init__(self, api_url: str, api_key: Optional[str] = None, timeout: int = 30):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self) -> dict:
        if not self.api_key:
            return {}
        return {"Authorization": f"Bearer {self.api_key}", "apikey": self.api_key}

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        detail = None
        if isinstance(body, dict):
            detail = body.get("message") or body.get("error")
        detail = str(detail) if detail else response.text
        if response.status_code in (401, 403) and "permission" not in detail.lower():
            detail = f"permission denied: {detail}"
        return f"HTTP {response.status_code}: {detail}"

    async def upload(self, bucket, path, data, content_type=None):
        headers = {
            **self._headers(),
            "x-upsert": "false",
            "cache-control": "max-age=3600",
            "content-type": content_type or "application/octet-stream",
        }
        url = f"{self.api_url}/storage/v1/object/{bucket}/{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, content=data, headers=headers)
        except httpx.HTTPError as e:
            raise StorageError(f"{type(e).__name__}: {e}")
        if response.status_code >= 400:
            raise StorageError(self._error_message(response))
        logger.info(f"[STORAGE] Uploaded {bucket}/{path} ({len(data)} bytes)")

    def get_public_url(self, bucket, path):
        return f"{self.api_url}/storage/v1/object/public/{bucket}/{path}"

    async def remove(self, bucket, paths):
        url = f"{self.api_url}/storage/v1/object/{bucket}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request("DELETE", url, json={"prefixes": paths},
                                                headers=self._headers())
        except httpx.HTTPError as e:
            raise StorageError(f"{type(e).__name__}: {e}")
        if response.status_code >= 400:
            raise StorageError(self._error_message(response))
        logger.info(f"[STORAGE] Removed {len(paths)} object(s) from {bucket}")


def build_blob_storage() -> BlobStorage:
    if settings.STORAGE_BACKEND == "http":
        if not settings.STORAGE_API_URL:
            raise ValueError("STORAGE_API_URL is required when STORAGE_BACKEND=http")
        return HttpBlobStorage(settings.STORAGE_API_URL, settings.STORAGE_API_KEY,
                               settings.STORAGE_TIMEOUT_SECONDS)
    return LocalBlobStorage(settings.STORAGE_DIR, settings.STORAGE_PUBLIC_BASE_URL)
