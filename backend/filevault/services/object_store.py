"""Object store abstraction. Local filesystem for dev, Supabase Storage for production."""
import hashlib
import hmac
import logging
import os
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Optional
from urllib.parse import quote

import aiofiles
import httpx
from supabase import AsyncClient, AsyncClientOptions, StorageException, acreate_client

from filevault.config import DEFAULT_SIGNING_SECRET, settings
from filevault.services.errors import ObjectStoreError
from filevault.services.storage_keys import DEFAULT_MIME_TYPE

logger = logging.getLogger(__name__)


class ObjectStore(ABC):
    """Key/bytes store. Every method raises ObjectStoreError on failure."""

    @abstractmethod
    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str = DEFAULT_MIME_TYPE,
        cache_control: str = "3600",
        upsert: bool = False,
    ) -> None:
        ...

    @abstractmethod
    async def get(self, key: str) -> bytes:
        ...

    @abstractmethod
    async def remove(self, keys: List[str]) -> None:
        """Remove objects. Keys that are already gone are not an error."""

    @abstractmethod
    async def create_signed_url(self, key: str, expires_in: int) -> str:
        ...

    async def close(self) -> None:
        pass


# ─── Local disk ───────────────────────────────────────────────────

class LocalObjectStore(ObjectStore):
    """Stores objects as files under ``base_path``; keys map to relative paths.

    Signed URLs point at ``/api/storage/signed/{key}`` on this API and carry an
    HMAC over key and expiry, checked by verify_signature().
    """

    def __init__(self, base_path: str, signing_secret: str, public_base_url: str):
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        self._secret = signing_secret.encode("utf-8")
        self.public_base_url = public_base_url.rstrip("/")

    def _path_for(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if path == self.base_path or self.base_path not in path.parents:
            raise ObjectStoreError(f"Invalid storage key: {key}", status=400)
        return path

    async def put(self, key, data, content_type=DEFAULT_MIME_TYPE, cache_control="3600", upsert=False):
        path = self._path_for(key)
        if path.exists() and not upsert:
            raise ObjectStoreError("The resource already exists", status=409)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(data)
        except OSError as e:
            raise ObjectStoreError(f"Failed to write {key}: {e.strerror or e}") from e

    async def get(self, key):
        path = self._path_for(key)
        if not path.is_file():
            raise ObjectStoreError("Object not found", status=404)
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except OSError as e:
            raise ObjectStoreError(f"Failed to read {key}: {e.strerror or e}") from e

    async def remove(self, keys):
        for key in keys:
            path = self._path_for(key)
            try:
                if path.exists():
                    os.remove(path)
            except OSError as e:
                raise ObjectStoreError(f"Failed to remove {key}: {e.strerror or e}") from e

    async def create_signed_url(self, key, expires_in):
        self._path_for(key)
        expires = int(time.time()) + expires_in
        token = self._sign(key, expires)
        return f"{self.public_base_url}/api/storage/signed/{quote(key)}?expires={expires}&token={token}"

    def verify_signature(self, key: str, expires: int, token: str, now: Optional[float] = None) -> bool:
        if (now if now is not None else time.time()) > expires:
            return False
        return hmac.compare_digest(self._sign(key, expires), token)

    def _sign(self, key: str, expires: int) -> str:
        return hmac.new(self._secret, f"{key}:{expires}".encode("utf-8"), hashlib.sha256).hexdigest()


# ─── Supabase Storage ─────────────────────────────────────────────

class SupabaseObjectStore(ObjectStore):
    """Objects in one Supabase Storage bucket, addressed with the service key.

    Wraps the SDK's bucket API; the SDK client is created on first use.
    """

    def __init__(self, base_url: str, api_key: str, bucket: str, client: Optional[AsyncClient] = None):
        if not base_url:
            raise ValueError("SUPABASE_URL not set. Cannot reach object storage.")
        if not api_key:
            raise ValueError("Supabase API key not set. Cannot reach object storage.")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.bucket = bucket
        self._client = client

    async def open(self) -> AsyncClient:
        if self._client is None:
            self._client = await acreate_client(
                self.base_url,
                self.api_key,
                options=AsyncClientOptions(persist_session=False, auto_refresh_token=False),
            )
        return self._client

    async def close(self) -> None:
        self._client = None

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def _bucket(self):
        client = await self.open()
        return client.storage.from_(self.bucket)

    async def put(self, key, data, content_type=DEFAULT_MIME_TYPE, cache_control="3600", upsert=False):
        bucket = await self._bucket()
        try:
            await bucket.upload(
                key, data,
                file_options={
                    "content-type": content_type,
                    "cache-control": cache_control,
                    "upsert": "true" if upsert else "false",
                },
            )
        except (StorageException, httpx.HTTPError) as e:
            raise _store_error(e) from e

    async def get(self, key):
        bucket = await self._bucket()
        try:
            return await bucket.download(key)
        except (StorageException, httpx.HTTPError) as e:
            raise _store_error(e) from e

    async def remove(self, keys):
        bucket = await self._bucket()
        try:
            await bucket.remove(list(keys))
        except (StorageException, httpx.HTTPError) as e:
            raise _store_error(e) from e

    async def create_signed_url(self, key, expires_in):
        bucket = await self._bucket()
        try:
            result = await bucket.create_signed_url(key, expires_in)
        except (StorageException, httpx.HTTPError) as e:
            raise _store_error(e) from e
        signed = (result or {}).get("signedURL") or (result or {}).get("signedUrl")
        if not signed:
            raise ObjectStoreError(f"No signed URL returned for {key}")
        return signed


def _store_error(error: Exception) -> ObjectStoreError:
    """Storage errors carry the response body as a dict: ``{"statusCode", "error", "message"}``."""
    detail: Any = error.args[0] if error.args else None
    if isinstance(detail, dict):
        message = detail.get("message") or detail.get("error") or str(detail)
        try:
            status = int(detail.get("statusCode") or 0)
        except (TypeError, ValueError):
            status = 0
        return ObjectStoreError(message, status=status)
    return ObjectStoreError(str(error) or type(error).__name__)


def build_object_store() -> ObjectStore:
    """Construct the store selected by FILE_STORAGE_TYPE."""
    if settings.FILE_STORAGE_TYPE == "local":
        if settings.SIGNING_SECRET == DEFAULT_SIGNING_SECRET:
            logger.warning(
                "SIGNING_SECRET is the built-in default; local signed URLs can be forged. "
                "Set SIGNING_SECRET in the environment."
            )
        return LocalObjectStore(
            settings.FILE_STORAGE_PATH,
            signing_secret=settings.SIGNING_SECRET,
            public_base_url=settings.PUBLIC_BASE_URL,
        )
    if settings.FILE_STORAGE_TYPE == "supabase":
        return SupabaseObjectStore(
            settings.SUPABASE_URL,
            settings.SUPABASE_SERVICE_ROLE_KEY,
            bucket=settings.STORAGE_BUCKET,
        )
    raise ValueError(f"Unknown storage type: {settings.FILE_STORAGE_TYPE}")
