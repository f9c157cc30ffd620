"""File lifecycle orchestration for one signed-in user.

Every remote failure is caught where the call is made, logged with the
operation and the identifiers involved, and re-raised as a domain error.
Nothing is retried. After each successful mutation the file list is
re-fetched from the metadata store rather than patched locally, so the
state always mirrors whatever the server holds at that moment.
"""
import asyncio
import logging
import os
import tempfile
import time
from collections import OrderedDict
from pathlib import Path
from typing import Callable, Dict, List, Optional

import aiofiles

from filevault.config import settings
from filevault.services.auth_client import SupabaseAuthClient
from filevault.services.errors import (
    AuthError,
    AuthServiceError,
    DeleteError,
    DownloadError,
    ListError,
    MetadataStoreError,
    ObjectStoreError,
    OperationInProgressError,
    OrphanedObjectError,
    UploadError,
)
from filevault.services.metadata_store import MetadataStore
from filevault.services.models import (
    DownloadedFile,
    FileItem,
    FileManagerState,
    FolderItem,
    Identity,
    UploadSource,
)
from filevault.services.object_store import ObjectStore
from filevault.services.storage_keys import DEFAULT_MIME_TYPE, build_storage_key
from filevault.services.two_phase import PhaseOneFailed, PhaseTwoFailed, TwoPhaseOperation

logger = logging.getLogger(__name__)

ENTRY_POINT = "/"
FALLBACK_FILENAME = "download"


class FileManager:
    def __init__(
        self,
        identity: Identity,
        object_store: ObjectStore,
        metadata_store: MetadataStore,
        auth_client: Optional[SupabaseAuthClient] = None,
        cache_control: str = settings.STORAGE_CACHE_CONTROL,
        signed_url_ttl: int = settings.SIGNED_URL_TTL,
    ):
        self.identity = identity
        self.object_store = object_store
        self.metadata_store = metadata_store
        self.auth_client = auth_client
        self.cache_control = cache_control
        self.signed_url_ttl = signed_url_ttl
        self.state = FileManagerState()

    # ── Listing ──────────────────────────────────────────────────

    async def list_files(self) -> List[FileItem]:
        """Replace state.files with a fresh, newest-first fetch.

        On failure the previous list stays in place and ListError is raised.
        """
        try:
            files = await self.metadata_store.list_files(self.identity.id)
        except MetadataStoreError as e:
            logger.error(f"list_files failed for user {self.identity.id}: {e.message}")
            raise ListError(
                f"Failed to load files: {e.message}",
                operation="list_files",
                context={"user_id": self.identity.id},
            ) from e
        self.state.files = files
        logger.debug(f"Loaded {len(files)} file(s) for user {self.identity.id}")
        return files

    async def list_folders(self) -> List[FolderItem]:
        """Replace state.folders. Failures degrade to an empty list."""
        try:
            folders = await self.metadata_store.list_folders(self.identity.id)
        except MetadataStoreError as e:
            logger.error(f"list_folders failed for user {self.identity.id}: {e.message}")
            folders = []
        self.state.folders = folders
        return folders

    async def get_file(self, file_id: int) -> Optional[FileItem]:
        """Look up one of this user's files; None if it doesn't exist or isn't theirs."""
        try:
            return await self.metadata_store.get_file(self.identity.id, file_id)
        except MetadataStoreError as e:
            logger.error(f"get_file {file_id} failed for user {self.identity.id}: {e.message}")
            raise ListError(
                f"Failed to load file: {e.message}",
                operation="get_file",
                context={"user_id": self.identity.id, "file_id": file_id},
            ) from e

    async def load(self) -> FileManagerState:
        """Initial load of files and folders. Overlapping calls do not re-issue."""
        if self.state.loading:
            logger.debug(f"Initial load already running for user {self.identity.id}")
            return self.state
        self.state.loading = True
        try:
            results = await asyncio.gather(
                self.list_files(), self.list_folders(), return_exceptions=True
            )
        finally:
            self.state.loading = False
        for result in results:
            if isinstance(result, Exception):
                raise result
        return self.state

    # ── Upload ───────────────────────────────────────────────────

    async def upload(self, source: UploadSource) -> FileItem:
        if self.state.uploading:
            raise OperationInProgressError(
                "An upload is already in progress",
                operation="upload",
                context={"user_id": self.identity.id},
            )
        self.state.uploading = True
        try:
            item = await self._store_and_record(source)
        finally:
            self.state.uploading = False

        logger.info(f"Uploaded {source.filename!r} as {item.storage_path} ({item.file_size} bytes)")
        try:
            await self.list_files()
        except ListError as e:
            # Object and row are both in place; only the view is stale.
            logger.warning(f"Refresh after upload failed: {e.message}")
        return item

    async def _store_and_record(self, source: UploadSource) -> FileItem:
        key = build_storage_key(self.identity.id, source.filename)
        content_type = source.content_type or DEFAULT_MIME_TYPE
        context = {"user_id": self.identity.id, "storage_key": key, "filename": source.filename}

        async def write_object() -> str:
            await self.object_store.put(
                key, source.content,
                content_type=content_type,
                cache_control=self.cache_control,
                upsert=False,
            )
            return key

        async def insert_row(stored_key: str) -> FileItem:
            return await self.metadata_store.insert_file({
                "user_id": self.identity.id,
                "name": stored_key,
                "original_name": source.filename,
                "file_type": content_type,
                "file_size": source.size,
                "storage_path": stored_key,
            })

        async def remove_object(stored_key: str) -> None:
            await self.object_store.remove([stored_key])

        operation = TwoPhaseOperation(
            name="upload",
            prepare=write_object,
            commit=insert_row,
            rollback=remove_object,
        )
        try:
            return await operation.run()
        except PhaseOneFailed as e:
            logger.error(f"Upload of {source.filename!r} to {key} failed: {e.cause}")
            raise UploadError(f"Upload failed: {_message(e.cause)}", operation="upload", context=context) from e.cause
        except PhaseTwoFailed as e:
            logger.error(f"Recording {key} failed: {e.cause}")
            message = f"Database error: {_message(e.cause)}"
            if not e.rolled_back:
                raise OrphanedObjectError(message, orphaned_key=key, context=context) from e.cause
            raise UploadError(message, operation="upload", context=context) from e.cause

    # ── Download ─────────────────────────────────────────────────

    async def download(self, item: FileItem) -> DownloadedFile:
        try:
            content = await self.object_store.get(item.storage_path)
        except ObjectStoreError as e:
            logger.error(f"Download of file {item.id} ({item.storage_path}) failed: {e.message}")
            raise DownloadError(
                e.message,
                operation="download",
                context={"file_id": item.id, "storage_key": item.storage_path},
            ) from e
        return DownloadedFile(
            filename=item.original_name,
            content_type=item.file_type or DEFAULT_MIME_TYPE,
            content=content,
        )

    async def save_download(self, item: FileItem, directory: Path) -> Path:
        """Download into ``directory`` under the original name.

        Bytes go to a temporary file first, which is moved into place and
        never left behind.
        """
        downloaded = await self.download(item)
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / _safe_filename(downloaded.filename)
        fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=".download-")
        os.close(fd)
        try:
            async with aiofiles.open(tmp_name, "wb") as tmp:
                await tmp.write(downloaded.content)
            os.replace(tmp_name, target)
        except OSError as e:
            logger.error(f"Saving file {item.id} to {target} failed: {e}")
            raise DownloadError(
                f"Could not save {target.name}: {e.strerror or e}",
                operation="save_download",
                context={"file_id": item.id, "target": str(target)},
            ) from e
        finally:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
        return target

    # ── Delete ───────────────────────────────────────────────────

    async def delete(self, item: FileItem, confirmed: bool = False) -> bool:
        """Remove the object, then its row. Returns False if not confirmed.

        The row is only touched once the object is confirmed gone, so a failed
        object removal leaves the listing unchanged.
        """
        if not confirmed:
            logger.debug(f"Delete of file {item.id} not confirmed; nothing issued")
            return False

        context = {"file_id": item.id, "storage_key": item.storage_path}
        try:
            await self.object_store.remove([item.storage_path])
        except ObjectStoreError as e:
            logger.error(f"Removing object {item.storage_path} for file {item.id} failed: {e.message}")
            raise DeleteError(e.message, operation="delete", context=context) from e

        try:
            await self.metadata_store.delete_file(item.id)
        except MetadataStoreError as e:
            logger.error(f"Removing row for file {item.id} failed: {e.message}")
            raise DeleteError(e.message, operation="delete", context=context) from e

        logger.info(f"Deleted file {item.id} ({item.storage_path})")
        try:
            await self.list_files()
        except ListError as e:
            logger.warning(f"Refresh after delete failed: {e.message}")
        return True

    # ── Previews ─────────────────────────────────────────────────

    async def preview_url(self, item: FileItem) -> Optional[str]:
        """Short-lived signed URL for image previews; None for anything else."""
        if not item.is_image:
            return None
        try:
            return await self.object_store.create_signed_url(item.storage_path, self.signed_url_ttl)
        except ObjectStoreError as e:
            logger.warning(f"Signed URL for file {item.id} failed: {e.message}")
            return None

    # ── Session ──────────────────────────────────────────────────

    async def sign_out(self, access_token: str) -> str:
        """Sign out with the auth service and return the path to navigate to."""
        if self.auth_client is None:
            raise AuthError("No auth service configured", operation="sign_out")
        try:
            await self.auth_client.sign_out(access_token, identity=self.identity)
        except AuthServiceError as e:
            logger.error(f"Sign-out failed for user {self.identity.id}: {e.message}")
            raise AuthError(e.message, operation="sign_out", context={"user_id": self.identity.id}) from e
        self.state = FileManagerState()
        return ENTRY_POINT


class FileManagerRegistry:
    """One FileManager per signed-in identity, so state and busy flags outlive a request.

    Bounded two ways: a manager unused for ``idle_ttl`` seconds is dropped, and
    past ``max_size`` the least recently used ones go first. A manager with a
    load or upload in flight is never evicted.
    """

    def __init__(
        self,
        max_size: int = settings.FILE_MANAGER_CACHE_SIZE,
        idle_ttl: float = settings.FILE_MANAGER_IDLE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_size = max_size
        self.idle_ttl = idle_ttl
        self._clock = clock
        self._managers: "OrderedDict[str, FileManager]" = OrderedDict()
        self._last_used: Dict[str, float] = {}

    def get(
        self,
        identity: Identity,
        object_store: ObjectStore,
        metadata_store: MetadataStore,
        auth_client: Optional[SupabaseAuthClient] = None,
    ) -> FileManager:
        now = self._clock()
        manager = self._managers.get(identity.id)
        if manager is None:
            manager = FileManager(identity, object_store, metadata_store, auth_client)
            self._managers[identity.id] = manager
        self._managers.move_to_end(identity.id)
        self._last_used[identity.id] = now
        self._evict(now, keep=identity.id)
        return manager

    def _evict(self, now: float, keep: str) -> None:
        # Oldest first
        for identity_id, manager in list(self._managers.items()):
            if identity_id == keep or manager.state.loading or manager.state.uploading:
                continue
            idle = now - self._last_used[identity_id] > self.idle_ttl
            if idle or len(self._managers) > self.max_size:
                logger.debug(f"Evicting file manager for user {identity_id} ({'idle' if idle else 'over capacity'})")
                self.discard(identity_id)

    def discard(self, identity_id: str) -> None:
        self._managers.pop(identity_id, None)
        self._last_used.pop(identity_id, None)

    def __contains__(self, identity_id: str) -> bool:
        return identity_id in self._managers

    def __len__(self) -> int:
        return len(self._managers)


def _message(error: Exception) -> str:
    return getattr(error, "message", None) or str(error)


def _safe_filename(name: str) -> str:
    """Last path component of ``name``; ``download`` when nothing usable is left."""
    base = Path(name.replace("\\", "/")).name
    if base in ("", ".", ".."):
        return FALLBACK_FILENAME
    return base
