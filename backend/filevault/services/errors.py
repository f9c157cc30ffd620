"""Error types.

Two layers:
- adapter errors (AuthServiceError, ObjectStoreError, MetadataStoreError) are
  raised by the clients that talk to the external platform;
- domain errors (FileVaultError subclasses) are raised by the gate and the
  file manager after the adapter error has been caught and logged. Routes
  render them through the handler registered in main.py.
"""
from typing import Any, Dict, Optional


# ─── Adapter errors ───────────────────────────────────────────────

class PlatformError(Exception):
    """Error reported by an external collaborator. ``message`` is the raw text."""

    def __init__(self, message: str, status: int = 0):
        self.message = message
        self.status = status
        super().__init__(message)


class AuthServiceError(PlatformError):
    pass


class ObjectStoreError(PlatformError):
    pass


class MetadataStoreError(PlatformError):
    pass


# ─── Domain errors ────────────────────────────────────────────────

class FileVaultError(Exception):
    """User-facing failure of one operation."""

    status_code = 500

    def __init__(self, message: str, operation: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.operation = operation
        self.context = context or {}
        super().__init__(message)


class AuthError(FileVaultError):
    status_code = 401


class ListError(FileVaultError):
    status_code = 502


class UploadError(FileVaultError):
    status_code = 502


class OrphanedObjectError(UploadError):
    """The metadata insert failed and so did the rollback of the stored object."""

    def __init__(self, message: str, orphaned_key: str, context: Optional[Dict[str, Any]] = None):
        self.orphaned_key = orphaned_key
        super().__init__(
            f"{message} (the uploaded object {orphaned_key} could not be removed "
            f"and is now orphaned in storage)",
            operation="upload",
            context={**(context or {}), "orphaned_key": orphaned_key},
        )


class DownloadError(FileVaultError):
    status_code = 502


class DeleteError(FileVaultError):
    status_code = 502


class OperationInProgressError(FileVaultError):
    status_code = 409
