"""In-memory dataclasses the gate and the file manager work with.

These are decoupled from the SQLAlchemy rows in filevault/models so the
services can be driven by any metadata store (the SQL one, or a test fake).
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class Identity:
    """Authenticated user as reported by the auth service. Never mutated here."""
    id: str
    email: Optional[str] = None


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    identity: Identity
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


@dataclass(frozen=True)
class FileItem:
    id: int
    user_id: str
    name: str
    original_name: str
    file_type: str
    file_size: int
    storage_path: str
    created_at: datetime

    @property
    def is_image(self) -> bool:
        return self.file_type.startswith("image/")


@dataclass(frozen=True)
class FolderItem:
    id: int
    user_id: str
    name: str
    created_at: datetime


@dataclass(frozen=True)
class UploadSource:
    """Raw file handed to upload(). content_type is whatever the client declared."""
    filename: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class DownloadedFile:
    filename: str
    content_type: str
    content: bytes


@dataclass
class FileManagerState:
    """View state owned by one FileManager. Lists are replaced wholesale, never patched."""
    files: List[FileItem] = field(default_factory=list)
    folders: List[FolderItem] = field(default_factory=list)
    loading: bool = False
    uploading: bool = False
