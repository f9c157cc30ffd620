"""Metadata store: file and folder rows, always scoped to the owning user."""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from filevault.models.file_record import FileRecord
from filevault.models.folder_record import FolderRecord
from filevault.services.errors import MetadataStoreError
from filevault.services.models import FileItem, FolderItem

logger = logging.getLogger(__name__)


class MetadataStore(ABC):
    """Tabular store for FileItem / FolderItem rows. Raises MetadataStoreError."""

    @abstractmethod
    async def list_files(self, user_id: str) -> List[FileItem]:
        """Newest first; equal timestamps newest insertion first."""

    @abstractmethod
    async def list_folders(self, user_id: str) -> List[FolderItem]:
        ...

    @abstractmethod
    async def get_file(self, user_id: str, file_id: int) -> Optional[FileItem]:
        ...

    @abstractmethod
    async def insert_file(self, row: Dict[str, Any]) -> FileItem:
        ...

    @abstractmethod
    async def delete_file(self, file_id: int) -> None:
        ...


class SqlMetadataStore(MetadataStore):
    """SQLAlchemy implementation. Opens one short-lived session per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_files(self, user_id):
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(FileRecord)
                    .where(FileRecord.user_id == user_id)
                    .order_by(desc(FileRecord.created_at), desc(FileRecord.id))
                )
                return [_to_file_item(r) for r in result.scalars().all()]
        except SQLAlchemyError as e:
            raise MetadataStoreError(_describe(e)) from e

    async def list_folders(self, user_id):
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(FolderRecord)
                    .where(FolderRecord.user_id == user_id)
                    .order_by(desc(FolderRecord.created_at), desc(FolderRecord.id))
                )
                return [_to_folder_item(r) for r in result.scalars().all()]
        except SQLAlchemyError as e:
            raise MetadataStoreError(_describe(e)) from e

    async def get_file(self, user_id, file_id):
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(FileRecord).where(FileRecord.id == file_id, FileRecord.user_id == user_id)
                )
                record = result.scalar_one_or_none()
                return _to_file_item(record) if record else None
        except SQLAlchemyError as e:
            raise MetadataStoreError(_describe(e)) from e

    async def insert_file(self, row):
        try:
            async with self._session_factory() as db:
                record = FileRecord(**row)
                db.add(record)
                await db.commit()
                await db.refresh(record)
                return _to_file_item(record)
        except SQLAlchemyError as e:
            raise MetadataStoreError(_describe(e)) from e

    async def delete_file(self, file_id):
        try:
            async with self._session_factory() as db:
                await db.execute(delete(FileRecord).where(FileRecord.id == file_id))
                await db.commit()
        except SQLAlchemyError as e:
            raise MetadataStoreError(_describe(e)) from e


def _describe(e: SQLAlchemyError) -> str:
    # DBAPI errors carry the driver's message on .orig
    orig = getattr(e, "orig", None)
    return str(orig) if orig is not None else str(e)


def _to_file_item(record: FileRecord) -> FileItem:
    return FileItem(
        id=record.id,
        user_id=record.user_id,
        name=record.name,
        original_name=record.original_name,
        file_type=record.file_type,
        file_size=record.file_size,
        storage_path=record.storage_path,
        created_at=record.created_at,
    )


def _to_folder_item(record: FolderRecord) -> FolderItem:
    return FolderItem(
        id=record.id,
        user_id=record.user_id,
        name=record.name,
        created_at=record.created_at,
    )
