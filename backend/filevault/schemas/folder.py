"""Folder response schema."""
from datetime import datetime

from filevault.schemas.base import CamelORMModel


class FolderResponse(CamelORMModel):
    id: int
    name: str
    created_at: datetime
