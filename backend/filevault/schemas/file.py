"""File request/response schemas."""
from datetime import datetime
from typing import Optional

from pydantic import computed_field

from filevault.schemas.base import CamelORMModel
from filevault.services.storage_keys import format_file_size


class FileResponse(CamelORMModel):
    id: int
    name: str
    original_name: str
    file_type: str
    file_size: int
    storage_path: str
    created_at: datetime

    @computed_field(alias="sizeLabel")
    @property
    def size_label(self) -> str:
        return format_file_size(self.file_size)


class PreviewUrlResponse(CamelORMModel):
    id: int
    url: Optional[str] = None
    expires_in: Optional[int] = None
