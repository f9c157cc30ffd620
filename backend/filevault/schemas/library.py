"""Initial-load response: everything the file browser shows at once."""
from filevault.schemas.base import CamelORMModel
from filevault.schemas.file import FileResponse
from filevault.schemas.folder import FolderResponse


class LibraryResponse(CamelORMModel):
    files: list[FileResponse] = []
    folders: list[FolderResponse] = []
    loading: bool = False
    uploading: bool = False
