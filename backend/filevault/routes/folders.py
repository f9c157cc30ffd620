"""Folders API routes. Folders are listed only; nothing here creates or removes them."""
from fastapi import APIRouter, Depends

from filevault.dependencies import get_file_manager
from filevault.schemas.folder import FolderResponse
from filevault.schemas.library import LibraryResponse
from filevault.services.file_manager import FileManager

router = APIRouter(prefix="/api", tags=["folders"])


@router.get("/folders", response_model=list[FolderResponse])
async def list_folders(manager: FileManager = Depends(get_file_manager)):
    """List the caller's folders, newest first. Empty if they can't be loaded."""
    folders = await manager.list_folders()
    return [FolderResponse.model_validate(f) for f in folders]


@router.get("/library", response_model=LibraryResponse)
async def load_library(manager: FileManager = Depends(get_file_manager)):
    """Initial load of the file browser: files, folders and busy flags together."""
    state = await manager.load()
    return LibraryResponse.model_validate(state)
