"""Files API routes."""
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, File as FastAPIFile
from fastapi.responses import Response

from filevault.dependencies import get_file_manager
from filevault.schemas.common import DeleteResponse
from filevault.schemas.file import FileResponse, PreviewUrlResponse
from filevault.services.file_manager import FileManager
from filevault.services.models import FileItem, UploadSource

router = APIRouter(prefix="/api/files", tags=["files"])


@router.get("", response_model=list[FileResponse])
async def list_files(manager: FileManager = Depends(get_file_manager)):
    """List the caller's files, newest first."""
    files = await manager.list_files()
    return [FileResponse.model_validate(f) for f in files]


@router.post("/upload", response_model=FileResponse, status_code=201)
async def upload_file(
    file: UploadFile = FastAPIFile(...),
    manager: FileManager = Depends(get_file_manager),
):
    """Store the file and record its metadata."""
    contents = await file.read()
    item = await manager.upload(
        UploadSource(
            filename=file.filename or "unnamed",
            content=contents,
            content_type=file.content_type,
        )
    )
    return FileResponse.model_validate(item)


@router.get("/{file_id}", response_model=FileResponse)
async def get_file_metadata(
    file_id: int,
    manager: FileManager = Depends(get_file_manager),
):
    """Get file metadata by ID."""
    return FileResponse.model_validate(await _get_owned_file(manager, file_id))


@router.get("/{file_id}/download")
async def download_file(
    file_id: int,
    manager: FileManager = Depends(get_file_manager),
):
    """Download a file as an attachment under its original name."""
    item = await _get_owned_file(manager, file_id)
    downloaded = await manager.download(item)
    return Response(
        content=downloaded.content,
        media_type=downloaded.content_type,
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(downloaded.filename)}",
        },
    )


@router.get("/{file_id}/preview-url", response_model=PreviewUrlResponse)
async def get_preview_url(
    file_id: int,
    manager: FileManager = Depends(get_file_manager),
):
    """Signed, short-lived URL for image previews. ``url`` is null for non-images."""
    item = await _get_owned_file(manager, file_id)
    url = await manager.preview_url(item)
    return PreviewUrlResponse(
        id=item.id,
        url=url,
        expires_in=manager.signed_url_ttl if url else None,
    )


@router.delete("/{file_id}", response_model=DeleteResponse)
async def delete_file(
    file_id: int,
    confirm: bool = Query(False, description="Must be true; deletion is irreversible"),
    manager: FileManager = Depends(get_file_manager),
):
    """Delete the stored object, then its record."""
    item = await _get_owned_file(manager, file_id)
    if not await manager.delete(item, confirmed=confirm):
        raise HTTPException(status_code=400, detail="Deletion must be confirmed with confirm=true")
    return {"deleted": True, "id": file_id}


async def _get_owned_file(manager: FileManager, file_id: int) -> FileItem:
    item = await manager.get_file(file_id)
    if not item:
        raise HTTPException(status_code=404, detail="File not found")
    return item
