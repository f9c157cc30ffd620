"""Serves signed URLs issued by the local object store."""
import mimetypes

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from filevault.dependencies import get_object_store
from filevault.services.errors import ObjectStoreError
from filevault.services.object_store import LocalObjectStore, ObjectStore

router = APIRouter(prefix="/api/storage", tags=["storage"])


@router.get("/signed/{key:path}")
async def read_signed_object(
    key: str,
    expires: int = Query(...),
    token: str = Query(...),
    store: ObjectStore = Depends(get_object_store),
):
    """Return object bytes if the signature and expiry check out."""
    if not isinstance(store, LocalObjectStore):
        raise HTTPException(status_code=404, detail="Signed URLs are served by the storage platform")
    if not store.verify_signature(key, expires, token):
        raise HTTPException(status_code=403, detail="Invalid or expired signature")
    try:
        content = await store.get(key)
    except ObjectStoreError as e:
        raise HTTPException(status_code=e.status or 502, detail=e.message)
    media_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return Response(content=content, media_type=media_type, headers={"Cache-Control": "private, max-age=60"})
