"""FastAPI dependencies: collaborators, the caller's identity, and their file manager."""
import logging
from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException

from filevault.config import settings
from filevault.database import async_session
from filevault.services.auth_client import SIGNED_OUT, SupabaseAuthClient
from filevault.services.errors import AuthServiceError
from filevault.services.file_manager import FileManager, FileManagerRegistry
from filevault.services.metadata_store import MetadataStore, SqlMetadataStore
from filevault.services.models import Identity
from filevault.services.object_store import ObjectStore, build_object_store

logger = logging.getLogger(__name__)

_object_store: Optional[ObjectStore] = None
_auth_client: Optional[SupabaseAuthClient] = None
registry = FileManagerRegistry()


def get_object_store() -> ObjectStore:
    global _object_store
    if _object_store is None:
        _object_store = build_object_store()
    return _object_store


def get_metadata_store() -> MetadataStore:
    return SqlMetadataStore(async_session)


def get_auth_client() -> SupabaseAuthClient:
    global _auth_client
    if _auth_client is None:
        try:
            _auth_client = SupabaseAuthClient(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)
        except ValueError as e:
            logger.error(f"Auth service not configured: {e}")
            raise HTTPException(status_code=503, detail="Auth service not configured")
    return _auth_client


def get_registry() -> FileManagerRegistry:
    return registry


def forget_on_sign_out(auth_client: SupabaseAuthClient, registry: FileManagerRegistry) -> Callable[[], None]:
    """Drop a user's cached file state whenever the auth client reports SIGNED_OUT.

    Returns the unsubscribe callable.
    """

    def listener(event: str, identity: Optional[Identity]) -> None:
        if event == SIGNED_OUT and identity is not None:
            logger.info(f"User {identity.id} signed out; dropping cached file state")
            registry.discard(identity.id)

    return auth_client.on_auth_state_change(listener)


async def close_collaborators() -> None:
    """Release the platform clients. Called from the app lifespan on shutdown."""
    global _object_store, _auth_client
    if _object_store is not None:
        await _object_store.close()
        _object_store = None
    if _auth_client is not None:
        await _auth_client.close()
        _auth_client = None


async def get_access_token(authorization: Optional[str] = Header(None)) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Not authenticated")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Invalid authorization header")
    return token.strip()


async def get_current_identity(
    token: str = Depends(get_access_token),
    auth_client: SupabaseAuthClient = Depends(get_auth_client),
) -> Identity:
    try:
        return await auth_client.get_user(token)
    except AuthServiceError as e:
        logger.info(f"Rejected access token: {e.message}")
        raise HTTPException(status_code=401, detail=e.message)


async def get_file_manager(
    identity: Identity = Depends(get_current_identity),
    object_store: ObjectStore = Depends(get_object_store),
    metadata_store: MetadataStore = Depends(get_metadata_store),
    auth_client: SupabaseAuthClient = Depends(get_auth_client),
    registry: FileManagerRegistry = Depends(get_registry),
) -> FileManager:
    return registry.get(identity, object_store, metadata_store, auth_client)
