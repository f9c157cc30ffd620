"""Auth API routes: the sign-in / sign-up gate and sign-out."""
from fastapi import APIRouter, Depends

from filevault.dependencies import (
    get_access_token,
    get_auth_client,
    get_file_manager,
)
from filevault.schemas.auth import (
    CredentialsRequest,
    IdentityResponse,
    SignInResponse,
    SignOutResponse,
    SignUpResponse,
)
from filevault.services.auth_client import SupabaseAuthClient
from filevault.services.file_manager import FileManager
from filevault.services.identity_gate import AuthMode, IdentityGate

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/sign-in", response_model=SignInResponse)
async def sign_in(
    body: CredentialsRequest,
    auth_client: SupabaseAuthClient = Depends(get_auth_client),
):
    """Exchange email + password for a session."""
    outcome = await IdentityGate(auth_client, mode=AuthMode.SIGN_IN).submit(body.email, body.password)
    session = outcome.session
    return SignInResponse(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in,
        user=IdentityResponse(id=session.identity.id, email=session.identity.email),
        redirect=outcome.redirect,
    )


@router.post("/sign-up", response_model=SignUpResponse, status_code=201)
async def sign_up(
    body: CredentialsRequest,
    auth_client: SupabaseAuthClient = Depends(get_auth_client),
):
    """Register. The account stays pending until the emailed link is confirmed."""
    outcome = await IdentityGate(auth_client, mode=AuthMode.SIGN_UP).submit(body.email, body.password)
    return SignUpResponse(message=outcome.message, redirect=outcome.redirect)


@router.post("/sign-out", response_model=SignOutResponse)
async def sign_out(
    token: str = Depends(get_access_token),
    manager: FileManager = Depends(get_file_manager),
):
    """End the session. The SIGNED_OUT listener drops the caller's cached file state."""
    redirect = await manager.sign_out(token)
    return SignOutResponse(redirect=redirect)
