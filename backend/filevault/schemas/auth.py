"""Auth request/response schemas."""
from typing import Optional

from filevault.schemas.base import CamelModel


class CredentialsRequest(CamelModel):
    email: str
    password: str


class IdentityResponse(CamelModel):
    id: str
    email: Optional[str] = None


class SignInResponse(CamelModel):
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    user: IdentityResponse
    redirect: Optional[str] = None


class SignUpResponse(CamelModel):
    pending_confirmation: bool = True
    message: str
    redirect: Optional[str] = None


class SignOutResponse(CamelModel):
    redirect: str
