"""Adapter over the Supabase SDK's auth client.

This is a thin adapter: credentials are forwarded, nothing is stored, and
every failure comes back as AuthServiceError carrying the service's own
message so the gate can show it unmodified.
"""
import logging
from typing import Any, Callable, List, Optional

from supabase import AsyncClient, AsyncClientOptions, AuthError, acreate_client

from filevault.services.errors import AuthServiceError
from filevault.services.models import AuthSession, Identity

logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"

AuthListener = Callable[[str, Optional[Identity]], Any]


class SupabaseAuthClient:
    """Auth calls on one shared SDK client.

    The SDK client is created on first use, or on ``open()`` / ``async with``.
    It keeps no session between requests; callers pass their access token.
    """

    def __init__(self, base_url: str, api_key: str, client: Optional[AsyncClient] = None):
        if not base_url:
            raise ValueError("SUPABASE_URL not set. Cannot reach the auth service.")
        if not api_key:
            raise ValueError("Supabase API key not set. Cannot reach the auth service.")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._listeners: List[AuthListener] = []
        self._client: Optional[AsyncClient] = None
        self._subscription = None
        if client is not None:
            self._attach(client)

    async def open(self) -> AsyncClient:
        if self._client is None:
            client = await acreate_client(
                self.base_url,
                self.api_key,
                options=AsyncClientOptions(persist_session=False, auto_refresh_token=False),
            )
            self._attach(client)
        return self._client

    async def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._client = None

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    def _attach(self, client: AsyncClient) -> None:
        self._client = client
        self._subscription = client.auth.on_auth_state_change(self._forward)

    # ── Session-change notifications ─────────────────────────────

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        """Subscribe to SIGNED_IN / SIGNED_OUT events. Returns an unsubscribe callable."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _forward(self, event: str, session: Any) -> None:
        user = getattr(session, "user", None)
        identity = _identity_from_user(user) if getattr(user, "id", None) else None
        self._emit(str(event), identity)

    def _emit(self, event: str, identity: Optional[Identity]) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, identity)
            except Exception as e:
                logger.warning(f"Auth listener failed on {event}: {e}")

    # ── Auth calls ───────────────────────────────────────────────

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        client = await self.open()
        try:
            response = await client.auth.sign_in_with_password({"email": email, "password": password})
        except AuthError as e:
            raise _service_error(e) from e
        session = response.session
        if session is None:
            raise AuthServiceError("Auth service returned no session")
        return AuthSession(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_in=session.expires_in,
            identity=_identity_from_user(response.user or session.user),
        )

    async def sign_up(self, email: str, password: str) -> Optional[Identity]:
        """Register. The account still needs email confirmation before sign-in."""
        client = await self.open()
        try:
            response = await client.auth.sign_up({"email": email, "password": password})
        except AuthError as e:
            raise _service_error(e) from e
        return _identity_from_user(response.user) if response.user is not None else None

    async def sign_out(self, access_token: str, identity: Optional[Identity] = None) -> None:
        """Revoke the session behind ``access_token``.

        The SDK only signs out its own stored session, so the token is revoked
        through the admin API and SIGNED_OUT is emitted here.
        """
        client = await self.open()
        try:
            await client.auth.admin.sign_out(access_token)
        except AuthError as e:
            raise _service_error(e) from e
        self._emit(SIGNED_OUT, identity)

    async def get_user(self, access_token: str) -> Identity:
        """Resolve an access token to the identity it belongs to."""
        client = await self.open()
        try:
            response = await client.auth.get_user(access_token)
        except AuthError as e:
            raise _service_error(e) from e
        if response is None or response.user is None:
            raise AuthServiceError("Auth service returned no user", status=401)
        return _identity_from_user(response.user)


def _identity_from_user(user: Any) -> Identity:
    user_id = getattr(user, "id", None)
    if not user_id:
        raise AuthServiceError("Auth service returned no user")
    return Identity(id=str(user_id), email=getattr(user, "email", None))


def _service_error(error: AuthError) -> AuthServiceError:
    message = getattr(error, "message", None) or str(error)
    return AuthServiceError(message, status=getattr(error, "status", None) or 0)
