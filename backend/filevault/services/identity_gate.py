"""Sign-in / sign-up gate in front of the file manager."""
import enum
import logging
from dataclasses import dataclass
from typing import Optional

from filevault.config import settings
from filevault.services.auth_client import SupabaseAuthClient
from filevault.services.errors import AuthError, AuthServiceError
from filevault.services.models import AuthSession

logger = logging.getLogger(__name__)

CONFIRMATION_PENDING_NOTICE = "Sign-up successful! Check your email to confirm your account."


class AuthMode(str, enum.Enum):
    SIGN_IN = "sign_in"
    SIGN_UP = "sign_up"


@dataclass(frozen=True)
class GateOutcome:
    """Result of a successful submission.

    ``redirect`` is where the caller should navigate next, or None to stay on
    the gate and show ``message``. Only sign-in yields a session.
    """
    mode: AuthMode
    session: Optional[AuthSession] = None
    redirect: Optional[str] = None
    message: str = ""


class IdentityGate:
    def __init__(self, auth_client: SupabaseAuthClient, mode: AuthMode = AuthMode.SIGN_IN):
        self.auth_client = auth_client
        self.mode = mode
        self.loading = False

    def toggle_mode(self) -> AuthMode:
        self.mode = AuthMode.SIGN_UP if self.mode == AuthMode.SIGN_IN else AuthMode.SIGN_IN
        return self.mode

    async def submit(self, email: str, password: str) -> GateOutcome:
        if self.mode == AuthMode.SIGN_IN:
            return await self.sign_in(email, password)
        return await self.sign_up(email, password)

    async def sign_in(self, email: str, password: str) -> GateOutcome:
        _require_credentials(email, password, "sign_in")
        self.loading = True
        try:
            session = await self.auth_client.sign_in_with_password(email, password)
        except AuthServiceError as e:
            logger.info(f"Sign-in rejected for {email}: {e.message}")
            raise AuthError(e.message, operation="sign_in", context={"email": email}) from e
        finally:
            self.loading = False
        logger.info(f"User {session.identity.id} signed in")
        return GateOutcome(
            mode=AuthMode.SIGN_IN,
            session=session,
            redirect=settings.DASHBOARD_PATH,
        )

    async def sign_up(self, email: str, password: str) -> GateOutcome:
        # The account is unusable until the emailed link is followed, so no
        # session is handed back even if the service returned one.
        _require_credentials(email, password, "sign_up")
        self.loading = True
        try:
            await self.auth_client.sign_up(email, password)
        except AuthServiceError as e:
            logger.info(f"Sign-up rejected for {email}: {e.message}")
            raise AuthError(e.message, operation="sign_up", context={"email": email}) from e
        finally:
            self.loading = False
        logger.info(f"Sign-up pending confirmation for {email}")
        return GateOutcome(mode=AuthMode.SIGN_UP, message=CONFIRMATION_PENDING_NOTICE)


def _require_credentials(email: str, password: str, operation: str) -> None:
    if not email or not email.strip():
        raise AuthError("Email is required", operation=operation)
    if not password:
        raise AuthError("Password is required", operation=operation)
