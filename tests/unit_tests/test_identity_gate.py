import pytest

from filevault.services.errors import AuthError
from filevault.services.identity_gate import CONFIRMATION_PENDING_NOTICE, AuthMode, IdentityGate


@pytest.fixture
def gate(auth_client):
    auth_client.add_account("alice@example.com", "correct horse", "user-alice")
    return IdentityGate(auth_client)


async def test__sign_in__returns_session_and_dashboard_redirect(gate, auth_client):
    outcome = await gate.sign_in("alice@example.com", "correct horse")

    assert outcome.session.identity.id == "user-alice"
    assert outcome.redirect == "/dashboard"
    assert auth_client.calls == [("sign_in", "alice@example.com")]
    assert gate.loading is False


async def test__sign_in__raw_error_message_surfaces(gate, auth_client):
    with pytest.raises(AuthError) as exc_info:
        await gate.sign_in("alice@example.com", "wrong")

    assert exc_info.value.message == "Invalid login credentials"
    assert len(auth_client.calls) == 1
    assert gate.loading is False


async def test__sign_up__pending_confirmation_not_navigation(gate, auth_client):
    gate.toggle_mode()
    outcome = await gate.submit("new@example.com", "s3cret!")

    assert outcome.mode == AuthMode.SIGN_UP
    assert outcome.session is None
    assert outcome.redirect is None
    assert outcome.message == CONFIRMATION_PENDING_NOTICE
    assert auth_client.calls == [("sign_up", "new@example.com")]


async def test__sign_up__unconfirmed_account_cannot_sign_in(gate):
    await gate.sign_up("new@example.com", "s3cret!")
    with pytest.raises(AuthError) as exc_info:
        await gate.sign_in("new@example.com", "s3cret!")
    assert exc_info.value.message == "Email not confirmed"


async def test__sign_up__duplicate_surfaces_raw_message(gate):
    with pytest.raises(AuthError) as exc_info:
        await gate.sign_up("alice@example.com", "whatever")
    assert exc_info.value.message == "User already registered"


async def test__submit__blank_credentials_make_no_call(gate, auth_client):
    with pytest.raises(AuthError):
        await gate.submit("  ", "pw")
    with pytest.raises(AuthError):
        await gate.submit("alice@example.com", "")
    assert auth_client.calls == []


def test__toggle_mode__flips_back_and_forth(gate):
    assert gate.mode == AuthMode.SIGN_IN
    assert gate.toggle_mode() == AuthMode.SIGN_UP
    assert gate.toggle_mode() == AuthMode.SIGN_IN
