"""
Quotebook Backend — Auth Service Tests
======================================

What:  Validation, the sign-up/login/logout flows, and how AuthService drives
       the gateway token and the SessionStore.

What we test:
    ✅ Local validation fails before any HTTP call
    ✅ Confirmation-pending sign-up is an outcome, not an error
    ✅ Display name fallbacks on login
    ✅ Session persisted only when stayLoggedIn is on
    ✅ Logout clears memory, gateway token and storage
    ✅ Only the holder of the client key is authorized
    ✅ A logout that cannot write keeps the session intact
"""

from unittest.mock import patch

import pytest

from conftest import make_user, token_payload
from quotebook.exceptions import (
    ApiError,
    InvalidEmailError,
    InvalidInputError,
    NotAuthenticatedError,
    PasswordTooShortError,
    PreferenceStorageError,
)
from quotebook.schemas.auth import AuthState, SignUpOutcome
from quotebook.services.auth_service import AuthService, is_valid_email
from quotebook.services.preference_store import JsonFilePreferenceStore
from quotebook.services.session_store import SessionStore


@pytest.fixture
def auth(gateway, session_store) -> AuthService:
    return AuthService(gateway, session_store)


class TestEmailValidation:

    @pytest.mark.parametrize(
        "email",
        ["user@example.com", "first.last+tag@sub.example.org", "a_b%c-d@x.io"],
    )
    def test_accepts(self, email):
        assert is_valid_email(email)

    @pytest.mark.parametrize(
        "email",
        ["user@", "user", "@example.com", "user@example", "user@example.c", "user @example.com",
         "user@example.com trailing"],
    )
    def test_rejects(self, email):
        assert not is_valid_email(email)


class TestSignUpValidation:
    """All of these must fail with zero HTTP calls."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "email,password,name",
        [("", "secret1", "Ada"), ("ada@example.com", "", "Ada"), ("ada@example.com", "secret1", "")],
    )
    async def test_empty_field(self, auth, fake_backend, email, password, name):
        with pytest.raises(InvalidInputError, match="Please fill in all fields"):
            await auth.sign_up(email, password, name)

        assert fake_backend.requests == []

    @pytest.mark.asyncio
    async def test_invalid_email(self, auth, fake_backend):
        with pytest.raises(InvalidEmailError):
            await auth.sign_up("not-an-email", "secret1", "Ada")

        assert fake_backend.requests == []

    @pytest.mark.asyncio
    async def test_five_character_password(self, auth, fake_backend):
        with pytest.raises(PasswordTooShortError, match="at least 6 characters"):
            await auth.sign_up("ada@example.com", "12345", "Ada")

        assert len(fake_backend.requests) == 0
        assert auth.state is AuthState.SIGNED_OUT


class TestSignUp:

    @pytest.mark.asyncio
    async def test_confirmation_pending(self, auth, fake_backend, gateway):
        fake_backend.on("POST", "/auth/v1/signup", json=make_user())

        outcome = await auth.sign_up("ada@example.com", "secret1", "Ada")

        assert outcome is SignUpOutcome.CONFIRMATION_REQUIRED
        assert auth.session is None
        assert auth.state is AuthState.SIGNED_OUT
        assert gateway.token is None

    @pytest.mark.asyncio
    async def test_token_issued_signs_in(self, auth, fake_backend, gateway):
        fake_backend.on("POST", "/auth/v1/signup", json=token_payload(user=make_user(name=None)))

        outcome = await auth.sign_up("ada@example.com", "secret1", "Ada L.")

        assert outcome is SignUpOutcome.SIGNED_IN
        assert auth.state is AuthState.SIGNED_IN
        assert auth.session.name == "Ada L."
        assert auth.session.user_id == "user-1"
        assert gateway.token == "access-123"

    @pytest.mark.asyncio
    async def test_metadata_name_wins(self, auth, fake_backend):
        fake_backend.on("POST", "/auth/v1/signup", json=token_payload(user=make_user(name="Countess")))

        await auth.sign_up("ada@example.com", "secret1", "Ada")

        assert auth.session.name == "Countess"

    @pytest.mark.asyncio
    async def test_token_without_user(self, auth, fake_backend, gateway):
        fake_backend.on("POST", "/auth/v1/signup", json=token_payload(user=None))

        with pytest.raises(ApiError):
            await auth.sign_up("ada@example.com", "secret1", "Ada")

        assert auth.session is None
        assert auth.state is AuthState.SIGNED_OUT
        assert gateway.token is None

    @pytest.mark.asyncio
    async def test_backend_rejection_restores_state(self, auth, fake_backend):
        fake_backend.on("POST", "/auth/v1/signup", status=422, json={"msg": "User already registered"})

        with pytest.raises(ApiError, match="User already registered"):
            await auth.sign_up("ada@example.com", "secret1", "Ada")

        assert auth.state is AuthState.SIGNED_OUT

    @pytest.mark.asyncio
    async def test_persisted_when_remembered(self, auth, fake_backend, memory_store):
        await memory_store.set("stayLoggedIn", True)
        fake_backend.on("POST", "/auth/v1/signup", json=token_payload())

        await auth.sign_up("ada@example.com", "secret1", "Ada")

        assert memory_store.snapshot()["accessToken"] == "access-123"
        assert auth.session.stay_logged_in is True


class TestLogin:

    @pytest.mark.asyncio
    async def test_validation_before_network(self, auth, fake_backend):
        with pytest.raises(InvalidInputError):
            await auth.login("", "secret1")
        with pytest.raises(InvalidEmailError):
            await auth.login("ada", "secret1")

        assert fake_backend.requests == []

    @pytest.mark.asyncio
    async def test_login_establishes_session(self, auth, fake_backend, gateway):
        fake_backend.on("POST", "/auth/v1/token", json=token_payload())

        session = await auth.login("ada@example.com", "secret1")

        assert session.name == "Ada"
        assert session.email == "ada@example.com"
        assert session.refresh_token == "refresh-456"
        assert auth.state is AuthState.SIGNED_IN
        assert auth.require_session() is session
        assert gateway.token == "access-123"

    @pytest.mark.asyncio
    async def test_name_falls_back_to_email_local_part(self, auth, fake_backend):
        fake_backend.on("POST", "/auth/v1/token",
                        json=token_payload(user=make_user(email="grace.hopper@navy.mil", name=None)))

        session = await auth.login("grace.hopper@navy.mil", "secret1")

        assert session.name == "grace.hopper"

    @pytest.mark.asyncio
    async def test_missing_user_is_login_failed(self, auth, fake_backend):
        fake_backend.on("POST", "/auth/v1/token", json=token_payload(user=None))

        with pytest.raises(ApiError, match="^Login failed$"):
            await auth.login("ada@example.com", "secret1")

        assert auth.state is AuthState.SIGNED_OUT

    @pytest.mark.asyncio
    async def test_not_persisted_by_default(self, auth, fake_backend, memory_store):
        fake_backend.on("POST", "/auth/v1/token", json=token_payload())

        await auth.login("ada@example.com", "secret1")

        assert memory_store.snapshot() == {}

    @pytest.mark.asyncio
    async def test_wrong_credentials(self, auth, fake_backend):
        fake_backend.on("POST", "/auth/v1/token", status=400,
                        json={"error": "invalid_grant", "error_description": "Invalid login credentials"})

        with pytest.raises(ApiError, match="Invalid login credentials"):
            await auth.login("ada@example.com", "wrong-pass")

        assert auth.session is None


class TestSessionLifecycle:

    @pytest.mark.asyncio
    async def test_logout_clears_everything(self, auth, fake_backend, gateway, memory_store):
        await memory_store.set("stayLoggedIn", True)
        fake_backend.on("POST", "/auth/v1/token", json=token_payload())
        await auth.login("ada@example.com", "secret1")

        await auth.logout()

        assert auth.session is None
        assert auth.state is AuthState.SIGNED_OUT
        assert gateway.token is None
        assert memory_store.snapshot() == {"stayLoggedIn": True}

    @pytest.mark.asyncio
    async def test_restore_sets_gateway_token(self, auth, gateway, memory_store):
        await memory_store.set_many({
            "stayLoggedIn": True,
            "userEmail": "ada@example.com",
            "userName": "Ada",
            "userId": "user-1",
            "accessToken": "stored-token",
        })

        session = await auth.restore()

        assert session is not None
        assert auth.state is AuthState.SIGNED_IN
        assert gateway.token == "stored-token"

    @pytest.mark.asyncio
    async def test_restore_without_stored_session(self, auth, gateway):
        assert await auth.restore() is None
        assert auth.state is AuthState.SIGNED_OUT
        assert gateway.token is None

    @pytest.mark.asyncio
    async def test_enabling_stay_logged_in_persists_live_session(self, auth, fake_backend, memory_store):
        fake_backend.on("POST", "/auth/v1/token", json=token_payload())
        await auth.login("ada@example.com", "secret1")

        await auth.set_stay_logged_in(True)

        assert memory_store.snapshot()["accessToken"] == "access-123"
        assert auth.session.stay_logged_in is True

    @pytest.mark.asyncio
    async def test_disabling_stay_logged_in_keeps_live_session(self, auth, fake_backend, memory_store):
        await memory_store.set("stayLoggedIn", True)
        fake_backend.on("POST", "/auth/v1/token", json=token_payload())
        await auth.login("ada@example.com", "secret1")

        await auth.set_stay_logged_in(False)

        assert auth.session is not None
        assert "accessToken" not in memory_store.snapshot()
        assert await auth.get_stay_logged_in() is False


class TestPasswordResetAndProfile:

    @pytest.mark.asyncio
    async def test_reset_rejects_bad_email_locally(self, auth, fake_backend):
        with pytest.raises(InvalidEmailError):
            await auth.reset_password("nope")

        assert fake_backend.requests == []

    @pytest.mark.asyncio
    async def test_reset_delegates(self, auth, fake_backend):
        fake_backend.on("POST", "/auth/v1/recover", json={})

        await auth.reset_password("ada@example.com")

        assert len(fake_backend.requests) == 1

    @pytest.mark.asyncio
    async def test_update_profile_requires_session(self, auth):
        with pytest.raises(NotAuthenticatedError):
            await auth.update_profile("Ada")

    @pytest.mark.asyncio
    async def test_update_profile_changes_name(self, auth, fake_backend, memory_store):
        await memory_store.set("stayLoggedIn", True)
        fake_backend.on("POST", "/auth/v1/token", json=token_payload())
        await auth.login("ada@example.com", "secret1")

        session = await auth.update_profile("  Countess Lovelace ")

        assert session.name == "Countess Lovelace"
        assert auth.session.name == "Countess Lovelace"
        assert memory_store.snapshot()["userName"] == "Countess Lovelace"

    @pytest.mark.asyncio
    async def test_update_profile_rejects_blank(self, auth, fake_backend):
        fake_backend.on("POST", "/auth/v1/token", json=token_payload())
        await auth.login("ada@example.com", "secret1")

        with pytest.raises(InvalidInputError):
            await auth.update_profile("   ")


class TestClientBinding:

    @pytest.mark.asyncio
    async def test_login_issues_client_key(self, auth, fake_backend):
        fake_backend.on("POST", "/auth/v1/token", json=token_payload())

        session = await auth.login("ada@example.com", "secret1")

        assert session.client_key
        assert auth.authorize(session.client_key) is auth.session
        assert auth.owns(session.client_key)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("presented", [None, "", "someone-else"])
    async def test_wrong_or_missing_key_rejected(self, auth, fake_backend, presented):
        fake_backend.on("POST", "/auth/v1/token", json=token_payload())
        await auth.login("ada@example.com", "secret1")

        assert not auth.owns(presented)
        with pytest.raises(NotAuthenticatedError):
            auth.authorize(presented)

    def test_signed_out_rejects_everyone(self, auth):
        with pytest.raises(NotAuthenticatedError):
            auth.authorize("any-key")

    @pytest.mark.asyncio
    async def test_each_login_gets_a_fresh_key(self, auth, fake_backend):
        fake_backend.on("POST", "/auth/v1/token", json=token_payload())
        first = await auth.login("ada@example.com", "secret1")
        second = await auth.login("ada@example.com", "secret1")

        assert first.client_key != second.client_key
        assert not auth.owns(first.client_key)

    @pytest.mark.asyncio
    async def test_remembered_key_survives_restart(self, gateway, fake_backend, memory_store):
        await memory_store.set("stayLoggedIn", True)
        fake_backend.on("POST", "/auth/v1/token", json=token_payload())
        first_run = AuthService(gateway, SessionStore(memory_store))
        session = await first_run.login("ada@example.com", "secret1")

        second_run = AuthService(gateway, SessionStore(memory_store))
        await second_run.restore()

        assert memory_store.snapshot()["clientKey"] == session.client_key
        assert second_run.owns(session.client_key)

    @pytest.mark.asyncio
    async def test_restore_without_stored_key_issues_one(self, auth, memory_store):
        await memory_store.set_many({
            "stayLoggedIn": True,
            "userEmail": "ada@example.com",
            "userName": "Ada",
            "userId": "user-1",
            "accessToken": "stored-token",
        })

        session = await auth.restore()

        assert session.client_key
        assert auth.owns(session.client_key)


class TestLogoutStorageFailure:
    """A logout whose write fails leaves memory and disk agreeing."""

    @pytest.mark.asyncio
    async def test_failed_write_keeps_session_everywhere(self, gateway, fake_backend, tmp_path):
        path = str(tmp_path / "preferences.json")
        store = JsonFilePreferenceStore(path)
        await store.set("stayLoggedIn", True)
        fake_backend.on("POST", "/auth/v1/token", json=token_payload())
        auth = AuthService(gateway, SessionStore(store))
        await auth.login("ada@example.com", "secret1")

        with patch("quotebook.services.preference_store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PreferenceStorageError):
                await auth.logout()

        assert auth.session is not None
        assert auth.state is AuthState.SIGNED_IN
        assert gateway.token == "access-123"
        assert await store.get("accessToken") == "access-123"
        on_disk = await SessionStore(JsonFilePreferenceStore(path)).restore_session()
        assert on_disk.user_id == "user-1"

    @pytest.mark.asyncio
    async def test_retry_after_failure_signs_out_for_good(self, gateway, fake_backend, tmp_path):
        path = str(tmp_path / "preferences.json")
        store = JsonFilePreferenceStore(path)
        await store.set("stayLoggedIn", True)
        fake_backend.on("POST", "/auth/v1/token", json=token_payload())
        auth = AuthService(gateway, SessionStore(store))
        await auth.login("ada@example.com", "secret1")

        with patch("quotebook.services.preference_store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PreferenceStorageError):
                await auth.logout()
        await auth.logout()

        assert auth.session is None
        assert gateway.token is None
        assert await SessionStore(JsonFilePreferenceStore(path)).restore_session() is None
