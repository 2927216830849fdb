"""
Quotebook Backend — Auth Service (Session Orchestrator)
=======================================================

What:  Validates credentials, drives the gateway's auth calls and the
       SessionStore, and owns the canonical in-memory session.
Who:   Auth routes call it; quote/favorite/collection routes ask it for the
       current user via require_session().

State machine:
    ┌────────────┐  login / sign_up   ┌────────────┐  token issued  ┌───────────┐
    │ SIGNED_OUT │───────────────────▶│ SIGNING_IN │───────────────▶│ SIGNED_IN │
    └────────────┘                    │ SIGNING_UP │                └───────────┘
          ▲          failure /        └────────────┘                      │
          │          confirmation pending     │                           │
          └───────────────────────────────────┘◀──────── logout ──────────┘

    A failed attempt returns to the state it started from. Concurrent logins
    are not deduplicated; the last one to finish wins.

Validation happens before any network call: a ValidationError means the
backend was not contacted.

Client binding:
    Every established session carries a random `client_key`. Only the HTTP
    client that signed in receives it, and authorize() rejects requests that
    do not present it, so other clients of the same server stay signed out.
    A remembered session keeps its key across restarts.
"""

import logging
import re
import secrets
from typing import Optional

from quotebook.exceptions import (
    ApiError,
    InvalidEmailError,
    InvalidInputError,
    NotAuthenticatedError,
    PasswordTooShortError,
)
from quotebook.schemas.auth import (
    AuthState,
    ConfirmationPending,
    Session,
    SignUpOutcome,
    SupabaseUser,
    TokenIssued,
)
from quotebook.services.gateway import BackendGateway
from quotebook.services.session_store import SessionStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

EMAIL_PATTERN = re.compile(r"[A-Z0-9a-z._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,64}")


def is_valid_email(email: str) -> bool:
    """True when the whole string looks like `local-part@domain.tld`."""
    return EMAIL_PATTERN.fullmatch(email) is not None


def new_client_key() -> str:
    return secrets.token_urlsafe(32)


def display_name_for(user: SupabaseUser, email: str) -> str:
    """Name from sign-up metadata, else the email's local part, else "User"."""
    name = user.metadata_name()
    if name:
        return name
    local_part = email.split("@", 1)[0]
    return local_part or "User"


class AuthService:
    """Sign-up, login, logout and the remembered-session preference."""

    def __init__(self, gateway: BackendGateway, session_store: SessionStore):
        self.gateway = gateway
        self.session_store = session_store
        self.state = AuthState.SIGNED_OUT
        self.session: Optional[Session] = None

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None

    def require_session(self) -> Session:
        if self.session is None:
            raise NotAuthenticatedError()
        return self.session

    def owns(self, client_key: Optional[str]) -> bool:
        """True when `client_key` is the key of the current session."""
        if self.session is None or not client_key or not self.session.client_key:
            return False
        return secrets.compare_digest(client_key, self.session.client_key)

    def authorize(self, client_key: Optional[str]) -> Session:
        """The current session, if `client_key` belongs to it; NotAuthenticatedError otherwise."""
        if not self.owns(client_key):
            raise NotAuthenticatedError()
        return self.session

    # ── Start-up ──────────────────────────────────────────────────────────

    async def restore(self) -> Optional[Session]:
        """Resume the remembered session, if there is a complete one."""
        session = await self.session_store.restore_session()
        if session is None:
            return None

        session = self._establish(session)
        logger.info("Restored session for user %s", session.user_id)
        return session

    def _establish(self, session: Session) -> Session:
        if not session.client_key:
            session = session.model_copy(update={"client_key": new_client_key()})
        self.session = session
        self.gateway.set_token(session.access_token)
        self.state = AuthState.SIGNED_IN
        return session

    def _abandon(self, previous: AuthState) -> None:
        """Undo a half-finished attempt: prior state, prior token."""
        self.state = previous
        if self.session is None:
            self.gateway.clear_token()
        else:
            self.gateway.set_token(self.session.access_token)

    async def _persist(self, session: Session) -> None:
        await self.session_store.save_session(
            token=session.access_token,
            refresh_token=session.refresh_token,
            user_id=session.user_id,
            email=session.email,
            name=session.name,
            client_key=session.client_key,
        )

    # ── Sign-up / Login ───────────────────────────────────────────────────

    async def sign_up(self, email: str, password: str, name: str) -> SignUpOutcome:
        """
        Register a new account.

        Returns:
            SIGNED_IN when the backend issued a token (the session is now
            active), CONFIRMATION_REQUIRED when the user must confirm their
            email first. The latter is informational, not a failure.

        Raises:
            InvalidInputError / InvalidEmailError / PasswordTooShortError:
                Before any network call.
            ApiError: Backend refusal, or a token without a user.
        """
        if not email or not password or not name:
            raise InvalidInputError()
        if not is_valid_email(email):
            raise InvalidEmailError()
        if len(password) < MIN_PASSWORD_LENGTH:
            raise PasswordTooShortError(min_length=MIN_PASSWORD_LENGTH)

        previous = self.state
        self.state = AuthState.SIGNING_UP
        try:
            result = await self.gateway.sign_up(email, password, name)
        except Exception:
            self.state = previous
            raise

        if isinstance(result, ConfirmationPending):
            self.state = previous
            logger.info("Sign-up for %s awaits email confirmation", email)
            return SignUpOutcome.CONFIRMATION_REQUIRED

        if result.user is None:
            self._abandon(previous)
            raise ApiError("Sign up failed: no user in response")

        session = Session(
            user_id=result.user.id,
            email=result.user.email or email,
            name=result.user.metadata_name() or name,
            access_token=result.access_token,
            refresh_token=result.refresh_token,
            stay_logged_in=await self.session_store.get_stay_logged_in(),
        )
        session = self._establish(session)
        await self._persist(session)
        logger.info("Signed up and signed in user %s", session.user_id)
        return SignUpOutcome.SIGNED_IN

    async def login(self, email: str, password: str) -> Session:
        """
        Sign in with email and password.

        Raises:
            InvalidInputError / InvalidEmailError: Before any network call.
            ApiError: Wrong credentials, backend failure, or no user returned.
        """
        if not email or not password:
            raise InvalidInputError()
        if not is_valid_email(email):
            raise InvalidEmailError()

        previous = self.state
        self.state = AuthState.SIGNING_IN
        try:
            result: TokenIssued = await self.gateway.sign_in(email, password)
        except Exception:
            self.state = previous
            raise

        if result.user is None:
            self._abandon(previous)
            raise ApiError("Login failed")

        user_email = result.user.email or email
        session = Session(
            user_id=result.user.id,
            email=user_email,
            name=display_name_for(result.user, user_email),
            access_token=result.access_token,
            refresh_token=result.refresh_token,
            stay_logged_in=await self.session_store.get_stay_logged_in(),
        )
        session = self._establish(session)
        await self._persist(session)
        logger.info("User %s signed in", session.user_id)
        return session

    async def logout(self) -> None:
        """
        Forget the session everywhere: storage, memory and gateway.

        Storage is cleared first. If that write fails the error propagates
        and the session stays active, matching what is still on disk.
        """
        await self.session_store.clear_session()
        user_id = self.session.user_id if self.session else None
        self.session = None
        self.gateway.clear_token()
        self.state = AuthState.SIGNED_OUT
        logger.info("User %s signed out", user_id)

    async def reset_password(self, email: str) -> None:
        if not email or not is_valid_email(email):
            raise InvalidEmailError()
        await self.gateway.reset_password(email)
        logger.info("Password recovery requested for %s", email)

    # ── Preferences & Profile ─────────────────────────────────────────────

    async def get_stay_logged_in(self) -> bool:
        return await self.session_store.get_stay_logged_in()

    async def set_stay_logged_in(self, flag: bool) -> None:
        await self.session_store.set_stay_logged_in(flag, current=self.session)
        if self.session is not None:
            self.session = self.session.model_copy(update={"stay_logged_in": flag})

    async def update_profile(self, name: str) -> Session:
        """
        Change the display name of the signed-in user.

        Local only: the in-memory session and, when remembered, the stored
        name are updated. The backend user record is not changed.
        """
        session = self.require_session()
        if not name or not name.strip():
            raise InvalidInputError(field="name")

        self.session = session.model_copy(update={"name": name.strip()})
        await self.session_store.update_name(self.session.name)
        return self.session
