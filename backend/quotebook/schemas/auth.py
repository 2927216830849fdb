"""
Quotebook Backend — Auth and Session Schemas
============================================

What:  Models for the auth endpoints' responses, the in-memory session, and the
       auth API request/response bodies.

Sign-up response shapes:
    The auth server answers a successful sign-up in one of two ways:

    token issued          {"access_token": "...", "refresh_token": "...",
                           "user": {"id": "...", "email": "...", ...}}
    confirmation pending  {"id": "...", "email": "...",
                           "confirmation_sent_at": "...", ...}

    Both decode into the `AuthResult` tagged union through `parse_auth_payload`,
    which looks at the payload once and picks the variant. A pending
    confirmation is an ordinary outcome, not an error.
"""

from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from quotebook.schemas.common import RecordId, Timestamp


class SupabaseUser(BaseModel):
    """The `user` object of the auth envelope (only the fields we read)."""

    id: RecordId
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)

    def metadata_name(self) -> Optional[str]:
        """Display name stored at sign-up under `user_metadata.name`, if any."""
        name = self.user_metadata.get("name")
        if isinstance(name, str) and name.strip():
            return name
        return None


class TokenIssued(BaseModel):
    """Auth envelope carrying an access token (sign-in, or sign-up without confirmation)."""

    status: Literal["token_issued"] = "token_issued"
    access_token: str
    refresh_token: Optional[str] = None
    user: Optional[SupabaseUser] = None


class ConfirmationPending(BaseModel):
    """Sign-up accepted; the user must confirm their email before a token exists."""

    status: Literal["confirmation_pending"] = "confirmation_pending"
    user: SupabaseUser
    confirmation_sent_at: Timestamp = None

    @property
    def access_token(self) -> None:
        return None

    @property
    def refresh_token(self) -> None:
        return None


AuthResult = Annotated[Union[TokenIssued, ConfirmationPending], Field(discriminator="status")]

_auth_result_adapter: TypeAdapter = TypeAdapter(AuthResult)


def parse_auth_payload(payload: Any) -> Optional[Union[TokenIssued, ConfirmationPending]]:
    """
    Discriminate a successful auth response body into an AuthResult.

    Returns None when the payload matches neither known shape; the caller
    then extracts an error message from it.
    """
    if not isinstance(payload, dict):
        return None

    if payload.get("access_token"):
        tagged = {**payload, "status": "token_issued"}
    elif isinstance(payload.get("user"), dict):
        tagged = {
            "status": "confirmation_pending",
            "user": payload["user"],
            "confirmation_sent_at": payload["user"].get("confirmation_sent_at"),
        }
    elif isinstance(payload.get("id"), str):
        tagged = {
            "status": "confirmation_pending",
            "user": payload,
            "confirmation_sent_at": payload.get("confirmation_sent_at"),
        }
    else:
        return None

    return _auth_result_adapter.validate_python(tagged)


class Session(BaseModel):
    """
    What:  The signed-in user's identity and credentials.
    Who:   Owned by AuthService; mirrored to the preference store by
           SessionStore when the user chose to stay logged in.

    `client_key` is the secret handed to the HTTP client that signed in.
    Requests acting as this user must present it.
    """

    user_id: str
    email: str
    name: str
    access_token: str
    refresh_token: Optional[str] = None
    stay_logged_in: bool = False
    client_key: Optional[str] = None


class AuthState(str, Enum):
    """Lifecycle of AuthService."""

    SIGNED_OUT = "signed_out"
    SIGNING_IN = "signing_in"
    SIGNING_UP = "signing_up"
    SIGNED_IN = "signed_in"


class SignUpOutcome(str, Enum):
    """Non-error results of AuthService.sign_up."""

    SIGNED_IN = "signed_in"
    CONFIRMATION_REQUIRED = "confirmation_required"


# ══════════════════════════════════════════════════════════════════════════
# API Request / Response Models
# ══════════════════════════════════════════════════════════════════════════
# Request fields are plain strings: emptiness, email format and password
# length are checked by AuthService so the API and direct callers get the
# same errors.


class SignUpRequest(BaseModel):
    email: str = ""
    password: str = ""
    name: str = ""


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class ResetPasswordRequest(BaseModel):
    email: str = ""


class StayLoggedInRequest(BaseModel):
    stay_logged_in: bool


class ProfileUpdateRequest(BaseModel):
    name: str = ""


class SessionResponse(BaseModel):
    """
    What:  Public view of the session. Tokens are never returned to the UI.
    """

    authenticated: bool
    user_id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    stay_logged_in: bool = False

    @classmethod
    def from_session(cls, session: Optional[Session], stay_logged_in: bool) -> "SessionResponse":
        if session is None:
            return cls(authenticated=False, stay_logged_in=stay_logged_in)
        return cls(
            authenticated=True,
            user_id=session.user_id,
            email=session.email,
            name=session.name,
            stay_logged_in=stay_logged_in,
        )


class SignUpResponse(BaseModel):
    outcome: SignUpOutcome
    message: str
    session: Optional[SessionResponse] = None
