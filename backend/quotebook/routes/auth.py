"""
Quotebook Backend — Auth Route Handlers
=======================================

What:  Sign-up, login, logout, password recovery, the session view, the
       stay-logged-in preference and the display name.
Who:   The UI's login/sign-up screens and the profile screen.

Tokens never leave the server: every response carries a SessionResponse
without credentials. The client that signs in gets the session cookie
instead; a remembered session keeps the cookie for SESSION_COOKIE_MAX_AGE,
otherwise it lasts until the browser closes.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response, status

from quotebook.dependencies import (
    SESSION_COOKIE,
    get_auth_service,
    get_client_key,
    get_current_session,
)
from quotebook.schemas.api import ErrorResponse, MessageResponse
from quotebook.schemas.auth import (
    LoginRequest,
    ProfileUpdateRequest,
    ResetPasswordRequest,
    Session,
    SessionResponse,
    SignUpOutcome,
    SignUpRequest,
    SignUpResponse,
    StayLoggedInRequest,
)
from quotebook.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

CONFIRMATION_MESSAGE = "Please check your email to confirm your account"
SIGNED_UP_MESSAGE = "Account created"
RESET_SENT_MESSAGE = "Password reset email sent"

SESSION_COOKIE_MAX_AGE = 30 * 24 * 60 * 60

COMMON_ERRORS = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    502: {"description": "Backend rejected the request", "model": ErrorResponse},
}

NOT_SIGNED_IN = {401: {"description": "Not signed in from this client", "model": ErrorResponse}}


async def _session_view(auth: AuthService, session: Optional[Session]) -> SessionResponse:
    return SessionResponse.from_session(session, await auth.get_stay_logged_in())


def _set_session_cookie(response: Response, session: Session) -> None:
    response.set_cookie(
        SESSION_COOKIE,
        session.client_key,
        max_age=SESSION_COOKIE_MAX_AGE if session.stay_logged_in else None,
        httponly=True,
        samesite="lax",
    )


@router.post(
    "/signup",
    response_model=SignUpResponse,
    status_code=status.HTTP_201_CREATED,
    responses=COMMON_ERRORS,
    summary="Create an account",
)
async def sign_up(
    body: SignUpRequest,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
) -> SignUpResponse:
    """
    Register with email, password and display name.

    `outcome` is `confirmation_required` when the backend wants the email
    confirmed first; no session exists yet in that case.
    """
    outcome = await auth.sign_up(body.email, body.password, body.name)
    if outcome is SignUpOutcome.CONFIRMATION_REQUIRED:
        return SignUpResponse(outcome=outcome, message=CONFIRMATION_MESSAGE)

    session = auth.require_session()
    _set_session_cookie(response, session)
    return SignUpResponse(
        outcome=outcome,
        message=SIGNED_UP_MESSAGE,
        session=await _session_view(auth, session),
    )


@router.post(
    "/login",
    response_model=SessionResponse,
    responses=COMMON_ERRORS,
    summary="Sign in with email and password",
)
async def login(
    body: LoginRequest,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
) -> SessionResponse:
    """Sign in; any other client signed in before loses its session."""
    session = await auth.login(body.email, body.password)
    _set_session_cookie(response, session)
    return await _session_view(auth, session)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=NOT_SIGNED_IN,
    summary="Sign out and forget the stored session",
)
async def logout(
    client_key: Optional[str] = Depends(get_client_key),
    auth: AuthService = Depends(get_auth_service),
) -> Response:
    """Signed out already → 204. Someone else's session → 401."""
    if auth.session is not None:
        auth.authorize(client_key)
        await auth.logout()

    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(SESSION_COOKIE)
    return response


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses=COMMON_ERRORS,
    summary="Email a password recovery link",
)
async def reset_password(
    body: ResetPasswordRequest,
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth.reset_password(body.email)
    return MessageResponse(message=RESET_SENT_MESSAGE)


@router.get("/session", response_model=SessionResponse, summary="Current session")
async def get_session(
    client_key: Optional[str] = Depends(get_client_key),
    auth: AuthService = Depends(get_auth_service),
) -> SessionResponse:
    """`authenticated` is true only for the client that signed in."""
    session = auth.session if auth.owns(client_key) else None
    return await _session_view(auth, session)


@router.put(
    "/stay-logged-in",
    response_model=SessionResponse,
    responses=NOT_SIGNED_IN,
    summary="Remember or forget the session across restarts",
)
async def set_stay_logged_in(
    body: StayLoggedInRequest,
    response: Response,
    client_key: Optional[str] = Depends(get_client_key),
    auth: AuthService = Depends(get_auth_service),
) -> SessionResponse:
    """
    Signed out: only the preference changes. Signed in: only the client
    holding the session may change it, and its cookie lifetime follows.
    """
    if auth.session is not None:
        auth.authorize(client_key)

    await auth.set_stay_logged_in(body.stay_logged_in)
    if auth.session is not None:
        _set_session_cookie(response, auth.session)
    return await _session_view(auth, auth.session)


@router.patch(
    "/profile",
    response_model=SessionResponse,
    responses={
        400: {"description": "Blank name", "model": ErrorResponse},
        **NOT_SIGNED_IN,
    },
    summary="Change the display name",
)
async def update_profile(
    body: ProfileUpdateRequest,
    _: Session = Depends(get_current_session),
    auth: AuthService = Depends(get_auth_service),
) -> SessionResponse:
    session = await auth.update_profile(body.name)
    return await _session_view(auth, session)
