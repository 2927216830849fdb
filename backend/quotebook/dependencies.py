"""
Quotebook Backend — Route Dependencies
======================================

What:  FastAPI `Depends()` providers that hand route handlers their services.
How:   The lifespan (or a test) stores a ServiceContainer on
       `app.state.services`; each provider reads it from the request.

Session binding:
    Login and sign-up set the `quotebook_session` cookie to the session's
    client key. get_current_session() answers 401 to any request without
    that cookie, even while another client is signed in.

Usage:
    @router.get("/favorites")
    async def list_favorites(
        session: Session = Depends(get_current_session),
        quotes: QuoteService = Depends(get_quote_service),
    ): ...
"""

from typing import Optional

from fastapi import Depends, Request

from quotebook.schemas.auth import Session
from quotebook.services.auth_service import AuthService
from quotebook.services.container import ServiceContainer
from quotebook.services.preferences_service import PreferencesService
from quotebook.services.quote_service import QuoteService

SESSION_COOKIE = "quotebook_session"


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_auth_service(services: ServiceContainer = Depends(get_services)) -> AuthService:
    return services.auth


def get_quote_service(services: ServiceContainer = Depends(get_services)) -> QuoteService:
    return services.quotes


def get_preferences_service(
    services: ServiceContainer = Depends(get_services),
) -> PreferencesService:
    return services.preferences


def get_client_key(request: Request) -> Optional[str]:
    return request.cookies.get(SESSION_COOKIE)


def get_current_session(
    client_key: Optional[str] = Depends(get_client_key),
    auth: AuthService = Depends(get_auth_service),
) -> Session:
    """The caller's session; NotAuthenticatedError (401) when the caller did not sign in."""
    return auth.authorize(client_key)
