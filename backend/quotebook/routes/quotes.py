"""
Quotebook Backend — Quote Route Handlers
========================================

What:  Public quote browsing: paginated search, the quote of the day, the
       category list, and the home feed bundle.
Who:   The UI's home and browse screens. None of these need a session;
       /api/feed adds favorite ids for the client that signed in.

Pagination:
    GET /api/quotes?page=0&limit=20   → quotes 1-20
    GET /api/quotes?page=1&limit=20   → quotes 21-40
    Keep paging while `has_more` is true.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from quotebook.dependencies import (
    get_auth_service,
    get_client_key,
    get_quote_service,
    get_services,
)
from quotebook.schemas.api import ErrorResponse
from quotebook.schemas.quote import CategoryList, HomeFeed, Quote, QuotePage, category_names
from quotebook.services.auth_service import AuthService
from quotebook.services.container import ServiceContainer
from quotebook.services.quote_service import QuoteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Quotes"])


@router.get(
    "/quotes",
    response_model=QuotePage,
    responses={502: {"description": "Backend error", "model": ErrorResponse}},
    summary="Browse quotes, newest first",
)
async def list_quotes(
    page: int = Query(default=0, ge=0, description="Zero-based page index"),
    limit: Optional[int] = Query(
        default=None, ge=1, le=100, description="Page size (server default when omitted)"
    ),
    category: Optional[str] = Query(default=None, description="Exact category name"),
    search: Optional[str] = Query(default=None, description="Substring of the quote text"),
    author: Optional[str] = Query(default=None, description="Substring of the author"),
    services: ServiceContainer = Depends(get_services),
    quotes: QuoteService = Depends(get_quote_service),
) -> QuotePage:
    return await quotes.fetch_quote_page(
        page=page,
        limit=limit or services.default_page_size,
        category=category,
        search_text=search,
        author=author,
    )


@router.get("/quotes/daily", response_model=Quote, summary="Quote of the day")
async def quote_of_the_day(quotes: QuoteService = Depends(get_quote_service)) -> Quote:
    """Always answers 200; falls back to a fixed quote when the backend has none."""
    return await quotes.fetch_quote_of_the_day()


@router.get("/quotes/categories", response_model=CategoryList, summary="Filterable categories")
async def list_categories() -> CategoryList:
    return CategoryList(categories=category_names())


@router.get(
    "/feed",
    response_model=HomeFeed,
    responses={502: {"description": "Backend error", "model": ErrorResponse}},
    summary="Everything the home screen loads at start-up",
)
async def home_feed(
    category: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    author: Optional[str] = Query(default=None),
    client_key: Optional[str] = Depends(get_client_key),
    services: ServiceContainer = Depends(get_services),
    auth: AuthService = Depends(get_auth_service),
    quotes: QuoteService = Depends(get_quote_service),
) -> HomeFeed:
    user_id = auth.session.user_id if auth.owns(client_key) else None
    return await quotes.load_home_feed(
        user_id=user_id,
        page_size=services.default_page_size,
        category=category,
        search_text=search,
        author=author,
    )
