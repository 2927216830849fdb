"""
Quotebook Backend — Favorites Route Handlers
============================================

What:  The signed-in user's favorite quotes.
Who:   Heart buttons and the favorites screen.

All routes need the session cookie of the client that signed in (401
otherwise). Favoriting the same quote twice is not deduplicated here; the
backend's unique constraint, if any, decides.
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status

from quotebook.dependencies import get_current_session, get_quote_service
from quotebook.schemas.api import ErrorResponse
from quotebook.schemas.auth import Session
from quotebook.schemas.quote import FavoriteStatus, Quote
from quotebook.services.quote_service import QuoteService

router = APIRouter(
    prefix="/api/favorites",
    tags=["Favorites"],
    responses={
        401: {"description": "Not signed in", "model": ErrorResponse},
        502: {"description": "Backend error", "model": ErrorResponse},
    },
)


@router.get("", response_model=List[Quote], summary="List favorite quotes")
async def list_favorites(
    session: Session = Depends(get_current_session),
    quotes: QuoteService = Depends(get_quote_service),
) -> List[Quote]:
    return await quotes.fetch_favorites(session.user_id)


@router.get("/{quote_id}", response_model=FavoriteStatus, summary="Is this quote a favorite?")
async def favorite_status(
    quote_id: str,
    session: Session = Depends(get_current_session),
    quotes: QuoteService = Depends(get_quote_service),
) -> FavoriteStatus:
    is_favorite = await quotes.is_favorite(session.user_id, quote_id)
    return FavoriteStatus(quote_id=quote_id, is_favorite=is_favorite)


@router.put("/{quote_id}", response_model=FavoriteStatus, summary="Favorite a quote")
async def add_favorite(
    quote_id: str,
    session: Session = Depends(get_current_session),
    quotes: QuoteService = Depends(get_quote_service),
) -> FavoriteStatus:
    await quotes.add_to_favorites(session.user_id, quote_id)
    return FavoriteStatus(quote_id=quote_id, is_favorite=True)


@router.delete(
    "/{quote_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Unfavorite a quote",
)
async def remove_favorite(
    quote_id: str,
    session: Session = Depends(get_current_session),
    quotes: QuoteService = Depends(get_quote_service),
) -> Response:
    await quotes.remove_from_favorites(session.user_id, quote_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
