"""
Quotebook Backend — Collection Route Handlers
=============================================

What:  Create, list and delete the signed-in user's collections, and manage
       which quotes they hold.
Who:   The collections screen and the "add to collection" sheet.

All routes need the session cookie of the client that signed in (401
otherwise). Row ownership is enforced by the backend's row-level security
through the user's bearer token.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status

from quotebook.dependencies import get_current_session, get_quote_service
from quotebook.schemas.api import ErrorResponse
from quotebook.schemas.auth import Session
from quotebook.schemas.quote import Collection, CollectionCreate, Quote
from quotebook.services.quote_service import QuoteService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/collections",
    tags=["Collections"],
    responses={
        401: {"description": "Not signed in", "model": ErrorResponse},
        502: {"description": "Backend error", "model": ErrorResponse},
    },
)


@router.get("", response_model=List[Collection], summary="List collections, newest first")
async def list_collections(
    session: Session = Depends(get_current_session),
    quotes: QuoteService = Depends(get_quote_service),
) -> List[Collection]:
    return await quotes.fetch_collections(session.user_id)


@router.post(
    "",
    response_model=Collection,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Blank name", "model": ErrorResponse}},
    summary="Create a collection",
)
async def create_collection(
    body: CollectionCreate,
    session: Session = Depends(get_current_session),
    quotes: QuoteService = Depends(get_quote_service),
) -> Collection:
    return await quotes.create_collection(session.user_id, body.name)


@router.delete(
    "/{collection_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a collection",
)
async def delete_collection(
    collection_id: str,
    session: Session = Depends(get_current_session),
    quotes: QuoteService = Depends(get_quote_service),
) -> Response:
    await quotes.delete_collection(collection_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{collection_id}/quotes",
    response_model=List[Quote],
    summary="Quotes in a collection",
)
async def list_collection_quotes(
    collection_id: str,
    session: Session = Depends(get_current_session),
    quotes: QuoteService = Depends(get_quote_service),
) -> List[Quote]:
    """May return fewer quotes than the collection holds if some lookups fail."""
    return await quotes.fetch_collection_quotes(collection_id)


@router.put(
    "/{collection_id}/quotes/{quote_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Add a quote to a collection",
)
async def add_quote(
    collection_id: str,
    quote_id: str,
    session: Session = Depends(get_current_session),
    quotes: QuoteService = Depends(get_quote_service),
) -> Response:
    await quotes.add_quote_to_collection(collection_id, quote_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{collection_id}/quotes/{quote_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Remove a quote from a collection",
)
async def remove_quote(
    collection_id: str,
    quote_id: str,
    session: Session = Depends(get_current_session),
    quotes: QuoteService = Depends(get_quote_service),
) -> Response:
    await quotes.remove_quote_from_collection(collection_id, quote_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
