"""
Quotebook Backend — Quote Service (Domain Queries)
==================================================

What:  Typed, filtered queries over the backend tables: paginated quote
       browsing, quote of the day, favorites, collections and their members.
How:   Builds PostgREST query strings and hands them to BackendGateway, which
       decodes rows into schema models.
Who:   Called by route handlers; calls only the gateway.

Query building:
    quotes?order=created_at.desc&limit=20&offset=40
          &category=eq.Wisdom
          &text=ilike.%25be%20kind%25
          &author=ilike.%25twain%25
    Search terms are percent-encoded with no safe characters and wrapped in
    `%25` (an encoded `%`) so PostgREST sees `ilike.%term%`. Record ids in
    `eq.` and `in.()` filters are percent-encoded the same way.

Fallbacks (the only places an error does not propagate):
    fetch_quote_of_the_day    any failure → fixed fallback quote
    fetch_collection_quotes   batched lookup fails → one request per id,
                              skipping ids that fail individually
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from urllib.parse import quote as url_quote

from quotebook.exceptions import ApiError, ValidationError
from quotebook.schemas.quote import (
    Collection,
    CollectionQuote,
    HomeFeed,
    Quote,
    QuotePage,
    UserFavorite,
)
from quotebook.services.gateway import BackendGateway

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20

FALLBACK_QUOTE_ID = "1"
FALLBACK_QUOTE_TEXT = "The only way to do great work is to love what you do."
FALLBACK_QUOTE_AUTHOR = "Steve Jobs"
FALLBACK_QUOTE_CATEGORY = "Motivation"


def fallback_quote() -> Quote:
    """The quote shown when the backend has none to offer."""
    return Quote(
        id=FALLBACK_QUOTE_ID,
        text=FALLBACK_QUOTE_TEXT,
        author=FALLBACK_QUOTE_AUTHOR,
        category=FALLBACK_QUOTE_CATEGORY,
        created_at=datetime.now(timezone.utc),
    )


def _encode(value: str) -> str:
    return url_quote(value, safe="")


def _contains(value: str) -> str:
    """PostgREST `ilike` operand matching `value` anywhere."""
    return f"ilike.%25{_encode(value)}%25"


def _id_list(ids: Iterable[str]) -> str:
    return ",".join(_encode(i) for i in ids)


class QuoteService:
    """
    Quote, favorite and collection queries.

    Stateless apart from the injected gateway; the user id is passed in by the
    caller (usually taken from AuthService.require_session()).
    """

    def __init__(self, gateway: BackendGateway):
        self.gateway = gateway

    # ── Quotes ────────────────────────────────────────────────────────────

    async def fetch_quotes(
        self,
        page: int = 0,
        limit: int = DEFAULT_PAGE_SIZE,
        category: Optional[str] = None,
        search_text: Optional[str] = None,
        author: Optional[str] = None,
    ) -> List[Quote]:
        """
        One page of quotes, newest first.

        Args:
            page: Zero-based page index (offset = page * limit).
            limit: Page size.
            category: Exact category match, ignored when empty.
            search_text: Case-insensitive substring of the quote text.
            author: Case-insensitive substring of the author.
        """
        endpoint = f"quotes?order=created_at.desc&limit={limit}&offset={page * limit}"
        if category:
            endpoint += f"&category=eq.{_encode(category)}"
        if search_text:
            endpoint += f"&text={_contains(search_text)}"
        if author:
            endpoint += f"&author={_contains(author)}"

        quotes = await self.gateway.request_list(endpoint, model=Quote)
        logger.debug("Fetched %d quotes (page=%d, limit=%d)", len(quotes), page, limit)
        return quotes

    async def fetch_quote_page(
        self,
        page: int = 0,
        limit: int = DEFAULT_PAGE_SIZE,
        category: Optional[str] = None,
        search_text: Optional[str] = None,
        author: Optional[str] = None,
    ) -> QuotePage:
        quotes = await self.fetch_quotes(
            page=page,
            limit=limit,
            category=category,
            search_text=search_text,
            author=author,
        )
        return QuotePage(quotes=quotes, page=page, limit=limit, has_more=len(quotes) == limit)

    async def fetch_quote_of_the_day(self) -> Quote:
        """
        The newest quote, or any quote, or the fixed fallback.

        Never raises: backend and transport errors are logged and answered
        with fallback_quote().
        """
        try:
            latest = await self.gateway.request_list(
                "quotes?order=created_at.desc&limit=1", model=Quote
            )
            if latest:
                return latest[0]

            any_quote = await self.gateway.request_list("quotes?limit=1", model=Quote)
            if any_quote:
                return any_quote[0]

            logger.info("No quotes available, using fallback quote of the day")
        except Exception as e:
            logger.warning("Quote of the day unavailable, using fallback: %s", e)

        return fallback_quote()

    async def _fetch_quotes_by_ids(self, ids: List[str]) -> List[Quote]:
        return await self.gateway.request_list(f"quotes?id=in.({_id_list(ids)})", model=Quote)

    # ── Favorites ─────────────────────────────────────────────────────────

    async def fetch_favorite_ids(self, user_id: str) -> List[str]:
        rows = await self.gateway.request_list(
            f"user_favorites?user_id=eq.{_encode(user_id)}&select=quote_id", model=UserFavorite
        )
        return [row.quote_id for row in rows if row.quote_id]

    async def fetch_favorites(self, user_id: str) -> List[Quote]:
        """Quotes the user has favorited. No favorites → [] after a single request."""
        ids = await self.fetch_favorite_ids(user_id)
        if not ids:
            return []
        return await self._fetch_quotes_by_ids(ids)

    async def add_to_favorites(self, user_id: str, quote_id: str) -> None:
        await self.gateway.request(
            "user_favorites",
            method="POST",
            body={"user_id": user_id, "quote_id": quote_id},
        )
        logger.info("User %s favorited quote %s", user_id, quote_id)

    async def remove_from_favorites(self, user_id: str, quote_id: str) -> None:
        await self.gateway.request(
            f"user_favorites?user_id=eq.{_encode(user_id)}&quote_id=eq.{_encode(quote_id)}",
            method="DELETE",
        )
        logger.info("User %s unfavorited quote %s", user_id, quote_id)

    async def is_favorite(self, user_id: str, quote_id: str) -> bool:
        rows = await self.gateway.request_list(
            f"user_favorites?user_id=eq.{_encode(user_id)}"
            f"&quote_id=eq.{_encode(quote_id)}&select=id"
        )
        return len(rows) > 0

    # ── Collections ───────────────────────────────────────────────────────

    async def fetch_collections(self, user_id: str) -> List[Collection]:
        return await self.gateway.request_list(
            f"collections?user_id=eq.{_encode(user_id)}&order=created_at.desc", model=Collection
        )

    async def create_collection(self, user_id: str, name: str) -> Collection:
        """
        Create a collection and return the stored row.

        Raises:
            ValidationError: Blank name (no request is made).
            ApiError: Backend error, or the insert returned no row.
        """
        if not name or not name.strip():
            raise ValidationError("Collection name cannot be empty", field="name")

        created = await self.gateway.request_list(
            "collections",
            method="POST",
            body={"user_id": user_id, "name": name},
            model=Collection,
        )
        if not created:
            raise ApiError("Failed to create collection")

        logger.info("Created collection %s for user %s", created[0].id, user_id)
        return created[0]

    async def delete_collection(self, collection_id: str) -> None:
        await self.gateway.request(f"collections?id=eq.{_encode(collection_id)}", method="DELETE")
        logger.info("Deleted collection %s", collection_id)

    async def fetch_collection_quotes(self, collection_id: str) -> List[Quote]:
        """
        Quotes in a collection.

        Member ids are resolved first, then fetched in one batched `in.()`
        query. If that query fails, each id is fetched on its own and ids that
        still fail are skipped, so the result may be partial.
        """
        rows = await self.gateway.request_list(
            f"collection_quotes?collection_id=eq.{_encode(collection_id)}&select=quote_id",
            model=CollectionQuote,
        )
        ids = [row.quote_id for row in rows]
        if not ids:
            return []

        try:
            return await self._fetch_quotes_by_ids(ids)
        except Exception as e:
            logger.warning(
                "Batched lookup for collection %s failed, fetching %d quotes one by one: %s",
                collection_id,
                len(ids),
                e,
            )

        quotes: List[Quote] = []
        for quote_id in ids:
            try:
                found = await self.gateway.request_list(
                    f"quotes?id=eq.{_encode(quote_id)}", model=Quote
                )
            except Exception as e:
                logger.warning("Skipping quote %s of collection %s: %s", quote_id, collection_id, e)
                continue
            quotes.extend(found)
        return quotes

    async def add_quote_to_collection(self, collection_id: str, quote_id: str) -> None:
        await self.gateway.request(
            "collection_quotes",
            method="POST",
            body={"collection_id": collection_id, "quote_id": quote_id},
        )
        logger.info("Added quote %s to collection %s", quote_id, collection_id)

    async def remove_quote_from_collection(self, collection_id: str, quote_id: str) -> None:
        await self.gateway.request(
            f"collection_quotes?collection_id=eq.{_encode(collection_id)}"
            f"&quote_id=eq.{_encode(quote_id)}",
            method="DELETE",
        )
        logger.info("Removed quote %s from collection %s", quote_id, collection_id)

    # ── Home Feed ─────────────────────────────────────────────────────────

    async def load_home_feed(
        self,
        user_id: Optional[str] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        category: Optional[str] = None,
        search_text: Optional[str] = None,
        author: Optional[str] = None,
    ) -> HomeFeed:
        """
        Load the home screen's data concurrently.

        Quote of the day, the first quote page and (for a signed-in user) the
        favorite ids are independent and run under asyncio.gather. The quote
        of the day never fails; a failure of the other two propagates.
        """

        async def no_favorites() -> List[str]:
            return []

        favorites = self.fetch_favorite_ids(user_id) if user_id else no_favorites()
        daily, page, favorite_ids = await asyncio.gather(
            self.fetch_quote_of_the_day(),
            self.fetch_quote_page(
                page=0,
                limit=page_size,
                category=category,
                search_text=search_text,
                author=author,
            ),
            favorites,
        )
        return HomeFeed(quote_of_the_day=daily, quotes=page, favorite_ids=favorite_ids)
