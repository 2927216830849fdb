"""
Quotebook Backend — Quote, Favorite and Collection Schemas
==========================================================

What:  Pydantic models for the four backend tables plus the paginated and
       home-feed views built on top of them.
How:   The gateway validates raw PostgREST JSON into these models with a
       `TypeAdapter`; FastAPI serializes them back out for the UI.

Tables:
    quotes             → Quote
    user_favorites     → UserFavorite      (user ↔ quote join)
    collections        → Collection
    collection_quotes  → CollectionQuote   (collection ↔ quote join)

Join models keep everything except `quote_id` optional: listing queries
project `select=quote_id` and receive nothing else.
"""

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from quotebook.schemas.common import OptionalRecordId, RecordId, Timestamp


class QuoteCategory(str, Enum):
    """Categories the UI offers as filters. The backend may hold others."""

    MOTIVATION = "Motivation"
    LOVE = "Love"
    SUCCESS = "Success"
    WISDOM = "Wisdom"
    HUMOR = "Humor"


class Quote(BaseModel):
    """
    What:  A single quote as stored in the `quotes` table.
    Who:   Returned by every quote listing, favorites, and collection endpoint.

    Quotes are written only by the server; the client treats them as immutable.
    """

    model_config = ConfigDict(frozen=True)

    id: RecordId = Field(description="Quote identifier (UUID string)")
    text: str = Field(description="The quote itself")
    author: str = Field(description="Who said or wrote it")
    category: str = Field(description="Category name, usually one of QuoteCategory")
    created_at: Timestamp = Field(default=None, description="Creation time (UTC)")


class UserFavorite(BaseModel):
    """Row of `user_favorites`: user `user_id` favorited quote `quote_id`."""

    id: OptionalRecordId = None
    user_id: OptionalRecordId = None
    quote_id: OptionalRecordId = None
    created_at: Timestamp = None


class Collection(BaseModel):
    """
    What:  A named, user-owned group of quotes.
    Who:   Created and deleted only by the owning user.
    """

    id: RecordId = Field(description="Collection identifier")
    user_id: RecordId = Field(description="Owning user id")
    name: str = Field(description="Display name")
    created_at: Timestamp = Field(default=None, description="Creation time (UTC)")


class CollectionQuote(BaseModel):
    """Row of `collection_quotes` linking a collection to a quote."""

    id: OptionalRecordId = None
    collection_id: OptionalRecordId = None
    quote_id: RecordId
    created_at: Timestamp = None


class QuotePage(BaseModel):
    """
    What:  One page of the quote browser.

    Pagination:
        offset = page * limit. A page shorter than `limit` is the last one,
        so `has_more` is simply `len(quotes) == limit`.
    """

    quotes: List[Quote] = Field(description="Quotes on this page, newest first")
    page: int = Field(ge=0, description="Zero-based page index")
    limit: int = Field(ge=1, description="Requested page size")
    has_more: bool = Field(description="Whether another page may exist")


class HomeFeed(BaseModel):
    """
    What:  Everything the home screen needs on first load.
    How:   Assembled by QuoteService.load_home_feed from three independent calls.
    """

    quote_of_the_day: Quote
    quotes: QuotePage
    favorite_ids: List[str] = Field(
        default_factory=list,
        description="Ids of quotes the signed-in user has favorited",
    )


class CollectionCreate(BaseModel):
    """Request body for POST /api/collections."""

    name: str = Field(default="", max_length=120, description="Collection name, must not be blank")


class FavoriteStatus(BaseModel):
    """Response for GET /api/favorites/{quote_id}."""

    quote_id: str
    is_favorite: bool


class CategoryList(BaseModel):
    """Response for GET /api/quotes/categories."""

    categories: List[str]


def category_names() -> List[str]:
    """Category names in display order."""
    return [category.value for category in QuoteCategory]


__all__ = [
    "QuoteCategory",
    "Quote",
    "UserFavorite",
    "Collection",
    "CollectionQuote",
    "QuotePage",
    "HomeFeed",
    "CollectionCreate",
    "FavoriteStatus",
    "CategoryList",
    "category_names",
]
