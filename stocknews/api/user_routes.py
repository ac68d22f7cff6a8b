"""Saved searches and bookmarks for the authenticated caller."""

from typing import Any, Dict, Optional
from urllib.parse import urlparse

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field, field_validator

from stocknews.api.auth import get_current_user
from stocknews.api.rate_limit import enforce_general_limit
from stocknews.core.database import BookmarkRepository, SavedSearchRepository
from stocknews.core.errors import DuplicateRecordError, RecordNotFound
from stocknews.core.logger import logger
from stocknews.models.datatypes import User, from_iso

router = APIRouter(
    prefix="/api/user",
    tags=["user"],
    dependencies=[Depends(enforce_general_limit)],
)


class SavedSearchIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    query: str = Field(min_length=1, max_length=100)


class BookmarkIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    article_url: str = Field(alias="articleUrl", min_length=1, max_length=2048)
    article_title: str = Field(alias="articleTitle", min_length=1)
    article_source: Optional[str] = Field(default=None, alias="articleSource")
    article_published_at: Optional[str] = Field(default=None, alias="articlePublishedAt")

    @field_validator("article_url")
    @classmethod
    def _http_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("must be an http(s) URL")
        return value

    @field_validator("article_published_at")
    @classmethod
    def _iso8601(cls, value: Optional[str]) -> Optional[str]:
        if value:
            from_iso(value)
        return value or None


def _searches(request: Request) -> SavedSearchRepository:
    return SavedSearchRepository(request.app.state.database)


def _bookmarks(request: Request) -> BookmarkRepository:
    return BookmarkRepository(request.app.state.database)


# ── saved searches ───────────────────────────────────────────────────────────

@router.get("/searches")
def list_searches(
    user: User = Depends(get_current_user),
    searches: SavedSearchRepository = Depends(_searches),
) -> Dict[str, Any]:
    return {
        "success": True,
        "searches": [s.to_dict() for s in searches.list_for_user(user.id)],
    }


@router.post("/searches", status_code=201)
def save_search(
    payload: SavedSearchIn,
    user: User = Depends(get_current_user),
    searches: SavedSearchRepository = Depends(_searches),
) -> Dict[str, Any]:
    saved = searches.create(user.id, payload.query)
    logger.info(f"User {user.id} saved search '{saved.query}' (id={saved.id})")
    return {"success": True, "id": saved.id}


@router.delete("/searches/{search_id}")
def delete_search(
    search_id: int,
    user: User = Depends(get_current_user),
    searches: SavedSearchRepository = Depends(_searches),
) -> Dict[str, Any]:
    if not searches.delete(search_id, user.id):
        raise RecordNotFound(f"Saved search {search_id} not found")
    return {"success": True}


# ── bookmarks ────────────────────────────────────────────────────────────────

@router.get("/bookmarks")
def list_bookmarks(
    user: User = Depends(get_current_user),
    bookmarks: BookmarkRepository = Depends(_bookmarks),
) -> Dict[str, Any]:
    return {
        "success": True,
        "bookmarks": [b.to_dict() for b in bookmarks.list_for_user(user.id)],
    }


@router.post("/bookmarks", status_code=201)
def add_bookmark(
    payload: BookmarkIn,
    user: User = Depends(get_current_user),
    bookmarks: BookmarkRepository = Depends(_bookmarks),
) -> Dict[str, Any]:
    if bookmarks.exists(user.id, payload.article_url):
        raise DuplicateRecordError("Article already bookmarked")
    bookmark = bookmarks.create(
        user.id,
        payload.article_url,
        payload.article_title,
        article_source=payload.article_source,
        article_published_at=payload.article_published_at,
    )
    return {"success": True, "id": bookmark.id}


@router.delete("/bookmarks/{bookmark_id}")
def delete_bookmark(
    bookmark_id: int,
    user: User = Depends(get_current_user),
    bookmarks: BookmarkRepository = Depends(_bookmarks),
) -> Dict[str, Any]:
    if not bookmarks.delete(bookmark_id, user.id):
        raise RecordNotFound(f"Bookmark {bookmark_id} not found")
    return {"success": True}
