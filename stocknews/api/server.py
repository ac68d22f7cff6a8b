"""FastAPI HTTP surface for the news pipeline.

Endpoints:
    GET /health              — liveness + provider mode
    GET /api/news            — paginated, annotated news search
    GET /api/stock/{symbol}  — quote snapshot
    /api/user/searches, /api/user/bookmarks — per-user data (bearer JWT)

Errors are returned as ``{"success": false, "error": "<message>"}``:
ValidationFailure → 400, AuthenticationFailure → 401, RecordNotFound → 404,
DuplicateRecordError → 409, RateLimitExceeded → 429, ProviderFailure → 502.
"""

from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from stocknews.api.rate_limit import RateLimiter, enforce_api_limit
from stocknews.api.user_routes import router as user_router
from stocknews.core.cache import MemoryCache, SQLiteCache
from stocknews.core.cache_tier import CachePurger, CacheTier
from stocknews.core.config import Settings, load_config
from stocknews.core.database import Database
from stocknews.core.errors import (
    AuthenticationFailure, DuplicateRecordError, ProviderFailure,
    RateLimitExceeded, RecordNotFound, ValidationFailure,
)
from stocknews.core.logger import logger
from stocknews.pipeline.engine import NewsQueryPipeline
from stocknews.providers.base import NewsProvider
from stocknews.providers.news import select_news_provider
from stocknews.providers.sentiment import select_sentiment_provider

SERVICE_TITLE = "Stock News Search"
SERVICE_VERSION = "1.0.0"


# ── response models ──────────────────────────────────────────────────────────

class ArticleOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    source: str
    published_at: str = Field(alias="publishedAt")
    description: str
    url: str
    image: str = ""
    category: str = ""
    sentiment: str
    sentiment_score: float = Field(alias="sentimentScore")
    impact: str


class PaginationOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total: int
    has_more: bool = Field(alias="hasMore")


class NewsResponse(BaseModel):
    success: bool = True
    articles: List[ArticleOut]
    pagination: PaginationOut


class QuoteOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    symbol: str
    current_price: float = Field(alias="currentPrice")
    high_price: float = Field(alias="highPrice")
    low_price: float = Field(alias="lowPrice")
    open_price: float = Field(alias="openPrice")
    previous_close: float = Field(alias="previousClose")
    timestamp: int


class QuoteResponse(BaseModel):
    success: bool = True
    quote: QuoteOut


# ── app factory ──────────────────────────────────────────────────────────────

def create_app(
    settings: Optional[Settings] = None,
    news_provider: Optional[NewsProvider] = None,
) -> FastAPI:
    """Wire database, cache tier, providers and pipeline into a FastAPI app.

    Args:
        settings: Resolved settings; loaded from config.yaml + env when omitted.
        news_provider: Override for the provider chosen from settings.

    Returns:
        FastAPI: The application. The cache purger runs for the app's lifespan.
    """
    settings = settings or Settings.from_config(load_config())

    database = Database(settings.db_path)
    cache = CacheTier(
        memory=MemoryCache(max_entries=settings.cache_max_entries),
        persistent=SQLiteCache(database),
    )
    pipeline = NewsQueryPipeline(
        settings=settings,
        news_provider=news_provider or select_news_provider(settings),
        sentiment=select_sentiment_provider(settings),
        cache=cache,
    )
    purger = CachePurger(cache, interval_seconds=settings.purge_interval_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"[STARTUP] {SERVICE_TITLE} v{SERVICE_VERSION} (provider={pipeline.news_provider.name})")
        purger.start()
        yield
        await purger.stop()
        logger.info("[SHUTDOWN] Service stopped")

    app = FastAPI(title=SERVICE_TITLE, version=SERVICE_VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.pipeline = pipeline
    app.state.purger = purger
    app.state.general_limiter = None
    app.state.api_limiter = None
    if settings.rate_limit_enabled:
        app.state.general_limiter = RateLimiter(
            "general",
            settings.rate_limit_max_requests,
            settings.rate_limit_window_seconds,
        )
        app.state.api_limiter = RateLimiter(
            "api",
            settings.api_rate_limit_max_requests,
            settings.api_rate_limit_window_seconds,
            message="Too many API requests, please slow down",
        )

    @app.exception_handler(ValidationFailure)
    async def _validation_failure(request: Request, exc: ValidationFailure) -> JSONResponse:
        return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'][1:]) or err['loc'][0]}: {err['msg']}"
            for err in exc.errors()
        )
        return JSONResponse(status_code=400, content={"success": False, "error": problems})

    @app.exception_handler(AuthenticationFailure)
    async def _authentication_failure(request: Request, exc: AuthenticationFailure) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content={"success": False, "error": str(exc)},
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(RecordNotFound)
    async def _record_not_found(request: Request, exc: RecordNotFound) -> JSONResponse:
        return JSONResponse(status_code=404, content={"success": False, "error": str(exc)})

    @app.exception_handler(DuplicateRecordError)
    async def _duplicate_record(request: Request, exc: DuplicateRecordError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"success": False, "error": str(exc)})

    @app.exception_handler(RateLimitExceeded)
    async def _rate_limited(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        return JSONResponse(
            status_code=429,
            content={"success": False, "error": str(exc)},
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(ProviderFailure)
    async def _provider_failure(request: Request, exc: ProviderFailure) -> JSONResponse:
        logger.error(f"{request.url.path}: {exc}")
        return JSONResponse(status_code=502, content={"success": False, "error": str(exc)})

    @app.get("/health")
    def health() -> dict:
        return {
            "status": "healthy",
            "service": SERVICE_TITLE,
            "version": SERVICE_VERSION,
            "provider": pipeline.news_provider.name,
            "purger_running": purger.running,
        }

    @app.get(
        "/api/news",
        response_model=NewsResponse,
        response_model_by_alias=True,
        dependencies=[Depends(enforce_api_limit)],
    )
    def search_news(
        query: Optional[str] = None,
        category: Optional[str] = None,
        page: Optional[str] = None,
        limit: Optional[str] = None,
    ) -> dict:
        result = pipeline.search(query=query, category=category, page=page, limit=limit)
        return {"success": True, **result.to_dict()}

    @app.get(
        "/api/stock/{symbol}",
        response_model=QuoteResponse,
        response_model_by_alias=True,
        dependencies=[Depends(enforce_api_limit)],
    )
    def stock_quote(symbol: str) -> dict:
        quote = pipeline.get_quote(symbol)
        return {"success": True, "quote": quote.to_dict()}

    app.include_router(user_router)

    return app
