"""
Notion Nav API Service.

FastAPI application serving the navigation directory's page list from a
Notion database, with an in-memory tag-indexed cache in front of it.

Endpoints:
1. GET  /api/getDatabaseContent[?tag=...]: cached read (tag index on unfiltered reads)
2. POST /api/getDatabaseContent: refresh the cache from Notion
"""
# Load .env file if present (for local development)
from dotenv import load_dotenv
load_dotenv()

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from ..services.cache import ContentCache
from ..services.notion_source import (
    DEFAULT_API_URL,
    DEFAULT_NOTION_VERSION,
    NotionContentSource,
    UpstreamUnavailable,
)
from ..services.orchestrator import ContentOrchestrator, ContentResult

logger = logging.getLogger(__name__)

CONTENT_PATH = "/api/getDatabaseContent"


def env_flag(name: str, default: bool) -> bool:
    """Read a boolean environment variable ("1", "true", "yes", "on")."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


# Global instances
orchestrator: Optional[ContentOrchestrator] = None
cache: Optional[ContentCache] = None
source: Optional[NotionContentSource] = None
nav_name: str = ""


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Creates the cache, the Notion content source and the orchestrator on
    startup and closes the HTTP client on shutdown.
    """
    global orchestrator, cache, source, nav_name

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    api_key = os.getenv("NOTION_API_KEY")
    database_id = os.getenv("DATABASE_ID")

    if not api_key:
        raise ValueError("NOTION_API_KEY environment variable required")
    if not database_id:
        raise ValueError("DATABASE_ID environment variable required")

    nav_name = os.getenv("NAV_NAME", "")

    cache = ContentCache()
    source = NotionContentSource(
        api_key=api_key,
        database_id=database_id,
        api_url=os.getenv("NOTION_API_URL", DEFAULT_API_URL),
        notion_version=os.getenv("NOTION_VERSION", DEFAULT_NOTION_VERSION),
        timeout=float(os.getenv("NOTION_TIMEOUT", "30")),
        follow_pagination=env_flag("NOTION_FOLLOW_PAGINATION", True),
    )
    await source.connect()

    orchestrator = ContentOrchestrator(source=source, cache=cache)
    logger.info(f"Serving content for database {database_id}")

    yield

    # Cleanup
    if source:
        await source.close()


app = FastAPI(
    title="Notion Nav API",
    description="Cached page list and tag index for a Notion-backed navigation site",
    version="1.0.0",
    lifespan=lifespan
)


# Response Models

class DatabaseContentResponse(BaseModel):
    """Page collection as returned by Notion, plus the tag index when unfiltered."""
    model_config = ConfigDict(extra="allow")

    object: str = "list"
    results: list[dict[str, Any]]
    next_cursor: Optional[str] = None
    has_more: bool = False
    uniqueTags: Optional[list[str]] = None


class TitleResponse(BaseModel):
    """Response model for the site title."""
    titleName: str


class CacheStatsResponse(BaseModel):
    """Response model for cache statistics."""
    total_entries: int
    keys: list[str]
    tag_index_cached: bool
    tag_count: int
    generation: int
    last_refreshed_at: Optional[str] = None


class HealthResponse(BaseModel):
    """Response model for health check."""
    status: str
    cache_entries: int
    tag_index_cached: bool


def build_content_response(result: ContentResult) -> DatabaseContentResponse:
    """Merge the collection with its tag index (unfiltered reads only)."""
    payload = dict(result.collection)
    payload.pop("uniqueTags", None)
    if result.tags is not None:
        payload["uniqueTags"] = result.tags
    return DatabaseContentResponse(**payload)


# API Endpoints

@app.get(CONTENT_PATH, response_model=DatabaseContentResponse, response_model_exclude_unset=True)
async def get_database_content(tag: Optional[list[str]] = Query(None)):
    """
    Get database pages, optionally filtered by category tag.

    Served from cache when possible; queries Notion on a miss.

    Args:
        tag: Category label to filter by (omit for all pages). When the
            parameter is repeated, the first value is used.

    Returns:
        Page collection; includes uniqueTags when no tag is given
    """
    try:
        result = await orchestrator.read(tag[0] if tag else None)
    except UpstreamUnavailable:
        logger.exception("Failed to get database content")
        return JSONResponse(status_code=500, content={"error": "Failed to get database content"})
    return build_content_response(result)


@app.post(CONTENT_PATH, response_model=DatabaseContentResponse, response_model_exclude_unset=True)
async def refresh_database_content():
    """
    Refresh the cache from Notion.

    Drops every cached entry and stores the fresh unfiltered collection.
    On failure the previous cache contents are kept.

    Returns:
        Fresh page collection with uniqueTags
    """
    try:
        result = await orchestrator.refresh()
    except UpstreamUnavailable:
        logger.exception("Failed to refresh database content")
        return JSONResponse(status_code=500, content={"error": "Failed to refresh database content"})
    return build_content_response(result)


@app.api_route(
    CONTENT_PATH,
    methods=["PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"],
    include_in_schema=False,
)
async def database_content_method_not_allowed():
    """Reject methods other than GET and POST."""
    return JSONResponse(
        status_code=405,
        content={"message": "Method not allowed"},
        headers={"Allow": "GET, POST"},
    )


@app.get("/api/getTitleName", response_model=TitleResponse)
async def get_title_name():
    """
    Get the site title.

    Uses NAV_NAME when set, otherwise the Notion database title.

    Returns:
        TitleResponse with titleName
    """
    if nav_name:
        return TitleResponse(titleName=nav_name)
    try:
        title = await source.retrieve_title()
    except UpstreamUnavailable:
        logger.exception("Failed to get database title")
        return JSONResponse(status_code=500, content={"error": "Failed to get title name"})
    return TitleResponse(titleName=title)


@app.get("/api/v1/cache/stats", response_model=CacheStatsResponse)
async def cache_stats():
    """
    Get cache statistics.

    Returns:
        CacheStatsResponse with cached keys and tag index state
    """
    return CacheStatsResponse(**cache.stats())


@app.get("/health", response_model=HealthResponse)
async def health():
    """
    Health check endpoint.

    Returns:
        HealthResponse with service status and cache info
    """
    stats = cache.stats() if cache else {}
    return HealthResponse(
        status="healthy",
        cache_entries=stats.get("total_entries", 0),
        tag_index_cached=stats.get("tag_index_cached", False),
    )


@app.get("/")
async def root():
    """
    Root endpoint with API information.

    Returns:
        API info and available endpoints
    """
    return {
        "name": "Notion Nav API",
        "version": "1.0.0",
        "endpoints": {
            "get_content": f"GET {CONTENT_PATH}",
            "get_content_by_tag": f"GET {CONTENT_PATH}?tag={{tag}}",
            "refresh_content": f"POST {CONTENT_PATH}",
            "title": "GET /api/getTitleName",
            "cache_stats": "GET /api/v1/cache/stats",
            "health": "GET /health",
        },
    }
