"""HTTP content source backed by a Notion database.

This module queries the Notion REST API for the pages that make up the
navigation directory.

API Endpoints used:
- POST /v1/databases/{database_id}/query  - List pages (paginated)
- GET  /v1/databases/{database_id}        - Database metadata (title)

Any transport error or non-success status is raised as UpstreamUnavailable.
"""

import logging
from typing import Any, Optional, Protocol

import httpx

logger = logging.getLogger(__name__)

# Default API base URL
DEFAULT_API_URL = "https://api.notion.com"
DEFAULT_NOTION_VERSION = "2022-06-28"

# Largest page size the query endpoint accepts
MAX_PAGE_SIZE = 100


class UpstreamUnavailable(RuntimeError):
    """The content source could not be reached or returned an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ContentSource(Protocol):
    """Anything that can produce a page collection."""

    async def query(self, filter: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        ...


class NotionContentSource:
    """Reads database pages through the Notion API.

    Usage:
        source = NotionContentSource(
            api_key="secret_...",
            database_id="0123abcd...",
        )
        await source.connect()
        collection = await source.query()
        await source.close()
    """

    def __init__(
        self,
        api_key: str,
        database_id: str,
        api_url: str = DEFAULT_API_URL,
        notion_version: str = DEFAULT_NOTION_VERSION,
        timeout: float = 30.0,
        follow_pagination: bool = True,
        max_pages: int = 50,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the content source.

        Args:
            api_key: Notion integration token
            database_id: Database to query
            api_url: Base URL of the Notion API
            notion_version: Value of the Notion-Version header
            timeout: HTTP request timeout in seconds
            follow_pagination: Follow next_cursor and merge all result pages
            max_pages: Upper bound on pages fetched per query
            transport: Optional httpx transport (used by tests)
        """
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.database_id = database_id
        self.notion_version = notion_version
        self.timeout = timeout
        self.follow_pagination = follow_pagination
        self.max_pages = max_pages
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def connect(self) -> None:
        """Initialize HTTP client."""
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={
                "User-Agent": "notion-nav-api/1.0",
                "Accept": "application/json",
                "Authorization": f"Bearer {self.api_key}",
                "Notion-Version": self.notion_version,
            },
        )
        logger.info(f"Notion content source initialized for database {self.database_id}")

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self, method: str, path: str, json: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        if not self._client:
            raise RuntimeError("Not connected - call connect() first")

        url = f"{self.api_url}{path}"
        try:
            response = await self._client.request(method, url, json=json)
        except httpx.HTTPError as e:
            logger.error(f"HTTP error calling {method} {path}: {e}")
            raise UpstreamUnavailable(f"Request to content source failed: {e}") from e

        if not response.is_success:
            logger.error(f"Content source returned {response.status_code} for {method} {path}")
            raise UpstreamUnavailable(
                f"Content source returned status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailable("Content source returned invalid JSON") from e

    async def query(self, filter: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Query the database.

        Args:
            filter: Optional Notion filter object, e.g.
                {"property": "Category", "multi_select": {"contains": "Tools"}}

        Returns:
            Page collection. When pagination is followed, all result pages
            are merged and has_more is False.

        Raises:
            UpstreamUnavailable: On transport errors or non-2xx responses
        """
        path = f"/v1/databases/{self.database_id}/query"
        body: dict[str, Any] = {}
        if filter:
            body["filter"] = filter
        if self.follow_pagination:
            body["page_size"] = MAX_PAGE_SIZE

        collection = await self._request("POST", path, json=body)
        if not self.follow_pagination:
            return collection

        results = list(collection.get("results") or [])
        pages_fetched = 1
        truncated = False
        page = collection
        while page.get("has_more") and page.get("next_cursor"):
            if pages_fetched >= self.max_pages:
                logger.warning(
                    f"Stopped after {pages_fetched} result pages for database {self.database_id}"
                )
                truncated = True
                break
            page = await self._request(
                "POST", path, json={**body, "start_cursor": page["next_cursor"]}
            )
            results.extend(page.get("results") or [])
            pages_fetched += 1

        logger.debug(f"Fetched {len(results)} pages in {pages_fetched} request(s)")
        return {
            **collection,
            "results": results,
            "has_more": truncated,
            "next_cursor": page.get("next_cursor") if truncated else None,
        }

    async def retrieve_title(self) -> str:
        """Get the database title as plain text.

        Returns:
            Concatenated plain_text of the title rich-text array
            (empty string if the database has no title)

        Raises:
            UpstreamUnavailable: On transport errors or non-2xx responses
        """
        database = await self._request("GET", f"/v1/databases/{self.database_id}")
        title = database.get("title") or []
        return "".join(
            part.get("plain_text", "") for part in title if isinstance(part, dict)
        )
