"""
Read-through workflow for database content.

This module coordinates scoped reads and forced refreshes on top of the
content cache and the upstream content source.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .cache import ALL_KEY, ContentCache, tag_key
from .notion_source import ContentSource, UpstreamUnavailable
from .tags import extract_tags, filter_collection

logger = logging.getLogger(__name__)


@dataclass
class ContentResult:
    """Outcome of a read or refresh."""
    collection: Dict[str, Any]
    tags: Optional[List[str]] = None
    from_cache: bool = False


class ContentOrchestrator:
    """
    Orchestrates content reads with a cache-first strategy.

    Flow for read(tag):
    1. Check cache under tag_key(tag) (or ALL_KEY)
    2. On miss for ALL_KEY: query the source, store collection + tag index
    3. On miss for a tag: filter the ALL collection, store under the tag
    4. Return the collection (and the tag index for unfiltered reads)

    Tag-scoped entries are always derived from the cached ALL collection, so
    they never disagree with it. Concurrent cold reads share a single
    upstream call; every refresh makes its own.
    """

    def __init__(self, source: ContentSource, cache: ContentCache):
        """
        Initialize the orchestrator.

        Args:
            source: Content source to query on cache miss
            cache: ContentCache instance for result caching
        """
        self.source = source
        self.cache = cache
        self._fetch_all: Optional[asyncio.Task] = None
        self._refresh_seq = 0
        self._committed_refresh = 0

    async def read(self, tag: Optional[str] = None) -> ContentResult:
        """
        Read the collection, optionally scoped to one tag.

        Args:
            tag: Category label to filter by; None (or empty) for everything

        Returns:
            ContentResult; tags is set only for unfiltered reads

        Raises:
            UpstreamUnavailable: If the source had to be queried and failed
        """
        key = tag_key(tag) if tag else ALL_KEY

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for {key}")
            if key == ALL_KEY:
                return ContentResult(cached, tags=self._tag_index(cached), from_cache=True)
            return ContentResult(cached, from_cache=True)

        logger.debug(f"Cache miss for {key}")
        if key == ALL_KEY:
            collection = await self._load_all()
            return ContentResult(collection, tags=self._tag_index(collection))

        all_collection = self.cache.get(ALL_KEY)
        from_cache = all_collection is not None
        if all_collection is None:
            all_collection = await self._load_all()

        scoped = filter_collection(all_collection, tag)
        # Only commit if the ALL entry we filtered is still the current one
        if self.cache.get(ALL_KEY) is all_collection:
            self.cache.set(key, scoped)
        return ContentResult(scoped, from_cache=from_cache)

    async def refresh(self) -> ContentResult:
        """
        Re-fetch the unfiltered collection and replace the cache contents.

        Every call queries the source itself. Overlapping refreshes commit in
        call order: a refresh that finishes after a newer one has already
        committed returns its data but leaves the cache alone. On failure the
        existing cache is left exactly as it was.

        Returns:
            ContentResult with the new collection and tag index

        Raises:
            UpstreamUnavailable: If the source query failed
        """
        self._refresh_seq += 1
        task = asyncio.ensure_future(self._do_refresh(self._refresh_seq))
        task.add_done_callback(_consume_failure)
        collection, tags = await asyncio.shield(task)
        return ContentResult(collection, tags=tags)

    def _tag_index(self, collection: Dict[str, Any]) -> List[str]:
        """Get the cached tag index, rebuilding it from the ALL entry if unknown."""
        tags = self.cache.get_tag_index()
        if tags is not None and self.cache.get(ALL_KEY) is collection:
            return tags

        tags = extract_tags(collection)
        if self.cache.get(ALL_KEY) is collection:
            self.cache.set_tag_index(tags)
        return tags

    async def _load_all(self) -> Dict[str, Any]:
        """Fetch the ALL collection, sharing one in-flight query between callers."""
        if self._fetch_all is None or self._fetch_all.done():
            self._fetch_all = asyncio.ensure_future(self._do_load_all())
            self._fetch_all.add_done_callback(_consume_failure)
        return await asyncio.shield(self._fetch_all)

    async def _do_load_all(self) -> Dict[str, Any]:
        generation = self.cache.generation
        logger.info("Querying content source for all pages")
        collection = await self._query()
        tags = extract_tags(collection)

        if self.cache.generation != generation:
            # A refresh or clear landed while we were waiting; keep its state
            logger.info("Cache changed during fetch, not storing result")
            return collection

        self.cache.store_all(collection, tags)
        logger.info(
            f"Cached {len(collection.get('results') or [])} pages with {len(tags)} tags"
        )
        return collection

    async def _do_refresh(self, seq: int) -> tuple:
        logger.info(f"Refreshing content from source (refresh #{seq})")
        collection = await self._query()
        tags = extract_tags(collection)

        if seq < self._committed_refresh:
            logger.info(f"Refresh #{seq} superseded by #{self._committed_refresh}, not storing result")
            return collection, tags

        self.cache.replace_all(collection, tags)
        self._committed_refresh = seq
        logger.info(
            f"Refreshed cache: {len(collection.get('results') or [])} pages, {len(tags)} tags"
        )
        return collection, tags

    async def _query(self) -> Dict[str, Any]:
        """Query the source unfiltered, normalizing failures to UpstreamUnavailable."""
        try:
            return await self.source.query()
        except UpstreamUnavailable:
            raise
        except Exception as e:
            raise UpstreamUnavailable(f"Content source query failed: {e}") from e


def _consume_failure(task: asyncio.Future) -> None:
    """Log a shared fetch's failure so it is retrieved even if every caller left."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.warning(f"Content source fetch failed: {error}")
