"""
In-memory cache for database content collections.

This module implements a keyed store for page collections plus a separately
cached tag index. Entries have no TTL; they stay valid until the whole cache
is cleared or replaced.

All state lives in one immutable snapshot. Every mutation builds a new
snapshot and swaps the reference, so readers never see a half-applied change.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

# Sentinel key for the unfiltered collection
ALL_KEY = "__all__"

# Prefix for tag-scoped keys; keeps a label spelled "__all__" distinct from ALL_KEY
TAG_KEY_PREFIX = "tag:"


def tag_key(tag: str) -> str:
    """Cache key for the view scoped to one tag label."""
    return f"{TAG_KEY_PREFIX}{tag}"


@dataclass(frozen=True)
class _CacheState:
    """Immutable view of the cache contents."""
    entries: Mapping[str, Dict[str, Any]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    tag_index: Optional[tuple] = None
    generation: int = 0
    refreshed_at: Optional[str] = None


class ContentCache:
    """
    Process-wide store for page collections.

    Keys are either ALL_KEY (the unfiltered collection) or tag_key(label).
    The store knows nothing about filtering; it only holds what it is given.

    Example:
        cache = ContentCache()
        cache.set(ALL_KEY, collection)
        cache.set_tag_index(["Tools", "Docs"])
    """

    def __init__(self):
        self._state = _CacheState()

    @property
    def generation(self) -> int:
        """Counter bumped every time the cache is cleared or replaced."""
        return self._state.generation

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Get cached collection by exact key.

        Args:
            key: ALL_KEY or tag_key(label)

        Returns:
            Cached collection or None if not found
        """
        return self._state.entries.get(key)

    def set(self, key: str, value: Dict[str, Any]) -> None:
        """
        Store a collection, overwriting any existing entry for the key.

        Replacing the ALL entry this way forgets the tag index, since it was
        derived from the previous collection.

        Args:
            key: ALL_KEY or tag_key(label)
            value: Collection returned by the content source
        """
        state = self._state
        entries = dict(state.entries)
        entries[key] = value
        self._state = _CacheState(
            entries=MappingProxyType(entries),
            tag_index=None if key == ALL_KEY else state.tag_index,
            generation=state.generation,
            refreshed_at=state.refreshed_at,
        )

    def get_tag_index(self) -> Optional[List[str]]:
        """
        Get the cached tag index.

        Returns:
            List of tags, or None if the index is unknown
        """
        index = self._state.tag_index
        return list(index) if index is not None else None

    def set_tag_index(self, tags: List[str]) -> None:
        """Store the tag index."""
        state = self._state
        self._state = _CacheState(
            entries=state.entries,
            tag_index=tuple(tags),
            generation=state.generation,
            refreshed_at=state.refreshed_at,
        )

    def store_all(self, collection: Dict[str, Any], tags: List[str]) -> None:
        """
        Store the unfiltered collection and its tag index together.

        Args:
            collection: Unfiltered collection
            tags: Tag index derived from ``collection``
        """
        state = self._state
        entries = dict(state.entries)
        entries[ALL_KEY] = collection
        self._state = _CacheState(
            entries=MappingProxyType(entries),
            tag_index=tuple(tags),
            generation=state.generation,
            refreshed_at=state.refreshed_at,
        )

    def replace_all(self, collection: Dict[str, Any], tags: List[str]) -> None:
        """
        Drop every entry and install a new unfiltered collection.

        The cleared state is never visible on its own: the old contents are
        replaced by the new ALL entry and tag index in a single swap.

        Args:
            collection: Freshly fetched unfiltered collection
            tags: Tag index derived from ``collection``
        """
        self._state = _CacheState(
            entries=MappingProxyType({ALL_KEY: collection}),
            tag_index=tuple(tags),
            generation=self._state.generation + 1,
            refreshed_at=datetime.now(timezone.utc).isoformat(),
        )

    def clear(self) -> None:
        """Clear entire cache and forget the tag index."""
        self._state = _CacheState(
            generation=self._state.generation + 1,
            refreshed_at=self._state.refreshed_at,
        )

    def __len__(self) -> int:
        return len(self._state.entries)

    def __contains__(self, key: str) -> bool:
        return key in self._state.entries

    def stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dict with total_entries, keys, tag_index_cached, tag_count,
            generation and last_refreshed_at
        """
        state = self._state
        return {
            "total_entries": len(state.entries),
            "keys": sorted(state.entries),
            "tag_index_cached": state.tag_index is not None,
            "tag_count": len(state.tag_index) if state.tag_index is not None else 0,
            "generation": state.generation,
            "last_refreshed_at": state.refreshed_at,
        }
