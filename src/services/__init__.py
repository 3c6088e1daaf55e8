"""Service layer for database content caching."""

from .cache import ALL_KEY, ContentCache, tag_key
from .notion_source import NotionContentSource, UpstreamUnavailable
from .orchestrator import ContentOrchestrator, ContentResult
from .tags import extract_tags, filter_collection, page_tags

__all__ = [
    "ALL_KEY",
    "ContentCache",
    "ContentOrchestrator",
    "ContentResult",
    "NotionContentSource",
    "UpstreamUnavailable",
    "extract_tags",
    "filter_collection",
    "page_tags",
    "tag_key",
]
