"""
Category tag extraction for content collections.

Pages carry their tags in a multi-select property:

    page["properties"]["Category"]["multi_select"] = [{"name": "Tools"}, ...]

Anything missing or malformed along that path is treated as "no tags".
"""
from typing import Any, Dict, List

CATEGORY_PROPERTY = "Category"


def page_tags(page: Any) -> List[str]:
    """
    Get the category labels of a single page.

    Args:
        page: Raw page record from the content source

    Returns:
        Non-empty label names in the order they appear on the page
    """
    if not isinstance(page, dict):
        return []
    properties = page.get("properties")
    if not isinstance(properties, dict):
        return []
    category = properties.get(CATEGORY_PROPERTY)
    if not isinstance(category, dict):
        return []
    options = category.get("multi_select")
    if not isinstance(options, list):
        return []

    labels = []
    for option in options:
        if isinstance(option, dict):
            name = option.get("name")
            if isinstance(name, str) and name:
                labels.append(name)
    return labels


def extract_tags(collection: Dict[str, Any]) -> List[str]:
    """
    Collect the distinct tags present in a collection.

    Args:
        collection: Page collection with a "results" list

    Returns:
        Distinct labels, in order of first discovery
    """
    results = collection.get("results") if isinstance(collection, dict) else None
    if not isinstance(results, list):
        return []

    seen: Dict[str, None] = {}
    for page in results:
        for label in page_tags(page):
            seen.setdefault(label, None)
    return list(seen)


def filter_collection(collection: Dict[str, Any], tag: str) -> Dict[str, Any]:
    """
    Build the tag-scoped view of a collection.

    The returned dict is a new object; the input collection is left untouched.
    Pagination fields and any other top-level fields are carried over.

    Args:
        collection: Unfiltered page collection
        tag: Exact (case-sensitive) label to match

    Returns:
        Collection containing only pages tagged with ``tag``
    """
    results = collection.get("results") or []
    return {
        **collection,
        "results": [page for page in results if tag in page_tags(page)],
    }
