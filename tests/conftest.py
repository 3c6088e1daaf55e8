"""
Shared fixtures and mocks for API tests.
"""
import pytest
from unittest.mock import AsyncMock, Mock


def make_page(page_id, *tags, title=None):
    """Build a Notion-style page record with the given Category tags."""
    return {
        "object": "page",
        "id": page_id,
        "properties": {
            "Name": {"title": [{"plain_text": title or page_id}]},
            "Category": {
                "type": "multi_select",
                "multi_select": [{"id": f"opt-{tag}", "name": tag} for tag in tags],
            },
        },
    }


def make_collection(pages):
    """Wrap pages in a Notion query response."""
    return {
        "object": "list",
        "results": pages,
        "next_cursor": None,
        "has_more": False,
        "type": "page_or_database",
    }


@pytest.fixture
def sample_collection():
    """Three pages tagged {A}, {B} and {A, B}."""
    return make_collection([
        make_page("page-1", "A"),
        make_page("page-2", "B"),
        make_page("page-3", "A", "B"),
    ])


@pytest.fixture
def updated_collection():
    """Collection returned after the database was edited."""
    return make_collection([
        make_page("page-2", "B"),
        make_page("page-4", "C"),
    ])


@pytest.fixture
def mock_source(sample_collection):
    """Mock content source returning sample_collection."""
    source = Mock()
    source.query = AsyncMock(return_value=sample_collection)
    source.retrieve_title = AsyncMock(return_value="My Links")
    source.connect = AsyncMock()
    source.close = AsyncMock()
    return source


@pytest.fixture
def mock_source_class(mock_source):
    """Mock NotionContentSource class returning mock_source."""
    return Mock(return_value=mock_source)


@pytest.fixture
def api_env():
    """Minimal environment for starting the API."""
    return {
        "NOTION_API_KEY": "secret_test_key",
        "DATABASE_ID": "db-123",
    }


@pytest.fixture
def page_factory():
    """Expose make_page to tests."""
    return make_page


@pytest.fixture
def collection_factory():
    """Expose make_collection to tests."""
    return make_collection
