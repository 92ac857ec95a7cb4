"""Shared pytest fixtures for redash-sync tests."""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional
from unittest.mock import Mock

import pytest

from redash_sync.config import Config
from redash_sync.errors import TransportError
from redash_sync.sync.models import Query


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep developer environment variables out of config tests."""
    for key in (
        "REDASH_URL",
        "REDASH_API_KEY",
        "REDASH_QUERIES_DIR",
        "REDASH_PAGE_SIZE",
        "REDASH_DIFF_TOOL",
        "REDASH_DEBUG",
        "REDASH_SYNC_CONFIG",
        "LOG_LEVEL",
        "LOG_FILE",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def mock_config():
    """Create a Config instance for testing."""
    return Config(
        redash_url="https://redash.example.com",
        api_key="testkey",
    )


@pytest.fixture
def mock_response():
    """Factory fixture for creating ``requests`` response mocks."""

    def _create_response(payload: Any = None, status_code: int = 200, reason: str = "OK"):
        response = Mock()
        response.status_code = status_code
        response.ok = 200 <= status_code < 400
        response.reason = reason
        response.json.return_value = payload
        return response

    return _create_response


def make_query(query_id: int, body: str, name: Optional[str] = None, **extra: Any) -> Query:
    """Build a Query the way the list endpoint would return it."""
    return Query.model_validate(
        {
            "id": query_id,
            "name": name or f"Query {query_id}",
            "query": body,
            "created_at": "2026-01-01T00:00:00Z",
            "updated_at": "2026-01-02T00:00:00Z",
            "data_source_id": 1,
            "user_id": 5,
            **extra,
        }
    )


class FakeRedashClient:
    """Minimal RedashClient replacement for testing.

    Holds remote queries in an in-memory dict keyed by id; iteration
    follows insertion order like the server's ``order=created_at``.
    """

    def __init__(
        self,
        bodies: Optional[Dict[int, str]] = None,
        fail_updates: bool = False,
        fail_after: Optional[int] = None,
        transform: Any = None,
    ) -> None:
        self.queries: Dict[int, Query] = {
            qid: make_query(qid, body) for qid, body in (bodies or {}).items()
        }
        self.fail_updates = fail_updates
        self.fail_after = fail_after
        self.transform = transform
        self.update_calls: List[tuple] = []
        self.yielded: List[int] = []
        self.stream_closed = False

    def iter_queries(self) -> Iterator[Query]:
        try:
            for index, query in enumerate(list(self.queries.values())):
                if self.fail_after is not None and index >= self.fail_after:
                    raise TransportError("Redash API error: 500 Internal Server Error", 500)
                self.yielded.append(query.id)
                yield query
        finally:
            self.stream_closed = True

    def update_query(self, query_id: int, body: str) -> Query:
        self.update_calls.append((query_id, body))
        if self.fail_updates:
            raise TransportError("Redash API error: 403 Forbidden", 403)
        stored = self.transform(body) if self.transform else body
        updated = self.queries[query_id].model_copy(update={"body": stored})
        self.queries[query_id] = updated
        return updated
