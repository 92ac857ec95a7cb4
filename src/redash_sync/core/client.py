"""HTTP client for the Redash query API."""

import logging
from collections.abc import Iterator
from typing import Any

import requests
from pydantic import ValidationError

from ..config import Config
from ..errors import MalformedRecordError, TransportError
from ..sync.models import Query

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = (10, 60)


class RedashClient:
    def __init__(self, config: Config, session: requests.Session | None = None):
        self.config = config
        self.base_url = config.redash_url.rstrip("/")
        self.session = session or self._create_session()
        # Entries from the list endpoint that failed validation
        self.quarantined: list[MalformedRecordError] = []

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "Authorization": f"Key {self.config.api_key}",
                "Content-Type": "application/json",
            }
        )
        return session

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        """
        Make an authenticated request to the Redash API and return the JSON body.

        Raises:
            TransportError: On connection failures, non-2xx statuses, or a
                response body that is not JSON.
        """
        url = f"{self.base_url}/api{endpoint}"
        try:
            response = self.session.request(
                method, url, timeout=DEFAULT_TIMEOUT, **kwargs
            )
        except requests.RequestException as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

        if not response.ok:
            raise TransportError(
                f"Redash API error: {response.status_code} {response.reason} ({method} {endpoint})",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(
                f"Redash API returned invalid JSON for {method} {endpoint}",
                status_code=response.status_code,
            ) from exc

    def _parse_query(self, data: Any) -> Query:
        if not isinstance(data, dict):
            raise MalformedRecordError(None, f"expected an object, got {type(data).__name__}")
        try:
            return Query.model_validate(data)
        except ValidationError as exc:
            raise MalformedRecordError(data.get("id"), str(exc)) from exc

    def validate_connection(self) -> str:
        """
        Check the URL and API key by fetching the current session.
        Returns the authenticated user's name (or email) when available.
        """
        data = self._request("GET", "/session")
        user = data.get("user", {}) if isinstance(data, dict) else {}
        return str(user.get("name") or user.get("email") or "")

    def iter_queries(self, page_size: int | None = None) -> Iterator[Query]:
        """
        Yield the caller's queries one page at a time, oldest first.

        Stops at the first empty or short page.  Entries that fail
        validation are logged, recorded in ``quarantined`` and skipped.

        Raises:
            TransportError: If any page request fails.
        """
        size = page_size or self.config.page_size
        page = 1
        while True:
            data = self._request(
                "GET",
                "/queries/my",
                params={"order": "created_at", "page": page, "page_size": size},
            )
            results = data.get("results") if isinstance(data, dict) else None
            if not results:
                return

            logger.debug("Fetched page %d (%d queries)", page, len(results))
            for raw in results:
                try:
                    query = self._parse_query(raw)
                except MalformedRecordError as exc:
                    logger.warning("Skipping %s", exc)
                    self.quarantined.append(exc)
                    continue
                yield query

            if len(results) < size:
                return
            page += 1

    def get_query(self, query_id: int) -> Query:
        """
        Fetch a single query with full details.
        """
        return self._parse_query(self._request("GET", f"/queries/{query_id}"))

    def update_query(self, query_id: int, body: str) -> Query:
        """
        Replace a query's SQL text and return the server's updated query.
        """
        data = self._request("POST", f"/queries/{query_id}", json={"query": body})
        return self._parse_query(data)
