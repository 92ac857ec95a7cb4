"""Local query mirror.

Each query lives in its own directory under the queries root::

    queries/
      42/
        query.sql    -- the SQL body as last written
        query.json   -- QueryMetadata envelope (cached hash, sync time)

Key design choices:

* **Atomic writes** -- body and metadata are each written to a temp file
  and moved into place with ``os.replace()``.  A crash between the two
  writes leaves one file stale, which the next run sees as a hash
  mismatch rather than lost data.
* **Lenient metadata reads** -- unreadable or invalid ``query.json`` is
  treated as missing so the query is re-pulled as new.
* **Strict I/O errors** -- any other ``OSError`` surfaces as
  ``StoreError``; a broken mirror invalidates every later comparison.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from redash_sync.errors import StoreError
from redash_sync.file_handler import read_file_with_encoding, write_file_atomic
from redash_sync.sync.models import QueryMetadata

logger = logging.getLogger(__name__)

BODY_FILENAME = "query.sql"
METADATA_FILENAME = "query.json"


class QueryStore:
    """Read and write mirrored queries on disk.

    Args:
        root: Directory holding one sub-directory per query id.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def ensure_root(self) -> None:
        """Create the queries directory if it does not exist."""
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreError("*", f"create {self.root}", exc) from exc

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def query_dir(self, query_id: int | str) -> Path:
        return self.root / str(query_id)

    def body_path(self, query_id: int | str) -> Path:
        return self.query_dir(query_id) / BODY_FILENAME

    def metadata_path(self, query_id: int | str) -> Path:
        return self.query_dir(query_id) / METADATA_FILENAME

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def exists(self, query_id: int | str) -> bool:
        """Return ``True`` if the query's body file is present."""
        return self.body_path(query_id).is_file()

    def read_body(self, query_id: int | str) -> str | None:
        """Return the local SQL body, or ``None`` if it does not exist."""
        path = self.body_path(query_id)
        try:
            content, encoding = read_file_with_encoding(path)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreError(query_id, f"read {path}", exc) from exc
        if encoding != "utf-8":
            logger.debug("Query %s body decoded as %s", query_id, encoding)
        return content

    def read_metadata(self, query_id: int | str) -> QueryMetadata | None:
        """Return the stored metadata envelope, or ``None`` if absent or invalid."""
        path = self.metadata_path(query_id)
        try:
            content, _ = read_file_with_encoding(path)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreError(query_id, f"read {path}", exc) from exc

        try:
            return QueryMetadata.model_validate(json.loads(content))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning(
                "Ignoring unreadable metadata for query %s (%s): %s",
                query_id,
                path,
                exc,
            )
            return None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def write(
        self, query_id: int | str, body: str, metadata: QueryMetadata
    ) -> None:
        """Persist *body* and *metadata* for *query_id*.

        The body is written first; metadata last, so a crash in between
        leaves the old cached hash in place.

        Raises:
            StoreError: If either file cannot be written.
        """
        body_path = self.body_path(query_id)
        metadata_path = self.metadata_path(query_id)
        try:
            write_file_atomic(body_path, body)
        except OSError as exc:
            raise StoreError(query_id, f"write {body_path}", exc) from exc

        payload = json.dumps(metadata.model_dump(mode="json"), indent=2)
        try:
            write_file_atomic(metadata_path, payload)
        except OSError as exc:
            raise StoreError(query_id, f"write {metadata_path}", exc) from exc
        logger.debug("Wrote query %s to %s", query_id, body_path.parent)
