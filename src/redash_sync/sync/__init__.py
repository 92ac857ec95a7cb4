"""Three-way query sync between Redash and a local mirror.

Architecture
------------
Every query carries three hashes: the **local** body on disk, the
**cached** hash recorded in ``query.json`` at the last sync, and the
**remote** body on the server.  Comparing each side to the cached hash
tells which side changed since the last sync:

- neither -> unchanged, skip
- remote only -> pull
- local only -> ask whether to push
- both (differently) -> conflict, ask which side wins

Modules:

- ``engine``    -- ``SyncEngine``, ``classify()``, ``CancellationToken``.
- ``store``     -- ``QueryStore``: per-query directories on disk.
- ``hashing``   -- ``content_hash()``.
- ``models``    -- pydantic data contracts and decision enums.
- ``resolver``  -- interactive and unattended decision strategies.
- ``diff``      -- ``DiffPresenter`` for interactive review.
- ``reporter``  -- text and JSON run summaries.

Usage example
-------------
::

    from pathlib import Path
    from redash_sync.config import load_config
    from redash_sync.core.client import RedashClient
    from redash_sync.sync import (
        DiffPresenter, QueryStore, SyncEngine, create_resolver,
        format_sync_report,
    )

    config = load_config()
    engine = SyncEngine(
        client=RedashClient(config),
        store=QueryStore(Path(config.queries_dir)),
        resolver=create_resolver("interactive"),
        presenter=DiffPresenter(),
    )
    report = engine.run()
    print(format_sync_report(report))
"""

from .diff import DiffPresenter
from .engine import CancellationToken, SyncEngine, classify
from .hashing import content_hash
from .models import (
    BatchMode,
    Classification,
    ConflictDecision,
    Query,
    QueryMetadata,
    RunStatus,
    SyncAction,
    SyncReport,
    SyncResult,
    UploadDecision,
)
from .reporter import (
    format_dry_run_preview,
    format_sync_report,
    report_to_json,
)
from .resolver import create_resolver
from .store import QueryStore

__all__ = [
    "BatchMode",
    "CancellationToken",
    "Classification",
    "ConflictDecision",
    "DiffPresenter",
    "Query",
    "QueryMetadata",
    "QueryStore",
    "RunStatus",
    "SyncAction",
    "SyncEngine",
    "SyncReport",
    "SyncResult",
    "UploadDecision",
    "classify",
    "content_hash",
    "create_resolver",
    "format_dry_run_preview",
    "format_sync_report",
    "report_to_json",
]
