"""Core sync engine that reconciles Redash queries with the local mirror.

The ``SyncEngine`` ties together the client, store, hasher, diff
presenter and resolver into a complete sync run.  For each query yielded
by the remote stream it:

1. Reads the local body and metadata envelope (before any write).
2. Hashes the local and remote bodies.
3. Classifies the (local, cached, remote) triple with ``classify()``.
4. Pulls, pushes, skips, or asks the resolver, honouring the sticky
   "apply to all" batch modes.
5. Records a ``SyncResult``.

Queries are processed strictly one at a time in stream order.  A failed
push is recorded and the run continues; a failure reading the stream or
writing the mirror ends the run with status ``failed``.  An ``abort``
answer cancels the run's ``CancellationToken``, which is checked between
queries.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from redash_sync.errors import MalformedRecordError, StoreError, TransportError
from redash_sync.sync.hashing import content_hash
from redash_sync.sync.models import (
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

if TYPE_CHECKING:
    from redash_sync.core.client import RedashClient
    from redash_sync.sync.diff import DiffPresenter
    from redash_sync.sync.resolver import DecisionResolver
    from redash_sync.sync.store import QueryStore

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative stop signal checked by the engine between queries."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


def classify(
    local_hash: str | None,
    cached_hash: str | None,
    remote_hash: str,
) -> Classification:
    """Classify a query from its local, cached and remote hashes.

    Rules are evaluated in order:

    * no cached hash, or no local body -> ``NEW`` (pull)
    * L == C == R -> ``UNCHANGED``
    * L == C != R -> ``REMOTE_UPDATED``
    * C == R != L -> ``LOCAL_MODIFIED``
    * L == R != C -> ``CONVERGED`` (same content, stale cached hash)
    * all distinct -> ``CONFLICT``
    """
    if cached_hash is None or local_hash is None:
        return Classification.NEW

    local_clean = local_hash == cached_hash
    remote_clean = remote_hash == cached_hash

    if local_clean and remote_clean:
        return Classification.UNCHANGED
    if local_clean:
        return Classification.REMOTE_UPDATED
    if remote_clean:
        return Classification.LOCAL_MODIFIED
    if local_hash == remote_hash:
        return Classification.CONVERGED
    return Classification.CONFLICT


_PLANNED_ACTIONS: dict[Classification, SyncAction] = {
    Classification.NEW: SyncAction.CREATE_LOCAL,
    Classification.UNCHANGED: SyncAction.SKIP,
    Classification.REMOTE_UPDATED: SyncAction.PULL,
    Classification.CONVERGED: SyncAction.PULL,
    Classification.LOCAL_MODIFIED: SyncAction.PUSH,
    Classification.CONFLICT: SyncAction.CONFLICT,
}


class SyncEngine:
    """Reconcile every remote query with the local mirror.

    Batch modes live on the instance, so two engines in one process never
    share "apply to all" answers.

    Args:
        client: Source of remote queries and target of pushes.
        store: Local query mirror.
        resolver: Answers upload and conflict questions.
        presenter: Renders diffs before questions; ``None`` disables
            diff output.
    """

    def __init__(
        self,
        client: RedashClient,
        store: QueryStore,
        resolver: DecisionResolver,
        presenter: DiffPresenter | None = None,
    ) -> None:
        self.client = client
        self.store = store
        self.resolver = resolver
        self.presenter = presenter

        self.upload_batch = BatchMode.NONE
        self.conflict_batch = BatchMode.NONE

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def run(
        self,
        dry_run: bool = False,
        token: CancellationToken | None = None,
    ) -> SyncReport:
        """Execute a full sync run.

        Args:
            dry_run: If ``True``, classify queries but do not prompt,
                push or write anything.
            token: Cancellation token; a fresh one is created if omitted.

        Returns:
            A ``SyncReport``; its ``status`` tells a completed run from an
            interrupted or failed one.
        """
        token = token or CancellationToken()
        started_at = datetime.now(timezone.utc).isoformat()
        results: list[SyncResult] = []
        total_seen = 0
        status = RunStatus.COMPLETED
        error: str | None = None

        stream = None
        try:
            if not dry_run:
                self.store.ensure_root()
            stream = self.client.iter_queries()
            while not token.cancelled:
                query = next(stream, None)
                if query is None:
                    break
                total_seen += 1
                result = self._sync_query(query, dry_run, token)
                if result is not None:
                    results.append(result)
        except (TransportError, StoreError) as exc:
            logger.error("Sync failed: %s", exc)
            status = RunStatus.FAILED
            error = str(exc)
        finally:
            close = getattr(stream, "close", None)
            if close is not None:
                close()

        if status != RunStatus.FAILED and token.cancelled:
            logger.info("Sync interrupted after %d queries", total_seen)
            status = RunStatus.INTERRUPTED

        return SyncReport(
            results=results,
            total_seen=total_seen,
            status=status,
            dry_run=dry_run,
            error=error,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc).isoformat(),
        )

    # ------------------------------------------------------------------
    # Per-query sync
    # ------------------------------------------------------------------

    def _sync_query(
        self, query: Query, dry_run: bool, token: CancellationToken
    ) -> SyncResult | None:
        """Reconcile one query; ``None`` means the operator aborted on it."""
        local_body = self.store.read_body(query.id)
        metadata = self.store.read_metadata(query.id)

        remote_hash = content_hash(query.body)
        local_hash = content_hash(local_body) if local_body is not None else None
        cached_hash = metadata.hash if metadata is not None else None

        classification = classify(local_hash, cached_hash, remote_hash)
        logger.debug(
            "Query %s classified %s (local=%s cached=%s remote=%s)",
            query.id,
            classification.value,
            local_hash,
            cached_hash,
            remote_hash,
        )

        if dry_run:
            return self._result(query, classification, _PLANNED_ACTIONS[classification])

        # classify() returns NEW whenever the local body is missing
        if classification == Classification.NEW or local_body is None:
            logger.info("[NEW] Query %s: %s", query.id, query.name)
            return self._pull(query, classification, SyncAction.CREATE_LOCAL, remote_hash)

        if classification == Classification.UNCHANGED:
            logger.info("[SKIP] Query %s: %s (unchanged)", query.id, query.name)
            return self._result(query, classification, SyncAction.SKIP)

        if classification in (Classification.REMOTE_UPDATED, Classification.CONVERGED):
            logger.info("[UPDATE] Query %s: %s", query.id, query.name)
            return self._pull(query, classification, SyncAction.PULL, remote_hash)

        if classification == Classification.LOCAL_MODIFIED:
            return self._handle_local_modified(query, local_body, token)

        return self._handle_conflict(
            query, local_body, local_hash, cached_hash, remote_hash
        )

    def _handle_local_modified(
        self, query: Query, local_body: str, token: CancellationToken
    ) -> SyncResult | None:
        classification = Classification.LOCAL_MODIFIED

        if self.upload_batch == BatchMode.CONFIRM_ALL:
            decision = UploadDecision.CONFIRM
        elif self.upload_batch == BatchMode.DECLINE_ALL:
            decision = UploadDecision.DECLINE
        else:
            if self.presenter is not None:
                self.presenter.present(local_body, query.body, _label(query))
            decision = self.resolver.ask_upload(query)
            if decision == UploadDecision.CONFIRM_ALL:
                self.upload_batch = BatchMode.CONFIRM_ALL
                logger.info("Pushing all remaining local changes")
            elif decision == UploadDecision.DECLINE_ALL:
                self.upload_batch = BatchMode.DECLINE_ALL
                logger.info("Skipping all remaining local changes")

        if decision == UploadDecision.ABORT:
            logger.info("Aborted at query %s", query.id)
            token.cancel()
            return None

        if decision in (UploadDecision.CONFIRM, UploadDecision.CONFIRM_ALL):
            logger.info("[PUSH] Query %s: %s", query.id, query.name)
            return self._push(query, local_body, classification, SyncAction.PUSH)

        logger.info("[SKIP] Query %s: %s (local change not pushed)", query.id, query.name)
        return self._result(query, classification, SyncAction.DECLINED)

    def _handle_conflict(
        self,
        query: Query,
        local_body: str,
        local_hash: str | None,
        cached_hash: str | None,
        remote_hash: str,
    ) -> SyncResult:
        classification = Classification.CONFLICT
        logger.warning(
            "[CONFLICT] Query %s: %s (local=%s cached=%s remote=%s)",
            query.id,
            query.name,
            (local_hash or "")[:12],
            (cached_hash or "")[:12],
            remote_hash[:12],
        )
        if self.presenter is not None:
            self.presenter.present_fingerprints(
                _label(query), local_hash, cached_hash, remote_hash
            )

        if self.conflict_batch == BatchMode.KEEP_LOCAL:
            decision = ConflictDecision.KEEP_LOCAL
        elif self.conflict_batch == BatchMode.TAKE_REMOTE:
            decision = ConflictDecision.TAKE_REMOTE
        else:
            if self.presenter is not None:
                self.presenter.present(local_body, query.body, _label(query))
            decision = self.resolver.ask_conflict(query)
            if decision == ConflictDecision.KEEP_LOCAL_ALL:
                self.conflict_batch = BatchMode.KEEP_LOCAL
                logger.info("Keeping local content for all remaining conflicts")
            elif decision == ConflictDecision.TAKE_REMOTE_ALL:
                self.conflict_batch = BatchMode.TAKE_REMOTE
                logger.info("Taking remote content for all remaining conflicts")

        if decision in (ConflictDecision.KEEP_LOCAL, ConflictDecision.KEEP_LOCAL_ALL):
            return self._push(query, local_body, classification, SyncAction.CONFLICT)

        if decision in (ConflictDecision.TAKE_REMOTE, ConflictDecision.TAKE_REMOTE_ALL):
            return self._pull(query, classification, SyncAction.PULL, remote_hash)

        return self._result(
            query, classification, SyncAction.CONFLICT, error="conflict skipped"
        )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _pull(
        self,
        query: Query,
        classification: Classification,
        action: SyncAction,
        remote_hash: str,
    ) -> SyncResult:
        """Overwrite the local body and metadata with the remote query."""
        self.store.write(
            query.id, query.body, QueryMetadata.from_query(query, remote_hash)
        )
        return self._result(query, classification, action)

    def _push(
        self,
        query: Query,
        local_body: str,
        classification: Classification,
        failure_action: SyncAction,
    ) -> SyncResult:
        """Push *local_body* and store the server's authoritative copy.

        A failed push is recorded with *failure_action* and
        ``success=False``; local files are left untouched.
        """
        try:
            updated = self.client.update_query(query.id, local_body)
        except (TransportError, MalformedRecordError) as exc:
            logger.error("Query %s: push failed: %s", query.id, exc)
            return self._result(
                query,
                classification,
                failure_action,
                success=False,
                error=f"push failed: {exc}",
            )

        self.store.write(
            query.id,
            updated.body,
            QueryMetadata.from_query(updated, content_hash(updated.body)),
        )
        return self._result(query, classification, SyncAction.PUSH)

    @staticmethod
    def _result(
        query: Query,
        classification: Classification,
        action: SyncAction,
        success: bool = True,
        error: str | None = None,
    ) -> SyncResult:
        return SyncResult(
            query_id=query.id,
            name=query.name,
            classification=classification,
            action=action,
            success=success,
            error=error,
        )


def _label(query: Query) -> str:
    return f"query {query.id}: {query.name}"
