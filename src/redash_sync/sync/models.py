"""Pydantic models for the query sync engine.

Defines the data contracts used across all sync modules:

- ``Query``: A query as returned by the Redash API.
- ``QueryMetadata``: The metadata envelope stored beside each local query.
- ``Classification``: Three-way relationship between local, cached and remote.
- ``SyncAction``: What the engine did for one query.
- ``UploadDecision`` / ``ConflictDecision`` / ``BatchMode``: operator choices.
- ``SyncResult``: Outcome of syncing one query.
- ``SyncReport``: Aggregate results for a full sync run.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator


class Classification(str, Enum):
    """Three-way relationship of a query's local, cached and remote hashes."""

    NEW = "new"
    UNCHANGED = "unchanged"
    REMOTE_UPDATED = "remote_updated"
    LOCAL_MODIFIED = "local_modified"
    CONFLICT = "conflict"
    CONVERGED = "converged"


class SyncAction(str, Enum):
    """Sync operation performed for one query."""

    CREATE_LOCAL = "create_local"
    PULL = "pull"
    PUSH = "push"
    SKIP = "skip"
    DECLINED = "declined"
    CONFLICT = "conflict"


class UploadDecision(str, Enum):
    """Answer to "push this local change?"."""

    CONFIRM = "confirm"
    DECLINE = "decline"
    CONFIRM_ALL = "confirm_all"
    DECLINE_ALL = "decline_all"
    ABORT = "abort"


class ConflictDecision(str, Enum):
    """Answer to "which side wins this conflict?"."""

    KEEP_LOCAL = "keep_local"
    TAKE_REMOTE = "take_remote"
    SKIP = "skip"
    KEEP_LOCAL_ALL = "keep_local_all"
    TAKE_REMOTE_ALL = "take_remote_all"


class BatchMode(str, Enum):
    """Sticky decision latched by an "apply to all" answer."""

    NONE = "none"
    CONFIRM_ALL = "confirm_all"
    DECLINE_ALL = "decline_all"
    KEEP_LOCAL = "keep_local"
    TAKE_REMOTE = "take_remote"


class RunStatus(str, Enum):
    """How a sync run ended."""

    COMPLETED = "completed"
    INTERRUPTED = "interrupted"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class Query(BaseModel):
    """A Redash query as returned by the list and update endpoints.

    The SQL text arrives as ``query`` from Redash; ``body`` is accepted as
    well.  Nullable optional fields are normalised to their empty value.
    """

    id: int
    name: str
    description: str = ""
    body: str = Field(default="", validation_alias=AliasChoices("query", "body"))
    created_at: str | None = None
    updated_at: str | None = None
    data_source_id: int | None = None
    user_id: int | None = None
    is_archived: bool = False
    is_draft: bool = False
    tags: list[str] = []

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def _fill_user_id(cls, data: Any) -> Any:
        # The list endpoint embeds the owner as ``user: {id: ...}``.
        if isinstance(data, dict) and data.get("user_id") is None:
            user = data.get("user")
            if isinstance(user, dict) and user.get("id") is not None:
                data = {**data, "user_id": user["id"]}
        return data

    @field_validator("description", "body", mode="before")
    @classmethod
    def _none_to_empty_str(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("is_archived", "is_draft", mode="before")
    @classmethod
    def _none_to_false(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("tags", mode="before")
    @classmethod
    def _none_to_empty_list(cls, value: Any) -> Any:
        return [] if value is None else value


class QueryMetadata(BaseModel):
    """Metadata envelope persisted as ``query.json`` beside ``query.sql``.

    Attributes:
        hash: Fingerprint of the body at the last sync (the cached hash).
        downloaded_at: ISO 8601 UTC timestamp of the last sync.
    """

    id: int
    name: str
    description: str = ""
    created_at: str | None = None
    updated_at: str | None = None
    data_source_id: int | None = None
    user_id: int | None = None
    is_archived: bool = False
    is_draft: bool = False
    tags: list[str] = []
    hash: str
    downloaded_at: str

    model_config = {"frozen": True}

    @classmethod
    def from_query(cls, query: Query, hash: str) -> QueryMetadata:
        """Build the envelope for *query* synced with fingerprint *hash*."""
        return cls(
            id=query.id,
            name=query.name,
            description=query.description,
            created_at=query.created_at,
            updated_at=query.updated_at,
            data_source_id=query.data_source_id,
            user_id=query.user_id,
            is_archived=query.is_archived,
            is_draft=query.is_draft,
            tags=list(query.tags),
            hash=hash,
            downloaded_at=datetime.now(timezone.utc).isoformat(),
        )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class SyncResult(BaseModel):
    """Result of syncing one query.

    Attributes:
        query_id: Redash query id.
        name: Query display name.
        classification: Three-way classification of the query.
        action: Sync action that was performed (or planned, on dry runs).
        success: Whether the action succeeded.
        error: Error message if the action failed or was left unresolved.
    """

    query_id: int
    name: str
    classification: Classification
    action: SyncAction
    success: bool = True
    error: str | None = None

    model_config = {"frozen": True}


class SyncReport(BaseModel):
    """Aggregate report (run summary) for a full sync run.

    Attributes:
        results: Individual sync results, in stream order.
        total_seen: Queries consumed from the remote stream, including a
            query whose prompt was aborted.
        status: Whether the run completed, was interrupted or failed.
        dry_run: Whether this was a dry run (no changes applied).
        error: Fatal error message when ``status`` is ``failed``.
        started_at: ISO 8601 timestamp when sync started.
        completed_at: ISO 8601 timestamp when sync ended.
    """

    results: list[SyncResult] = []
    total_seen: int = 0
    status: RunStatus = RunStatus.COMPLETED
    dry_run: bool = False
    error: str | None = None
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    def _with_action(self, action: SyncAction) -> list[SyncResult]:
        return [r for r in self.results if r.action == action and r.success]

    @property
    def created(self) -> list[SyncResult]:
        """Queries pulled for the first time."""
        return self._with_action(SyncAction.CREATE_LOCAL)

    @property
    def pulled(self) -> list[SyncResult]:
        """Queries updated locally from the remote."""
        return self._with_action(SyncAction.PULL)

    @property
    def pushed(self) -> list[SyncResult]:
        """Queries pushed to the remote."""
        return self._with_action(SyncAction.PUSH)

    @property
    def unchanged(self) -> list[SyncResult]:
        return self._with_action(SyncAction.SKIP)

    @property
    def declined(self) -> list[SyncResult]:
        """Local changes the operator chose not to push."""
        return self._with_action(SyncAction.DECLINED)

    @property
    def conflicts(self) -> list[SyncResult]:
        """Conflicts left unresolved, including failed keep-local pushes."""
        return [r for r in self.results if r.action == SyncAction.CONFLICT]

    @property
    def errors(self) -> list[SyncResult]:
        """Results where success is False."""
        return [r for r in self.results if not r.success]

    @property
    def interrupted(self) -> bool:
        return self.status == RunStatus.INTERRUPTED
