"""Decision strategies for local changes and conflicts.

The engine asks two kinds of questions:

- **Upload**: a query changed locally only -- push it?  Answers are
  ``UploadDecision`` values (confirm, decline, confirm-all, decline-all,
  abort).
- **Conflict**: local, cached and remote all differ -- which side wins?
  Answers are ``ConflictDecision`` values (keep-local, take-remote, skip,
  keep-local-all, take-remote-all).

Provided strategies:

- ``InteractiveResolver``: prompts on stdin and parses free-text replies.
- ``LocalWinsResolver``: always push / keep local.
- ``RemoteWinsResolver``: never push / take remote.
- ``SkipResolver``: never push / leave conflicts unresolved.

The ``create_resolver()`` factory maps strategy strings to instances.
Resolvers only answer questions; sticky "apply to all" state belongs to
the engine.
"""

from __future__ import annotations

import logging
import sys
from typing import Callable, Protocol, TextIO

from redash_sync.sync.models import ConflictDecision, Query, UploadDecision

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

_UPLOAD_RESPONSES: dict[str, UploadDecision] = {
    "y": UploadDecision.CONFIRM,
    "yes": UploadDecision.CONFIRM,
    "n": UploadDecision.DECLINE,
    "no": UploadDecision.DECLINE,
    "a": UploadDecision.CONFIRM_ALL,
    "all": UploadDecision.CONFIRM_ALL,
    "d": UploadDecision.DECLINE_ALL,
    "none": UploadDecision.DECLINE_ALL,
    "q": UploadDecision.ABORT,
    "quit": UploadDecision.ABORT,
    "abort": UploadDecision.ABORT,
}

_CONFLICT_RESPONSES: dict[str, ConflictDecision] = {
    "l": ConflictDecision.KEEP_LOCAL,
    "local": ConflictDecision.KEEP_LOCAL,
    "r": ConflictDecision.TAKE_REMOTE,
    "remote": ConflictDecision.TAKE_REMOTE,
    "s": ConflictDecision.SKIP,
    "skip": ConflictDecision.SKIP,
    "la": ConflictDecision.KEEP_LOCAL_ALL,
    "local-all": ConflictDecision.KEEP_LOCAL_ALL,
    "ra": ConflictDecision.TAKE_REMOTE_ALL,
    "remote-all": ConflictDecision.TAKE_REMOTE_ALL,
}

UPLOAD_PROMPT = (
    "Push local changes? [y]es / [n]o / [a]ll / [d] none / [q]uit (default: no): "
)
CONFLICT_PROMPT = (
    "Resolve conflict: [l]ocal / [r]emote / [s]kip / [la] local-all / "
    "[ra] remote-all (default: skip): "
)


def parse_upload_response(text: str) -> UploadDecision:
    """Map a free-text reply to an ``UploadDecision``.

    Matching is case-insensitive; empty or unrecognised input declines.
    """
    return _UPLOAD_RESPONSES.get(text.strip().lower(), UploadDecision.DECLINE)


def parse_conflict_response(text: str) -> ConflictDecision:
    """Map a free-text reply to a ``ConflictDecision``.

    Matching is case-insensitive; empty or unrecognised input skips.
    """
    return _CONFLICT_RESPONSES.get(text.strip().lower(), ConflictDecision.SKIP)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class DecisionResolver(Protocol):
    """Protocol that all decision strategies must satisfy."""

    def ask_upload(self, query: Query) -> UploadDecision:
        """Decide whether to push a locally modified query."""
        ...  # pragma: no cover

    def ask_conflict(self, query: Query) -> ConflictDecision:
        """Decide which side wins a conflicting query."""
        ...  # pragma: no cover


# ---------------------------------------------------------------------------
# Interactive resolver
# ---------------------------------------------------------------------------


class InteractiveResolver:
    """Ask the operator on the terminal.

    Each question blocks until a line is entered; there is no timeout.
    End of input is read as an empty reply (decline / skip).

    Args:
        input_func: Callable used to read a reply (default: ``input``).
        output: Stream for the question header (default: ``sys.stdout``).
    """

    def __init__(
        self,
        input_func: Callable[[str], str] | None = None,
        output: TextIO | None = None,
    ) -> None:
        self._input = input_func or input
        self.output = output or sys.stdout

    def ask_upload(self, query: Query) -> UploadDecision:
        self.output.write(f"\nQuery {query.id}: {query.name} changed locally.\n")
        decision = parse_upload_response(self._read(UPLOAD_PROMPT))
        logger.debug("Upload decision for query %s: %s", query.id, decision.value)
        return decision

    def ask_conflict(self, query: Query) -> ConflictDecision:
        self.output.write(
            f"\nQuery {query.id}: {query.name} changed both locally and remotely.\n"
        )
        decision = parse_conflict_response(self._read(CONFLICT_PROMPT))
        logger.debug("Conflict decision for query %s: %s", query.id, decision.value)
        return decision

    def _read(self, prompt: str) -> str:
        self.output.flush()
        try:
            return self._input(prompt)
        except EOFError:
            logger.debug("End of input while prompting, using default answer")
            return ""


# ---------------------------------------------------------------------------
# Unattended resolvers
# ---------------------------------------------------------------------------


class LocalWinsResolver:
    """Always push local changes and keep local content in conflicts."""

    def ask_upload(self, query: Query) -> UploadDecision:
        return UploadDecision.CONFIRM

    def ask_conflict(self, query: Query) -> ConflictDecision:
        return ConflictDecision.KEEP_LOCAL


class RemoteWinsResolver:
    """Never push local changes and take remote content in conflicts."""

    def ask_upload(self, query: Query) -> UploadDecision:
        return UploadDecision.DECLINE

    def ask_conflict(self, query: Query) -> ConflictDecision:
        return ConflictDecision.TAKE_REMOTE


class SkipResolver:
    """Never push and leave every conflict for a later run."""

    def ask_upload(self, query: Query) -> UploadDecision:
        return UploadDecision.DECLINE

    def ask_conflict(self, query: Query) -> ConflictDecision:
        return ConflictDecision.SKIP


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_STRATEGY_MAP: dict[str, type] = {
    "interactive": InteractiveResolver,
    "local-wins": LocalWinsResolver,
    "remote-wins": RemoteWinsResolver,
    "skip": SkipResolver,
}

STRATEGIES = sorted(_STRATEGY_MAP)


def create_resolver(strategy: str) -> DecisionResolver:
    """Create a decision resolver for the given strategy string.

    Args:
        strategy: One of ``"interactive"``, ``"local-wins"``,
            ``"remote-wins"``, ``"skip"``.

    Raises:
        ValueError: If the strategy string is not recognised.
    """
    cls = _STRATEGY_MAP.get(strategy)
    if cls is None:
        raise ValueError(
            f"Unknown strategy: '{strategy}'. Valid strategies: {STRATEGIES}"
        )
    return cls()  # type: ignore[return-value]
