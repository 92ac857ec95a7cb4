"""Tests for sync/reporter.py and the SyncReport aggregate views."""

from redash_sync.sync.models import (
    Classification,
    RunStatus,
    SyncAction,
    SyncReport,
    SyncResult,
)
from redash_sync.sync.reporter import (
    format_dry_run_preview,
    format_sync_report,
    report_to_json,
)


def _result(query_id, classification, action, success=True, error=None):
    return SyncResult(
        query_id=query_id,
        name=f"Query {query_id}",
        classification=classification,
        action=action,
        success=success,
        error=error,
    )


def _report(results, **kwargs):
    kwargs.setdefault("total_seen", len(results))
    return SyncReport(results=results, started_at="2026-01-01T00:00:00+00:00", **kwargs)


MIXED = [
    _result(1, Classification.NEW, SyncAction.CREATE_LOCAL),
    _result(2, Classification.REMOTE_UPDATED, SyncAction.PULL),
    _result(3, Classification.UNCHANGED, SyncAction.SKIP),
    _result(4, Classification.LOCAL_MODIFIED, SyncAction.PUSH),
    _result(5, Classification.LOCAL_MODIFIED, SyncAction.DECLINED),
    _result(6, Classification.CONFLICT, SyncAction.CONFLICT, error="conflict skipped"),
    _result(
        7,
        Classification.LOCAL_MODIFIED,
        SyncAction.PUSH,
        success=False,
        error="push failed: Redash API error: 403 Forbidden",
    ),
]


class TestSyncReportViews:
    def test_counts(self):
        report = _report(MIXED)
        assert [r.query_id for r in report.created] == [1]
        assert [r.query_id for r in report.pulled] == [2]
        assert [r.query_id for r in report.unchanged] == [3]
        assert [r.query_id for r in report.pushed] == [4]
        assert [r.query_id for r in report.declined] == [5]
        assert [r.query_id for r in report.conflicts] == [6]
        assert [r.query_id for r in report.errors] == [7]

    def test_failed_keep_local_counts_as_conflict_and_error(self):
        failed = _result(
            8, Classification.CONFLICT, SyncAction.CONFLICT, success=False, error="push failed: x"
        )
        report = _report([failed])
        assert report.conflicts == [failed]
        assert report.errors == [failed]


class TestFormatSyncReport:
    def test_complete_run(self):
        text = format_sync_report(_report(MIXED))
        assert text.startswith("Sync complete:")
        assert "New:                 1" in text
        assert "Pushed:              1" in text
        assert "Skipped (declined):  1" in text
        assert "Errors:              1" in text
        assert "Unresolved conflicts:" in text
        assert "Query 6: Query 6 (conflict skipped)" in text
        assert "Query 7: Query 7: push failed" in text

    def test_errors_line_omitted_when_clean(self):
        text = format_sync_report(_report(MIXED[:3]))
        assert "Errors" not in text
        assert "Unresolved" not in text

    def test_interrupted(self):
        text = format_sync_report(_report([], status=RunStatus.INTERRUPTED, total_seen=1))
        assert text.startswith("Sync interrupted:")
        assert "Total:               1" in text

    def test_failed(self):
        report = _report(
            MIXED[:1], status=RunStatus.FAILED, error="Redash API error: 500 Server Error"
        )
        text = format_sync_report(report)
        assert text.startswith("Sync failed:")
        assert "Fatal error: Redash API error: 500" in text


class TestFormatDryRunPreview:
    def test_groups(self):
        results = [
            _result(1, Classification.NEW, SyncAction.CREATE_LOCAL),
            _result(2, Classification.REMOTE_UPDATED, SyncAction.PULL),
            _result(3, Classification.LOCAL_MODIFIED, SyncAction.PUSH),
            _result(4, Classification.CONFLICT, SyncAction.CONFLICT),
            _result(5, Classification.UNCHANGED, SyncAction.SKIP),
            _result(6, Classification.CONVERGED, SyncAction.PULL),
        ]
        text = format_dry_run_preview(_report(results, dry_run=True))
        assert text.startswith("DRY RUN -- No changes will be made")
        for label in ("[NEW]", "[UPDATE]", "[REFRESH]", "[LOCAL CHANGE]", "[CONFLICT]"):
            assert label in text
        assert text.index("[NEW]") < text.index("[CONFLICT]")
        assert "Unchanged: 1 queries" in text
        assert "No changes needed." not in text

    def test_nothing_to_do(self):
        results = [_result(1, Classification.UNCHANGED, SyncAction.SKIP)]
        text = format_dry_run_preview(_report(results, dry_run=True))
        assert "No changes needed." in text


class TestReportToJson:
    def test_structure(self):
        data = report_to_json(_report(MIXED))
        assert data["status"] == "completed"
        assert data["dry_run"] is False
        assert data["counts"] == {
            "total": 7,
            "new": 1,
            "updated": 1,
            "pushed": 1,
            "unchanged": 1,
            "declined": 1,
            "conflicts": 1,
            "errors": 1,
        }
        assert data["results"][0] == {
            "query_id": 1,
            "name": "Query 1",
            "classification": "new",
            "action": "create_local",
            "success": True,
        }
        assert data["results"][5]["error"] == "conflict skipped"
