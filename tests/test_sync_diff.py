"""Tests for sync/diff.py -- unified diffs and the DiffPresenter."""

import io
import subprocess
from unittest.mock import Mock, patch

from redash_sync.sync.diff import DiffPresenter, generate_diff


class TestGenerateDiff:
    def test_identical(self):
        assert generate_diff("a\n", "a\n") == ""

    def test_labels_and_lines(self):
        diff = generate_diff("a\nb\n", "a\nc\n", "old.sql", "new.sql")
        assert "--- old.sql" in diff
        assert "+++ new.sql" in diff
        assert "-b" in diff
        assert "+c" in diff

    def test_missing_final_newline_keeps_lines_apart(self):
        diff = generate_diff("SELECT 1", "SELECT 2")
        lines = diff.splitlines()
        assert "-SELECT 1" in lines
        assert "+SELECT 2" in lines


class TestDiffPresenter:
    def test_bodies_without_final_newline(self):
        out = io.StringIO()
        DiffPresenter(output=out).present("SELECT 2", "SELECT 1", "query 42: x")
        lines = out.getvalue().splitlines()
        assert "-SELECT 1" in lines
        assert "+SELECT 2" in lines
        assert out.getvalue().endswith("\n")

    def test_remote_is_before_local_is_after(self):
        out = io.StringIO()
        DiffPresenter(output=out).present("SELECT 2\n", "SELECT 1\n", "query 1: x")
        text = out.getvalue()
        assert "--- query 1: x ---" in text
        assert "--- remote/query 1: x" in text
        assert "+++ local/query 1: x" in text
        assert "-SELECT 1" in text
        assert "+SELECT 2" in text

    def test_no_textual_differences(self):
        out = io.StringIO()
        DiffPresenter(output=out).present("SELECT 1", "SELECT 1", "q")
        assert "(no textual differences)" in out.getvalue()

    def test_unsupported_tool_falls_back(self):
        out = io.StringIO()
        DiffPresenter(output=out, tool="meld").present("b\n", "a\n", "q")
        text = out.getvalue()
        assert "diff unavailable" in text
        assert "+b" in text

    def test_git_tool_output_is_used(self):
        out = io.StringIO()
        completed = Mock(returncode=1, stdout="GIT DIFF OUTPUT\n", stderr="")
        with patch("redash_sync.sync.diff.subprocess.run", return_value=completed) as run:
            DiffPresenter(output=out, tool="git").present("b\n", "a\n", "q")
        args = run.call_args[0][0]
        assert args[:3] == ["git", "diff", "--no-index"]
        assert "GIT DIFF OUTPUT" in out.getvalue()

    def test_missing_git_falls_back(self):
        out = io.StringIO()
        with patch(
            "redash_sync.sync.diff.subprocess.run",
            side_effect=FileNotFoundError("git"),
        ):
            DiffPresenter(output=out, tool="git").present("b\n", "a\n", "q")
        text = out.getvalue()
        assert "diff unavailable" in text
        assert "-a" in text

    def test_git_error_exit_falls_back(self):
        out = io.StringIO()
        completed = Mock(returncode=128, stdout="", stderr="fatal: bad")
        with patch("redash_sync.sync.diff.subprocess.run", return_value=completed):
            DiffPresenter(output=out, tool="git").present("b\n", "a\n", "q")
        assert "fatal: bad" in out.getvalue()

    def test_git_timeout_falls_back(self):
        out = io.StringIO()
        with patch(
            "redash_sync.sync.diff.subprocess.run",
            side_effect=subprocess.TimeoutExpired("git", 10),
        ):
            DiffPresenter(output=out, tool="git").present("b\n", "a\n", "q")
        assert "+b" in out.getvalue()

    def test_fingerprints(self):
        out = io.StringIO()
        DiffPresenter(output=out).present_fingerprints("query 7: x", "aaa", None, "ccc")
        text = out.getvalue()
        assert "Conflict: query 7: x" in text
        assert "local:  aaa" in text
        assert "cached: (missing)" in text
        assert "remote: ccc" in text

    def test_closed_output_does_not_raise(self):
        out = io.StringIO()
        out.close()
        DiffPresenter(output=out).present("b", "a", "q")
