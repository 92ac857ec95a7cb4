"""Diff rendering for interactive review.

``DiffPresenter`` shows the operator what pushing a local change (or
resolving a conflict) would do.  The built-in renderer is
``difflib.unified_diff``; an external tool can be configured instead
(currently ``git diff --no-index``).  Rendering is best effort: if the
external tool is missing or fails, a note is printed and the built-in
renderer is used.  Nothing here raises to the caller.
"""

from __future__ import annotations

import difflib
import logging
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import TextIO

logger = logging.getLogger(__name__)


def generate_diff(
    old_content: str,
    new_content: str,
    label_old: str = "old",
    label_new: str = "new",
) -> str:
    """Generate a unified diff between two strings.

    Lines are compared without their terminators, so a body missing its
    final newline still renders one changed line per output line.

    Returns:
        A unified diff string.  Empty string if the contents are identical.
    """
    diff_lines = difflib.unified_diff(
        old_content.splitlines(),
        new_content.splitlines(),
        fromfile=label_old,
        tofile=label_new,
        lineterm="",
    )
    return "\n".join(diff_lines)


class DiffPresenter:
    """Render query diffs to an output stream.

    Args:
        output: Stream to write to (default: ``sys.stdout``).
        tool: Optional external diff tool.  Only ``"git"`` is supported.
    """

    def __init__(self, output: TextIO | None = None, tool: str | None = None) -> None:
        self.output = output or sys.stdout
        self.tool = tool

    def present(self, local_body: str, remote_body: str, label: str) -> None:
        """Show the change from *remote_body* (before) to *local_body* (after)."""
        self._write(f"\n--- {label} ---\n")
        if self.tool:
            try:
                rendered = self._run_tool(local_body, remote_body)
            except (OSError, subprocess.SubprocessError) as exc:
                logger.debug("Diff tool %s failed: %s", self.tool, exc)
                self._write(f"(diff unavailable: {self.tool}: {exc})\n")
            else:
                self._write(rendered or "(no textual differences)\n")
                return

        diff = generate_diff(
            remote_body,
            local_body,
            label_old=f"remote/{label}",
            label_new=f"local/{label}",
        )
        if diff:
            self._write(diff if diff.endswith("\n") else diff + "\n")
        else:
            self._write("(no textual differences)\n")

    def present_fingerprints(
        self,
        label: str,
        local_hash: str | None,
        cached_hash: str | None,
        remote_hash: str,
    ) -> None:
        """Print the three hashes behind a conflict."""
        self._write(
            f"\nConflict: {label}\n"
            f"  local:  {local_hash or '(missing)'}\n"
            f"  cached: {cached_hash or '(missing)'}\n"
            f"  remote: {remote_hash}\n"
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _run_tool(self, local_body: str, remote_body: str) -> str:
        if self.tool != "git":
            raise OSError(f"unsupported diff tool '{self.tool}'")

        with tempfile.TemporaryDirectory(prefix="redash-sync-") as tmp:
            remote_path = Path(tmp) / "remote.sql"
            local_path = Path(tmp) / "local.sql"
            remote_path.write_text(remote_body, encoding="utf-8")
            local_path.write_text(local_body, encoding="utf-8")
            result = subprocess.run(
                ["git", "diff", "--no-index", "--no-color", str(remote_path), str(local_path)],
                capture_output=True,
                text=True,
                timeout=10,
            )
        # git diff --no-index exits 1 when the files differ
        if result.returncode not in (0, 1):
            raise subprocess.SubprocessError(result.stderr.strip() or f"exit {result.returncode}")
        return result.stdout

    def _write(self, text: str) -> None:
        try:
            self.output.write(text)
            self.output.flush()
        except (OSError, ValueError) as exc:
            logger.warning("Could not write diff output: %s", exc)
