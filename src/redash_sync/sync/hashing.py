"""Content fingerprints for query bodies."""

from __future__ import annotations

import hashlib


def content_hash(content: str) -> str:
    """Compute the SHA-256 hex digest of *content* with trailing whitespace removed.

    Trailing whitespace is the only normalisation: internal whitespace,
    case and line endings all change the digest.  The same function is
    applied to remote, local and freshly pushed bodies so the three
    hashes are directly comparable.
    """
    return hashlib.sha256(content.rstrip().encode("utf-8")).hexdigest()
