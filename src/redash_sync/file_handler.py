"""File handler module: encoding-aware text reads and atomic text writes.

Used by the query store for both the SQL body and the JSON metadata
file of each mirrored query.
"""

import os
import stat
import tempfile
from pathlib import Path

from charset_normalizer import from_bytes


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a text file, detecting its encoding when it is not UTF-8.

    UTF-8 is tried first so that well-formed files round-trip exactly;
    charset-normalizer is only consulted for files that fail to decode.

    Args:
        path: Path to the file to read.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    try:
        return (raw.decode("utf-8"), "utf-8")
    except UnicodeDecodeError:
        pass

    result = from_bytes(raw).best()
    if result is None:
        return (raw.decode("utf-8", errors="replace"), "utf-8")
    return (str(result), result.encoding)


def write_file_atomic(
    path: Path, content: str, encoding: str = "utf-8"
) -> int:
    """Write *content* to *path* atomically, creating parent directories.

    Writes to a temporary file in the same directory then replaces the
    target with ``os.replace()`` so readers never see partial data.  The
    result keeps the mode of the file it replaces; a new file gets the
    usual ``0o666`` minus the process umask.

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    encoded = content.encode(encoding)

    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(encoded)
        os.chmod(tmp_path, _target_mode(path))
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    return len(encoded)


def _target_mode(path: Path) -> int:
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        pass
    # os.umask can only be read by setting it
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask
