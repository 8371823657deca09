"""File handler module: encoding-aware reads and atomic writes.

Format handlers read historical versions that may have been committed in
any encoding, and must never leave a half-written merge result behind.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from charset_normalizer import from_bytes

# =============================================================================
# File Read
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Reads raw bytes first, then uses charset-normalizer to detect encoding.
    Defaults to UTF-8 for empty files or when detection fails.

    Args:
        path: Path to the file to read.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = Path(path).read_bytes()
    if not raw:
        return ("", "utf-8")

    result = from_bytes(raw).best()
    if result is None:
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        # ascii is a strict subset of utf-8
        if encoding == "ascii":
            encoding = "utf-8"
        content = str(result)
    return (content, encoding)


def read_text(path: Path) -> str:
    """Return the decoded content of *path*, ignoring the detected encoding."""
    content, _ = read_file_with_encoding(path)
    return content


def decode_versions(versions: list[bytes]) -> tuple[list[str], str]:
    """Decode several versions of one file with a single shared encoding.

    Strict UTF-8 is tried first. Otherwise charset-normalizer guesses once
    from all versions together, earliest entries first. Each version must
    decode strictly and re-encode to its original bytes, so writing a
    result back in the returned encoding never changes untouched text.

    Args:
        versions: Raw content of each version, the preferred one first.

    Returns:
        Tuple of (decoded_versions, encoding).

    Raises:
        UnicodeError: If no single encoding reproduces every version.
    """
    try:
        return [data.decode("utf-8") for data in versions], "utf-8"
    except UnicodeDecodeError:
        pass

    result = from_bytes(b"\n".join(versions)).best()
    if result is None:
        raise UnicodeError("no common text encoding found for all versions")
    encoding = result.encoding

    decoded = []
    for data in versions:
        try:
            text = data.decode(encoding)
        except UnicodeDecodeError as exc:
            raise UnicodeError(
                f"versions cannot all be decoded as {encoding}: {exc}"
            ) from exc
        if text.encode(encoding) != data:
            raise UnicodeError(f"{encoding} does not round-trip every version")
        decoded.append(text)
    return decoded, encoding


# =============================================================================
# File Write
# =============================================================================


def atomic_write_bytes(path: Path, data: bytes) -> int:
    """Write *data* to *path* so readers never observe partial content.

    Writes to a temporary file in the target directory, then replaces the
    target with ``os.replace()``. The temporary file is removed on any
    failure.

    Returns:
        Number of bytes written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    return len(data)


def atomic_write_text(
    path: Path, content: str, encoding: str = "utf-8"
) -> int:
    """Text variant of ``atomic_write_bytes()``."""
    return atomic_write_bytes(path, content.encode(encoding))
