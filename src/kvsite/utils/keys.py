"""Store key derivation for source paths and their chunks."""

from __future__ import annotations

from os import PathLike
from typing import Iterable, List

from kvsite.errors import ManifestError

KEY_SEPARATOR = "_"
_PATH_SEPARATORS = ("/", "\\")


def derive_key(path: str | PathLike[str]) -> str:
    """Turn a filesystem path into a store key.

    Every path separator becomes an underscore, everything else is kept
    verbatim, so the same path always yields the same key.
    """
    key = str(path)
    for separator in _PATH_SEPARATORS:
        key = key.replace(separator, KEY_SEPARATOR)
    return key


def chunk_key(base_key: str, index: int) -> str:
    """Key of the chunk at ``index``; chunk 0 keeps the file's own key."""
    if index < 0:
        raise ValueError(f"chunk index must be >= 0, got {index}")
    if index == 0:
        return base_key
    return f"{base_key}{KEY_SEPARATOR}{index}"


def chunk_index(base_key: str, key: str) -> int:
    """Recover the sequence index encoded in a chunk key."""
    if key == base_key:
        return 0
    prefix = base_key + KEY_SEPARATOR
    suffix = key[len(prefix):] if key.startswith(prefix) else ""
    if not suffix.isdigit() or suffix.startswith("0"):
        raise ManifestError(f"{key!r} is not a chunk key of {base_key!r}")
    return int(suffix)


def sort_chunk_keys(base_key: str, keys: Iterable[str]) -> List[str]:
    """Order chunk keys by sequence index and confirm there are no gaps.

    Plain lexicographic sorting would put ``key_10`` before ``key_2``, so the
    numeric index is used instead.
    """
    ordered = sorted(keys, key=lambda key: chunk_index(base_key, key))
    for expected, key in enumerate(ordered):
        actual = chunk_index(base_key, key)
        if actual != expected:
            raise ManifestError(
                f"chunks of {base_key!r} are not contiguous: expected index {expected}, got {actual}"
            )
    return ordered
