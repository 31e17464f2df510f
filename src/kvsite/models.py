"""Core kvsite data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Literal, Optional

from kvsite.errors import ManifestError

FileKind = Literal["small", "large"]


@dataclass(slots=True)
class SourceFile:
    """A regular file found while walking the source tree."""

    path: Path
    key: str
    size: int


@dataclass(slots=True)
class Chunk:
    """Contiguous byte range of a source file stored under its own key."""

    index: int
    key: str
    offset: int
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(slots=True)
class Manifest:
    """Keys written by one upload run.

    ``small_files`` lists keys uploaded as a single value, ``large_files``
    maps a file key to its ordered chunk keys. A key lives in one of the two
    parts only.
    """

    small_files: List[str] = field(default_factory=list)
    large_files: Dict[str, List[str]] = field(default_factory=dict)

    def add_small(self, key: str) -> None:
        self._ensure_new(key)
        self.small_files.append(key)

    def add_large(self, key: str, chunk_keys: List[str]) -> None:
        self._ensure_new(key)
        if not chunk_keys:
            raise ManifestError(f"large file {key!r} has no chunks")
        self.large_files[key] = list(chunk_keys)

    def lookup(self, key: str) -> Optional[FileKind]:
        if key in self.large_files:
            return "large"
        if key in self.small_files:
            return "small"
        return None

    def keys(self) -> Iterator[str]:
        yield from self.small_files
        yield from self.large_files

    def __contains__(self, key: object) -> bool:
        return key in self.large_files or key in self.small_files

    def __len__(self) -> int:
        return len(self.small_files) + len(self.large_files)

    def _ensure_new(self, key: str) -> None:
        if key in self:
            raise ManifestError(f"key {key!r} is already in the manifest")
