"""Error taxonomy for publishing and reconstruction."""

from __future__ import annotations

from pathlib import Path


class KVSiteError(Exception):
    """Base class for every error raised by kvsite."""


class TraversalError(KVSiteError):
    """The source tree walk cannot continue."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = Path(path)
        super().__init__(f"cannot traverse {self.path}: {reason}")


class EmptyFileError(KVSiteError):
    """A zero-byte regular file was found in the source tree."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f"refusing to upload empty file: {self.path}")


class ChunkReadError(KVSiteError):
    def __init__(self, path: Path | str, offset: int, reason: str) -> None:
        self.path = Path(path)
        self.offset = offset
        super().__init__(f"failed reading {self.path} at offset {offset}: {reason}")


class StoreWriteError(KVSiteError):
    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        super().__init__(f"failed to write key {key!r}: {reason}")


class StoreReadError(KVSiteError):
    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        super().__init__(f"failed to read key {key!r}: {reason}")


class TemplateRenderError(KVSiteError):
    """The serving routine could not be rendered."""


class ManifestError(KVSiteError):
    """The manifest is inconsistent (duplicate keys, broken chunk order)."""


class KeyCollisionError(KVSiteError):
    """Two distinct source paths derived the same store key."""

    def __init__(self, key: str, first: Path | str, second: Path | str) -> None:
        self.key = key
        self.paths = (Path(first), Path(second))
        super().__init__(f"key {key!r} derived from both {first} and {second}")
