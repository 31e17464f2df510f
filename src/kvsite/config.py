"""Application configuration defaults."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

DEFAULT_CHUNK_SIZE = 1024
DEFAULT_NAMESPACE = "SITE"
DEFAULT_CONTENT_TYPE = "text/html"


@dataclass(slots=True)
class AppConfig:
    db_path: Path = Path("data/kvsite.db")
    manifest_path: Path = Path("data/manifest.json")
    namespace: str = DEFAULT_NAMESPACE
    chunk_size: int = DEFAULT_CHUNK_SIZE
    content_type: str = DEFAULT_CONTENT_TYPE

    def __post_init__(self) -> None:
        self.db_path = Path(self.db_path)
        self.manifest_path = Path(self.manifest_path)
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        return _resolve(self.db_path, base_dir)

    def resolve_manifest_path(self, base_dir: Path | None = None) -> Path:
        return _resolve(self.manifest_path, base_dir)


def _resolve(path: Path, base_dir: Path | None) -> Path:
    if path.is_absolute() or base_dir is None:
        return path
    return base_dir / path
