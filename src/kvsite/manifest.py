"""JSON persistence of upload manifests."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List

from pydantic import BaseModel, ValidationError

from kvsite.config import DEFAULT_CHUNK_SIZE
from kvsite.errors import ManifestError
from kvsite.models import Manifest


class ManifestDocument(BaseModel):
    namespace: str
    chunk_size: int = DEFAULT_CHUNK_SIZE
    small_files: List[str] = []
    large_files: Dict[str, List[str]] = {}

    @classmethod
    def from_manifest(
        cls, manifest: Manifest, *, namespace: str, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> "ManifestDocument":
        return cls(
            namespace=namespace,
            chunk_size=chunk_size,
            small_files=list(manifest.small_files),
            large_files={key: list(chunks) for key, chunks in manifest.large_files.items()},
        )

    def to_manifest(self) -> Manifest:
        manifest = Manifest()
        for key in self.small_files:
            manifest.add_small(key)
        for key, chunks in self.large_files.items():
            manifest.add_large(key, chunks)
        return manifest


def save_manifest(
    path: Path, manifest: Manifest, *, namespace: str, chunk_size: int = DEFAULT_CHUNK_SIZE
) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    document = ManifestDocument.from_manifest(manifest, namespace=namespace, chunk_size=chunk_size)
    path.write_text(document.model_dump_json(indent=2), encoding="utf-8")
    return path


def load_manifest(path: Path) -> ManifestDocument:
    """Read and validate a manifest file written by :func:`save_manifest`."""
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"cannot read manifest {path}: {exc}") from exc
    try:
        document = ManifestDocument.model_validate_json(raw)
    except ValidationError as exc:
        raise ManifestError(f"invalid manifest {path}: {exc}") from exc
    # Rebuild once so duplicate or overlapping keys are rejected on load.
    document.to_manifest()
    return document
