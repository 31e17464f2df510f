"""Source tree upload pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from kvsite.config import DEFAULT_CHUNK_SIZE
from kvsite.errors import KeyCollisionError
from kvsite.models import Manifest, SourceFile
from kvsite.store.base import Uploader
from kvsite.upload.chunker import upload_file
from kvsite.utils.files import iter_source_files
from kvsite.utils.keys import chunk_key

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class UploadStats:
    small_files: int = 0
    large_files: int = 0
    chunks: int = 0
    bytes_uploaded: int = 0
    processed_files: list[Path] = field(default_factory=list)

    def record(self, source: SourceFile, chunk_count: int, *, large: bool) -> None:
        if large:
            self.large_files += 1
        else:
            self.small_files += 1
        self.chunks += chunk_count
        self.bytes_uploaded += source.size
        self.processed_files.append(source.path)

    @property
    def files(self) -> int:
        return self.small_files + self.large_files


class Walker:
    """Walks a source tree and uploads every regular file through ``uploader``.

    Files up to ``chunk_size`` bytes are stored under their own key, larger
    files are split into ordered chunks. Files are handled one at a time and
    chunks of a file are uploaded in order. The first error aborts the run.
    """

    def __init__(self, uploader: Uploader, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.uploader = uploader
        self.chunk_size = chunk_size
        self.stats = UploadStats()

    def run(self, source_root: Path) -> Manifest:
        """Upload ``source_root`` and return the manifest of written keys."""
        manifest = Manifest()
        stats = UploadStats()
        written: Dict[str, Path] = {}

        for source in iter_source_files(Path(source_root)):
            LOGGER.info("Uploading %s as %s (%d bytes)", source.path, source.key, source.size)
            large = source.size > self.chunk_size
            for key in self._planned_keys(source):
                if key in written:
                    raise KeyCollisionError(key, written[key], source.path)
                written[key] = source.path

            chunk_keys = upload_file(
                source.path, source.key, source.size, self.chunk_size, self.uploader
            )
            if large:
                manifest.add_large(source.key, chunk_keys)
            else:
                manifest.add_small(source.key)
            stats.record(source, len(chunk_keys), large=large)

        self.stats = stats
        LOGGER.info(
            "Uploaded %d files (%d large) in %d chunks",
            stats.files,
            stats.large_files,
            stats.chunks,
        )
        return manifest

    def _planned_keys(self, source: SourceFile) -> List[str]:
        # Chunk keys of one file may clash with the key of another file.
        count = -(-source.size // self.chunk_size)
        return [chunk_key(source.key, index) for index in range(max(count, 1))]
