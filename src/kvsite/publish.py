"""End-to-end publishing: upload a tree, then render its serving routine."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from kvsite.config import DEFAULT_CHUNK_SIZE, DEFAULT_CONTENT_TYPE
from kvsite.models import Manifest
from kvsite.serving.generator import render_worker, validate_namespace
from kvsite.store.base import Uploader
from kvsite.upload.walker import UploadStats, Walker

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class PublishResult:
    namespace: str
    manifest: Manifest
    worker_source: str
    stats: UploadStats


def publish_site(
    source: Path,
    namespace: str,
    uploader: Uploader,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    content_type: str = DEFAULT_CONTENT_TYPE,
) -> PublishResult:
    """Upload ``source`` through ``uploader`` and render the worker for it.

    Either everything succeeds or the first error propagates and nothing is
    returned. Values uploaded before the failure stay in the store.
    """
    # Fail before uploading anything if the worker could never be rendered.
    validate_namespace(namespace)

    walker = Walker(uploader, chunk_size=chunk_size)
    manifest = walker.run(Path(source))
    worker_source = render_worker(namespace, manifest, content_type=content_type)
    LOGGER.info("Rendered worker for namespace %s (%d keys)", namespace, len(manifest))
    return PublishResult(
        namespace=namespace,
        manifest=manifest,
        worker_source=worker_source,
        stats=walker.stats,
    )
