"""Tests for the end-to-end publish pipeline."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import Mock

import pytest

from kvsite.errors import EmptyFileError, TemplateRenderError
from kvsite.publish import publish_site
from kvsite.serving.generator import render_worker
from kvsite.serving.protocol import resolve
from kvsite.store.memory import MemoryStore
from kvsite.utils.keys import derive_key


class TestPublishSite:
    """Test publish_site function."""

    def test_publish_and_reconstruct(self, tmp_path: Path) -> None:
        """Every published file is reconstructed byte for byte."""
        files = {
            "index.html": b"<html>hi</html>",
            "img/photo.jpg": os.urandom(5000),
            "js/app.js": os.urandom(1024),
        }
        for name, data in files.items():
            path = tmp_path / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        store = MemoryStore()

        result = publish_site(tmp_path, "SITE", store.put)

        assert result.namespace == "SITE"
        assert result.stats.files == 3
        assert result.stats.large_files == 1
        for name, data in files.items():
            resolution = resolve(derive_key(tmp_path / name), result.manifest, store)
            assert resolution.read() == data

    def test_worker_matches_manifest(self, tmp_path: Path) -> None:
        (tmp_path / "a.txt").write_text("a")

        result = publish_site(tmp_path, "SITE", MemoryStore().put, chunk_size=10)

        assert result.worker_source == render_worker("SITE", result.manifest)
        assert derive_key(tmp_path / "a.txt") in result.worker_source

    def test_invalid_namespace_uploads_nothing(self, tmp_path: Path) -> None:
        (tmp_path / "a.txt").write_text("a")
        uploader = Mock()

        with pytest.raises(TemplateRenderError):
            publish_site(tmp_path, "not valid", uploader)

        uploader.assert_not_called()

    def test_failure_returns_nothing(self, tmp_path: Path) -> None:
        """A failing run raises instead of returning a partial result."""
        (tmp_path / "a.txt").write_text("a")
        (tmp_path / "b.txt").touch()
        store = MemoryStore()

        with pytest.raises(EmptyFileError):
            publish_site(tmp_path, "SITE", store.put)

        # Earlier uploads are not rolled back.
        assert derive_key(tmp_path / "a.txt") in store
