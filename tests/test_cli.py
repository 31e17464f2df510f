"""Tests for CLI commands."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from kvsite.cli import _ensure_parent, _setup_logging, app
from kvsite.store.sqlite import SQLiteKVStore
from kvsite.utils.keys import derive_key


runner = CliRunner()


@pytest.fixture
def site(tmp_path: Path) -> Path:
    root = tmp_path / "site"
    (root / "img").mkdir(parents=True)
    (root / "index.html").write_bytes(b"<h1>home</h1>")
    (root / "img" / "logo.png").write_bytes(os.urandom(300))
    return root


def _publish(site: Path, tmp_path: Path, *extra: str):
    return runner.invoke(
        app,
        [
            "publish",
            str(site),
            "--db",
            str(tmp_path / "out" / "store.db"),
            "--manifest",
            str(tmp_path / "out" / "manifest.json"),
            "--chunk-size",
            "100",
            *extra,
        ],
    )


class TestSetupLogging:
    """Tests for _setup_logging helper."""

    def test_setup_logging_verbose(self) -> None:
        with patch("kvsite.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=True)
            assert mock_config.call_args[1]["level"] == logging.DEBUG

    def test_setup_logging_normal(self) -> None:
        with patch("kvsite.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=False)
            assert mock_config.call_args[1]["level"] == logging.INFO


class TestEnsureParent:
    """Tests for _ensure_parent helper."""

    def test_creates_directory(self, tmp_path: Path) -> None:
        path = tmp_path / "subdir" / "test.db"
        _ensure_parent(path)
        assert path.parent.exists()


class TestPublishCommand:
    """Tests for the publish command."""

    def test_publish_writes_store_and_manifest(self, site: Path, tmp_path: Path) -> None:
        result = _publish(site, tmp_path)

        assert result.exit_code == 0, result.stdout
        manifest = json.loads((tmp_path / "out" / "manifest.json").read_text())
        logo = derive_key(site / "img" / "logo.png")
        assert manifest["chunk_size"] == 100
        assert manifest["large_files"][logo] == [logo, f"{logo}_1", f"{logo}_2"]
        assert manifest["small_files"] == [derive_key(site / "index.html")]

        store = SQLiteKVStore(tmp_path / "out" / "store.db")
        try:
            assert store.get(derive_key(site / "index.html")) == b"<h1>home</h1>"
            assert len(store.keys()) == 4
        finally:
            store.close()

    def test_publish_writes_worker(self, site: Path, tmp_path: Path) -> None:
        worker = tmp_path / "dist" / "worker.js"

        result = _publish(site, tmp_path, "--namespace", "ASSETS", "-o", str(worker))

        assert result.exit_code == 0, result.stdout
        assert worker.read_text().startswith("const namespace = ASSETS;")

    def test_publish_empty_file_fails(self, site: Path, tmp_path: Path) -> None:
        (site / "empty.txt").touch()

        result = _publish(site, tmp_path)

        assert result.exit_code == 1
        assert "empty file" in result.stdout
        assert not (tmp_path / "out" / "manifest.json").exists()

    def test_publish_bad_namespace(self, site: Path, tmp_path: Path) -> None:
        result = _publish(site, tmp_path, "--namespace", "not-valid")

        assert result.exit_code == 1
        assert "not a valid binding identifier" in result.stdout

    def test_publish_bad_chunk_size(self, site: Path, tmp_path: Path) -> None:
        result = runner.invoke(app, ["publish", str(site), "--chunk-size", "0"])
        assert result.exit_code != 0


class TestRenderCommand:
    """Tests for the render command."""

    def test_render_to_stdout(self, site: Path, tmp_path: Path) -> None:
        _publish(site, tmp_path)

        result = runner.invoke(
            app, ["render", "--manifest", str(tmp_path / "out" / "manifest.json")]
        )

        assert result.exit_code == 0
        assert result.stdout.startswith("const namespace = SITE;")

    def test_render_namespace_override(self, site: Path, tmp_path: Path) -> None:
        _publish(site, tmp_path)
        output = tmp_path / "worker.js"

        result = runner.invoke(
            app,
            [
                "render",
                "--manifest",
                str(tmp_path / "out" / "manifest.json"),
                "-n",
                "OTHER",
                "-o",
                str(output),
            ],
        )

        assert result.exit_code == 0
        assert output.read_text().startswith("const namespace = OTHER;")

    def test_render_missing_manifest(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["render", "--manifest", str(tmp_path / "none.json")])
        assert result.exit_code != 0


class TestGetCommand:
    """Tests for the get command."""

    def test_get_reconstructs_large_file(self, site: Path, tmp_path: Path) -> None:
        _publish(site, tmp_path)
        output = tmp_path / "logo.png"

        result = runner.invoke(
            app,
            [
                "get",
                derive_key(site / "img" / "logo.png"),
                "--db",
                str(tmp_path / "out" / "store.db"),
                "--manifest",
                str(tmp_path / "out" / "manifest.json"),
                "-o",
                str(output),
            ],
        )

        assert result.exit_code == 0
        assert output.read_bytes() == (site / "img" / "logo.png").read_bytes()

    def test_get_small_file_to_stdout(self, site: Path, tmp_path: Path) -> None:
        _publish(site, tmp_path)

        result = runner.invoke(
            app,
            [
                "get",
                derive_key(site / "index.html"),
                "--db",
                str(tmp_path / "out" / "store.db"),
                "--manifest",
                str(tmp_path / "out" / "manifest.json"),
            ],
        )

        assert result.exit_code == 0
        assert "<h1>home</h1>" in result.stdout

    def test_get_unknown_key(self, site: Path, tmp_path: Path) -> None:
        _publish(site, tmp_path)

        result = runner.invoke(
            app,
            [
                "get",
                "nope",
                "--db",
                str(tmp_path / "out" / "store.db"),
                "--manifest",
                str(tmp_path / "out" / "manifest.json"),
            ],
        )

        assert result.exit_code == 1
        assert "Key not found" in result.stdout

    def test_get_missing_store(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["get", "k", "--db", str(tmp_path / "none.db")])
        assert result.exit_code != 0


class TestServeCommand:
    """Tests for the serve command."""

    def test_serve_starts_server(self, site: Path, tmp_path: Path) -> None:
        _publish(site, tmp_path)

        with patch("uvicorn.run") as mock_uvicorn_run:
            result = runner.invoke(
                app,
                [
                    "serve",
                    "--host",
                    "0.0.0.0",
                    "--port",
                    "9000",
                    "--db",
                    str(tmp_path / "out" / "store.db"),
                    "--manifest",
                    str(tmp_path / "out" / "manifest.json"),
                ],
            )

        assert result.exit_code == 0
        mock_uvicorn_run.assert_called_once()
        call_kwargs = mock_uvicorn_run.call_args[1]
        assert call_kwargs["host"] == "0.0.0.0"
        assert call_kwargs["port"] == 9000

        web_app = mock_uvicorn_run.call_args[0][0]
        first, second = web_app.state.open_store(), web_app.state.open_store()
        try:
            assert isinstance(first, SQLiteKVStore)
            assert first is not second
        finally:
            first.close()
            second.close()

    def test_serve_missing_manifest(self, tmp_path: Path) -> None:
        db = tmp_path / "store.db"
        SQLiteKVStore(db).close()

        with patch("uvicorn.run") as mock_uvicorn_run:
            result = runner.invoke(
                app, ["serve", "--db", str(db), "--manifest", str(tmp_path / "none.json")]
            )

        assert result.exit_code != 0
        mock_uvicorn_run.assert_not_called()
