"""Command line interface for kvsite."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.table import Table

from kvsite.config import AppConfig
from kvsite.errors import KVSiteError
from kvsite.manifest import load_manifest, save_manifest
from kvsite.publish import publish_site
from kvsite.serving.generator import render_worker
from kvsite.serving.protocol import resolve
from kvsite.store.sqlite import SQLiteKVStore

console = Console()
app = typer.Typer(help="kvsite - publish a directory into a key-value store and serve it from the edge")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _fail(exc: Exception) -> NoReturn:
    console.print(f"[red]Error:[/red] {exc}")
    raise typer.Exit(code=1)


@app.command()
def publish(
    source: Path = typer.Argument(..., help="Directory to publish.", resolve_path=True),
    namespace: str = typer.Option(AppConfig().namespace, "--namespace", "-n", help="KV namespace binding"),
    db: Path = typer.Option(None, "--db", help="SQLite store path"),
    manifest: Path = typer.Option(None, "--manifest", help="Where to write the manifest JSON"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Where to write the worker script"),
    chunk_size: int = typer.Option(AppConfig().chunk_size, help="Largest value stored under one key, in bytes"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Upload every file under SOURCE and render the serving worker."""
    _setup_logging(verbose)
    defaults = AppConfig()
    try:
        config = AppConfig(
            db_path=db if db is not None else defaults.db_path,
            manifest_path=manifest if manifest is not None else defaults.manifest_path,
            namespace=namespace,
            chunk_size=chunk_size,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    resolved_db = config.resolve_db_path(Path.cwd())
    _ensure_parent(resolved_db)

    console.print(f"Publishing [bold]{source}[/bold] into [bold]{resolved_db}[/bold]...")
    store = SQLiteKVStore(resolved_db)
    try:
        result = publish_site(
            source,
            config.namespace,
            store.put,
            chunk_size=config.chunk_size,
            content_type=config.content_type,
        )
    except KVSiteError as exc:
        _fail(exc)
    finally:
        store.close()

    manifest_path = save_manifest(
        config.resolve_manifest_path(Path.cwd()),
        result.manifest,
        namespace=config.namespace,
        chunk_size=config.chunk_size,
    )

    if output is not None:
        _ensure_parent(output)
        output.write_text(result.worker_source, encoding="utf-8")
        console.print(f"Worker written to [bold]{output}[/bold]")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Files")
    table.add_column("Small")
    table.add_column("Large")
    table.add_column("Chunks")
    table.add_column("Bytes")
    stats = result.stats
    table.add_row(
        str(stats.files),
        str(stats.small_files),
        str(stats.large_files),
        str(stats.chunks),
        str(stats.bytes_uploaded),
    )
    console.print(table)
    console.print(f"Manifest written to [bold]{manifest_path}[/bold]")


@app.command()
def render(
    manifest: Path = typer.Option(None, "--manifest", help="Manifest JSON written by publish"),
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Override the namespace binding"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the worker here instead of stdout"),
) -> None:
    """Render the serving worker from a saved manifest."""
    config = AppConfig(manifest_path=manifest if manifest is not None else AppConfig().manifest_path)
    manifest_path = config.resolve_manifest_path(Path.cwd())
    if not manifest_path.exists():
        raise typer.BadParameter(f"Manifest not found: {manifest_path}")

    try:
        document = load_manifest(manifest_path)
        source = render_worker(
            namespace or document.namespace,
            document.to_manifest(),
            content_type=config.content_type,
        )
    except KVSiteError as exc:
        _fail(exc)

    if output is None:
        sys.stdout.write(source)
        return
    _ensure_parent(output)
    output.write_text(source, encoding="utf-8")
    console.print(f"Worker written to [bold]{output}[/bold]")


@app.command()
def get(
    key: str = typer.Argument(..., help="Store key of a published file"),
    db: Path = typer.Option(None, "--db", help="SQLite store path"),
    manifest: Path = typer.Option(None, "--manifest", help="Manifest JSON written by publish"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the file here instead of stdout"),
) -> None:
    """Reconstruct a published file from the store."""
    defaults = AppConfig()
    config = AppConfig(
        db_path=db if db is not None else defaults.db_path,
        manifest_path=manifest if manifest is not None else defaults.manifest_path,
    )
    resolved_db = config.resolve_db_path(Path.cwd())
    manifest_path = config.resolve_manifest_path(Path.cwd())
    if not resolved_db.exists():
        raise typer.BadParameter(f"Store not found: {resolved_db}")
    if not manifest_path.exists():
        raise typer.BadParameter(f"Manifest not found: {manifest_path}")

    store = SQLiteKVStore(resolved_db)
    try:
        document = load_manifest(manifest_path)
        resolution = resolve(key, document.to_manifest(), store, content_type=config.content_type)
        if not resolution.found:
            console.print(f"[yellow]Key not found: {key}[/yellow]")
            raise typer.Exit(code=1)

        if output is None:
            sink = sys.stdout.buffer
            for block in resolution.iter_body():
                sink.write(block)
            sink.flush()
        else:
            _ensure_parent(output)
            with output.open("wb") as handle:
                for block in resolution.iter_body():
                    handle.write(block)
            console.print(f"Wrote [bold]{output}[/bold]")
    except KVSiteError as exc:
        _fail(exc)
    finally:
        store.close()


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
    db: Path = typer.Option(None, "--db", help="SQLite store path"),
    manifest: Path = typer.Option(None, "--manifest", help="Manifest JSON written by publish"),
) -> None:
    """Preview the published site locally, answering requests like the worker."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - defensive
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    from kvsite.web.app import create_app

    defaults = AppConfig()
    config = AppConfig(
        db_path=db if db is not None else defaults.db_path,
        manifest_path=manifest if manifest is not None else defaults.manifest_path,
    )
    resolved_db = config.resolve_db_path(Path.cwd())
    manifest_path = config.resolve_manifest_path(Path.cwd())
    if not resolved_db.exists():
        raise typer.BadParameter(f"Store not found: {resolved_db}")
    if not manifest_path.exists():
        raise typer.BadParameter(f"Manifest not found: {manifest_path}")

    try:
        document = load_manifest(manifest_path)
        site_manifest = document.to_manifest()
    except KVSiteError as exc:
        _fail(exc)

    web_app = create_app(
        lambda: SQLiteKVStore(resolved_db),
        site_manifest,
        namespace=document.namespace,
        content_type=config.content_type,
    )
    console.print(f"Serving {len(site_manifest)} files on http://{host}:{port} (store: {resolved_db})")
    uvicorn.run(web_app, host=host, port=port, reload=False, log_level="info")


if __name__ == "__main__":  # pragma: no cover
    app()
