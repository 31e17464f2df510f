"""FastAPI preview server that answers requests the way the edge worker does."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse, Response, StreamingResponse

from kvsite.config import DEFAULT_CONTENT_TYPE
from kvsite.errors import ManifestError, StoreReadError
from kvsite.models import Manifest
from kvsite.serving.generator import render_worker
from kvsite.serving.protocol import resolve_path
from kvsite.store.base import KVStore

LOGGER = logging.getLogger(__name__)

StoreFactory = Callable[[], KVStore]


def _stream_and_close(key: str, body: Iterator[bytes], store: KVStore) -> Iterator[bytes]:
    try:
        yield from body
    except StoreReadError as exc:
        # Headers are already sent; the client sees a truncated body.
        LOGGER.error("Stream for %s aborted: %s", key, exc)
        raise
    finally:
        store.close()


def create_app(
    open_store: StoreFactory,
    manifest: Manifest,
    *,
    namespace: str,
    content_type: str = DEFAULT_CONTENT_TYPE,
) -> FastAPI:
    """Build the preview app.

    ``open_store`` is called once per request. The store is closed when the
    response is complete, which for large files means after the last chunk.
    """
    app = FastAPI(title="kvsite preview", version="0.1.0")
    app.state.open_store = open_store
    app.state.manifest = manifest
    app.state.namespace = namespace
    app.state.content_type = content_type

    @app.get("/_manifest")
    async def show_manifest() -> dict[str, Any]:
        return {
            "namespace": namespace,
            "small_files": list(manifest.small_files),
            "large_files": {key: list(chunks) for key, chunks in manifest.large_files.items()},
        }

    @app.get("/_worker.js", response_class=PlainTextResponse)
    async def show_worker() -> PlainTextResponse:
        source = render_worker(namespace, manifest, content_type=content_type)
        return PlainTextResponse(source, media_type="application/javascript")

    @app.get("/{path:path}")
    def serve(path: str, request: Request) -> Response:
        store = open_store()
        handed_off = False
        try:
            resolution = resolve_path(
                request.url.path, manifest, store, content_type=content_type
            )
            if not resolution.found:
                return PlainTextResponse("not found", status_code=404)
            if resolution.streaming:
                response = StreamingResponse(
                    _stream_and_close(resolution.key, resolution.body, store),  # type: ignore[arg-type]
                    media_type=resolution.content_type,
                )
                handed_off = True
                return response
            return Response(content=resolution.body, media_type=resolution.content_type)
        except StoreReadError as exc:
            LOGGER.error("Read failed for %s: %s", path, exc)
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        except ManifestError as exc:
            LOGGER.error("Broken manifest entry for %s: %s", path, exc)
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        finally:
            if not handed_off:
                store.close()

    return app
