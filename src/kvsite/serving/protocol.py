"""Request-time reconstruction of published files.

This is the same state machine the rendered worker runs at the edge:

1. normalize the request path into a store key,
2. large key: stream its chunks strictly in order, one fetch at a time,
3. small key: a single ``get`` is the whole body,
4. anything else: not found, without touching the store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Union

from kvsite.config import DEFAULT_CONTENT_TYPE
from kvsite.errors import KVSiteError, StoreReadError
from kvsite.models import Manifest
from kvsite.store.base import KVStore
from kvsite.utils.keys import derive_key, sort_chunk_keys

LOGGER = logging.getLogger(__name__)

NOT_FOUND_BODY = b"not found"

Body = Union[bytes, Iterator[bytes]]


@dataclass(slots=True)
class Resolution:
    """Outcome of one request."""

    key: str
    status: int
    body: Body
    content_type: str
    kind: str

    @property
    def found(self) -> bool:
        return self.status == 200

    @property
    def streaming(self) -> bool:
        return not isinstance(self.body, bytes)

    def iter_body(self) -> Iterator[bytes]:
        if isinstance(self.body, bytes):
            yield self.body
        else:
            yield from self.body

    def read(self) -> bytes:
        """Drain the body; for streams this performs the chunk fetches."""
        return b"".join(self.iter_body())


def request_key(path: str) -> str:
    """Store key for a request path, normalized like source paths."""
    return derive_key(path)


def stream_chunks(store: KVStore, chunk_keys: Iterable[str]) -> Iterator[bytes]:
    """Lazily emit every chunk in order.

    A chunk is only requested once the previous one has been fully yielded.
    A failed fetch ends the stream with :class:`StoreReadError`; whatever was
    already yielded stays delivered.
    """
    for key in chunk_keys:
        LOGGER.debug("Fetching chunk %s", key)
        try:
            blocks = store.stream(key)
            for block in blocks:
                yield block
        except KVSiteError:
            raise
        except Exception as exc:
            raise StoreReadError(key, str(exc)) from exc


def resolve(
    key: str,
    manifest: Manifest,
    store: KVStore,
    *,
    content_type: str = DEFAULT_CONTENT_TYPE,
) -> Resolution:
    kind = manifest.lookup(key)
    if kind == "large":
        ordered: List[str] = sort_chunk_keys(key, manifest.large_files[key])
        return Resolution(key, 200, stream_chunks(store, ordered), content_type, kind)
    if kind == "small":
        try:
            body = store.get(key)
        except KVSiteError:
            raise
        except Exception as exc:
            raise StoreReadError(key, str(exc)) from exc
        return Resolution(key, 200, body, content_type, kind)
    return Resolution(key, 404, NOT_FOUND_BODY, "text/plain", "missing")


def resolve_path(
    path: str, manifest: Manifest, store: KVStore, *, content_type: str = DEFAULT_CONTENT_TYPE
) -> Resolution:
    return resolve(request_key(path), manifest, store, content_type=content_type)
