"""Store capabilities consumed by the upload and reconstruction paths."""

from __future__ import annotations

from typing import Callable, Iterator, Protocol

Uploader = Callable[[str, bytes], None]
"""Write capability: store ``value`` under ``key`` or raise."""

DEFAULT_BLOCK_SIZE = 64 * 1024


class KVStore(Protocol):
    """Minimal key-value service interface.

    ``get`` and ``stream`` raise :class:`kvsite.errors.StoreReadError` for
    missing keys or backend failures.
    """

    def put(self, key: str, value: bytes) -> None: ...

    def get(self, key: str) -> bytes: ...

    def stream(self, key: str) -> Iterator[bytes]: ...

    def close(self) -> None: ...
