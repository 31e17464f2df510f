"""Fixed-size chunking of source files and their upload."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, Iterator, List

from kvsite.errors import ChunkReadError, EmptyFileError, StoreWriteError
from kvsite.models import Chunk
from kvsite.store.base import Uploader
from kvsite.utils.keys import chunk_key

LOGGER = logging.getLogger(__name__)


def split_file(
    handle: BinaryIO, total_size: int, chunk_size: int, base_key: str, *, path: Path | None = None
) -> Iterator[Chunk]:
    """Split an open file into ordered chunks of at most ``chunk_size`` bytes.

    The last chunk may be shorter and is never padded. Running out of input is
    only acceptable on that last chunk; a short read anywhere else means the
    file changed underneath us.
    """
    name = path if path is not None else Path(getattr(handle, "name", base_key))
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if total_size == 0:
        raise EmptyFileError(name)

    for index, offset in enumerate(range(0, total_size, chunk_size)):
        expected = min(chunk_size, total_size - offset)
        try:
            handle.seek(offset)
            data = handle.read(chunk_size)
        except OSError as exc:
            raise ChunkReadError(name, offset, str(exc)) from exc

        if len(data) < expected:
            raise ChunkReadError(
                name, offset, f"expected {expected} bytes, got {len(data)}"
            )
        # Anything past the recorded size was appended mid-run; ignore it.
        yield Chunk(index=index, key=chunk_key(base_key, index), offset=offset, data=data[:expected])


def upload_file(
    path: Path, base_key: str, size: int, chunk_size: int, uploader: Uploader
) -> List[str]:
    """Upload ``path`` chunk by chunk and return the ordered chunk keys."""
    keys: List[str] = []
    try:
        handle = path.open("rb")
    except OSError as exc:
        raise ChunkReadError(path, 0, str(exc)) from exc

    with handle:
        for chunk in split_file(handle, size, chunk_size, base_key, path=path):
            LOGGER.debug("Uploading %s (%d bytes at offset %d)", chunk.key, chunk.size, chunk.offset)
            put_value(uploader, chunk.key, chunk.data)
            keys.append(chunk.key)
    return keys


def put_value(uploader: Uploader, key: str, value: bytes) -> None:
    """Call ``uploader`` and report any failure as :class:`StoreWriteError`."""
    try:
        uploader(key, value)
    except StoreWriteError:
        raise
    except Exception as exc:
        raise StoreWriteError(key, str(exc)) from exc
