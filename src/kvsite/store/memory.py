"""In-memory key-value store."""

from __future__ import annotations

from typing import Dict, Iterator, List, Tuple

from kvsite.errors import StoreReadError
from kvsite.store.base import DEFAULT_BLOCK_SIZE


class MemoryStore:
    """Dict-backed store that also records every ``put`` in call order."""

    def __init__(self, *, block_size: int = DEFAULT_BLOCK_SIZE) -> None:
        self.block_size = block_size
        self.values: Dict[str, bytes] = {}
        self.puts: List[Tuple[str, bytes]] = []
        self.gets: List[str] = []
        self.closes = 0

    def put(self, key: str, value: bytes) -> None:
        self.values[key] = bytes(value)
        self.puts.append((key, bytes(value)))

    def get(self, key: str) -> bytes:
        self.gets.append(key)
        try:
            return self.values[key]
        except KeyError:
            raise StoreReadError(key, "no such key") from None

    def stream(self, key: str) -> Iterator[bytes]:
        value = self.get(key)
        for start in range(0, len(value), self.block_size):
            yield value[start : start + self.block_size]

    def close(self) -> None:
        """Nothing to release; counted so callers can check they closed it."""
        self.closes += 1

    def __contains__(self, key: object) -> bool:
        return key in self.values

    def __len__(self) -> int:
        return len(self.values)
