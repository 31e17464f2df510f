from kvsite.store.base import KVStore, Uploader
from kvsite.store.memory import MemoryStore
from kvsite.store.sqlite import SQLiteKVStore

__all__ = ["KVStore", "MemoryStore", "SQLiteKVStore", "Uploader"]
