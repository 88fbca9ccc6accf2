"""Storage backends for kernel persistence."""

from cellengine.storage.base import KernelStorage, PatternKey, StorageError
from cellengine.storage.memory_store import InMemoryStorage
from cellengine.storage.sqlite_store import SQLiteStorage

__all__ = [
    "KernelStorage",
    "PatternKey",
    "StorageError",
    "InMemoryStorage",
    "SQLiteStorage",
]
