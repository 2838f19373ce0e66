"""
scratchdb Adapters: row store implementations.

  base    RowStore protocol and its exceptions
  memory  in-process store with note-folder semantics
  http    JSON REST client over httpx
"""

from scratchdb.adapters.base import AdapterError, NotFound, RowStore
from scratchdb.adapters.memory import MemoryRowStore

__all__ = [
    "AdapterError",
    "NotFound",
    "RowStore",
    "MemoryRowStore",
]
