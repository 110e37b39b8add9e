"""Client-side tree mirror and remote-first client.

Keeps a local copy of the shared tree so watering still works offline,
and reconciles with the server whenever it is reachable.
"""

from .cache import FileStorage, KeyValueStorage, MemoryStorage
from .mirror import STORAGE_KEY, LocalTreeMirror
from .tree_client import TreeClient

__all__ = [
    "FileStorage",
    "KeyValueStorage",
    "LocalTreeMirror",
    "MemoryStorage",
    "STORAGE_KEY",
    "TreeClient",
]
