from .library import Library
from .store import JsonDirectoryStore, KeyValueStore, MemoryStore

__all__ = ["JsonDirectoryStore", "KeyValueStore", "Library", "MemoryStore"]
