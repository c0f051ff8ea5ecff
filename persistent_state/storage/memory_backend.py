"""Simple memory-backed storage backend

Keeps entries in a dict keyed by the raw key bytes. Nothing survives the
process; useful for tests and throwaway state.
"""
from threading import RLock
from typing import Dict, Optional, Set

from persistent_state.errors import OutOfSpace
from .base import StorageBackend
from .encoding import Key, as_key_bytes, key_from_bytes


class MemoryStorage(StorageBackend):
    def __init__(self, capacity: Optional[int] = None):
        self._lock = RLock()
        self._store: Dict[bytes, bytes] = {}
        # Total bytes the store may hold; None means unbounded
        self.capacity = capacity

    def list(self) -> Set[Key]:
        with self._lock:
            return {key_from_bytes(k) for k in self._store}

    def read(self, key: Key) -> Optional[bytes]:
        with self._lock:
            return self._store.get(as_key_bytes(key))

    def write(self, key: Key, data: bytes) -> None:
        raw = as_key_bytes(key)
        data = bytes(data)
        with self._lock:
            if self.capacity is not None:
                used = sum(len(v) for k, v in self._store.items() if k != raw)
                if used + len(data) > self.capacity:
                    raise OutOfSpace(
                        f"not enough space to write entry {key!r}: "
                        f"{self.capacity - used} bytes available, {len(data)} required"
                    )
            self._store[raw] = data

    def delete(self, key: Key) -> None:
        with self._lock:
            self._store.pop(as_key_bytes(key), None)

    def exists(self, key: Key) -> bool:
        with self._lock:
            return as_key_bytes(key) in self._store
