"""Caching read-modify-write wrapper around a single stored value.

A `PersistentBox` is bound to one key of a storage backend. The stored entry
is decoded once, on first access, and kept in memory for the lifetime of the
box. Every access writes the (possibly modified) value back, synchronously,
before control returns to the caller:

    box = PersistentBox(storage, "Counter", default=0)

    def bump(cell):
        old = cell.value
        cell.value += 1
        return old

    previous = box.access(bump)

There is no locking: a box and the store behind it are meant to have one
owner at a time.
"""
from __future__ import annotations
import copy
import logging
from contextlib import contextmanager
from typing import Any, Callable, Generic, Iterator, Optional, TypeVar

from persistent_state.errors import CodecError, FatalStorageError
from persistent_state.storage.base import ErrorHandler, StorageBackend
from persistent_state.storage.encoding import Key
from persistent_state.storage.serializer import Coder, JSONCoder

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


class Cell(Generic[T]):
    """Mutable holder handed to accessors; reassign `value` to replace it."""

    __slots__ = ("value",)

    def __init__(self, value: T) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f"Cell({self.value!r})"


class PersistentBox(Generic[T]):
    """A value that is persisted to `storage` under `key` after every access.

    Parameters
    - storage: the backend holding the entry.
    - key: the entry key (str or bytes).
    - default / default_factory: value written immediately if there is no
      entry yet. An existing entry always wins. Exactly one must be given;
      use `PersistentBox.open` to bind to an existing entry only.
    - on_error: called with a description when a write runs out of space;
      returning True retries, False (or no handler) raises FatalStorageError.
    - coder: value <-> bytes strategy, JSON by default.
    """

    def __init__(
        self,
        storage: StorageBackend,
        key: Key,
        default: Any = MISSING,
        *,
        default_factory: Optional[Callable[[], T]] = None,
        on_error: Optional[ErrorHandler] = None,
        coder: Optional[Coder] = None,
    ) -> None:
        if (default is MISSING) == (default_factory is None):
            raise TypeError("exactly one of `default` and `default_factory` must be given")
        self._bind(storage, key, on_error, coder)

        if not storage.exists(key):
            value = default_factory() if default_factory is not None else default
            storage.try_write(key, self._encode(value), on_error)
            logger.debug("Initialised entry %r with its default value", key)

    @classmethod
    def open(
        cls,
        storage: StorageBackend,
        key: Key,
        *,
        on_error: Optional[ErrorHandler] = None,
        coder: Optional[Coder] = None,
    ) -> Optional["PersistentBox[Any]"]:
        """Bind to an existing entry, or return None if there is none."""
        if not storage.exists(key):
            return None
        box = cls.__new__(cls)
        box._bind(storage, key, on_error, coder)
        return box

    def _bind(
        self,
        storage: StorageBackend,
        key: Key,
        on_error: Optional[ErrorHandler],
        coder: Optional[Coder],
    ) -> None:
        self._storage = storage
        self._key = key
        self._on_error = on_error
        self._coder: Coder = coder or JSONCoder()
        self._value: Any = None
        self._loaded = False
        self._deleted = False

    @property
    def key(self) -> Key:
        return self._key

    @property
    def storage(self) -> StorageBackend:
        return self._storage

    @property
    def loaded(self) -> bool:
        return self._loaded

    def _encode(self, value: Any) -> bytes:
        try:
            return self._coder.encode(value)
        except Exception as e:
            logger.error("Cannot encode value for %r: %s", self._key, e)
            raise CodecError(f"cannot encode value for {self._key!r}: {e}") from e

    def _decode(self, data: bytes) -> Any:
        try:
            return self._coder.decode(data)
        except Exception as e:
            logger.error("Cannot decode entry %r: %s", self._key, e)
            raise CodecError(f"cannot decode entry {self._key!r}: {e}") from e

    def _load(self) -> Any:
        if self._deleted:
            raise FatalStorageError(f"entry {self._key!r} has been deleted through this box")
        if not self._loaded:
            data = self._storage.read(self._key)
            if data is None:
                logger.error("Entry %r disappeared from %r", self._key, self._storage)
                raise FatalStorageError(f"entry {self._key!r} does not exist")
            self._value = self._decode(data)
            self._loaded = True
        return self._value

    def _persist(self) -> None:
        self._storage.try_write(self._key, self._encode(self._value), self._on_error)

    @contextmanager
    def modify(self) -> Iterator[Cell[T]]:
        """Yield a `Cell` holding the value; persist it when the block exits.

        The value is written back even if the block raises, then the
        exception propagates.
        """
        cell = Cell(self._load())
        try:
            yield cell
        finally:
            self._value = cell.value
            self._persist()

    def access(self, fn: Callable[[Cell[T]], R]) -> R:
        """Call `fn` with a `Cell` holding the value, persist, return fn's result."""
        with self.modify() as cell:
            return fn(cell)

    def get(self) -> T:
        """Return a copy of the current value."""
        return self.access(lambda cell: copy.deepcopy(cell.value))

    def set(self, value: T) -> None:
        """Replace the value with a copy of `value`."""
        def _set(cell: Cell[T]) -> None:
            cell.value = copy.deepcopy(value)
        self.access(_set)

    def update(self, fn: Callable[[T], T]) -> T:
        """Replace the value with `fn(value)` and return the new value."""
        def _update(cell: Cell[T]) -> T:
            cell.value = fn(cell.value)
            return cell.value
        return self.access(_update)

    def delete(self) -> None:
        """Remove the entry from storage; the box is unusable afterwards."""
        self._storage.delete(self._key)
        self._value = None
        self._loaded = False
        self._deleted = True

    def __repr__(self) -> str:
        state = "deleted" if self._deleted else ("loaded" if self._loaded else "unloaded")
        return f"PersistentBox(key={self._key!r}, {state})"
