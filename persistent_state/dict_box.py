"""A persistent dictionary that immediately writes all changes to storage.

The whole mapping lives in a single entry. Every per-key operation is one
full read-modify-write cycle of that entry, so a single `set` costs as much as
rewriting the whole dictionary. That is fine for settings and small state;
large collections should use one entry per item instead.
"""
from __future__ import annotations
import copy
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, Tuple, TypeVar

from persistent_state.box import MISSING, Cell, PersistentBox
from persistent_state.storage.base import ErrorHandler, StorageBackend
from persistent_state.storage.encoding import Key
from persistent_state.storage.serializer import Coder

K = TypeVar("K")
V = TypeVar("V")
R = TypeVar("R")


class PersistentDict(Generic[K, V]):
    def __init__(
        self,
        storage: StorageBackend,
        key: Key,
        default: Optional[Dict[K, V]] = None,
        *,
        default_factory: Optional[Callable[[], Dict[K, V]]] = None,
        on_error: Optional[ErrorHandler] = None,
        coder: Optional[Coder] = None,
    ) -> None:
        if default is not None and default_factory is not None:
            raise TypeError("pass either `default` or `default_factory`, not both")
        if default_factory is None:
            initial = {} if default is None else default
            default_factory = lambda: initial  # noqa: E731
        self._box: PersistentBox[Dict[K, V]] = PersistentBox(
            storage, key, default_factory=default_factory, on_error=on_error, coder=coder
        )

    @classmethod
    def open(
        cls,
        storage: StorageBackend,
        key: Key,
        *,
        on_error: Optional[ErrorHandler] = None,
        coder: Optional[Coder] = None,
    ) -> Optional["PersistentDict[Any, Any]"]:
        """Bind to an existing dictionary entry, or return None if there is none."""
        box = PersistentBox.open(storage, key, on_error=on_error, coder=coder)
        if box is None:
            return None
        obj = cls.__new__(cls)
        obj._box = box
        return obj

    @property
    def box(self) -> PersistentBox[Dict[K, V]]:
        return self._box

    @property
    def dict(self) -> Dict[K, V]:
        return self._box.get()

    @dict.setter
    def dict(self, value: Dict[K, V]) -> None:
        self._box.set(dict(value))

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        return self._box.access(lambda cell: copy.deepcopy(cell.value.get(key, default)))

    def set(self, key: K, value: V) -> None:
        def _set(cell: Cell[Dict[K, V]]) -> None:
            cell.value[key] = copy.deepcopy(value)
        self._box.access(_set)

    def get_or_insert(self, key: K, default: V) -> V:
        """Return the value for `key`, inserting `default` first if missing."""
        def _get_or_insert(cell: Cell[Dict[K, V]]) -> V:
            return copy.deepcopy(cell.value.setdefault(key, copy.deepcopy(default)))
        return self._box.access(_get_or_insert)

    def pop(self, key: K, default: Any = MISSING) -> V:
        def _pop(cell: Cell[Dict[K, V]]) -> V:
            if default is MISSING:
                return cell.value.pop(key)
            return cell.value.pop(key, default)
        return self._box.access(_pop)

    def access_entry(self, key: K, fn: Callable[[Cell[V]], R], default: Any = MISSING) -> R:
        """Read-modify-write the single entry `key` through a `Cell`.

        A missing entry is created from `default`; without a default a missing
        entry raises KeyError and nothing is changed.
        """
        def _access(cell: Cell[Dict[K, V]]) -> R:
            mapping = cell.value
            if key not in mapping:
                if default is MISSING:
                    raise KeyError(key)
                mapping[key] = copy.deepcopy(default)
            entry = Cell(mapping[key])
            try:
                return fn(entry)
            finally:
                mapping[key] = entry.value
        return self._box.access(_access)

    def keys(self) -> List[K]:
        return self._box.access(lambda cell: list(cell.value.keys()))

    def items(self) -> List[Tuple[K, V]]:
        return list(self.dict.items())

    def delete(self) -> None:
        self._box.delete()

    def __getitem__(self, key: K) -> V:
        def _get(cell: Cell[Dict[K, V]]) -> V:
            return copy.deepcopy(cell.value[key])
        return self._box.access(_get)

    def __setitem__(self, key: K, value: V) -> None:
        self.set(key, value)

    def __delitem__(self, key: K) -> None:
        self.pop(key)

    def __contains__(self, key: object) -> bool:
        return self._box.access(lambda cell: key in cell.value)

    def __len__(self) -> int:
        return self._box.access(lambda cell: len(cell.value))

    def __iter__(self) -> Iterator[K]:
        return iter(self.keys())

    def __repr__(self) -> str:
        return f"PersistentDict(key={self._box.key!r})"
