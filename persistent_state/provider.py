"""Value provider facade over the boxes.

`ValueProvider` hands out `MappedValue` and `MappedDictionary` objects for
ids on one storage backend. They are thin pass-throughs to `PersistentBox`
and `PersistentDict`, so they share the same persistence guarantees.
`Mapped` exposes a provider value as a class attribute:

    provider = ValueProvider.for_application("org.example.counter")

    class Counter:
        value = Mapped(provider, "Counter", default=0)

    Counter().value += 1
"""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional, Protocol, Set, runtime_checkable

from persistent_state.box import MISSING, PersistentBox
from persistent_state.dict_box import PersistentDict
from persistent_state.storage.base import ErrorHandler, StorageBackend
from persistent_state.storage.encoding import Key
from persistent_state.storage.file_backend import FilesystemStorage
from persistent_state.storage.serializer import Coder

logger = logging.getLogger(__name__)


@runtime_checkable
class MappedValue(Protocol):
    def load(self) -> Any: ...

    def store(self, value: Any) -> None: ...

    def delete(self) -> None: ...


@runtime_checkable
class MappedDictionary(Protocol):
    def list(self) -> Set[Any]: ...

    def load(self) -> Dict[Any, Any]: ...

    def load_key(self, key: Any) -> Any: ...

    def load_or_insert(self, key: Any, default: Any) -> Any: ...

    def store(self, key: Any, value: Any) -> None: ...

    def delete(self) -> None: ...


class BoxedValue:
    """`MappedValue` backed by a `PersistentBox`."""

    def __init__(self, box: PersistentBox[Any]) -> None:
        self._box = box

    def load(self) -> Any:
        return self._box.get()

    def store(self, value: Any) -> None:
        self._box.set(value)

    def delete(self) -> None:
        self._box.delete()


class BoxedDictionary:
    """`MappedDictionary` backed by a `PersistentDict`.

    `store(key, None)` removes the entry for `key`.
    """

    def __init__(self, mapping: PersistentDict[Any, Any]) -> None:
        self._dict = mapping

    def list(self) -> Set[Any]:
        return set(self._dict.keys())

    def load(self) -> Dict[Any, Any]:
        return self._dict.dict

    def load_key(self, key: Any) -> Any:
        return self._dict.get(key)

    def load_or_insert(self, key: Any, default: Any) -> Any:
        return self._dict.get_or_insert(key, default)

    def store(self, key: Any, value: Any) -> None:
        if value is None:
            self._dict.pop(key, None)
        else:
            self._dict.set(key, value)

    def delete(self) -> None:
        self._dict.delete()

    def __getitem__(self, key: Any) -> Any:
        return self.load_key(key)

    def __setitem__(self, key: Any, value: Any) -> None:
        self.store(key, value)


class ValueProvider:
    def __init__(
        self,
        storage: StorageBackend,
        *,
        coder: Optional[Coder] = None,
        on_error: Optional[ErrorHandler] = None,
    ) -> None:
        self.storage = storage
        self.coder = coder
        self.on_error = on_error

    @classmethod
    def for_application(cls, app_id: str, **kwargs: Any) -> "ValueProvider":
        return cls(FilesystemStorage.for_application(app_id), **kwargs)

    def value(self, id: Key, default: Any = MISSING) -> Optional[MappedValue]:
        """Map the value `id`; without a default returns None if it does not exist."""
        if default is MISSING:
            box = PersistentBox.open(self.storage, id, on_error=self.on_error, coder=self.coder)
            return BoxedValue(box) if box is not None else None
        return BoxedValue(PersistentBox(self.storage, id, default, on_error=self.on_error, coder=self.coder))

    def dictionary(self, id: Key, default: Any = MISSING) -> Optional[MappedDictionary]:
        """Map the dictionary `id`; without a default returns None if it does not exist."""
        if default is MISSING:
            mapping = PersistentDict.open(self.storage, id, on_error=self.on_error, coder=self.coder)
            return BoxedDictionary(mapping) if mapping is not None else None
        return BoxedDictionary(
            PersistentDict(self.storage, id, dict(default), on_error=self.on_error, coder=self.coder)
        )


class Mapped:
    """Descriptor storing an attribute in a `ValueProvider`.

    The value is shared by every instance of the owning class since it is
    bound to one id.
    """

    def __init__(self, provider: ValueProvider, id: Key, default: Any) -> None:
        self._mapped = provider.value(id, default)
        self._id = id

    def __get__(self, instance: Any, owner: Optional[type] = None) -> Any:
        if instance is None:
            return self
        return self._mapped.load()

    def __set__(self, instance: Any, value: Any) -> None:
        self._mapped.store(value)

    def __delete__(self, instance: Any) -> None:
        logger.debug("Deleting mapped value %r", self._id)
        self._mapped.delete()
