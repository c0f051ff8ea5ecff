from typing import Optional, Protocol, Set, runtime_checkable

from .base import ErrorHandler
from .encoding import Key


@runtime_checkable
class StorageProtocol(Protocol):
    """Storage protocol mirroring `persistent_state.storage.StorageBackend`.

    Implementations should follow the semantics documented on the abstract
    base class in `persistent_state.storage.base` (None for missing entries,
    atomic replace, OutOfSpace before touching an entry, etc.).
    """

    def list(self) -> Set[Key]: ...

    def read(self, key: Key) -> Optional[bytes]: ...

    def write(self, key: Key, data: bytes) -> None: ...

    def delete(self, key: Key) -> None: ...

    def exists(self, key: Key) -> bool: ...

    def try_write(self, key: Key, data: bytes, on_error: Optional[ErrorHandler]) -> None: ...
