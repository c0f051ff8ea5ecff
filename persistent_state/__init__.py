"""Durable per-key application state backed by a filesystem key-value store."""

from .box import Cell, PersistentBox
from .dict_box import PersistentDict
from .errors import (
    CodecError,
    FatalStorageError,
    InvalidDirectory,
    InvalidEncoding,
    OutOfSpace,
    PersistentStateError,
)
from .provider import Mapped, MappedDictionary, MappedValue, ValueProvider
from .storage import (
    FilesystemStorage,
    JSONCoder,
    MemoryStorage,
    StorageBackend,
    create_storage,
)

__all__ = [
    "Cell",
    "PersistentBox",
    "PersistentDict",
    "PersistentStateError",
    "InvalidDirectory",
    "OutOfSpace",
    "FatalStorageError",
    "InvalidEncoding",
    "CodecError",
    "ValueProvider",
    "MappedValue",
    "MappedDictionary",
    "Mapped",
    "StorageBackend",
    "FilesystemStorage",
    "MemoryStorage",
    "JSONCoder",
    "create_storage",
]
