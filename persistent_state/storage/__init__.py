"""Storage abstraction package for persistent_state."""
from __future__ import annotations
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from .base import ErrorHandler, StorageBackend
from .encoding import (
    Base64KeyEncoder,
    Key,
    KeyEncoder,
    PercentKeyEncoder,
    get_key_encoder,
)
from .file_backend import DEFAULT_PREFIX, SAFETY_MARGIN, FilesystemStorage
from .interfaces import StorageProtocol
from .memory_backend import MemoryStorage
from .serializer import (
    Coder,
    EncryptedCoder,
    JSONCoder,
    PickleCoder,
    YAMLCoder,
    get_coder,
)

if TYPE_CHECKING:
    from persistent_state.config import StoreConfig


def create_storage(
    backend: str = "file",
    directory: Optional[str | Path] = None,
    app_id: Optional[str] = None,
    prefix: str = DEFAULT_PREFIX,
    safety_margin: int = SAFETY_MARGIN,
    key_encoding: str = "percent",
    capacity: Optional[int] = None,
) -> StorageBackend:
    """Build a storage backend by name.

    `backend='file'` needs either `directory` (must already exist) or
    `app_id` (the platform data directory is created on demand).
    `backend='memory'` ignores the filesystem options.
    """
    if backend == "memory":
        return MemoryStorage(capacity=capacity)
    if backend != "file":
        raise ValueError(f"unknown storage backend: {backend!r}")

    options = dict(prefix=prefix, safety_margin=safety_margin, key_encoder=get_key_encoder(key_encoding))
    if directory is not None:
        return FilesystemStorage(directory, **options)
    if app_id is not None:
        return FilesystemStorage.for_application(app_id, **options)
    raise ValueError("file storage needs a directory or an app_id")


def storage_from_config(config: "StoreConfig") -> StorageBackend:
    return create_storage(
        backend="file",
        directory=config.directory,
        app_id=config.app_id,
        prefix=config.prefix,
        safety_margin=config.safety_margin,
        key_encoding=config.key_encoding,
    )


__all__ = [
    "StorageBackend",
    "StorageProtocol",
    "ErrorHandler",
    "FilesystemStorage",
    "MemoryStorage",
    "DEFAULT_PREFIX",
    "SAFETY_MARGIN",
    "Key",
    "KeyEncoder",
    "PercentKeyEncoder",
    "Base64KeyEncoder",
    "get_key_encoder",
    "Coder",
    "JSONCoder",
    "YAMLCoder",
    "PickleCoder",
    "EncryptedCoder",
    "get_coder",
    "create_storage",
    "storage_from_config",
]
