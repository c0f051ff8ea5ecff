"""Storage backend interface definitions.

Defines the StorageBackend abstract class used by the boxes to persist and
retrieve raw entry bytes. A backend knows nothing about values; encoding
values to bytes is the job of a coder (see `serializer`).
"""
from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional, Set

from persistent_state.errors import FatalStorageError, OutOfSpace
from .encoding import Key

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[str], bool]
"""Called with a description of a recoverable write error. Return True to
retry the write, False to give up (which raises `FatalStorageError`)."""


class StorageBackend(ABC):
    """Abstract key-value storage backend.

    Backends are not synchronised; each instance is meant to have a single
    logical owner at a time.
    """

    @abstractmethod
    def list(self) -> Set[Key]:
        """Return all existing keys.

        Keys whose bytes are valid UTF-8 are returned as `str`, others as
        `bytes`. A key written as ``b"abc"`` is listed as ``"abc"``; both
        spellings address the same entry.

        Raises `FatalStorageError` if the listing cannot be produced.
        """

    @abstractmethod
    def read(self, key: Key) -> Optional[bytes]:
        """Return the entry for `key` or None if it does not exist."""

    @abstractmethod
    def write(self, key: Key, data: bytes) -> None:
        """Create or replace the entry for `key`.

        Implementations must replace the entry atomically and raise
        `OutOfSpace` (leaving any previous entry untouched) when there is not
        enough room for it.
        """

    @abstractmethod
    def delete(self, key: Key) -> None:
        """Delete the entry for `key`; a no-op if it does not exist."""

    def exists(self, key: Key) -> bool:
        return self.read(key) is not None

    def try_write(self, key: Key, data: bytes, on_error: Optional[ErrorHandler]) -> None:
        """Write `data`, consulting `on_error` on every `OutOfSpace`.

        The write is retried for as long as the handler returns True. Without
        a handler, or once it returns False, the failure is escalated to
        `FatalStorageError`.
        """
        while True:
            try:
                self.write(key, data)
                return
            except OutOfSpace as err:
                if on_error is None:
                    logger.error("Write of %r failed and there is no error handler: %s", key, err)
                    raise FatalStorageError(
                        f"failed to write entry {key!r} and there is no error handler: {err}"
                    ) from err
                if not on_error(str(err)):
                    logger.error("Write of %r failed and the error handler gave up: %s", key, err)
                    raise FatalStorageError(
                        f"failed to write entry {key!r} and the error handler returned False: {err}"
                    ) from err
                logger.warning("Retrying write of %r after: %s", key, err)
