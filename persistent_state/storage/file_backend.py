"""Directory-backed storage backend.

Every entry is one file named ``<prefix><encoded key>`` in a single
directory. Writes go to a dot-prefixed temporary file in the same directory
which is fsynced and then renamed over the final name, so a reader sees
either the previous content or the new one, never a partial file. Before a
write the free space of the volume is checked against the entry size plus a
fixed safety margin.
"""
from __future__ import annotations
import errno
import logging
import os
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import Optional, Set

from persistent_state.errors import FatalStorageError, InvalidDirectory, OutOfSpace
from persistent_state.paths import application_data_dir, ensure_dir
from .base import StorageBackend
from .encoding import Key, KeyEncoder, PercentKeyEncoder, as_key_bytes, key_from_bytes

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "persistent_state.FilesystemStorage."
SAFETY_MARGIN = 8 * 1024 * 1024


class FilesystemStorage(StorageBackend):
    """Atomic key-value store over the files of one directory.

    Parameters
    - directory: an existing, writable directory.
    - prefix: marks the files owned by this store; other files in the
      directory are ignored. Must not be empty or start with '.'.
    - safety_margin: free bytes that must remain after a write.
    - key_encoder: filename encoding for keys (percent encoding by default).
    """

    def __init__(
        self,
        directory: str | Path,
        prefix: str = DEFAULT_PREFIX,
        safety_margin: int = SAFETY_MARGIN,
        key_encoder: Optional[KeyEncoder] = None,
    ) -> None:
        if not prefix or prefix.startswith("."):
            raise ValueError(f"invalid prefix: {prefix!r}")
        if safety_margin < 0:
            raise ValueError("safety_margin must not be negative")
        self.prefix = prefix
        self.safety_margin = safety_margin
        self.key_encoder: KeyEncoder = key_encoder or PercentKeyEncoder()

        path = Path(directory)
        if not path.is_dir():
            raise InvalidDirectory(f"the given path is not a directory: {path}")
        self.directory = path.absolute()

        # Create and delete a throwaway file to make sure we can write here
        probe = self.directory / f".{uuid.uuid4().hex}.probe"
        try:
            probe.write_bytes(b"Testolope")
            probe.unlink()
        except OSError as e:
            raise InvalidDirectory(f"failed to create/delete test file in {self.directory}: {e}") from e
        logger.debug("Opened filesystem storage at %s", self.directory)

    @classmethod
    def for_application(cls, app_id: str, **kwargs) -> "FilesystemStorage":
        """Open (creating if needed) the store in the platform data directory for `app_id`."""
        path = application_data_dir(app_id)
        try:
            directory = ensure_dir(path)
        except OSError as e:
            raise InvalidDirectory(f"cannot create application data directory {path}: {e}") from e
        return cls(directory, **kwargs)

    def path_for(self, key: Key) -> Path:
        return self.directory / (self.prefix + self.key_encoder.encode(as_key_bytes(key)))

    def available_space(self) -> int:
        try:
            return shutil.disk_usage(self.directory).free
        except OSError as e:
            logger.error("Cannot determine free space of %s: %s", self.directory, e)
            raise FatalStorageError(f"cannot determine free space of {self.directory}: {e}") from e

    def list(self) -> Set[Key]:
        try:
            names = os.listdir(self.directory)
        except OSError as e:
            logger.error("Cannot list %s: %s", self.directory, e)
            raise FatalStorageError(f"cannot list {self.directory}: {e}") from e

        keys: Set[Key] = set()
        for name in names:
            if not name.startswith(self.prefix):
                continue
            # InvalidEncoding propagates: the store is assumed to be clean
            raw = self.key_encoder.decode(name[len(self.prefix):])
            keys.add(key_from_bytes(raw))
        return keys

    def read(self, key: Key) -> Optional[bytes]:
        path = self.path_for(key)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error("Cannot read entry %r at %s: %s", key, path, e)
            raise FatalStorageError(f"cannot read entry {key!r}: {e}") from e
        logger.debug("Read entry %r (%d bytes)", key, len(data))
        return data

    def write(self, key: Key, data: bytes) -> None:
        data = bytes(data)
        path = self.path_for(key)

        free = self.available_space()
        required = len(data) + self.safety_margin
        if free < required:
            raise OutOfSpace(
                f"not enough free disk space to write entry {key!r}: "
                f"{free} bytes available, {required} required"
            )

        try:
            self._replace(path, data)
        except OSError as e:
            if e.errno == errno.ENOSPC:
                raise OutOfSpace(f"disk full while writing entry {key!r}: {e}") from e
            logger.error("Cannot write entry %r at %s: %s", key, path, e)
            raise FatalStorageError(f"cannot write entry {key!r}: {e}") from e
        logger.debug("Wrote entry %r (%d bytes)", key, len(data))

    def _replace(self, path: Path, data: bytes) -> None:
        fd, tmp = tempfile.mkstemp(prefix=".", suffix=".tmp", dir=self.directory)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except BaseException:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass
            raise

    def delete(self, key: Key) -> None:
        path = self.path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            logger.error("Cannot delete entry %r at %s: %s", key, path, e)
            raise FatalStorageError(f"cannot delete entry {key!r}: {e}") from e
        logger.debug("Deleted entry %r", key)

    def exists(self, key: Key) -> bool:
        return self.path_for(key).is_file()

    def __repr__(self) -> str:
        return f"FilesystemStorage(directory={str(self.directory)!r}, prefix={self.prefix!r})"
