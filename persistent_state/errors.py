"""Error types raised by the persistence layer.

Only `OutOfSpace` is recoverable. `InvalidDirectory` is reported once at
construction time. Everything deriving from `FatalStorageError` means the
store or the in-memory cache can no longer be trusted; callers are expected
to let it propagate and terminate.
"""


class PersistentStateError(Exception):
    """Base class for all persistence errors."""


class InvalidDirectory(PersistentStateError):
    """The store directory is missing, not a directory or not writable."""


class OutOfSpace(PersistentStateError):
    """Not enough free space on the store's volume to write an entry."""


class FatalStorageError(PersistentStateError):
    """An unrecoverable storage condition."""


class InvalidEncoding(FatalStorageError):
    """A filename (or encoded key) is not the encoding of any key."""


class CodecError(FatalStorageError):
    """A value could not be encoded or a stored entry could not be decoded."""
