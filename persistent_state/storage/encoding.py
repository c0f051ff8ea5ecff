"""Filename-safe key encodings.

A key is an arbitrary byte string; a `KeyEncoder` maps it onto a string that
is safe as a single path component and back. Both encoders are injective and
their `decode` only accepts canonical encodings, so a foreign or corrupted
filename is reported as `InvalidEncoding` instead of being silently mapped to
some other key.

Encoded names grow (up to 3x for percent encoding, 4/3x for base64). Keys
longer than roughly 150 bytes may exceed common filename limits; keys of at
most 66 bytes are always safe.
"""
from __future__ import annotations
import base64
import binascii
import re
import string
from typing import Protocol, Union
from urllib.parse import unquote_to_bytes

from persistent_state.errors import InvalidEncoding

Key = Union[str, bytes]

SAFE_CHARACTERS = string.ascii_letters + string.digits + ".-_"

_BASE64_NAME = re.compile(r"[A-Za-z0-9_-]*")


def as_key_bytes(key: Key) -> bytes:
    """Return the raw bytes of `key`; text keys are UTF-8 encoded."""
    if isinstance(key, str):
        return key.encode("utf-8")
    if isinstance(key, (bytes, bytearray, memoryview)):
        return bytes(key)
    raise TypeError(f"key must be str or bytes, not {type(key).__name__}")


def key_from_bytes(raw: bytes) -> Key:
    """Inverse of `as_key_bytes` for listing: UTF-8 keys come back as `str`."""
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw


class KeyEncoder(Protocol):
    def encode(self, key: bytes) -> str: ...

    def decode(self, name: str) -> bytes: ...


class PercentKeyEncoder:
    """Percent-encodes every byte outside `safe_characters` as ``%XX``."""

    name = "percent"

    def __init__(self, safe_characters: str = SAFE_CHARACTERS) -> None:
        if "%" in safe_characters:
            raise ValueError("'%' cannot be a safe character")
        if not safe_characters.isascii():
            raise ValueError("safe characters must be ASCII")
        if "/" in safe_characters or "\\" in safe_characters:
            raise ValueError("path separators cannot be safe characters")
        self._safe = frozenset(safe_characters.encode("ascii"))

    def encode(self, key: bytes) -> str:
        return "".join(chr(b) if b in self._safe else f"%{b:02X}" for b in key)

    def decode(self, name: str) -> bytes:
        raw = unquote_to_bytes(name)
        # Anything that does not re-encode to itself is outside our image:
        # stray '%', lower-case hex, escaped safe bytes, non-ASCII text.
        if self.encode(raw) != name:
            raise InvalidEncoding(f"not a percent-encoded key: {name!r}")
        return raw


class Base64KeyEncoder:
    """Unpadded URL-safe base64 of the raw key bytes."""

    name = "base64"

    def encode(self, key: bytes) -> str:
        return base64.urlsafe_b64encode(key).decode("ascii").rstrip("=")

    def decode(self, name: str) -> bytes:
        if not _BASE64_NAME.fullmatch(name) or len(name) % 4 == 1:
            raise InvalidEncoding(f"not a base64-encoded key: {name!r}")
        padded = name + "=" * (-len(name) % 4)
        try:
            raw = base64.urlsafe_b64decode(padded)
        except (binascii.Error, ValueError) as e:
            raise InvalidEncoding(f"not a base64-encoded key: {name!r}") from e
        # Reject names with non-zero trailing bits
        if self.encode(raw) != name:
            raise InvalidEncoding(f"non-canonical base64 key: {name!r}")
        return raw


def get_key_encoder(name: str = "percent") -> KeyEncoder:
    if name == "percent":
        return PercentKeyEncoder()
    if name == "base64":
        return Base64KeyEncoder()
    raise ValueError(f"unknown key encoding: {name!r}")
