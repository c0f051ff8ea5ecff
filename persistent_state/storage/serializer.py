from typing import Any, Optional, Protocol
import pickle
import json
import yaml


class Coder(Protocol):
    """Encode/decode values to and from the bytes stored in an entry.

    Implementations should be symmetric: `decode(encode(v)) == v` for every
    value the coder accepts.
    """

    def encode(self, value: Any) -> bytes: ...

    def decode(self, data: bytes) -> Any: ...


def _check_json_keys(value: Any) -> None:
    # json.dumps turns int/float/bool/None keys into strings, which would not decode back
    if isinstance(value, dict):
        for k, v in value.items():
            if not isinstance(k, str):
                raise TypeError(f"JSON mapping keys must be str, not {type(k).__name__}: {k!r}")
            _check_json_keys(v)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _check_json_keys(item)


class JSONCoder:
    """Default coder using JSON (UTF-8 text). Mapping keys must be strings."""

    def encode(self, value: Any) -> bytes:
        _check_json_keys(value)
        return json.dumps(value, ensure_ascii=False, separators=(",", ":")).encode("utf-8")

    def decode(self, data: bytes) -> Any:
        return json.loads(data.decode("utf-8"))


class YAMLCoder:
    """Coder using YAML (text). Caller must ensure values are YAML-serializable."""

    def encode(self, value: Any) -> bytes:
        return yaml.safe_dump(value, sort_keys=False, allow_unicode=True).encode("utf-8")

    def decode(self, data: bytes) -> Any:
        return yaml.safe_load(data.decode("utf-8"))


class PickleCoder:
    """Coder using pickle (binary).

    Handles arbitrary Python objects. Only use it for stores whose content
    you trust: unpickling executes code.
    """

    def encode(self, value: Any) -> bytes:
        return pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)

    def decode(self, data: bytes) -> Any:
        return pickle.loads(data)


class EncryptedCoder:
        """Coder that encrypts entries using Fernet (symmetric, authenticated).

        Notes:
        - Fernet is AES-CBC + HMAC from the cryptography library; a tampered
            or foreign entry fails to decode instead of yielding garbage.
        - `base_coder` defaults to JSON and turns the value into the plaintext.
        - With `password`, every entry gets its own random salt and the key is
            derived with PBKDF2; the salt and iteration count travel in the
            frame so decoding does not depend on the current settings.
        """

        def __init__(
            self,
            *,
            key: Optional[bytes] = None,
            password: Optional[str] = None,
            iterations: int = 390000,
            base_coder: Optional[Coder] = None,
        ) -> None:
            if key is None and password is None:
                raise ValueError("EncryptedCoder requires either `key` or `password`")
            self._key = key
            self._password = password
            self._iterations = iterations
            self.base_coder = base_coder or JSONCoder()

        def _derive_key(self, password: str, salt: bytes, iterations: int) -> bytes:
            import base64
            from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
            from cryptography.hazmat.primitives import hashes

            kdf = PBKDF2HMAC(
                algorithm=hashes.SHA256(),
                length=32,
                salt=salt,
                iterations=iterations,
            )
            return base64.urlsafe_b64encode(kdf.derive(password.encode("utf-8")))

        def encode(self, value: Any) -> bytes:
            """Encode and encrypt value, returning a framed JSON blob."""
            import os
            import base64
            from cryptography.fernet import Fernet
            inner = self.base_coder.encode(value)

            if self._password is not None:
                salt = os.urandom(16)
                key = self._derive_key(self._password, salt, self._iterations)
                ct = Fernet(key).encrypt(inner)
                frame = {
                    "v": 1,
                    "mode": "password",
                    "kdf": "pbkdf2",
                    "iterations": self._iterations,
                    "salt": base64.urlsafe_b64encode(salt).decode("ascii"),
                    "ct": base64.urlsafe_b64encode(ct).decode("ascii"),
                }
            else:
                ct = Fernet(self._key).encrypt(inner)
                frame = {"v": 1, "mode": "key", "ct": base64.urlsafe_b64encode(ct).decode("ascii")}
            return json.dumps(frame).encode("utf-8")

        def decode(self, data: bytes) -> Any:
            """Parse the frame, derive the key if needed, decrypt and decode."""
            import base64
            from cryptography.fernet import Fernet

            frame = json.loads(data.decode("utf-8"))
            mode = frame.get("mode")
            if mode == "password":
                if self._password is None:
                    raise ValueError("coder was not configured with a password")
                salt = base64.urlsafe_b64decode(frame["salt"].encode("ascii"))
                iterations = frame.get("iterations", self._iterations)
                key = self._derive_key(self._password, salt, iterations)
            elif mode == "key":
                if self._key is None:
                    raise ValueError("coder was not configured with a key")
                key = self._key
            else:
                raise ValueError("unknown frame format")
            ct = base64.urlsafe_b64decode(frame["ct"].encode("ascii"))
            return self.base_coder.decode(Fernet(key).decrypt(ct))


def get_coder(name: str = "json", **options: Any) -> Coder:
    if name == "json":
        return JSONCoder()
    if name == "yaml":
        return YAMLCoder()
    if name == "pickle":
        return PickleCoder()
    if name == "encrypted":
        return EncryptedCoder(**options)
    raise ValueError(f"unknown coder: {name!r}")
