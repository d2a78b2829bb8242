"""
Read-only key ring bundles backed by PGPy.

A bundle holds every primary key found in a key blob. Keys are enumerated in
blob order, each primary key followed by its subkeys, and addressed by their
64-bit key id (16 upper-case hex digits).
"""

from collections.abc import Iterator
from pathlib import Path
from typing import Self

import pgpy
import structlog

from pgpfile.exceptions import KeyRingError, MissingFileError

logger = structlog.get_logger(__name__)


class _KeyRingBundle:
    def __init__(self, keys: list[pgpy.PGPKey]) -> None:
        self._keys = tuple(keys)

    @classmethod
    def from_blob(cls, blob: bytes | str) -> Self:
        """
        Parse an armored or binary key blob.

        Raises:
            KeyRingError: If the blob holds no usable key material.
        """
        try:
            key, others = pgpy.PGPKey.from_blob(blob)
        except Exception as e:
            msg = f"Failed to read key ring: {e}"
            raise KeyRingError(msg) from e
        keys = [key]
        seen = {key.fingerprint}
        for other in others.values():
            if other.is_primary and other.fingerprint not in seen:
                seen.add(other.fingerprint)
                keys.append(other)
        logger.debug("Key ring loaded", kind=cls.__name__, keys=len(keys))
        return cls(cls._normalize(keys))

    @classmethod
    def from_file(cls, path: Path | str) -> Self:
        """
        Read and parse a key file.

        Raises:
            MissingFileError: If the file does not exist.
            KeyRingError: If the file holds no usable key material.
        """
        key_path = Path(path)
        if not key_path.is_file():
            msg = "Key file not found"
            raise MissingFileError(msg, path=str(key_path))
        return cls.from_blob(key_path.read_bytes())

    @classmethod
    def _normalize(cls, keys: list[pgpy.PGPKey]) -> list[pgpy.PGPKey]:
        return keys

    @property
    def rings(self) -> tuple[pgpy.PGPKey, ...]:
        """Primary keys in blob order."""
        return self._keys

    def keys(self) -> Iterator[pgpy.PGPKey]:
        for primary in self._keys:
            yield primary
            yield from primary.subkeys.values()

    def get_key(self, key_id: str) -> pgpy.PGPKey | None:
        """Find a primary key or subkey by its key id."""
        wanted = key_id.upper()
        for key in self.keys():
            if key.fingerprint.keyid == wanted:
                return key
        return None

    def __len__(self) -> int:
        return len(self._keys)


class PublicKeyRingBundle(_KeyRingBundle):
    """Public keys; secret keys in the blob contribute only their public half."""

    @classmethod
    def _normalize(cls, keys: list[pgpy.PGPKey]) -> list[pgpy.PGPKey]:
        return [key if key.is_public else key.pubkey for key in keys]


class SecretKeyRingBundle(_KeyRingBundle):
    """Secret keys, still locked with their passphrase."""

    @classmethod
    def _normalize(cls, keys: list[pgpy.PGPKey]) -> list[pgpy.PGPKey]:
        if any(key.is_public for key in keys):
            msg = "Expected secret keys, found public key material"
            raise KeyRingError(msg)
        return keys

    def get_secret_key(self, key_id: str) -> pgpy.PGPKey | None:
        return self.get_key(key_id)
