"""
pgpfile engine configuration.
"""

from dataclasses import dataclass
from typing import Self

from pgpfile.exceptions import UnsupportedAlgorithmError
from pgpfile.models.crypto import CompressionAlgorithm, HashAlgorithm, SymmetricAlgorithm

_MIN_CHUNK_SIZE = 512
_MAX_CHUNK_SIZE = 1 << 30


def _check_cipher(field: str, algorithm: SymmetricAlgorithm) -> None:
    if algorithm.block_size == 0:
        msg = f"{field} {algorithm.name} is not a block cipher"
        raise ValueError(msg)
    try:
        algorithm.cipher(bytes(algorithm.key_size))
    except UnsupportedAlgorithmError as e:
        msg = f"{field} {algorithm.name} is not available"
        raise ValueError(msg) from e


@dataclass(frozen=True, kw_only=True)
class PGPFileConfig:
    """
    Attributes:
        key_size: RSA modulus size in bits for generated keys.
        key_protection_cipher: Cipher protecting generated secret keys.
        key_protection_hash: Hash used by the S2K of generated secret keys.
        cipher: Cipher for message payload encryption.
        hash_algorithm: Hash for one-pass signatures.
        compression: Compression applied inside the encrypted layer.
        compression_level: zlib/bz2 level, -1 for the codec default.
        chunk_size: Streaming unit and partial body length, a power of two.
        armor_keys: Whether generated keys are exported ASCII-armored.
        armor_headers: Extra armor header lines for armored messages.
    """

    key_size: int = 2048
    key_protection_cipher: SymmetricAlgorithm = SymmetricAlgorithm.AES_256
    key_protection_hash: HashAlgorithm = HashAlgorithm.SHA256
    cipher: SymmetricAlgorithm = SymmetricAlgorithm.AES_256
    hash_algorithm: HashAlgorithm = HashAlgorithm.SHA256
    compression: CompressionAlgorithm = CompressionAlgorithm.ZIP
    compression_level: int = 6
    chunk_size: int = 65536
    armor_keys: bool = True
    armor_headers: tuple[tuple[str, str], ...] = ()

    def __post_init__(self) -> None:
        if self.key_size < 1024:
            msg = "key_size must be at least 1024 bits"
            raise ValueError(msg)
        if not _MIN_CHUNK_SIZE <= self.chunk_size <= _MAX_CHUNK_SIZE:
            msg = f"chunk_size must be between {_MIN_CHUNK_SIZE} and {_MAX_CHUNK_SIZE}"
            raise ValueError(msg)
        if self.chunk_size & (self.chunk_size - 1):
            msg = "chunk_size must be a power of two"
            raise ValueError(msg)
        if not -1 <= self.compression_level <= 9:
            msg = "compression_level must be between -1 and 9"
            raise ValueError(msg)
        _check_cipher("cipher", self.cipher)
        _check_cipher("key_protection_cipher", self.key_protection_cipher)

    @classmethod
    def legacy(cls, **overrides: object) -> Self:
        """Profile producing the algorithms of older deployments (CAST5, SHA-1, 1024-bit RSA)."""
        settings: dict[str, object] = {
            "key_size": 1024,
            "key_protection_cipher": SymmetricAlgorithm.CAST5,
            "key_protection_hash": HashAlgorithm.SHA1,
            "cipher": SymmetricAlgorithm.CAST5,
            "hash_algorithm": HashAlgorithm.SHA1,
        }
        settings.update(overrides)
        return cls(**settings)  # type: ignore[arg-type]
