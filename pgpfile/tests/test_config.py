import pytest

from pgpfile.config import PGPFileConfig
from pgpfile.models.crypto import CompressionAlgorithm, HashAlgorithm, SymmetricAlgorithm


def test_config_defaults() -> None:
    config = PGPFileConfig()

    assert config.key_size == 2048
    assert config.cipher == SymmetricAlgorithm.AES_256
    assert config.hash_algorithm == HashAlgorithm.SHA256
    assert config.compression == CompressionAlgorithm.ZIP
    assert config.chunk_size == 65536
    assert config.armor_keys is True


def test_legacy_profile_uses_older_algorithms() -> None:
    config = PGPFileConfig.legacy()

    assert config.key_size == 1024
    assert config.cipher == SymmetricAlgorithm.CAST5
    assert config.key_protection_cipher == SymmetricAlgorithm.CAST5
    assert config.hash_algorithm == HashAlgorithm.SHA1


def test_legacy_profile_accepts_overrides() -> None:
    config = PGPFileConfig.legacy(chunk_size=1024)

    assert config.chunk_size == 1024
    assert config.cipher == SymmetricAlgorithm.CAST5


def test_config_is_frozen() -> None:
    config = PGPFileConfig()

    with pytest.raises(AttributeError):
        config.chunk_size = 1024  # type: ignore[misc]


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"key_size": 512}, "key_size"),
        ({"chunk_size": 256}, "chunk_size"),
        ({"chunk_size": 1000}, "power of two"),
        ({"compression_level": 10}, "compression_level"),
        ({"cipher": SymmetricAlgorithm.PLAINTEXT}, "not a block cipher"),
        ({"key_protection_cipher": SymmetricAlgorithm.PLAINTEXT}, "not a block cipher"),
        ({"cipher": SymmetricAlgorithm.TWOFISH}, "cipher TWOFISH is not available"),
        ({"key_protection_cipher": SymmetricAlgorithm.TWOFISH}, "key_protection_cipher TWOFISH is not available"),
    ],
)
def test_config_rejects_invalid_values(kwargs: dict, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        PGPFileConfig(**kwargs)
