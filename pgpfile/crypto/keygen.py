"""
RSA key pair generation with PGPy.
"""

import pgpy
import structlog
from pgpy.constants import (
    CompressionAlgorithm as PgpyCompressionAlgorithm,
    HashAlgorithm as PgpyHashAlgorithm,
    KeyFlags,
    PubKeyAlgorithm,
    SymmetricKeyAlgorithm,
)

from pgpfile.config import PGPFileConfig
from pgpfile.exceptions import CryptoError
from pgpfile.models.crypto import CompressionAlgorithm, HashAlgorithm, KeyPair, SymmetricAlgorithm

logger = structlog.get_logger(__name__)

_KEY_USAGE = {KeyFlags.Sign, KeyFlags.EncryptCommunications, KeyFlags.EncryptStorage}


def _preferences(preferred: int, *fallbacks: int) -> list[int]:
    return list(dict.fromkeys((preferred, *fallbacks)))


class KeyPairGenerator:
    """
    Generates passphrase protected RSA key pairs.

    Example:
        pair = KeyPairGenerator().generate("alice@example.com", "passphrase")
        pair.save("alice.pub.asc", "alice.sec.asc")
    """

    def __init__(self, config: PGPFileConfig | None = None) -> None:
        self._config = config or PGPFileConfig()

    def generate(self, identity: str, passphrase: str) -> KeyPair:
        """
        Generate a key pair certified for ``identity``.

        Args:
            identity: User id bound to the key, e.g. an email address.
            passphrase: Protects the secret key; empty leaves it unprotected.

        Returns:
            The exported public and secret keys.

        Raises:
            CryptoError: If generation or export fails.
        """
        config = self._config
        try:
            key = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, config.key_size)
            key.add_uid(
                pgpy.PGPUID.new(identity),
                usage=_KEY_USAGE,
                hashes=[
                    PgpyHashAlgorithm(h)
                    for h in _preferences(config.hash_algorithm, HashAlgorithm.SHA256, HashAlgorithm.SHA512)
                ],
                ciphers=[
                    SymmetricKeyAlgorithm(c)
                    for c in _preferences(config.cipher, SymmetricAlgorithm.AES_256, SymmetricAlgorithm.AES_128)
                ],
                compression=[
                    PgpyCompressionAlgorithm(c)
                    for c in _preferences(
                        config.compression, CompressionAlgorithm.ZIP, CompressionAlgorithm.UNCOMPRESSED
                    )
                ],
            )
            if passphrase:
                key.protect(
                    passphrase,
                    SymmetricKeyAlgorithm(config.key_protection_cipher),
                    PgpyHashAlgorithm(config.key_protection_hash),
                )
            pair = self._export(key)
        except Exception as e:
            msg = f"Failed to generate key pair: {e}"
            raise CryptoError(msg) from e

        logger.info(
            "Key pair generated",
            key_id=pair.key_id,
            key_size=config.key_size,
            protected=bool(passphrase),
        )
        return pair

    def _export(self, key: pgpy.PGPKey) -> KeyPair:
        if self._config.armor_keys:
            public_key = str(key.pubkey).encode("ascii")
            private_key = str(key).encode("ascii")
        else:
            public_key = bytes(key.pubkey)
            private_key = bytes(key)
        return KeyPair(
            public_key=public_key,
            private_key=private_key,
            key_id=key.fingerprint.keyid,
            fingerprint=str(key.fingerprint).replace(" ", ""),
        )
