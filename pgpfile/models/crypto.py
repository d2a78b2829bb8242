"""
Cryptographic domain models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from pathlib import Path
from typing import BinaryIO

from cryptography.hazmat.decrepit.ciphers import algorithms as decrepit_algorithms
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import BlockCipherAlgorithm, algorithms

from pgpfile.exceptions import UnsupportedAlgorithmError


class SymmetricAlgorithm(IntEnum):
    """OpenPGP symmetric algorithm identifiers."""

    PLAINTEXT = 0
    IDEA = 1
    TRIPLE_DES = 2
    CAST5 = 3
    BLOWFISH = 4
    AES_128 = 7
    AES_192 = 8
    AES_256 = 9
    TWOFISH = 10
    CAMELLIA_128 = 11
    CAMELLIA_192 = 12
    CAMELLIA_256 = 13

    @property
    def key_size(self) -> int:
        """Get key size in bytes for this algorithm."""
        match self:
            case self.AES_128 | self.CAST5 | self.BLOWFISH | self.IDEA | self.CAMELLIA_128:
                return 16
            case self.AES_192 | self.TRIPLE_DES | self.CAMELLIA_192:
                return 24
            case self.AES_256 | self.TWOFISH | self.CAMELLIA_256:
                return 32
            case _:
                return 0

    @property
    def block_size(self) -> int:
        """Get block size in bytes for this algorithm."""
        match self:
            case self.IDEA | self.CAST5 | self.BLOWFISH | self.TRIPLE_DES:
                return 8
            case (
                self.AES_128
                | self.AES_192
                | self.AES_256
                | self.TWOFISH
                | self.CAMELLIA_128
                | self.CAMELLIA_192
                | self.CAMELLIA_256
            ):
                return 16
            case _:
                return 0

    def cipher(self, key: bytes) -> BlockCipherAlgorithm:
        """
        Build the block cipher primitive for this algorithm.

        Raises:
            UnsupportedAlgorithmError: If no primitive is available.
        """
        match self:
            case self.AES_128 | self.AES_192 | self.AES_256:
                return algorithms.AES(key)
            case self.CAMELLIA_128 | self.CAMELLIA_192 | self.CAMELLIA_256:
                return algorithms.Camellia(key)
            case self.CAST5:
                return decrepit_algorithms.CAST5(key)
            case self.TRIPLE_DES:
                return decrepit_algorithms.TripleDES(key)
            case self.BLOWFISH:
                return decrepit_algorithms.Blowfish(key)
            case self.IDEA:
                return decrepit_algorithms.IDEA(key)
            case _:
                msg = f"No cipher available for {self.name}"
                raise UnsupportedAlgorithmError(msg, algorithm=int(self))


class PublicKeyAlgorithm(IntEnum):
    """OpenPGP public key algorithm identifiers."""

    RSA_ENCRYPT_OR_SIGN = 1
    RSA_ENCRYPT_ONLY = 2
    RSA_SIGN_ONLY = 3
    ELGAMAL_ENCRYPT_ONLY = 16
    DSA = 17
    ECDH = 18
    ECDSA = 19
    ELGAMAL_ENCRYPT_OR_SIGN = 20
    EDDSA = 22
    X25519 = 25
    ED25519 = 27

    @property
    def can_encrypt(self) -> bool:
        return self in {
            self.RSA_ENCRYPT_OR_SIGN,
            self.RSA_ENCRYPT_ONLY,
            self.ELGAMAL_ENCRYPT_ONLY,
            self.ECDH,
            self.ELGAMAL_ENCRYPT_OR_SIGN,
            self.X25519,
        }

    @property
    def can_sign(self) -> bool:
        return self in {
            self.RSA_ENCRYPT_OR_SIGN,
            self.RSA_SIGN_ONLY,
            self.DSA,
            self.ECDSA,
            self.ELGAMAL_ENCRYPT_OR_SIGN,
            self.EDDSA,
            self.ED25519,
        }


class HashAlgorithm(IntEnum):
    """OpenPGP hash algorithm identifiers."""

    MD5 = 1
    SHA1 = 2
    RIPEMD160 = 3
    SHA256 = 8
    SHA384 = 9
    SHA512 = 10
    SHA224 = 11

    def primitive(self) -> hashes.HashAlgorithm:
        """
        Build the hash primitive for this algorithm.

        Raises:
            UnsupportedAlgorithmError: If no primitive is available.
        """
        match self:
            case self.MD5:
                return hashes.MD5()
            case self.SHA1:
                return hashes.SHA1()
            case self.SHA224:
                return hashes.SHA224()
            case self.SHA256:
                return hashes.SHA256()
            case self.SHA384:
                return hashes.SHA384()
            case self.SHA512:
                return hashes.SHA512()
            case _:
                msg = f"No hash primitive available for {self.name}"
                raise UnsupportedAlgorithmError(msg, algorithm=int(self))


class CompressionAlgorithm(IntEnum):
    """OpenPGP compression algorithm identifiers."""

    UNCOMPRESSED = 0
    ZIP = 1
    ZLIB = 2
    BZIP2 = 3


@dataclass(frozen=True, kw_only=True)
class SessionKey:
    """
    Represents a session key for message encryption.

    Attributes:
        algorithm: The symmetric algorithm used.
        key_data: The raw key bytes.
    """

    algorithm: SymmetricAlgorithm
    key_data: bytes

    def __post_init__(self) -> None:
        """Validate key size matches algorithm."""
        expected = self.algorithm.key_size
        if not expected or (len(self.key_data) == expected):
            return
        msg = f"Key size mismatch: {self.algorithm.name} expects {expected} bytes, got {len(self.key_data)}"
        raise ValueError(msg)

    @property
    def block_size(self) -> int:
        """Get the block size for this key's algorithm."""
        return self.algorithm.block_size


@dataclass(frozen=True, kw_only=True)
class KeyPair:
    """
    A freshly generated key pair in exportable form.

    Attributes:
        public_key: Exported public certificate (armored or binary).
        private_key: Exported, passphrase protected secret key.
        key_id: 16 hex digit key id of the primary key.
        fingerprint: Full fingerprint of the primary key.
    """

    public_key: bytes
    private_key: bytes
    key_id: str
    fingerprint: str

    def write_to(
        self,
        public_stream: BinaryIO | None = None,
        private_stream: BinaryIO | None = None,
    ) -> None:
        """Write either or both halves of the pair to open binary streams."""
        if public_stream is not None:
            public_stream.write(self.public_key)
        if private_stream is not None:
            private_stream.write(self.private_key)

    def save(
        self,
        public_key_path: Path | str | None = None,
        private_key_path: Path | str | None = None,
    ) -> None:
        """Write either or both halves of the pair to files, creating parent directories."""
        for path, blob in ((public_key_path, self.public_key), (private_key_path, self.private_key)):
            if path is None:
                continue
            destination = Path(path)
            destination.parent.mkdir(parents=True, exist_ok=True)
            with destination.open("wb") as f:
                f.write(blob)


@dataclass(frozen=True, kw_only=True)
class EncryptedSessionKeyEntry:
    """
    One Public-Key Encrypted Session Key packet of a message.

    Attributes:
        key_id: Recipient key id as 16 upper-case hex digits.
        algorithm: Public key algorithm the session key was wrapped with.
        packet: The complete packet (header and body).
    """

    key_id: str
    algorithm: int
    packet: bytes


@dataclass(frozen=True, kw_only=True)
class DecryptionResult:
    """
    Outcome of decoding a message.

    Attributes:
        filename: Name stored in the literal data packet.
        modified: Modification time stored in the literal data packet.
        format: Literal data format octet (b, t, u).
        bytes_written: Payload bytes written to the sink.
        signed: Whether the message embedded a one-pass signature.
        signer_key_ids: Key ids announced by the one-pass signature packets.
        signature_verified: True only when verification was requested and succeeded.
    """

    filename: str
    modified: datetime | None
    format: str
    bytes_written: int
    signed: bool = False
    signer_key_ids: tuple[str, ...] = field(default_factory=tuple)
    signature_verified: bool = False
