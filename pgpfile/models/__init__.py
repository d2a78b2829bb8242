"""
Domain models for pgpfile.

These are immutable (frozen) dataclasses representing the core domain concepts.
"""

from pgpfile.models.crypto import (
    CompressionAlgorithm,
    DecryptionResult,
    EncryptedSessionKeyEntry,
    HashAlgorithm,
    KeyPair,
    PublicKeyAlgorithm,
    SessionKey,
    SymmetricAlgorithm,
)
from pgpfile.models.packets import (
    CompressedData,
    EncryptedDataList,
    LiteralData,
    LiteralFormat,
    MarkerPacket,
    OnePassSignature,
    OnePassSignatureList,
    PacketTag,
    PGPObject,
    SignatureList,
    UnknownPacket,
)

__all__ = [
    # Crypto
    "SymmetricAlgorithm",
    "PublicKeyAlgorithm",
    "HashAlgorithm",
    "CompressionAlgorithm",
    "SessionKey",
    "KeyPair",
    "EncryptedSessionKeyEntry",
    "DecryptionResult",
    # Packets
    "PacketTag",
    "LiteralFormat",
    "PGPObject",
    "MarkerPacket",
    "EncryptedDataList",
    "CompressedData",
    "OnePassSignature",
    "OnePassSignatureList",
    "LiteralData",
    "SignatureList",
    "UnknownPacket",
]
