"""
Packet-level domain models.

The decoder reads a message as a sequence of objects, each one a variant of
``PGPObject``. Variants that carry a body expose it as a lazily read stream.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import TYPE_CHECKING

from pgpfile.models.crypto import EncryptedSessionKeyEntry

if TYPE_CHECKING:
    from pgpfile.packet.framing import StreamReader


class PacketTag(IntEnum):
    """OpenPGP packet tags."""

    PUBLIC_KEY_ENCRYPTED_SESSION_KEY = 1
    SIGNATURE = 2
    SYMMETRIC_KEY_ENCRYPTED_SESSION_KEY = 3
    ONE_PASS_SIGNATURE = 4
    SECRET_KEY = 5
    PUBLIC_KEY = 6
    SECRET_SUBKEY = 7
    COMPRESSED_DATA = 8
    SYMMETRICALLY_ENCRYPTED_DATA = 9
    MARKER = 10
    LITERAL_DATA = 11
    TRUST = 12
    USER_ID = 13
    PUBLIC_SUBKEY = 14
    USER_ATTRIBUTE = 17
    SYM_ENCRYPTED_INTEGRITY_PROTECTED_DATA = 18
    MODIFICATION_DETECTION_CODE = 19

    @property
    def allows_partial_length(self) -> bool:
        """Only data packets may use partial body lengths."""
        return self in {
            self.COMPRESSED_DATA,
            self.SYMMETRICALLY_ENCRYPTED_DATA,
            self.LITERAL_DATA,
            self.SYM_ENCRYPTED_INTEGRITY_PROTECTED_DATA,
        }


class LiteralFormat(IntEnum):
    """Literal data format octets."""

    BINARY = ord("b")
    TEXT = ord("t")
    UTF8 = ord("u")


@dataclass(frozen=True, kw_only=True)
class MarkerPacket:
    offset: int


@dataclass(frozen=True, kw_only=True)
class EncryptedDataList:
    """
    Session key packets followed by the encrypted data packet they unlock.

    Attributes:
        entries: Public-key session key packets in message order.
        payload: Body of the encrypted data packet.
        integrity_protected: True for tag 18 (with MDC), False for legacy tag 9.
    """

    entries: tuple[EncryptedSessionKeyEntry, ...]
    payload: "StreamReader"
    integrity_protected: bool
    offset: int


@dataclass(frozen=True, kw_only=True)
class CompressedData:
    """A Compressed Data packet; ``algorithm`` is the raw octet, checked when decompressing."""

    algorithm: int
    stream: "StreamReader"
    offset: int


@dataclass(frozen=True, kw_only=True)
class OnePassSignature:
    """Fields of a single one-pass signature packet."""

    signature_type: int
    hash_algorithm: int
    key_algorithm: int
    key_id: str
    last: bool


@dataclass(frozen=True, kw_only=True)
class OnePassSignatureList:
    signatures: tuple[OnePassSignature, ...]
    offset: int


@dataclass(frozen=True, kw_only=True)
class LiteralData:
    format: LiteralFormat | int
    filename: str
    modified: datetime | None
    stream: "StreamReader"
    offset: int


@dataclass(frozen=True, kw_only=True)
class SignatureList:
    packets: tuple[bytes, ...] = field(default_factory=tuple)
    offset: int = 0


@dataclass(frozen=True, kw_only=True)
class UnknownPacket:
    tag: int
    offset: int


PGPObject = (
    MarkerPacket
    | EncryptedDataList
    | CompressedData
    | OnePassSignatureList
    | LiteralData
    | SignatureList
    | UnknownPacket
)
