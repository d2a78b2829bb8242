"""
Lazy packet reader.

Turns one layer's packet stream into a sequence of ``PGPObject`` variants,
grouping session key packets with the encrypted data they precede and
consecutive one-pass signature or signature packets into lists. Bodies of
data packets are exposed as streams; any part left unread is skipped when the
next object is requested.
"""

import structlog

from pgpfile.exceptions import MalformedMessageError, UnexpectedPacketError
from pgpfile.models.crypto import EncryptedSessionKeyEntry
from pgpfile.models.packets import (
    CompressedData,
    EncryptedDataList,
    LiteralData,
    MarkerPacket,
    OnePassSignature,
    OnePassSignatureList,
    PacketTag,
    PGPObject,
    SignatureList,
    UnknownPacket,
)
from pgpfile.packet.framing import BodyReader, PacketHeader, StreamReader, encode_packet, read_header
from pgpfile.packet.literal import decode_timestamp

logger = structlog.get_logger(__name__)

MAX_CONTROL_PACKET_LENGTH = 1 << 20
_PKESK_VERSION = 3
_OPS_VERSION = 3
_MARKER_BODY = b"PGP"

_ENCRYPTED_DATA_TAGS = (
    PacketTag.SYMMETRICALLY_ENCRYPTED_DATA,
    PacketTag.SYM_ENCRYPTED_INTEGRITY_PROTECTED_DATA,
)
_SESSION_KEY_TAGS = (
    PacketTag.PUBLIC_KEY_ENCRYPTED_SESSION_KEY,
    PacketTag.SYMMETRIC_KEY_ENCRYPTED_SESSION_KEY,
)


class PacketReader:
    """
    Reads objects from one layer of a message.

    Example:
        reader = PacketReader(open_message_stream(f))
        while (obj := reader.next_object()) is not None:
            ...
    """

    def __init__(self, source: StreamReader, *, max_control_length: int = MAX_CONTROL_PACKET_LENGTH) -> None:
        self._source = source
        self._max_control_length = max_control_length
        self._pending: PacketHeader | None = None
        self._open_body: BodyReader | None = None

    @property
    def position(self) -> int:
        return self._source.position

    def next_object(self) -> PGPObject | None:
        """
        Read the next object, or None at the end of the layer.

        Raises:
            MalformedMessageError: If the packet stream is not well formed.
        """
        header = self._next_header()
        if header is None:
            return None

        match header.tag:
            case PacketTag.MARKER:
                body = self._read_control_body(header)
                if body != _MARKER_BODY:
                    logger.debug("Marker packet with unexpected body", length=len(body))
                return MarkerPacket(offset=header.offset)
            case PacketTag.PUBLIC_KEY_ENCRYPTED_SESSION_KEY | PacketTag.SYMMETRIC_KEY_ENCRYPTED_SESSION_KEY:
                return self._read_encrypted_data_list(header)
            case PacketTag.SYMMETRICALLY_ENCRYPTED_DATA | PacketTag.SYM_ENCRYPTED_INTEGRITY_PROTECTED_DATA:
                return self._encrypted_data(header, ())
            case PacketTag.COMPRESSED_DATA:
                return self._read_compressed_data(header)
            case PacketTag.ONE_PASS_SIGNATURE:
                return self._read_one_pass_signatures(header)
            case PacketTag.LITERAL_DATA:
                return self._read_literal_data(header)
            case PacketTag.SIGNATURE:
                return self._read_signatures(header)
            case _:
                logger.debug("Unknown packet", tag=header.tag, offset=header.offset)
                self._open_body = BodyReader(self._source, header)
                return UnknownPacket(tag=header.tag, offset=header.offset)

    def _next_header(self) -> PacketHeader | None:
        if self._pending is not None:
            header, self._pending = self._pending, None
            return header
        if self._open_body is not None:
            skipped = self._open_body.drain()
            if skipped:
                logger.debug("Skipped unread packet body", tag=self._open_body.tag, length=skipped)
            self._open_body = None
        return read_header(self._source)

    def _read_control_body(self, header: PacketHeader) -> bytes:
        if header.length is not None and header.length > self._max_control_length:
            msg = f"Packet with tag {header.tag} is too long ({header.length} bytes)"
            raise MalformedMessageError(msg, offset=header.offset)
        body = BodyReader(self._source, header)
        if header.length is not None:
            return body.read_exact(header.length)
        parts = []
        total = 0
        for chunk in body.iter_chunks(65536):
            total += len(chunk)
            if total > self._max_control_length:
                msg = f"Packet with tag {header.tag} is too long"
                raise MalformedMessageError(msg, offset=header.offset)
            parts.append(chunk)
        return b"".join(parts)

    def _read_encrypted_data_list(self, header: PacketHeader) -> EncryptedDataList:
        entries: list[EncryptedSessionKeyEntry] = []
        current: PacketHeader | None = header
        while current is not None and current.tag in _SESSION_KEY_TAGS:
            body = self._read_control_body(current)
            if current.tag == PacketTag.PUBLIC_KEY_ENCRYPTED_SESSION_KEY:
                entries.append(self._parse_session_key_entry(current, body))
            else:
                logger.debug("Ignoring symmetric-key session key packet", offset=current.offset)
            current = read_header(self._source)

        if current is None:
            msg = "Message ends after its session key packets"
            raise MalformedMessageError(msg, offset=self._source.position)
        if current.tag not in _ENCRYPTED_DATA_TAGS:
            msg = f"Session key packets must be followed by encrypted data, got tag {current.tag}"
            raise UnexpectedPacketError(msg, tag=current.tag, offset=current.offset)
        return self._encrypted_data(current, tuple(entries), offset=header.offset)

    @staticmethod
    def _parse_session_key_entry(header: PacketHeader, body: bytes) -> EncryptedSessionKeyEntry:
        if len(body) < 10 or body[0] != _PKESK_VERSION:
            msg = "Unsupported or truncated public-key session key packet"
            raise MalformedMessageError(msg, offset=header.offset)
        return EncryptedSessionKeyEntry(
            key_id=body[1:9].hex().upper(),
            algorithm=body[9],
            packet=encode_packet(PacketTag.PUBLIC_KEY_ENCRYPTED_SESSION_KEY, body),
        )

    def _encrypted_data(
        self,
        header: PacketHeader,
        entries: tuple[EncryptedSessionKeyEntry, ...],
        *,
        offset: int | None = None,
    ) -> EncryptedDataList:
        payload = BodyReader(self._source, header)
        self._open_body = payload
        return EncryptedDataList(
            entries=entries,
            payload=payload,
            integrity_protected=header.tag == PacketTag.SYM_ENCRYPTED_INTEGRITY_PROTECTED_DATA,
            offset=header.offset if offset is None else offset,
        )

    def _read_compressed_data(self, header: PacketHeader) -> CompressedData:
        stream = BodyReader(self._source, header)
        algorithm = stream.read_exact(1)[0]
        self._open_body = stream
        return CompressedData(algorithm=algorithm, stream=stream, offset=header.offset)

    def _read_one_pass_signatures(self, header: PacketHeader) -> OnePassSignatureList:
        signatures = []
        current: PacketHeader | None = header
        while current is not None and current.tag == PacketTag.ONE_PASS_SIGNATURE:
            body = self._read_control_body(current)
            if len(body) != 13 or body[0] != _OPS_VERSION:
                msg = "Unsupported or truncated one-pass signature packet"
                raise MalformedMessageError(msg, offset=current.offset)
            signatures.append(
                OnePassSignature(
                    signature_type=body[1],
                    hash_algorithm=body[2],
                    key_algorithm=body[3],
                    key_id=body[4:12].hex().upper(),
                    last=body[12] == 1,
                )
            )
            current = read_header(self._source)
        self._pending = current
        return OnePassSignatureList(signatures=tuple(signatures), offset=header.offset)

    def _read_literal_data(self, header: PacketHeader) -> LiteralData:
        stream = BodyReader(self._source, header)
        data_format, name_length = stream.read_exact(2)
        filename = stream.read_exact(name_length).decode("utf-8", errors="replace")
        modified = decode_timestamp(stream.read_exact(4))
        self._open_body = stream
        return LiteralData(
            format=data_format,
            filename=filename,
            modified=modified,
            stream=stream,
            offset=header.offset,
        )

    def _read_signatures(self, header: PacketHeader) -> SignatureList:
        packets = []
        current: PacketHeader | None = header
        while current is not None and current.tag == PacketTag.SIGNATURE:
            packets.append(encode_packet(PacketTag.SIGNATURE, self._read_control_body(current)))
            current = read_header(self._source)
        self._pending = current
        return SignatureList(packets=tuple(packets), offset=header.offset)
