"""
OpenPGP packet framing.

Header encoding and decoding (RFC 4880 section 4.2), pull-based readers over
packet bodies of any length type, and the push-based layer writers used to
stream nested data packets with partial body lengths.
"""

from dataclasses import dataclass
from types import TracebackType
from typing import BinaryIO, Iterator, Protocol, Self

from pgpfile.exceptions import MalformedMessageError
from pgpfile.models.packets import PacketTag

_NEW_FORMAT = 0x40
_PACKET_BIT = 0x80
_PARTIAL_MIN = 224
_FIVE_OCTET = 255
_TWO_OCTET_MIN = 192
_TWO_OCTET_MAX = 8383


class ByteSink(Protocol):
    def write(self, data: bytes, /) -> object: ...


@dataclass(frozen=True, kw_only=True)
class PacketHeader:
    """
    A decoded packet header.

    Attributes:
        tag: Packet tag.
        length: Body length, or the first chunk length if partial, None if indeterminate.
        partial: Whether the body uses partial body lengths.
        new_format: Whether the header was new format.
        offset: Position of the header's first octet in its layer.
    """

    tag: int
    length: int | None
    partial: bool
    new_format: bool
    offset: int


class StreamReader:
    """Pull-based byte source that tracks how much has been consumed."""

    def __init__(self) -> None:
        self.position = 0

    def _read(self, size: int) -> bytes:
        raise NotImplementedError

    def read(self, size: int = -1) -> bytes:
        """
        Read up to ``size`` bytes, or everything that remains if negative.

        Returns b"" only at end of stream.
        """
        if size < 0:
            parts = []
            while chunk := self._read(65536):
                parts.append(chunk)
            data = b"".join(parts)
        elif size == 0:
            return b""
        else:
            data = self._read(size)
        self.position += len(data)
        return data

    def read_exact(self, size: int) -> bytes:
        """Read exactly ``size`` bytes or raise MalformedMessageError."""
        parts = []
        remaining = size
        while remaining > 0:
            chunk = self.read(remaining)
            if not chunk:
                msg = f"Unexpected end of data: wanted {size} bytes, got {size - remaining}"
                raise MalformedMessageError(msg, offset=self.position)
            parts.append(chunk)
            remaining -= len(chunk)
        return b"".join(parts)

    def iter_chunks(self, chunk_size: int) -> Iterator[bytes]:
        while chunk := self.read(chunk_size):
            yield chunk

    def drain(self) -> int:
        """Consume the rest of the stream, returning the number of bytes skipped."""
        skipped = 0
        for chunk in self.iter_chunks(65536):
            skipped += len(chunk)
        return skipped


class FileSource(StreamReader):
    """StreamReader over a binary file object."""

    def __init__(self, stream: BinaryIO) -> None:
        super().__init__()
        self._stream = stream

    def _read(self, size: int) -> bytes:
        return self._stream.read(size) or b""


class PrefixedReader(StreamReader):
    """Replays already consumed bytes before continuing with the source."""

    def __init__(self, prefix: bytes, source: StreamReader) -> None:
        super().__init__()
        self._prefix = prefix
        self._source = source

    def _read(self, size: int) -> bytes:
        if self._prefix:
            data, self._prefix = self._prefix[:size], self._prefix[size:]
            return data
        return self._source.read(size)


class BodyReader(StreamReader):
    """Reads one packet body, following partial body length chunks."""

    def __init__(self, source: StreamReader, header: PacketHeader) -> None:
        super().__init__()
        self._source = source
        self._header = header
        self._remaining = header.length
        self._more_chunks = header.partial

    @property
    def tag(self) -> int:
        return self._header.tag

    def _read(self, size: int) -> bytes:
        if self._remaining is None:
            return self._source.read(size)
        while self._remaining == 0 and self._more_chunks:
            self._remaining, self._more_chunks = _read_new_length(self._source)
        if self._remaining == 0:
            return b""
        data = self._source.read(min(size, self._remaining))
        if not data:
            msg = f"Truncated body of packet with tag {self._header.tag}"
            raise MalformedMessageError(msg, offset=self._source.position)
        self._remaining -= len(data)
        return data


def read_header(source: StreamReader) -> PacketHeader | None:
    """
    Read the next packet header.

    Returns:
        The header, or None if the stream ended cleanly before it.

    Raises:
        MalformedMessageError: If the octets do not form a valid header.
    """
    offset = source.position
    first = source.read(1)
    if not first:
        return None
    ctb = first[0]
    if not ctb & _PACKET_BIT:
        msg = f"Invalid packet header octet 0x{ctb:02x}"
        raise MalformedMessageError(msg, offset=offset)

    if ctb & _NEW_FORMAT:
        tag = ctb & 0x3F
        length, partial = _read_new_length(source)
        if partial and not _allows_partial(tag):
            msg = f"Partial body length not allowed for packet tag {tag}"
            raise MalformedMessageError(msg, offset=offset)
        return PacketHeader(tag=tag, length=length, partial=partial, new_format=True, offset=offset)

    tag = (ctb >> 2) & 0x0F
    match ctb & 0x03:
        case 0:
            length = source.read_exact(1)[0]
        case 1:
            length = int.from_bytes(source.read_exact(2), "big")
        case 2:
            length = int.from_bytes(source.read_exact(4), "big")
        case _:
            length = None
    return PacketHeader(tag=tag, length=length, partial=False, new_format=False, offset=offset)


def _read_new_length(source: StreamReader) -> tuple[int, bool]:
    first = source.read_exact(1)[0]
    if first < _TWO_OCTET_MIN:
        return first, False
    if first < _PARTIAL_MIN:
        second = source.read_exact(1)[0]
        return ((first - _TWO_OCTET_MIN) << 8) + second + _TWO_OCTET_MIN, False
    if first == _FIVE_OCTET:
        return int.from_bytes(source.read_exact(4), "big"), False
    return 1 << (first & 0x1F), True


def _allows_partial(tag: int) -> bool:
    try:
        return PacketTag(tag).allows_partial_length
    except ValueError:
        return False


def encode_length(length: int) -> bytes:
    """Encode a definite new-format body length."""
    if length < _TWO_OCTET_MIN:
        return bytes([length])
    if length <= _TWO_OCTET_MAX:
        length -= _TWO_OCTET_MIN
        return bytes([(length >> 8) + _TWO_OCTET_MIN, length & 0xFF])
    return bytes([_FIVE_OCTET]) + length.to_bytes(4, "big")


def encode_packet(tag: int, body: bytes) -> bytes:
    """Frame a complete body with a new-format header."""
    return bytes([_PACKET_BIT | _NEW_FORMAT | tag]) + encode_length(len(body)) + body


class LayerWriter:
    """
    Push-based stream transform.

    Used as a context manager: a clean exit finishes the layer (flushes and
    writes any trailer), an exception only releases it. Closing a layer never
    closes the sink beneath it.
    """

    def __init__(self, sink: ByteSink) -> None:
        self._sink = sink
        self._closed = False

    def write(self, data: bytes) -> int:
        if self._closed:
            msg = f"{type(self).__name__} is closed"
            raise ValueError(msg)
        if data:
            self._write(data)
        return len(data)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._finish()

    def abort(self) -> None:
        self._closed = True

    def _write(self, data: bytes) -> None:
        raise NotImplementedError

    def _finish(self) -> None:
        raise NotImplementedError

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.close()
        else:
            self.abort()


class PartialBodyWriter(LayerWriter):
    """
    Writes one data packet whose body length is not known in advance.

    Full chunks go out with partial body lengths; the remainder is written with
    a definite length on close. A body shorter than one chunk becomes an
    ordinary definite-length packet.
    """

    def __init__(self, sink: ByteSink, tag: PacketTag, chunk_size: int) -> None:
        super().__init__(sink)
        if chunk_size < 512 or chunk_size & (chunk_size - 1):
            msg = "chunk_size must be a power of two of at least 512"
            raise ValueError(msg)
        self._tag = tag
        self._chunk_size = chunk_size
        self._partial_octet = bytes([_PARTIAL_MIN | (chunk_size.bit_length() - 1)])
        self._buffer = bytearray()
        self._header_written = False

    def _write(self, data: bytes) -> None:
        self._buffer += data
        while len(self._buffer) > self._chunk_size:
            self._write_header()
            self._sink.write(self._partial_octet + bytes(self._buffer[: self._chunk_size]))
            del self._buffer[: self._chunk_size]

    def _finish(self) -> None:
        self._write_header()
        self._sink.write(encode_length(len(self._buffer)) + bytes(self._buffer))
        self._buffer.clear()

    def _write_header(self) -> None:
        if self._header_written:
            return
        self._sink.write(bytes([_PACKET_BIT | _NEW_FORMAT | self._tag]))
        self._header_written = True
