"""
Streaming ASCII armor (RFC 4880 section 6) for messages.

Key blobs are armored by PGPy; messages are armored here because they are
produced and consumed incrementally.
"""

import base64
import binascii
from typing import BinaryIO

import structlog

from pgpfile.exceptions import MalformedMessageError
from pgpfile.packet.framing import ByteSink, FileSource, LayerWriter, PrefixedReader, StreamReader

logger = structlog.get_logger(__name__)

BEGIN_MESSAGE = b"-----BEGIN PGP MESSAGE-----"
END_MESSAGE = b"-----END PGP MESSAGE-----"

_LINE_BYTES = 48  # 64 base64 characters
_MAX_LINE_LENGTH = 65536
_CRC24_INIT = 0xB704CE
_CRC24_POLY = 0x1864CFB


def _crc24_table() -> tuple[int, ...]:
    table = []
    for i in range(256):
        crc = i << 16
        for _ in range(8):
            crc <<= 1
            if crc & 0x1000000:
                crc ^= _CRC24_POLY
        table.append(crc & 0xFFFFFF)
    return tuple(table)


_CRC24_TABLE = _crc24_table()


def crc24(data: bytes, crc: int = _CRC24_INIT) -> int:
    """Update an OpenPGP CRC-24 with ``data``."""
    for byte in data:
        crc = ((crc << 8) & 0xFFFFFF) ^ _CRC24_TABLE[((crc >> 16) ^ byte) & 0xFF]
    return crc


class ArmoredWriter(LayerWriter):
    """Encodes everything written to it as an armored PGP MESSAGE block."""

    def __init__(self, sink: ByteSink, headers: tuple[tuple[str, str], ...] = ()) -> None:
        super().__init__(sink)
        self._crc = _CRC24_INIT
        self._pending = bytearray()
        lines = [BEGIN_MESSAGE]
        lines.extend(f"{name}: {value}".encode() for name, value in headers)
        lines.append(b"")
        self._sink.write(b"\n".join(lines) + b"\n")

    def _write(self, data: bytes) -> None:
        self._crc = crc24(data, self._crc)
        self._pending += data
        full = len(self._pending) - len(self._pending) % _LINE_BYTES
        if not full:
            return
        encoded = base64.b64encode(bytes(self._pending[:full]))
        del self._pending[:full]
        self._sink.write(b"".join(encoded[i : i + 64] + b"\n" for i in range(0, len(encoded), 64)))

    def _finish(self) -> None:
        tail = b""
        if self._pending:
            tail = base64.b64encode(bytes(self._pending)) + b"\n"
            self._pending.clear()
        checksum = b"=" + base64.b64encode(self._crc.to_bytes(3, "big")) + b"\n"
        self._sink.write(tail + checksum + END_MESSAGE + b"\n")


class ArmorReader(StreamReader):
    """Decodes the first armored PGP MESSAGE block of a text source."""

    def __init__(self, source: StreamReader) -> None:
        super().__init__()
        self._source = source
        self._line_buffer = bytearray()
        self._decoded = bytearray()
        self._carry = b""
        self._crc = _CRC24_INIT
        self._started = False
        self._done = False
        self._headers: dict[str, str] = {}

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    def _read(self, size: int) -> bytes:
        if not self._started:
            self._start()
        while len(self._decoded) < size and not self._done:
            self._consume_body_line()
        data = bytes(self._decoded[:size])
        del self._decoded[:size]
        return data

    def _start(self) -> None:
        self._started = True
        while True:
            line = self._readline()
            if line is None:
                msg = "Input is neither a binary OpenPGP message nor contains an armored message"
                raise MalformedMessageError(msg, offset=self._source.position)
            if line == BEGIN_MESSAGE:
                break
            if line.startswith(b"-----BEGIN PGP "):
                msg = f"Expected an armored PGP MESSAGE, found {line.decode(errors='replace')}"
                raise MalformedMessageError(msg, offset=self._source.position)
        while True:
            line = self._readline()
            if line is None:
                msg = "Armored message ends inside its header"
                raise MalformedMessageError(msg, offset=self._source.position)
            if not line:
                return
            name, sep, value = line.partition(b": ")
            if not sep:
                # no blank separator line, the body started already
                self._decode_body_text(line)
                return
            self._headers[name.decode(errors="replace")] = value.decode(errors="replace")

    def _consume_body_line(self) -> None:
        line = self._readline()
        if line is None:
            msg = "Armored message is missing its END line"
            raise MalformedMessageError(msg, offset=self._source.position)
        if line.startswith(b"-----"):
            self._finish_body(line, checksum=None)
            return
        if line.startswith(b"=") and len(line) == 5:
            end = self._readline()
            if end is None or not end.startswith(b"-----"):
                msg = "Armor checksum must be followed by the END line"
                raise MalformedMessageError(msg, offset=self._source.position)
            self._finish_body(end, checksum=line[1:])
            return
        self._decode_body_text(line)

    def _decode_body_text(self, text: bytes) -> None:
        text = self._carry + text
        usable = len(text) - len(text) % 4
        self._carry = text[usable:]
        if not usable:
            return
        try:
            data = base64.b64decode(text[:usable], validate=True)
        except binascii.Error as e:
            msg = f"Invalid base64 in armored message: {e}"
            raise MalformedMessageError(msg, offset=self._source.position) from e
        self._crc = crc24(data, self._crc)
        self._decoded += data

    def _finish_body(self, end_line: bytes, checksum: bytes | None) -> None:
        if end_line != END_MESSAGE:
            msg = f"Unexpected armor trailer {end_line.decode(errors='replace')}"
            raise MalformedMessageError(msg, offset=self._source.position)
        if self._carry:
            msg = "Armored message body has a truncated base64 group"
            raise MalformedMessageError(msg, offset=self._source.position)
        if checksum is not None:
            try:
                expected = int.from_bytes(base64.b64decode(checksum, validate=True), "big")
            except binascii.Error as e:
                msg = f"Invalid armor checksum: {e}"
                raise MalformedMessageError(msg, offset=self._source.position) from e
            if expected != self._crc:
                msg = f"Armor checksum mismatch: expected {expected:06x}, computed {self._crc:06x}"
                raise MalformedMessageError(msg, offset=self._source.position)
        else:
            logger.debug("Armored message has no checksum")
        self._done = True

    def _readline(self) -> bytes | None:
        while True:
            newline = self._line_buffer.find(b"\n")
            if newline >= 0:
                line = bytes(self._line_buffer[:newline])
                del self._line_buffer[: newline + 1]
                return line.strip()
            if len(self._line_buffer) > _MAX_LINE_LENGTH:
                msg = "Armor line too long"
                raise MalformedMessageError(msg, offset=self._source.position)
            chunk = self._source.read(4096)
            if not chunk:
                if not self._line_buffer:
                    return None
                line = bytes(self._line_buffer)
                self._line_buffer.clear()
                return line.strip()
            self._line_buffer += chunk


def open_message_stream(stream: BinaryIO) -> StreamReader:
    """
    Wrap an input stream as a binary packet source, removing armor if present.

    Raises:
        MalformedMessageError: If the input is empty.
    """
    source = FileSource(stream)
    first = source.read(1)
    if not first:
        msg = "Message is empty"
        raise MalformedMessageError(msg, offset=0)
    replay = PrefixedReader(first, source)
    if first[0] & 0x80:
        logger.debug("Reading binary message")
        return replay
    logger.debug("Reading armored message")
    return ArmorReader(replay)
