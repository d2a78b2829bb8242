"""
Literal Data packets (tag 11).
"""

from datetime import datetime, timezone

from pgpfile.models.packets import LiteralFormat, PacketTag
from pgpfile.packet.framing import ByteSink, LayerWriter, PartialBodyWriter

_MAX_FILENAME_LENGTH = 255


def encode_literal_header(
    filename: str = "",
    modified: datetime | None = None,
    data_format: LiteralFormat = LiteralFormat.BINARY,
) -> bytes:
    """Build the fields preceding the payload of a literal data packet."""
    name = filename.encode("utf-8")[:_MAX_FILENAME_LENGTH]
    timestamp = int(modified.timestamp()) if modified is not None else 0
    return bytes([data_format, len(name)]) + name + timestamp.to_bytes(4, "big")


def decode_timestamp(raw: bytes) -> datetime | None:
    timestamp = int.from_bytes(raw, "big")
    if not timestamp:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


class LiteralDataWriter(LayerWriter):
    """Frames everything written to it as the payload of one literal data packet."""

    def __init__(
        self,
        sink: ByteSink,
        *,
        filename: str = "",
        modified: datetime | None = None,
        data_format: LiteralFormat = LiteralFormat.BINARY,
        chunk_size: int = 65536,
    ) -> None:
        super().__init__(sink)
        self._packet = PartialBodyWriter(sink, PacketTag.LITERAL_DATA, chunk_size)
        self._packet.write(encode_literal_header(filename, modified, data_format))

    def _write(self, data: bytes) -> None:
        self._packet.write(data)

    def _finish(self) -> None:
        self._packet.close()

    def abort(self) -> None:
        super().abort()
        self._packet.abort()
