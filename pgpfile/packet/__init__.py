"""
OpenPGP packet layer.

This module provides:
- Packet header framing and partial body lengths
- Streaming message armor
- Compressed and literal data layers
- A lazy packet reader producing typed objects
"""

from pgpfile.packet.armor import ArmoredWriter, ArmorReader, crc24, open_message_stream
from pgpfile.packet.compression import CompressedDataWriter, DecompressingReader
from pgpfile.packet.framing import (
    BodyReader,
    FileSource,
    LayerWriter,
    PacketHeader,
    PartialBodyWriter,
    StreamReader,
    encode_length,
    encode_packet,
    read_header,
)
from pgpfile.packet.literal import LiteralDataWriter
from pgpfile.packet.reader import PacketReader

__all__ = [
    "ArmoredWriter",
    "ArmorReader",
    "crc24",
    "open_message_stream",
    "CompressedDataWriter",
    "DecompressingReader",
    "BodyReader",
    "FileSource",
    "LayerWriter",
    "PacketHeader",
    "PartialBodyWriter",
    "StreamReader",
    "encode_length",
    "encode_packet",
    "read_header",
    "LiteralDataWriter",
    "PacketReader",
]
