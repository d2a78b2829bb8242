"""
Streaming compression layer for Compressed Data packets (tag 8).
"""

import bz2
import zlib

import structlog

from pgpfile.exceptions import MalformedMessageError, UnsupportedAlgorithmError
from pgpfile.models.crypto import CompressionAlgorithm
from pgpfile.models.packets import PacketTag
from pgpfile.packet.framing import ByteSink, LayerWriter, PartialBodyWriter, StreamReader

logger = structlog.get_logger(__name__)

_RAW_DEFLATE_WBITS = -15
_ZLIB_WBITS = 15
_INPUT_CHUNK = 65536


def _wbits(algorithm: CompressionAlgorithm) -> int:
    return _RAW_DEFLATE_WBITS if algorithm == CompressionAlgorithm.ZIP else _ZLIB_WBITS


class CompressedDataWriter(LayerWriter):
    """Compresses everything written to it into one Compressed Data packet."""

    def __init__(
        self,
        sink: ByteSink,
        algorithm: CompressionAlgorithm,
        *,
        level: int = -1,
        chunk_size: int = 65536,
    ) -> None:
        super().__init__(sink)
        self._packet = PartialBodyWriter(sink, PacketTag.COMPRESSED_DATA, chunk_size)
        self._packet.write(bytes([algorithm]))
        match algorithm:
            case CompressionAlgorithm.ZIP | CompressionAlgorithm.ZLIB:
                self._compressor = zlib.compressobj(level, zlib.DEFLATED, _wbits(algorithm))
            case CompressionAlgorithm.BZIP2:
                self._compressor = bz2.BZ2Compressor(9 if level < 1 else level)
            case CompressionAlgorithm.UNCOMPRESSED:
                self._compressor = None
            case _:
                msg = f"Unsupported compression algorithm {algorithm}"
                raise UnsupportedAlgorithmError(msg, algorithm=int(algorithm))

    def _write(self, data: bytes) -> None:
        if self._compressor is None:
            self._packet.write(data)
            return
        self._packet.write(self._compressor.compress(data))

    def _finish(self) -> None:
        if self._compressor is not None:
            self._packet.write(self._compressor.flush())
        self._packet.close()

    def abort(self) -> None:
        super().abort()
        self._packet.abort()


class DecompressingReader(StreamReader):
    """Inflates the body of a Compressed Data packet on demand."""

    def __init__(self, source: StreamReader, algorithm: int) -> None:
        super().__init__()
        try:
            algorithm = CompressionAlgorithm(algorithm)
        except ValueError:
            msg = f"Unknown compression algorithm {algorithm}"
            raise UnsupportedAlgorithmError(msg, algorithm=algorithm) from None
        self._source = source
        self._algorithm = algorithm
        self._eof = False
        match algorithm:
            case CompressionAlgorithm.ZIP | CompressionAlgorithm.ZLIB:
                self._decompressor = zlib.decompressobj(_wbits(algorithm))
            case CompressionAlgorithm.BZIP2:
                self._decompressor = bz2.BZ2Decompressor()
            case CompressionAlgorithm.UNCOMPRESSED:
                self._decompressor = None
            case _:
                msg = f"Unsupported compression algorithm {algorithm}"
                raise UnsupportedAlgorithmError(msg, algorithm=int(algorithm))

    def _read(self, size: int) -> bytes:
        if self._decompressor is None:
            return self._source.read(size)
        while not self._eof:
            if self._algorithm == CompressionAlgorithm.BZIP2:
                out = self._bz2_step(size)
            else:
                out = self._zlib_step(size)
            if out:
                return out
        return b""

    def _zlib_step(self, size: int) -> bytes:
        decompressor = self._decompressor
        if decompressor.eof:
            self._eof = True
            return b""
        data = decompressor.unconsumed_tail or self._source.read(_INPUT_CHUNK)
        try:
            if not data:
                self._eof = True
                logger.debug("Deflate stream not terminated")
                return decompressor.flush()
            return decompressor.decompress(data, size)
        except zlib.error as e:
            msg = f"Corrupt compressed data: {e}"
            raise MalformedMessageError(msg, offset=self._source.position) from e

    def _bz2_step(self, size: int) -> bytes:
        decompressor = self._decompressor
        if decompressor.eof:
            self._eof = True
            return b""
        data = b""
        if decompressor.needs_input:
            data = self._source.read(_INPUT_CHUNK)
            if not data:
                msg = "Compressed data ended before the end of the bzip2 stream"
                raise MalformedMessageError(msg, offset=self._source.position)
        try:
            return decompressor.decompress(data, size)
        except OSError as e:
            msg = f"Corrupt compressed data: {e}"
            raise MalformedMessageError(msg, offset=self._source.position) from e
