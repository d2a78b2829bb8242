"""
OpenPGP CFB encryption for symmetrically encrypted data packets.

Tag 18 (integrity protected) runs plain CFB with a zero IV over the random
prefix, the data and a trailing Modification Detection Code. Legacy tag 9
resynchronizes the IV after the prefix and has no MDC.
"""

import hashlib
import os

import structlog
from cryptography.hazmat.primitives.ciphers import Cipher, CipherContext, modes

from pgpfile.exceptions import IntegrityError, MalformedMessageError, UnsupportedAlgorithmError
from pgpfile.models.crypto import SessionKey
from pgpfile.models.packets import PacketTag
from pgpfile.packet.framing import ByteSink, LayerWriter, PartialBodyWriter, StreamReader

logger = structlog.get_logger(__name__)

SEIPD_VERSION = 1
MDC_HEADER = b"\xd3\x14"
MDC_PACKET_SIZE = 22  # 2-byte header + 20-byte SHA-1
_READ_CHUNK = 65536


def _cfb(session_key: SessionKey, iv: bytes, *, encrypt: bool) -> CipherContext:
    cipher = Cipher(session_key.algorithm.cipher(session_key.key_data), modes.CFB(iv))
    return cipher.encryptor() if encrypt else cipher.decryptor()


def _check_block_size(session_key: SessionKey) -> int:
    block_size = session_key.block_size
    if block_size == 0:
        msg = f"Unknown block size for {session_key.algorithm.name}"
        raise UnsupportedAlgorithmError(msg, algorithm=int(session_key.algorithm))
    return block_size


class EncryptedDataWriter(LayerWriter):
    """Encrypts everything written to it into one encrypted data packet."""

    def __init__(
        self,
        sink: ByteSink,
        session_key: SessionKey,
        *,
        integrity_protected: bool = True,
        chunk_size: int = 65536,
    ) -> None:
        super().__init__(sink)
        block_size = _check_block_size(session_key)
        self._integrity_protected = integrity_protected
        tag = (
            PacketTag.SYM_ENCRYPTED_INTEGRITY_PROTECTED_DATA
            if integrity_protected
            else PacketTag.SYMMETRICALLY_ENCRYPTED_DATA
        )
        self._packet = PartialBodyWriter(sink, tag, chunk_size)

        random_block = os.urandom(block_size)
        prefix = random_block + random_block[-2:]
        zero_iv = bytes(block_size)
        self._encryptor = _cfb(session_key, zero_iv, encrypt=True)
        encrypted_prefix = self._encryptor.update(prefix)
        if integrity_protected:
            self._mdc = hashlib.sha1(prefix)
            self._packet.write(bytes([SEIPD_VERSION]) + encrypted_prefix)
        else:
            self._mdc = None
            self._encryptor = _cfb(session_key, encrypted_prefix[2:], encrypt=True)
            self._packet.write(encrypted_prefix)

    def _write(self, data: bytes) -> None:
        if self._mdc is not None:
            self._mdc.update(data)
        self._packet.write(self._encryptor.update(data))

    def _finish(self) -> None:
        if self._mdc is not None:
            self._mdc.update(MDC_HEADER)
            self._packet.write(self._encryptor.update(MDC_HEADER + self._mdc.digest()))
        self._packet.write(self._encryptor.finalize())
        self._packet.close()

    def abort(self) -> None:
        super().abort()
        self._packet.abort()


class DecryptingReader(StreamReader):
    """
    Decrypts the body of an encrypted data packet on demand.

    For integrity protected packets the final 22 plaintext bytes are held back
    and checked as the MDC once the source is exhausted, so callers must read
    to the end (``drain``) before trusting the output.
    """

    def __init__(self, source: StreamReader, session_key: SessionKey, *, integrity_protected: bool) -> None:
        super().__init__()
        self._source = source
        self._session_key = session_key
        self._integrity_protected = integrity_protected
        self._block_size = _check_block_size(session_key)
        self._decryptor: CipherContext | None = None
        self._mdc = None
        self._held = bytearray()
        self._ready = bytearray()
        self._eof = False
        self.verified = False

    def _read(self, size: int) -> bytes:
        if self._decryptor is None:
            self._start()
        while len(self._ready) < size and not self._eof:
            chunk = self._source.read(max(size, _READ_CHUNK))
            if not chunk:
                self._eof = True
                self._finish()
                break
            self._accept(self._decryptor.update(chunk))
        data = bytes(self._ready[:size])
        del self._ready[:size]
        return data

    def _start(self) -> None:
        block_size = self._block_size
        if self._integrity_protected:
            version = self._source.read_exact(1)[0]
            if version != SEIPD_VERSION:
                msg = f"Unsupported encrypted data packet version {version}"
                raise MalformedMessageError(msg, offset=self._source.position)
        encrypted_prefix = self._source.read_exact(block_size + 2)
        decryptor = _cfb(self._session_key, bytes(block_size), encrypt=False)
        prefix = decryptor.update(encrypted_prefix)
        if prefix[block_size - 2 : block_size] != prefix[block_size:]:
            msg = "Session key quick check failed, wrong key or corrupted data"
            raise IntegrityError(msg)
        if self._integrity_protected:
            self._mdc = hashlib.sha1(prefix)
            self._decryptor = decryptor
        else:
            self._decryptor = _cfb(self._session_key, encrypted_prefix[2:], encrypt=False)

    def _accept(self, plaintext: bytes) -> None:
        if self._mdc is None:
            self._ready += plaintext
            return
        self._held += plaintext
        release = len(self._held) - MDC_PACKET_SIZE
        if release > 0:
            out = bytes(self._held[:release])
            del self._held[:release]
            self._mdc.update(out)
            self._ready += out

    def _finish(self) -> None:
        self._accept(self._decryptor.finalize())
        if self._mdc is None:
            logger.debug("Encrypted data has no integrity protection")
            return
        if len(self._held) != MDC_PACKET_SIZE or self._held[:2] != MDC_HEADER:
            msg = "Modification detection code packet missing"
            raise IntegrityError(msg)
        self._mdc.update(MDC_HEADER)
        if self._mdc.digest() != bytes(self._held[2:]):
            msg = "MDC verification failed, data may be corrupted or tampered"
            raise IntegrityError(msg)
        self.verified = True
        logger.debug("Modification detection code verified")
