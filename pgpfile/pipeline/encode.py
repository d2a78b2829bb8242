"""
Encode pipeline: literal data, compression, optional one-pass signature,
public-key session encryption and optional armor, streamed in one pass.
"""

from contextlib import ExitStack
from datetime import datetime
from typing import BinaryIO

import pgpy
import structlog

from pgpfile.config import PGPFileConfig
from pgpfile.crypto.cfb import EncryptedDataWriter
from pgpfile.crypto.key_selector import KeySelector
from pgpfile.crypto.session_key import encrypt_session_key, generate_session_key
from pgpfile.crypto.signature import SignatureGenerator
from pgpfile.packet.armor import ArmoredWriter
from pgpfile.packet.compression import CompressedDataWriter
from pgpfile.packet.framing import ByteSink
from pgpfile.packet.literal import LiteralDataWriter

logger = structlog.get_logger(__name__)


class EncodePipeline:
    """
    Produces OpenPGP messages for a single recipient.

    The output layering is always
    ``[armor] session-key + encrypted-data( compressed( [one-pass] literal [signature] ) )``.

    Args:
        config: Algorithms and streaming parameters. Uses defaults if not provided.
        key_selector: Supplies the signer's user id policy.
    """

    def __init__(self, config: PGPFileConfig | None = None, *, key_selector: KeySelector | None = None) -> None:
        self._config = config or PGPFileConfig()
        self._key_selector = key_selector or KeySelector()

    def encrypt(
        self,
        source: BinaryIO,
        sink: BinaryIO,
        recipient: pgpy.PGPKey,
        *,
        armor: bool = False,
        integrity_check: bool = True,
        filename: str = "",
        modified: datetime | None = None,
    ) -> int:
        """
        Encrypt ``source`` for ``recipient`` into ``sink``.

        Returns:
            Number of plaintext bytes processed.
        """
        return self._encode(
            source,
            sink,
            recipient,
            signer=None,
            armor=armor,
            integrity_check=integrity_check,
            filename=filename,
            modified=modified,
        )

    def encrypt_and_sign(
        self,
        source: BinaryIO,
        sink: BinaryIO,
        recipient: pgpy.PGPKey,
        signing_key: pgpy.PGPKey,
        *,
        armor: bool = False,
        integrity_check: bool = True,
        filename: str = "",
        modified: datetime | None = None,
    ) -> int:
        """
        Sign ``source`` with the unlocked ``signing_key`` and encrypt it for ``recipient``.

        The signature is computed while the data streams and written after the
        literal data, inside the compressed layer.

        Returns:
            Number of plaintext bytes processed.
        """
        signer = SignatureGenerator(
            signing_key,
            self._config.hash_algorithm,
            self._key_selector.signer_user_id(signing_key),
        )
        return self._encode(
            source,
            sink,
            recipient,
            signer=signer,
            armor=armor,
            integrity_check=integrity_check,
            filename=filename,
            modified=modified,
        )

    def _encode(
        self,
        source: BinaryIO,
        sink: BinaryIO,
        recipient: pgpy.PGPKey,
        *,
        signer: SignatureGenerator | None,
        armor: bool,
        integrity_check: bool,
        filename: str,
        modified: datetime | None,
    ) -> int:
        config = self._config
        session_key = generate_session_key(config.cipher)
        total = 0

        with ExitStack() as layers:
            out: ByteSink = sink
            if armor:
                out = layers.enter_context(ArmoredWriter(out, config.armor_headers))
            out.write(encrypt_session_key(session_key, recipient))
            out = layers.enter_context(
                EncryptedDataWriter(
                    out,
                    session_key,
                    integrity_protected=integrity_check,
                    chunk_size=config.chunk_size,
                )
            )
            out = layers.enter_context(
                CompressedDataWriter(
                    out,
                    config.compression,
                    level=config.compression_level,
                    chunk_size=config.chunk_size,
                )
            )
            if signer is not None:
                out.write(signer.one_pass_packet())

            with LiteralDataWriter(
                out,
                filename=filename,
                modified=modified,
                chunk_size=config.chunk_size,
            ) as literal:
                while chunk := source.read(config.chunk_size):
                    if signer is not None:
                        signer.update(chunk)
                    literal.write(chunk)
                    total += len(chunk)

            if signer is not None:
                out.write(signer.generate())

        logger.debug(
            "Message encoded",
            recipient=recipient.fingerprint.keyid,
            signer=signer.key_id if signer is not None else None,
            cipher=config.cipher.name,
            compression=config.compression.name,
            integrity_check=integrity_check,
            armor=armor,
            size=total,
        )
        return total
