"""
Decode pipeline: a strictly sequential state machine over an untrusted
message that locates the recipient's session key, decrypts, decompresses and
recovers the literal payload.
"""

from typing import BinaryIO

import structlog

from pgpfile.config import PGPFileConfig
from pgpfile.crypto.cfb import DecryptingReader
from pgpfile.crypto.key_selector import KeySelector
from pgpfile.crypto.keyring import PublicKeyRingBundle, SecretKeyRingBundle
from pgpfile.crypto.session_key import decrypt_session_key
from pgpfile.crypto.signature import SignatureVerifier
from pgpfile.exceptions import (
    MalformedMessageError,
    SecretKeyNotFoundError,
    SignatureVerificationError,
    UnexpectedPacketError,
)
from pgpfile.models.crypto import DecryptionResult, SessionKey
from pgpfile.models.packets import (
    CompressedData,
    EncryptedDataList,
    LiteralData,
    MarkerPacket,
    OnePassSignatureList,
    PacketTag,
    PGPObject,
    SignatureList,
    UnknownPacket,
)
from pgpfile.packet.armor import open_message_stream
from pgpfile.packet.compression import DecompressingReader
from pgpfile.packet.reader import PacketReader

logger = structlog.get_logger(__name__)


def _tag_of(obj: PGPObject | None) -> int:
    match obj:
        case UnknownPacket(tag=tag):
            return tag
        case MarkerPacket():
            return PacketTag.MARKER
        case CompressedData():
            return PacketTag.COMPRESSED_DATA
        case OnePassSignatureList():
            return PacketTag.ONE_PASS_SIGNATURE
        case SignatureList():
            return PacketTag.SIGNATURE
        case EncryptedDataList(integrity_protected=True):
            return PacketTag.SYM_ENCRYPTED_INTEGRITY_PROTECTED_DATA
        case EncryptedDataList():
            return PacketTag.SYMMETRICALLY_ENCRYPTED_DATA
        case _:
            return 0


class DecodePipeline:
    """
    Decrypts OpenPGP messages produced for one of the caller's secret keys.

    One-pass signatures are skipped unless ``verify_keys`` is passed to
    ``decrypt``, in which case every embedded signature must verify.

    Args:
        config: Streaming parameters. Uses defaults if not provided.
        key_selector: Unlocks the recipient secret key.
    """

    def __init__(self, config: PGPFileConfig | None = None, *, key_selector: KeySelector | None = None) -> None:
        self._config = config or PGPFileConfig()
        self._key_selector = key_selector or KeySelector()

    def decrypt(
        self,
        source: BinaryIO,
        sink: BinaryIO,
        secret_keys: SecretKeyRingBundle,
        passphrase: str,
        *,
        verify_keys: PublicKeyRingBundle | None = None,
    ) -> DecryptionResult:
        """
        Decrypt the message read from ``source`` and write its payload to ``sink``.

        Raises:
            MalformedMessageError: If the message layering is invalid.
            SecretKeyNotFoundError: If no recipient matches a secret key.
            WrongPassphraseError: If the matching secret key cannot be unlocked.
            IntegrityError: If the quick check or modification detection code fails.
            SignatureVerificationError: If verification was requested and fails.
        """
        reader = PacketReader(open_message_stream(source))
        encrypted = self._find_encrypted_data(reader)
        session_key = self._recover_session_key(encrypted, secret_keys, passphrase)

        plaintext = DecryptingReader(
            encrypted.payload,
            session_key,
            integrity_protected=encrypted.integrity_protected,
        )
        inner = PacketReader(plaintext)
        obj = inner.next_object()
        if isinstance(obj, CompressedData):
            logger.debug("Decompressing message", algorithm=obj.algorithm)
            inner = PacketReader(DecompressingReader(obj.stream, obj.algorithm))
            obj = inner.next_object()

        one_pass: OnePassSignatureList | None = None
        if isinstance(obj, OnePassSignatureList):
            one_pass = obj
            obj = inner.next_object()
        if not isinstance(obj, LiteralData):
            msg = "Expected literal data in the decrypted message"
            raise UnexpectedPacketError(msg, tag=_tag_of(obj), offset=inner.position)

        verifiers = self._signature_verifiers(one_pass, verify_keys)
        written = 0
        for chunk in obj.stream.iter_chunks(self._config.chunk_size):
            sink.write(chunk)
            for verifier in verifiers:
                verifier.update(chunk)
            written += len(chunk)

        if verifiers:
            self._verify_signatures(inner, verifiers)
        elif one_pass is not None:
            logger.warning(
                "Signature not verified",
                signer_key_ids=[ops.key_id for ops in one_pass.signatures],
            )

        # reaching the end of the encrypted data checks the MDC
        plaintext.drain()

        result = DecryptionResult(
            filename=obj.filename,
            modified=obj.modified,
            format=chr(obj.format),
            bytes_written=written,
            signed=one_pass is not None,
            signer_key_ids=tuple(ops.key_id for ops in one_pass.signatures) if one_pass else (),
            signature_verified=bool(verifiers),
        )
        logger.debug(
            "Message decoded",
            size=written,
            signed=result.signed,
            integrity_protected=encrypted.integrity_protected,
        )
        return result

    @staticmethod
    def _find_encrypted_data(reader: PacketReader) -> EncryptedDataList:
        for _ in range(2):
            obj = reader.next_object()
            if isinstance(obj, EncryptedDataList):
                return obj
            if obj is None:
                break
            logger.debug("Skipping leading packet", kind=type(obj).__name__)
        msg = "Message does not contain encrypted data"
        raise MalformedMessageError(msg, offset=reader.position)

    def _recover_session_key(
        self,
        encrypted: EncryptedDataList,
        secret_keys: SecretKeyRingBundle,
        passphrase: str,
    ) -> SessionKey:
        for entry in encrypted.entries:
            with self._key_selector.unlock_secret_key(secret_keys, entry.key_id, passphrase) as key:
                if key is None:
                    continue
                logger.debug("Recipient key found", key_id=entry.key_id)
                return decrypt_session_key(entry, key)
        msg = "Secret key for message not found"
        raise SecretKeyNotFoundError(msg, recipients=[entry.key_id for entry in encrypted.entries])

    @staticmethod
    def _signature_verifiers(
        one_pass: OnePassSignatureList | None,
        verify_keys: PublicKeyRingBundle | None,
    ) -> list[SignatureVerifier]:
        if verify_keys is None:
            return []
        if one_pass is None:
            msg = "Signature verification requested but the message is not signed"
            raise SignatureVerificationError(msg)
        verifiers = []
        for ops in one_pass.signatures:
            public_key = verify_keys.get_key(ops.key_id)
            if public_key is None:
                msg = "No public key for signer"
                raise SignatureVerificationError(msg, key_id=ops.key_id)
            verifiers.append(SignatureVerifier(ops, public_key))
        return verifiers

    @staticmethod
    def _verify_signatures(inner: PacketReader, verifiers: list[SignatureVerifier]) -> None:
        signatures = inner.next_object()
        if not isinstance(signatures, SignatureList) or len(signatures.packets) != len(verifiers):
            msg = "Signature packets do not match the one-pass signature packets"
            raise SignatureVerificationError(msg)
        # signature packets bracket the data: the first one closes the last one-pass packet
        for verifier, packet in zip(reversed(verifiers), signatures.packets):
            verifier.verify(packet)
