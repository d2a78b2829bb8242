"""
One-pass signatures over streamed data.

PGPy builds and serializes the signature packets; the digest is computed
incrementally here and signed as a pre-hashed value, so the signed data never
has to be held in memory.
"""

import pgpy
import structlog
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed
from pgpy.constants import HashAlgorithm as PgpyHashAlgorithm
from pgpy.constants import SignatureType
from pgpy.packet import Packet
from pgpy.packet.packets import SignatureV4

from pgpfile.exceptions import CryptoError, SignatureVerificationError, UnsupportedAlgorithmError
from pgpfile.models.crypto import HashAlgorithm, PublicKeyAlgorithm
from pgpfile.models.packets import OnePassSignature

logger = structlog.get_logger(__name__)

_RSA = {
    PublicKeyAlgorithm.RSA_ENCRYPT_OR_SIGN,
    PublicKeyAlgorithm.RSA_SIGN_ONLY,
}


def _signing_algorithm(key_algorithm: int) -> PublicKeyAlgorithm:
    try:
        algorithm = PublicKeyAlgorithm(int(key_algorithm))
    except ValueError:
        algorithm = None
    if algorithm in _RSA or algorithm in (PublicKeyAlgorithm.DSA, PublicKeyAlgorithm.ECDSA):
        return algorithm
    msg = f"Streaming signatures are not supported for key algorithm {key_algorithm}"
    raise UnsupportedAlgorithmError(msg, algorithm=int(key_algorithm))


class SignatureGenerator:
    """
    Produces a one-pass signature packet pair for a binary document.

    Example:
        signer = SignatureGenerator(key, HashAlgorithm.SHA256, "alice@example.com")
        out.write(signer.one_pass_packet())
        for chunk in chunks:
            signer.update(chunk)
            literal.write(chunk)
        out.write(signer.generate())

    Args:
        key: Unlocked secret key (or subkey) to sign with.
        hash_algorithm: Digest algorithm of the signature.
        user_id: Signer's user id, stored as a hashed subpacket when given.
    """

    def __init__(self, key: pgpy.PGPKey, hash_algorithm: HashAlgorithm, user_id: str | None = None) -> None:
        self._key = key
        self._algorithm = _signing_algorithm(key.key_algorithm)
        self._hash_algorithm = hash_algorithm
        self._hash = hashes.Hash(hash_algorithm.primitive())
        self._signature = pgpy.PGPSignature.new(
            SignatureType.BinaryDocument,
            key.key_algorithm,
            PgpyHashAlgorithm(hash_algorithm),
            key.fingerprint.keyid,
        )
        if user_id:
            self._signature._signature.subpackets.addnew("SignersUserID", hashed=True, userid=user_id)
        self._finished = False

    @property
    def key_id(self) -> str:
        return self._key.fingerprint.keyid

    def one_pass_packet(self) -> bytes:
        """The one-pass signature packet announcing this signature."""
        one_pass = self._signature.make_onepass()
        # marks the last (and only) one-pass packet before the data
        one_pass.nested = True
        return bytes(one_pass)

    def update(self, data: bytes) -> None:
        self._hash.update(data)

    def generate(self) -> bytes:
        """
        Finish the digest and return the signature packet.

        Raises:
            CryptoError: If signing fails or the signature was already generated.
        """
        if self._finished:
            msg = "Signature already generated"
            raise CryptoError(msg)
        self._finished = True

        packet = self._signature._signature
        self._hash.update(self._signature.hashdata(b""))
        digest = self._hash.finalize()
        packet.hash2 = bytearray(digest[:2])
        try:
            raw = self._sign_digest(digest)
            packet.signature.from_signer(raw)
            packet.update_hlen()
        except Exception as e:
            msg = f"Failed to sign data: {e}"
            raise CryptoError(msg) from e
        logger.debug("Signature generated", key_id=self.key_id, hash=self._hash_algorithm.name)
        return bytes(self._signature)

    def _sign_digest(self, digest: bytes) -> bytes:
        private_key = self._key._key.keymaterial.__privkey__()
        prehashed = Prehashed(self._hash_algorithm.primitive())
        if self._algorithm in _RSA:
            return private_key.sign(digest, padding.PKCS1v15(), prehashed)
        if self._algorithm == PublicKeyAlgorithm.ECDSA:
            return private_key.sign(digest, ec.ECDSA(prehashed))
        return private_key.sign(digest, prehashed)


class SignatureVerifier:
    """
    Checks the signature that closes a one-pass signed message.

    Feed the literal payload through ``update`` then pass the trailing
    signature packet to ``verify``.
    """

    def __init__(self, one_pass: OnePassSignature, public_key: pgpy.PGPKey) -> None:
        self._one_pass = one_pass
        self._public_key = public_key
        self._algorithm = _signing_algorithm(public_key.key_algorithm)
        try:
            self._hash_algorithm = HashAlgorithm(one_pass.hash_algorithm)
        except ValueError:
            msg = f"Unknown signature hash algorithm {one_pass.hash_algorithm}"
            raise UnsupportedAlgorithmError(msg, algorithm=one_pass.hash_algorithm) from None
        self._hash = hashes.Hash(self._hash_algorithm.primitive())

    def update(self, data: bytes) -> None:
        self._hash.update(data)

    def verify(self, signature_packet: bytes) -> None:
        """
        Raises:
            SignatureVerificationError: If the signature does not match.
        """
        key_id = self._one_pass.key_id
        try:
            packet = Packet(bytearray(signature_packet))
        except Exception as e:
            msg = f"Unreadable signature packet: {e}"
            raise SignatureVerificationError(msg, key_id=key_id) from e
        if not isinstance(packet, SignatureV4):
            msg = "Only version 4 signatures can be verified"
            raise SignatureVerificationError(msg, key_id=key_id)

        signature = pgpy.PGPSignature() | packet
        if signature.type != SignatureType.BinaryDocument:
            msg = f"Unsupported signature type {signature.type!r}"
            raise SignatureVerificationError(msg, key_id=key_id)
        if int(signature.hash_algorithm) != self._hash_algorithm or signature.signer != key_id:
            msg = "Signature does not match its one-pass signature packet"
            raise SignatureVerificationError(msg, key_id=key_id)

        self._hash.update(signature.hashdata(b""))
        digest = self._hash.finalize()
        if bytes(packet.hash2) != digest[:2]:
            msg = "Signature digest prefix mismatch"
            raise SignatureVerificationError(msg, key_id=key_id)
        try:
            self._verify_digest(packet, digest)
        except InvalidSignature as e:
            msg = "Signature verification failed"
            raise SignatureVerificationError(msg, key_id=key_id) from e
        logger.debug("Signature verified", key_id=key_id)

    def _verify_digest(self, packet: SignatureV4, digest: bytes) -> None:
        public_key = self._public_key._key.keymaterial.__pubkey__()
        raw = bytes(packet.signature.__sig__())
        prehashed = Prehashed(self._hash_algorithm.primitive())
        if self._algorithm in _RSA:
            raw = raw.rjust((public_key.key_size + 7) // 8, b"\x00")
            public_key.verify(raw, digest, padding.PKCS1v15(), prehashed)
        elif self._algorithm == PublicKeyAlgorithm.ECDSA:
            public_key.verify(raw, digest, ec.ECDSA(prehashed))
        else:
            public_key.verify(raw, digest, prehashed)
