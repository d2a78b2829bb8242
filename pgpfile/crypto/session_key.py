"""
Session keys and their Public-Key Encrypted Session Key packets (tag 1).

Wrapping and unwrapping the session key with the recipient's asymmetric key is
delegated to PGPy's packet implementation.
"""

import binascii
import os

import pgpy
import structlog
from pgpy.constants import SymmetricKeyAlgorithm
from pgpy.packet import Packet
from pgpy.packet.packets import PKESessionKeyV3

from pgpfile.exceptions import SessionKeyError, UnsupportedAlgorithmError
from pgpfile.models.crypto import EncryptedSessionKeyEntry, SessionKey, SymmetricAlgorithm

logger = structlog.get_logger(__name__)


def generate_session_key(algorithm: SymmetricAlgorithm) -> SessionKey:
    """Create a fresh random session key for ``algorithm``."""
    if algorithm.key_size == 0:
        msg = f"Cannot generate a session key for {algorithm.name}"
        raise UnsupportedAlgorithmError(msg, algorithm=int(algorithm))
    return SessionKey(algorithm=algorithm, key_data=os.urandom(algorithm.key_size))


def encrypt_session_key(session_key: SessionKey, recipient: pgpy.PGPKey) -> bytes:
    """
    Build the session key packet for ``recipient``.

    Args:
        session_key: The message session key.
        recipient: Public key (or subkey) the session key is wrapped for.

    Returns:
        The complete packet, header included.

    Raises:
        UnsupportedAlgorithmError: If the recipient's algorithm cannot encrypt.
        SessionKeyError: If wrapping fails.
    """
    key_id = recipient.fingerprint.keyid
    try:
        pkesk = PKESessionKeyV3()
        pkesk.encrypter = bytearray(binascii.unhexlify(key_id.encode("latin-1")))
        pkesk.pkalg = recipient.key_algorithm
        pkesk.encrypt_sk(recipient._key, SymmetricKeyAlgorithm(session_key.algorithm), session_key.key_data)
    except NotImplementedError as e:
        msg = f"Key algorithm {recipient.key_algorithm.name} cannot encrypt session keys"
        raise UnsupportedAlgorithmError(msg, algorithm=int(recipient.key_algorithm)) from e
    except Exception as e:
        msg = f"Failed to encrypt session key: {e}"
        raise SessionKeyError(msg) from e
    logger.debug("Session key encrypted", key_id=key_id, algorithm=session_key.algorithm.name)
    return bytes(pkesk)


def decrypt_session_key(entry: EncryptedSessionKeyEntry, secret_key: pgpy.PGPKey) -> SessionKey:
    """
    Recover the session key from a session key packet.

    Args:
        entry: The packet addressed to ``secret_key``.
        secret_key: The unlocked secret key (or subkey) with the entry's key id.

    Raises:
        UnsupportedAlgorithmError: If the packet's algorithm is not supported.
        SessionKeyError: If unwrapping fails.
    """
    try:
        pkesk = Packet(bytearray(entry.packet))
        symmetric_algorithm, key_data = pkesk.decrypt_sk(secret_key._key)
    except NotImplementedError as e:
        msg = f"Public key algorithm {entry.algorithm} is not supported"
        raise UnsupportedAlgorithmError(msg, algorithm=entry.algorithm) from e
    except Exception as e:
        msg = f"Failed to decrypt session key: {e}"
        raise SessionKeyError(msg) from e

    try:
        algorithm = SymmetricAlgorithm(int(symmetric_algorithm))
        session_key = SessionKey(algorithm=algorithm, key_data=bytes(key_data))
    except ValueError as e:
        msg = f"Invalid session key: {e}"
        raise SessionKeyError(msg) from e
    logger.debug("Session key decrypted", key_id=entry.key_id, algorithm=algorithm.name)
    return session_key
