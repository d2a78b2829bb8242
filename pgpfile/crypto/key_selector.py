"""
Key selection policies.

Which key encrypts, which key signs and which user id names the signer are
first-match policies over a bundle's enumeration order. They are plain
callables so callers can substitute their own.
"""

from collections.abc import Callable, Iterable, Iterator
from contextlib import ExitStack, contextmanager

import pgpy
import structlog
from pgpy.constants import KeyFlags
from pgpy.errors import PGPDecryptionError

from pgpfile.crypto.keyring import PublicKeyRingBundle, SecretKeyRingBundle
from pgpfile.exceptions import KeyNotFoundError, WrongPassphraseError
from pgpfile.models.crypto import PublicKeyAlgorithm

logger = structlog.get_logger(__name__)

KeyStrategy = Callable[[Iterable[pgpy.PGPKey]], pgpy.PGPKey | None]
UserIdStrategy = Callable[[pgpy.PGPKey], str | None]

_ENCRYPTION_FLAGS = {KeyFlags.EncryptCommunications, KeyFlags.EncryptStorage}


def declared_key_flags(key: pgpy.PGPKey) -> set[KeyFlags]:
    """Usage flags from the key's self-signatures, empty if none are declared."""
    if key.is_primary:
        for uid in key.userids:
            if uid.selfsig is not None and uid.selfsig.key_flags:
                return set(uid.selfsig.key_flags)
    for sig in key.self_signatures:
        if sig.key_flags:
            return set(sig.key_flags)
    return set()


def _algorithm(key: pgpy.PGPKey) -> PublicKeyAlgorithm | None:
    try:
        return PublicKeyAlgorithm(int(key.key_algorithm))
    except ValueError:
        return None


def is_encryption_key(key: pgpy.PGPKey) -> bool:
    algorithm = _algorithm(key)
    if algorithm is None or not algorithm.can_encrypt:
        return False
    flags = declared_key_flags(key)
    return not flags or bool(flags & _ENCRYPTION_FLAGS)


def is_signing_key(key: pgpy.PGPKey) -> bool:
    algorithm = _algorithm(key)
    if algorithm is None or not algorithm.can_sign:
        return False
    flags = declared_key_flags(key)
    return not flags or KeyFlags.Sign in flags


def first_encryption_key(keys: Iterable[pgpy.PGPKey]) -> pgpy.PGPKey | None:
    return next((key for key in keys if is_encryption_key(key)), None)


def first_signing_key(keys: Iterable[pgpy.PGPKey]) -> pgpy.PGPKey | None:
    return next((key for key in keys if not key.is_public and is_signing_key(key)), None)


def first_user_id(key: pgpy.PGPKey) -> str | None:
    primary = key if key.is_primary else key.parent
    uid = next(iter(primary.userids), None)
    return None if uid is None else f"{uid:s}"


class KeySelector:
    """
    Chooses keys out of key ring bundles and unlocks secret keys.

    Example:
        selector = KeySelector()
        recipient = selector.find_encryption_key(public_bundle)
        with selector.unlock_secret_key(secret_bundle, key_id, "passphrase") as key:
            ...
    """

    def __init__(
        self,
        *,
        encryption_key_strategy: KeyStrategy = first_encryption_key,
        signing_key_strategy: KeyStrategy = first_signing_key,
        user_id_strategy: UserIdStrategy = first_user_id,
    ) -> None:
        self._encryption_key_strategy = encryption_key_strategy
        self._signing_key_strategy = signing_key_strategy
        self._user_id_strategy = user_id_strategy

    def find_encryption_key(self, bundle: PublicKeyRingBundle) -> pgpy.PGPKey:
        """
        Pick the key to encrypt to.

        Raises:
            KeyNotFoundError: If no key in the bundle can encrypt.
        """
        key = self._encryption_key_strategy(bundle.keys())
        if key is None:
            msg = "Can't find encryption key in key ring"
            raise KeyNotFoundError(msg)
        logger.debug("Encryption key selected", key_id=key.fingerprint.keyid)
        return key

    def find_signing_key(self, bundle: SecretKeyRingBundle) -> pgpy.PGPKey:
        """
        Pick the secret key to sign with.

        Raises:
            KeyNotFoundError: If no key in the bundle can sign.
        """
        key = self._signing_key_strategy(bundle.keys())
        if key is None:
            msg = "Can't find signing key in key ring"
            raise KeyNotFoundError(msg)
        logger.debug("Signing key selected", key_id=key.fingerprint.keyid)
        return key

    def signer_user_id(self, key: pgpy.PGPKey) -> str | None:
        return self._user_id_strategy(key)

    @contextmanager
    def unlock_secret_key(
        self,
        bundle: SecretKeyRingBundle,
        key_id: str,
        passphrase: str,
    ) -> Iterator[pgpy.PGPKey | None]:
        """
        Unlock the secret key with exactly ``key_id``.

        Yields:
            The unlocked key, or None if the bundle has no such key.

        Raises:
            WrongPassphraseError: If the key exists but the passphrase is wrong.
        """
        key = bundle.get_secret_key(key_id)
        if key is None:
            logger.debug("Secret key not in key ring", key_id=key_id)
            yield None
            return
        with self.unlock(key, passphrase) as unlocked:
            yield unlocked

    @contextmanager
    def unlock(self, key: pgpy.PGPKey, passphrase: str) -> Iterator[pgpy.PGPKey]:
        """
        Unlock a secret key (or the primary key owning a subkey) for the block.

        Raises:
            WrongPassphraseError: If the passphrase is incorrect.
        """
        primary = key if key.is_primary else key.parent
        with ExitStack() as stack:
            if primary.is_protected:
                try:
                    stack.enter_context(primary.unlock(passphrase))
                except PGPDecryptionError as e:
                    msg = "Failed to unlock secret key, wrong passphrase"
                    raise WrongPassphraseError(msg, key_id=key.fingerprint.keyid) from e
            yield key
