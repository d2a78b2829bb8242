"""
pgpfile exception hierarchy.

All exceptions inherit from PGPFileError for easy catching.
"""

from typing import Any


class PGPFileError(Exception):
    """Base exception for all pgpfile errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class InvalidArgumentError(PGPFileError):
    """A required argument is missing or empty."""


class MissingFileError(PGPFileError):
    """An input file does not exist."""

    def __init__(self, message: str, *, path: str) -> None:
        super().__init__(message, path=path)
        self.path = path


class CryptoError(PGPFileError):
    """Cryptographic operation failed."""


class KeyRingError(CryptoError):
    """Key material could not be read."""


class KeyNotFoundError(CryptoError):
    """No key with the required capability exists in the ring."""


class SecretKeyNotFoundError(CryptoError):
    """No usable secret key matches the message recipients."""


class WrongPassphraseError(SecretKeyNotFoundError):
    """The secret key exists but the passphrase does not unlock it."""

    def __init__(self, message: str, *, key_id: str) -> None:
        super().__init__(message, key_id=key_id)
        self.key_id = key_id


class SessionKeyError(CryptoError):
    """Failed to wrap or unwrap a session key."""


class IntegrityError(CryptoError):
    """Data integrity verification failed (quick check or MDC failure)."""


class SignatureVerificationError(CryptoError):
    """An embedded signature does not verify against the signer's key."""


class UnsupportedAlgorithmError(CryptoError):
    """The message or key uses an algorithm this library cannot process."""

    def __init__(self, message: str, *, algorithm: int | str) -> None:
        super().__init__(message, algorithm=algorithm)
        self.algorithm = algorithm


class MalformedMessageError(PGPFileError):
    """The input is not a well-formed OpenPGP message."""

    def __init__(self, message: str, *, offset: int | None = None, **context: Any) -> None:
        super().__init__(message, offset=offset, **context)
        self.offset = offset


class UnexpectedPacketError(MalformedMessageError):
    """A packet appeared where the message layering does not allow it."""

    def __init__(self, message: str, *, tag: int, offset: int | None = None) -> None:
        super().__init__(message, offset=offset, tag=tag)
        self.tag = tag
