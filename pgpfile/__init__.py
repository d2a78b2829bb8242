"""
pgpfile: streaming OpenPGP file encryption.

Encrypts files for a recipient's public key, optionally signs them with the
sender's secret key, and reverses the process with the recipient's secret key
and passphrase.

Example:
    ```python
    from pgpfile import PGPFileEngine

    engine = PGPFileEngine()
    engine.generate_key_files("bob.pub.asc", "bob.sec.asc", "bob@example.com", "secret")

    engine.encrypt_and_sign_file(
        "report.pdf", "report.pdf.asc", "bob.pub.asc", "alice.sec.asc", "alice-secret", armor=True
    )
    result = engine.decrypt_file("report.pdf.asc", "report.pdf", "bob.sec.asc", "secret")
    print(result.filename, result.signed)
    ```
"""

from pgpfile.config import PGPFileConfig
from pgpfile.crypto.key_selector import KeySelector
from pgpfile.crypto.keygen import KeyPairGenerator
from pgpfile.crypto.keyring import PublicKeyRingBundle, SecretKeyRingBundle
from pgpfile.engine import PGPFileEngine
from pgpfile.exceptions import (
    CryptoError,
    IntegrityError,
    InvalidArgumentError,
    KeyNotFoundError,
    KeyRingError,
    MalformedMessageError,
    MissingFileError,
    PGPFileError,
    SecretKeyNotFoundError,
    SessionKeyError,
    SignatureVerificationError,
    UnexpectedPacketError,
    UnsupportedAlgorithmError,
    WrongPassphraseError,
)
from pgpfile.models.crypto import (
    CompressionAlgorithm,
    DecryptionResult,
    HashAlgorithm,
    KeyPair,
    SymmetricAlgorithm,
)
from pgpfile.pipeline.decode import DecodePipeline
from pgpfile.pipeline.encode import EncodePipeline

__version__ = "0.1.0"

__all__ = [
    # Main engine
    "PGPFileEngine",
    "PGPFileConfig",
    # Components
    "KeyPairGenerator",
    "KeySelector",
    "PublicKeyRingBundle",
    "SecretKeyRingBundle",
    "EncodePipeline",
    "DecodePipeline",
    # Models
    "KeyPair",
    "DecryptionResult",
    "SymmetricAlgorithm",
    "HashAlgorithm",
    "CompressionAlgorithm",
    # Exceptions
    "PGPFileError",
    "InvalidArgumentError",
    "MissingFileError",
    "CryptoError",
    "KeyRingError",
    "KeyNotFoundError",
    "SecretKeyNotFoundError",
    "WrongPassphraseError",
    "SessionKeyError",
    "IntegrityError",
    "SignatureVerificationError",
    "UnsupportedAlgorithmError",
    "MalformedMessageError",
    "UnexpectedPacketError",
]
