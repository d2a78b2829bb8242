"""
Cryptographic operations for pgpfile.

This module provides:
- Key pair generation and key ring bundles (PGPy)
- Key selection and secret key unlocking
- Session key packets
- OpenPGP CFB encryption with modification detection
- Streaming one-pass signatures
"""

from pgpfile.crypto.cfb import DecryptingReader, EncryptedDataWriter
from pgpfile.crypto.key_selector import (
    KeySelector,
    first_encryption_key,
    first_signing_key,
    first_user_id,
    is_encryption_key,
    is_signing_key,
)
from pgpfile.crypto.keygen import KeyPairGenerator
from pgpfile.crypto.keyring import PublicKeyRingBundle, SecretKeyRingBundle
from pgpfile.crypto.session_key import decrypt_session_key, encrypt_session_key, generate_session_key
from pgpfile.crypto.signature import SignatureGenerator, SignatureVerifier

__all__ = [
    "DecryptingReader",
    "EncryptedDataWriter",
    "KeySelector",
    "first_encryption_key",
    "first_signing_key",
    "first_user_id",
    "is_encryption_key",
    "is_signing_key",
    "KeyPairGenerator",
    "PublicKeyRingBundle",
    "SecretKeyRingBundle",
    "decrypt_session_key",
    "encrypt_session_key",
    "generate_session_key",
    "SignatureGenerator",
    "SignatureVerifier",
]
