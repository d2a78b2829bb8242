"""
pgpfile engine facade.

This is the main entry point for users of the library. It works on file paths,
loads key rings fresh for every call and delegates to the encode and decode
pipelines. Every operation has an ``*_async`` twin that runs it in a worker
thread.
"""

import asyncio
from datetime import datetime, timezone
from pathlib import Path

import structlog

from pgpfile.config import PGPFileConfig
from pgpfile.crypto.key_selector import KeySelector
from pgpfile.crypto.keygen import KeyPairGenerator
from pgpfile.crypto.keyring import PublicKeyRingBundle, SecretKeyRingBundle
from pgpfile.exceptions import InvalidArgumentError, MissingFileError
from pgpfile.models.crypto import DecryptionResult, KeyPair
from pgpfile.pipeline.decode import DecodePipeline
from pgpfile.pipeline.encode import EncodePipeline

logger = structlog.get_logger(__name__)

PathLike = Path | str


def _require_path(value: PathLike | None, name: str) -> Path:
    if value is None or not str(value).strip():
        msg = f"{name} is required"
        raise InvalidArgumentError(msg, argument=name)
    return Path(value)


def _require_file(value: PathLike | None, name: str) -> Path:
    path = _require_path(value, name)
    if not path.is_file():
        msg = f"{name} does not exist"
        raise MissingFileError(msg, path=str(path))
    return path


def _prepare_output(value: PathLike | None, name: str) -> Path:
    path = _require_path(value, name)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def _modified_time(path: Path) -> datetime:
    return datetime.fromtimestamp(int(path.stat().st_mtime), tz=timezone.utc)


class PGPFileEngine:
    """
    File level OpenPGP encryption, signing and decryption.

    Example:
        ```python
        engine = PGPFileEngine()
        engine.generate_key_files("bob.pub.asc", "bob.sec.asc", "bob@example.com", "secret")

        engine.encrypt_file("report.pdf", "report.pdf.gpg", "bob.pub.asc")
        engine.decrypt_file("report.pdf.gpg", "report.out.pdf", "bob.sec.asc", "secret")

        # or, from async code
        await engine.encrypt_file_async("report.pdf", "report.pdf.gpg", "bob.pub.asc")
        ```

    Args:
        config: Algorithms and streaming parameters. Uses defaults if not provided.
        key_selector: Key selection policies. Uses first-match policies if not provided.
    """

    def __init__(self, config: PGPFileConfig | None = None, *, key_selector: KeySelector | None = None) -> None:
        self._config = config or PGPFileConfig()
        self._key_selector = key_selector or KeySelector()
        self._generator = KeyPairGenerator(self._config)
        self._encoder = EncodePipeline(self._config, key_selector=self._key_selector)
        self._decoder = DecodePipeline(self._config, key_selector=self._key_selector)

    @property
    def config(self) -> PGPFileConfig:
        return self._config

    def generate_key_pair(self, identity: str, passphrase: str) -> KeyPair:
        """
        Generate a passphrase protected RSA key pair.

        Args:
            identity: User id bound to the key.
            passphrase: Protects the secret key; empty leaves it unprotected.

        Raises:
            CryptoError: If generation fails.
        """
        return self._generator.generate(identity, passphrase)

    def generate_key_files(
        self,
        public_key_path: PathLike,
        private_key_path: PathLike,
        identity: str = "",
        passphrase: str = "",
    ) -> KeyPair:
        """
        Generate a key pair and write each half to its own file.

        Raises:
            InvalidArgumentError: If a path is empty.
            CryptoError: If generation fails.
        """
        public_path = _prepare_output(public_key_path, "public_key_path")
        private_path = _prepare_output(private_key_path, "private_key_path")
        pair = self.generate_key_pair(identity, passphrase)
        pair.save(public_path, private_path)
        logger.info("Key files written", key_id=pair.key_id, public=str(public_path), private=str(private_path))
        return pair

    def encrypt_file(
        self,
        input_path: PathLike,
        output_path: PathLike,
        public_key_path: PathLike,
        *,
        armor: bool = False,
        integrity_check: bool = True,
    ) -> None:
        """
        Encrypt a file for the first encryption key of a public key file.

        Args:
            input_path: Plaintext file.
            output_path: Destination of the message; parent directories are created.
            public_key_path: Recipient's public key file.
            armor: Write an ASCII-armored message instead of binary.
            integrity_check: Protect the data with a modification detection code.

        Raises:
            InvalidArgumentError: If a path is empty.
            MissingFileError: If the input or key file does not exist.
            KeyNotFoundError: If the key file holds no encryption key.
        """
        source_path = _require_file(input_path, "input_path")
        key_path = _require_file(public_key_path, "public_key_path")
        target_path = _prepare_output(output_path, "output_path")

        recipient = self._key_selector.find_encryption_key(PublicKeyRingBundle.from_file(key_path))
        with source_path.open("rb") as source, target_path.open("wb") as sink:
            size = self._encoder.encrypt(
                source,
                sink,
                recipient,
                armor=armor,
                integrity_check=integrity_check,
                filename=source_path.name,
                modified=_modified_time(source_path),
            )
        logger.info("File encrypted", input=str(source_path), output=str(target_path), size=size)

    def encrypt_and_sign_file(
        self,
        input_path: PathLike,
        output_path: PathLike,
        public_key_path: PathLike,
        private_key_path: PathLike,
        passphrase: str,
        *,
        armor: bool = False,
        integrity_check: bool = True,
    ) -> None:
        """
        Sign a file with the sender's secret key and encrypt it for the recipient.

        Args:
            input_path: Plaintext file.
            output_path: Destination of the message; parent directories are created.
            public_key_path: Recipient's public key file.
            private_key_path: Sender's secret key file.
            passphrase: Passphrase of the sender's secret key.
            armor: Write an ASCII-armored message instead of binary.
            integrity_check: Protect the data with a modification detection code.

        Raises:
            InvalidArgumentError: If a path is empty.
            MissingFileError: If the input or a key file does not exist.
            KeyNotFoundError: If no encryption or signing key is available.
            WrongPassphraseError: If the passphrase does not unlock the signing key.
        """
        source_path = _require_file(input_path, "input_path")
        public_path = _require_file(public_key_path, "public_key_path")
        private_path = _require_file(private_key_path, "private_key_path")
        target_path = _prepare_output(output_path, "output_path")

        recipient = self._key_selector.find_encryption_key(PublicKeyRingBundle.from_file(public_path))
        signing_key = self._key_selector.find_signing_key(SecretKeyRingBundle.from_file(private_path))
        with (
            self._key_selector.unlock(signing_key, passphrase) as signer,
            source_path.open("rb") as source,
            target_path.open("wb") as sink,
        ):
            size = self._encoder.encrypt_and_sign(
                source,
                sink,
                recipient,
                signer,
                armor=armor,
                integrity_check=integrity_check,
                filename=source_path.name,
                modified=_modified_time(source_path),
            )
        logger.info(
            "File signed and encrypted",
            input=str(source_path),
            output=str(target_path),
            signer=signing_key.fingerprint.keyid,
            size=size,
        )

    def decrypt_file(
        self,
        input_path: PathLike,
        output_path: PathLike,
        private_key_path: PathLike,
        passphrase: str,
        *,
        verify_key_path: PathLike | None = None,
    ) -> DecryptionResult:
        """
        Decrypt a message file.

        Embedded signatures are skipped unless ``verify_key_path`` names the
        signer's public key file, in which case they must verify.

        Args:
            input_path: Message file, binary or armored.
            output_path: Destination of the payload; parent directories are created.
            private_key_path: Recipient's secret key file.
            passphrase: Passphrase of the recipient's secret key.
            verify_key_path: Optional public key file to verify signatures against.

        Returns:
            Literal data metadata and signature information.

        Raises:
            InvalidArgumentError: If a path is empty.
            MissingFileError: If the input or a key file does not exist.
            MalformedMessageError: If the input is not a valid message.
            SecretKeyNotFoundError: If the message is not addressed to the secret key.
            WrongPassphraseError: If the passphrase does not unlock the secret key.
            IntegrityError: If the data was modified.
        """
        source_path = _require_file(input_path, "input_path")
        private_path = _require_file(private_key_path, "private_key_path")
        verify_keys = None
        if verify_key_path is not None:
            verify_keys = PublicKeyRingBundle.from_file(_require_file(verify_key_path, "verify_key_path"))
        target_path = _prepare_output(output_path, "output_path")

        secret_keys = SecretKeyRingBundle.from_file(private_path)
        with source_path.open("rb") as source, target_path.open("wb") as sink:
            result = self._decoder.decrypt(source, sink, secret_keys, passphrase, verify_keys=verify_keys)
        logger.info(
            "File decrypted",
            input=str(source_path),
            output=str(target_path),
            size=result.bytes_written,
            signed=result.signed,
            verified=result.signature_verified,
        )
        return result

    async def generate_key_pair_async(self, identity: str, passphrase: str) -> KeyPair:
        """Async variant of :meth:`generate_key_pair`."""
        return await asyncio.to_thread(self.generate_key_pair, identity, passphrase)

    async def generate_key_files_async(
        self,
        public_key_path: PathLike,
        private_key_path: PathLike,
        identity: str = "",
        passphrase: str = "",
    ) -> KeyPair:
        """Async variant of :meth:`generate_key_files`."""
        return await asyncio.to_thread(
            self.generate_key_files, public_key_path, private_key_path, identity, passphrase
        )

    async def encrypt_file_async(
        self,
        input_path: PathLike,
        output_path: PathLike,
        public_key_path: PathLike,
        *,
        armor: bool = False,
        integrity_check: bool = True,
    ) -> None:
        """Async variant of :meth:`encrypt_file`."""
        await asyncio.to_thread(
            self.encrypt_file,
            input_path,
            output_path,
            public_key_path,
            armor=armor,
            integrity_check=integrity_check,
        )

    async def encrypt_and_sign_file_async(
        self,
        input_path: PathLike,
        output_path: PathLike,
        public_key_path: PathLike,
        private_key_path: PathLike,
        passphrase: str,
        *,
        armor: bool = False,
        integrity_check: bool = True,
    ) -> None:
        """Async variant of :meth:`encrypt_and_sign_file`."""
        await asyncio.to_thread(
            self.encrypt_and_sign_file,
            input_path,
            output_path,
            public_key_path,
            private_key_path,
            passphrase,
            armor=armor,
            integrity_check=integrity_check,
        )

    async def decrypt_file_async(
        self,
        input_path: PathLike,
        output_path: PathLike,
        private_key_path: PathLike,
        passphrase: str,
        *,
        verify_key_path: PathLike | None = None,
    ) -> DecryptionResult:
        """Async variant of :meth:`decrypt_file`."""
        return await asyncio.to_thread(
            self.decrypt_file,
            input_path,
            output_path,
            private_key_path,
            passphrase,
            verify_key_path=verify_key_path,
        )
