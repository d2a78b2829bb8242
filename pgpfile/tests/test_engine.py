from pathlib import Path

import pytest

from pgpfile.config import PGPFileConfig
from pgpfile.engine import PGPFileEngine
from pgpfile.exceptions import (
    InvalidArgumentError,
    MissingFileError,
    SecretKeyNotFoundError,
    WrongPassphraseError,
)
from pgpfile.packet.armor import BEGIN_MESSAGE
from pgpfile.tests.constants import IDENTITY, OTHER_PASSPHRASE, PASSPHRASE, PLAINTEXT


def _input_file(directory: Path, data: bytes = PLAINTEXT, name: str = "input.txt") -> Path:
    path = directory / name
    path.write_bytes(data)
    return path


def test_encrypt_and_decrypt_file(tmp_path: Path, key_files: tuple[Path, Path]) -> None:
    public_path, private_path = key_files
    engine = PGPFileEngine()
    source = _input_file(tmp_path)
    encrypted = tmp_path / "input.txt.gpg"
    decrypted = tmp_path / "output.txt"

    engine.encrypt_file(source, encrypted, public_path)
    result = engine.decrypt_file(encrypted, decrypted, private_path, PASSPHRASE)

    assert encrypted.read_bytes()[0] & 0x80
    assert decrypted.read_bytes() == PLAINTEXT
    assert result.filename == "input.txt"
    assert result.modified is not None
    assert not result.signed


def test_encrypt_file_armored_matches_binary_plaintext(tmp_path: Path, key_files: tuple[Path, Path]) -> None:
    public_path, private_path = key_files
    engine = PGPFileEngine()
    source = _input_file(tmp_path)

    engine.encrypt_file(source, tmp_path / "binary.gpg", public_path)
    engine.encrypt_file(source, tmp_path / "armored.asc", public_path, armor=True)
    engine.decrypt_file(tmp_path / "binary.gpg", tmp_path / "binary.out", private_path, PASSPHRASE)
    engine.decrypt_file(tmp_path / "armored.asc", tmp_path / "armored.out", private_path, PASSPHRASE)

    assert (tmp_path / "armored.asc").read_bytes().startswith(BEGIN_MESSAGE)
    assert (tmp_path / "binary.out").read_bytes() == (tmp_path / "armored.out").read_bytes() == PLAINTEXT


def test_encrypt_file_without_integrity_check(tmp_path: Path, key_files: tuple[Path, Path]) -> None:
    public_path, private_path = key_files
    engine = PGPFileEngine()

    engine.encrypt_file(_input_file(tmp_path), tmp_path / "out.gpg", public_path, integrity_check=False)
    engine.decrypt_file(tmp_path / "out.gpg", tmp_path / "out.txt", private_path, PASSPHRASE)

    assert (tmp_path / "out.txt").read_bytes() == PLAINTEXT


def test_encrypt_empty_file(tmp_path: Path, key_files: tuple[Path, Path]) -> None:
    public_path, private_path = key_files
    engine = PGPFileEngine()

    engine.encrypt_file(_input_file(tmp_path, b""), tmp_path / "empty.gpg", public_path)
    result = engine.decrypt_file(tmp_path / "empty.gpg", tmp_path / "empty.out", private_path, PASSPHRASE)

    assert (tmp_path / "empty.out").read_bytes() == b""
    assert result.bytes_written == 0


def test_encrypt_and_sign_file(
    tmp_path: Path,
    key_files: tuple[Path, Path],
    other_key_files: tuple[Path, Path],
) -> None:
    public_path, private_path = key_files
    other_public_path, other_private_path = other_key_files
    engine = PGPFileEngine()

    engine.encrypt_and_sign_file(
        _input_file(tmp_path),
        tmp_path / "signed.gpg",
        other_public_path,
        private_path,
        PASSPHRASE,
    )
    result = engine.decrypt_file(
        tmp_path / "signed.gpg",
        tmp_path / "signed.out",
        other_private_path,
        OTHER_PASSPHRASE,
        verify_key_path=public_path,
    )

    assert (tmp_path / "signed.out").read_bytes() == PLAINTEXT
    assert result.signed
    assert result.signature_verified


def test_decrypt_signed_file_without_verification(tmp_path: Path, key_files: tuple[Path, Path]) -> None:
    public_path, private_path = key_files
    engine = PGPFileEngine()

    engine.encrypt_and_sign_file(
        _input_file(tmp_path), tmp_path / "signed.asc", public_path, private_path, PASSPHRASE, armor=True
    )
    result = engine.decrypt_file(tmp_path / "signed.asc", tmp_path / "signed.out", private_path, PASSPHRASE)

    assert (tmp_path / "signed.out").read_bytes() == PLAINTEXT
    assert result.signed
    assert not result.signature_verified


def test_encrypt_and_sign_file_rejects_wrong_passphrase(tmp_path: Path, key_files: tuple[Path, Path]) -> None:
    public_path, private_path = key_files

    with pytest.raises(WrongPassphraseError):
        PGPFileEngine().encrypt_and_sign_file(
            _input_file(tmp_path), tmp_path / "out.gpg", public_path, private_path, "wrong"
        )


def test_decrypt_file_rejects_wrong_passphrase(tmp_path: Path, key_files: tuple[Path, Path]) -> None:
    public_path, private_path = key_files
    engine = PGPFileEngine()
    engine.encrypt_file(_input_file(tmp_path), tmp_path / "out.gpg", public_path)

    with pytest.raises(WrongPassphraseError):
        engine.decrypt_file(tmp_path / "out.gpg", tmp_path / "out.txt", private_path, "wrong")


def test_decrypt_file_rejects_other_secret_key(
    tmp_path: Path,
    key_files: tuple[Path, Path],
    other_key_files: tuple[Path, Path],
) -> None:
    public_path, _ = key_files
    _, other_private_path = other_key_files
    engine = PGPFileEngine()
    engine.encrypt_file(_input_file(tmp_path), tmp_path / "out.gpg", public_path)

    with pytest.raises(SecretKeyNotFoundError) as excinfo:
        engine.decrypt_file(tmp_path / "out.gpg", tmp_path / "out.txt", other_private_path, OTHER_PASSPHRASE)

    assert not isinstance(excinfo.value, WrongPassphraseError)


def test_output_parent_directories_are_created(tmp_path: Path, key_files: tuple[Path, Path]) -> None:
    public_path, private_path = key_files
    engine = PGPFileEngine()
    encrypted = tmp_path / "a" / "b" / "out.gpg"
    decrypted = tmp_path / "c" / "out.txt"

    engine.encrypt_file(_input_file(tmp_path), encrypted, public_path)
    engine.decrypt_file(encrypted, decrypted, private_path, PASSPHRASE)

    assert decrypted.read_bytes() == PLAINTEXT


@pytest.mark.parametrize("argument", ["input_path", "output_path", "public_key_path"])
def test_encrypt_file_requires_paths(tmp_path: Path, key_files: tuple[Path, Path], argument: str) -> None:
    arguments = {
        "input_path": _input_file(tmp_path),
        "output_path": tmp_path / "out.gpg",
        "public_key_path": key_files[0],
    }
    arguments[argument] = ""

    with pytest.raises(InvalidArgumentError, match=f"{argument} is required"):
        PGPFileEngine().encrypt_file(**arguments)


def test_decrypt_file_requires_private_key_path(tmp_path: Path) -> None:
    with pytest.raises(InvalidArgumentError, match="private_key_path is required"):
        PGPFileEngine().decrypt_file(_input_file(tmp_path), tmp_path / "out", "  ", PASSPHRASE)


def test_encrypt_file_rejects_missing_input(tmp_path: Path, key_files: tuple[Path, Path]) -> None:
    missing = tmp_path / "missing.txt"

    with pytest.raises(MissingFileError, match="input_path does not exist") as excinfo:
        PGPFileEngine().encrypt_file(missing, tmp_path / "out.gpg", key_files[0])

    assert excinfo.value.path == str(missing)
    assert not (tmp_path / "out.gpg").exists()


def test_decrypt_file_rejects_missing_key_file(tmp_path: Path) -> None:
    with pytest.raises(MissingFileError, match="private_key_path does not exist"):
        PGPFileEngine().decrypt_file(_input_file(tmp_path), tmp_path / "out", tmp_path / "nope.asc", PASSPHRASE)


def test_generate_key_files(tmp_path: Path) -> None:
    engine = PGPFileEngine(PGPFileConfig(key_size=1024))
    public_path = tmp_path / "keys" / "me.pub.asc"
    private_path = tmp_path / "keys" / "me.sec.asc"

    pair = engine.generate_key_files(public_path, private_path, IDENTITY, PASSPHRASE)
    engine.encrypt_file(_input_file(tmp_path), tmp_path / "out.gpg", public_path)
    engine.decrypt_file(tmp_path / "out.gpg", tmp_path / "out.txt", private_path, PASSPHRASE)

    assert public_path.read_bytes() == pair.public_key
    assert private_path.read_bytes() == pair.private_key
    assert (tmp_path / "out.txt").read_bytes() == PLAINTEXT


def test_generate_key_files_requires_paths(tmp_path: Path) -> None:
    with pytest.raises(InvalidArgumentError, match="public_key_path is required"):
        PGPFileEngine().generate_key_files("", tmp_path / "key.sec")


def test_engine_exposes_config() -> None:
    config = PGPFileConfig.legacy()

    assert PGPFileEngine(config).config is config


@pytest.mark.asyncio
async def test_async_round_trip(tmp_path: Path, key_files: tuple[Path, Path]) -> None:
    public_path, private_path = key_files
    engine = PGPFileEngine()
    source = _input_file(tmp_path)

    await engine.encrypt_and_sign_file_async(source, tmp_path / "out.gpg", public_path, private_path, PASSPHRASE)
    result = await engine.decrypt_file_async(
        tmp_path / "out.gpg", tmp_path / "out.txt", private_path, PASSPHRASE, verify_key_path=public_path
    )

    assert (tmp_path / "out.txt").read_bytes() == PLAINTEXT
    assert result.signature_verified


@pytest.mark.asyncio
async def test_async_encrypt_file(tmp_path: Path, key_files: tuple[Path, Path]) -> None:
    public_path, private_path = key_files
    engine = PGPFileEngine()

    await engine.encrypt_file_async(_input_file(tmp_path), tmp_path / "out.asc", public_path, armor=True)
    result = await engine.decrypt_file_async(tmp_path / "out.asc", tmp_path / "out.txt", private_path, PASSPHRASE)

    assert result.bytes_written == len(PLAINTEXT)


@pytest.mark.asyncio
async def test_async_errors_propagate(tmp_path: Path) -> None:
    with pytest.raises(InvalidArgumentError):
        await PGPFileEngine().encrypt_file_async("", tmp_path / "out.gpg", tmp_path / "key.asc")


@pytest.mark.asyncio
async def test_async_generate_key_pair() -> None:
    pair = await PGPFileEngine(PGPFileConfig(key_size=1024)).generate_key_pair_async(IDENTITY, "")

    assert len(pair.key_id) == 16


@pytest.mark.asyncio
async def test_async_generate_key_files(tmp_path: Path) -> None:
    engine = PGPFileEngine(PGPFileConfig(key_size=1024))

    pair = await engine.generate_key_files_async(tmp_path / "k.pub", tmp_path / "k.sec", IDENTITY, PASSPHRASE)

    assert (tmp_path / "k.pub").read_bytes() == pair.public_key
