from collections.abc import Iterator
from pathlib import Path

import pgpy
import pytest

from pgpfile.crypto.key_selector import KeySelector
from pgpfile.crypto.keygen import KeyPairGenerator
from pgpfile.crypto.keyring import PublicKeyRingBundle, SecretKeyRingBundle
from pgpfile.models.crypto import KeyPair
from pgpfile.tests.constants import IDENTITY, OTHER_IDENTITY, OTHER_PASSPHRASE, PASSPHRASE


@pytest.fixture(scope="session")
def key_pair() -> KeyPair:
    return KeyPairGenerator().generate(IDENTITY, PASSPHRASE)


@pytest.fixture(scope="session")
def other_key_pair() -> KeyPair:
    return KeyPairGenerator().generate(OTHER_IDENTITY, OTHER_PASSPHRASE)


@pytest.fixture
def public_bundle(key_pair: KeyPair) -> PublicKeyRingBundle:
    return PublicKeyRingBundle.from_blob(key_pair.public_key)


@pytest.fixture
def secret_bundle(key_pair: KeyPair) -> SecretKeyRingBundle:
    return SecretKeyRingBundle.from_blob(key_pair.private_key)


@pytest.fixture
def signing_key(secret_bundle: SecretKeyRingBundle) -> Iterator[pgpy.PGPKey]:
    with KeySelector().unlock(secret_bundle.rings[0], PASSPHRASE) as key:
        yield key


@pytest.fixture(scope="session")
def key_files(tmp_path_factory: pytest.TempPathFactory, key_pair: KeyPair) -> tuple[Path, Path]:
    directory = tmp_path_factory.mktemp("keys")
    public_path = directory / "test.pub.asc"
    private_path = directory / "test.sec.asc"
    key_pair.save(public_path, private_path)
    return public_path, private_path


@pytest.fixture(scope="session")
def other_key_files(tmp_path_factory: pytest.TempPathFactory, other_key_pair: KeyPair) -> tuple[Path, Path]:
    directory = tmp_path_factory.mktemp("other-keys")
    public_path = directory / "other.pub.asc"
    private_path = directory / "other.sec.asc"
    other_key_pair.save(public_path, private_path)
    return public_path, private_path
