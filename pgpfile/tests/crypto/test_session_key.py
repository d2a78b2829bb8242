import io

import pytest

from pgpfile.crypto.key_selector import KeySelector
from pgpfile.crypto.keyring import PublicKeyRingBundle, SecretKeyRingBundle
from pgpfile.crypto.session_key import decrypt_session_key, encrypt_session_key, generate_session_key
from pgpfile.exceptions import SessionKeyError, UnsupportedAlgorithmError
from pgpfile.models.crypto import EncryptedSessionKeyEntry, KeyPair, SymmetricAlgorithm
from pgpfile.models.packets import PacketTag
from pgpfile.packet.framing import BodyReader, FileSource, read_header
from pgpfile.tests.constants import OTHER_PASSPHRASE, PASSPHRASE


def _entry(packet: bytes, key_id: str) -> EncryptedSessionKeyEntry:
    return EncryptedSessionKeyEntry(key_id=key_id, algorithm=1, packet=packet)


def test_generate_session_key_uses_algorithm_key_size() -> None:
    session_key = generate_session_key(SymmetricAlgorithm.AES_128)

    assert len(session_key.key_data) == 16
    assert generate_session_key(SymmetricAlgorithm.AES_128) != session_key


def test_generate_session_key_rejects_plaintext() -> None:
    with pytest.raises(UnsupportedAlgorithmError):
        generate_session_key(SymmetricAlgorithm.PLAINTEXT)


def test_session_key_round_trip(
    key_pair: KeyPair,
    public_bundle: PublicKeyRingBundle,
    secret_bundle: SecretKeyRingBundle,
) -> None:
    session_key = generate_session_key(SymmetricAlgorithm.AES_256)
    packet = encrypt_session_key(session_key, public_bundle.rings[0])

    selector = KeySelector()
    with selector.unlock_secret_key(secret_bundle, key_pair.key_id, PASSPHRASE) as key:
        recovered = decrypt_session_key(_entry(packet, key_pair.key_id), key)

    assert recovered == session_key


def test_session_key_packet_names_recipient(key_pair: KeyPair, public_bundle: PublicKeyRingBundle) -> None:
    packet = encrypt_session_key(generate_session_key(SymmetricAlgorithm.CAST5), public_bundle.rings[0])

    source = FileSource(io.BytesIO(packet))
    header = read_header(source)
    assert header is not None
    assert header.tag == PacketTag.PUBLIC_KEY_ENCRYPTED_SESSION_KEY
    body = BodyReader(source, header).read()
    assert body[0] == 3
    assert body[1:9].hex().upper() == key_pair.key_id
    assert body[9] == 1


def test_decrypt_session_key_with_wrong_key_fails(
    key_pair: KeyPair,
    other_key_pair: KeyPair,
    public_bundle: PublicKeyRingBundle,
) -> None:
    packet = encrypt_session_key(generate_session_key(SymmetricAlgorithm.AES_256), public_bundle.rings[0])
    other = SecretKeyRingBundle.from_blob(other_key_pair.private_key)

    with KeySelector().unlock(other.rings[0], OTHER_PASSPHRASE) as key:
        with pytest.raises(SessionKeyError, match="Failed to decrypt session key"):
            decrypt_session_key(_entry(packet, key_pair.key_id), key)
