from pgpfile.exceptions import (
    CryptoError,
    MalformedMessageError,
    MissingFileError,
    PGPFileError,
    SecretKeyNotFoundError,
    UnexpectedPacketError,
    UnsupportedAlgorithmError,
    WrongPassphraseError,
)


def test_pgp_file_error_str_without_context() -> None:
    error = PGPFileError("Something failed")

    assert str(error) == "Something failed"


def test_pgp_file_error_str_with_context() -> None:
    error = PGPFileError("Failed", key_id="ABCD", attempt=3)

    assert "Failed" in str(error)
    assert "key_id='ABCD'" in str(error)
    assert "attempt=3" in str(error)


def test_missing_file_error_keeps_path() -> None:
    error = MissingFileError("Not found", path="/tmp/missing")

    assert error.path == "/tmp/missing"
    assert "path='/tmp/missing'" in str(error)


def test_wrong_passphrase_is_a_secret_key_error() -> None:
    error = WrongPassphraseError("Bad passphrase", key_id="0123456789ABCDEF")

    assert isinstance(error, SecretKeyNotFoundError)
    assert isinstance(error, CryptoError)
    assert error.key_id == "0123456789ABCDEF"


def test_unexpected_packet_error_is_malformed_message() -> None:
    error = UnexpectedPacketError("Unexpected", tag=11, offset=42)

    assert isinstance(error, MalformedMessageError)
    assert error.tag == 11
    assert error.offset == 42
    assert "tag=11" in str(error)


def test_unsupported_algorithm_error_keeps_algorithm() -> None:
    error = UnsupportedAlgorithmError("Nope", algorithm=10)

    assert error.algorithm == 10
