import io

import pytest

from pgpfile.exceptions import MalformedMessageError
from pgpfile.packet.armor import BEGIN_MESSAGE, END_MESSAGE, ArmoredWriter, ArmorReader, crc24, open_message_stream
from pgpfile.packet.framing import FileSource


def _armor(data: bytes, headers: tuple[tuple[str, str], ...] = ()) -> bytes:
    sink = io.BytesIO()
    with ArmoredWriter(sink, headers) as writer:
        writer.write(data)
    return sink.getvalue()


def test_crc24_known_values() -> None:
    assert crc24(b"") == 0xB704CE
    assert crc24(b"123456789") == 0x21CF02


def test_crc24_is_incremental() -> None:
    assert crc24(b"6789", crc24(b"12345")) == crc24(b"123456789")


def test_armored_writer_layout() -> None:
    armored = _armor(bytes(100), headers=(("Comment", "test"),))
    lines = armored.splitlines()

    assert lines[0] == BEGIN_MESSAGE
    assert lines[1] == b"Comment: test"
    assert lines[2] == b""
    assert lines[-1] == END_MESSAGE
    assert lines[-2].startswith(b"=")
    assert len(lines[-2]) == 5
    assert all(len(line) <= 64 for line in lines[3:-2])


def test_armor_round_trip() -> None:
    data = bytes(range(256)) * 7

    reader = open_message_stream(io.BytesIO(_armor(data)))

    assert isinstance(reader, ArmorReader)
    assert reader.read() == data


def test_armor_reader_exposes_headers() -> None:
    reader = ArmorReader(FileSource(io.BytesIO(_armor(b"abc", headers=(("Version", "1"),)))))

    assert reader.read() == b"abc"
    assert reader.headers == {"Version": "1"}


def test_armor_reader_skips_leading_text() -> None:
    armored = b"Some mail preamble\n\n" + _armor(b"payload")

    assert open_message_stream(io.BytesIO(armored)).read() == b"payload"


def test_armor_reader_accepts_crlf_line_endings() -> None:
    armored = _armor(b"payload" * 20).replace(b"\n", b"\r\n")

    assert open_message_stream(io.BytesIO(armored)).read() == b"payload" * 20


def test_armor_reader_accepts_missing_checksum() -> None:
    lines = _armor(b"payload").splitlines()
    armored = b"\n".join(line for line in lines if not line.startswith(b"=")) + b"\n"

    assert open_message_stream(io.BytesIO(armored)).read() == b"payload"


def test_armor_reader_rejects_checksum_mismatch() -> None:
    lines = _armor(b"payload").splitlines()
    checksum = lines[-2]
    lines[-2] = b"=AAAB" if checksum == b"=AAAA" else b"=AAAA"
    armored = b"\n".join(lines) + b"\n"

    with pytest.raises(MalformedMessageError, match="Armor checksum mismatch"):
        open_message_stream(io.BytesIO(armored)).read()


def test_armor_reader_rejects_invalid_base64() -> None:
    lines = _armor(b"payload").splitlines()
    lines[2] = b"!!!!" + lines[2][4:]
    armored = b"\n".join(lines) + b"\n"

    with pytest.raises(MalformedMessageError, match="Invalid base64"):
        open_message_stream(io.BytesIO(armored)).read()


def test_armor_reader_rejects_missing_end_line() -> None:
    armored = b"\n".join(_armor(b"payload").splitlines()[:-2]) + b"\n"

    with pytest.raises(MalformedMessageError, match="missing its END line"):
        open_message_stream(io.BytesIO(armored)).read()


def test_armor_reader_rejects_other_block_types() -> None:
    armored = b"-----BEGIN PGP PUBLIC KEY BLOCK-----\n\nAAAA\n-----END PGP PUBLIC KEY BLOCK-----\n"

    with pytest.raises(MalformedMessageError, match="Expected an armored PGP MESSAGE"):
        open_message_stream(io.BytesIO(armored)).read()


def test_open_message_stream_rejects_empty_input() -> None:
    with pytest.raises(MalformedMessageError, match="Message is empty"):
        open_message_stream(io.BytesIO(b""))


def test_open_message_stream_rejects_plain_text() -> None:
    with pytest.raises(MalformedMessageError, match="neither a binary OpenPGP message"):
        open_message_stream(io.BytesIO(b"just some text\n")).read()


def test_open_message_stream_passes_binary_through() -> None:
    data = b"\xcb\x03abc"

    assert open_message_stream(io.BytesIO(data)).read() == data
