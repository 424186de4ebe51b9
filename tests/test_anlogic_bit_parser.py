import pytest

from fpgaprog.anlogic_bit_parser import AnlogicBitParser
from fpgaprog.bitstream import BitstreamError, reverse_byte

HEADER = b"# Tang Dynasty\n# Bitstream: top\n\n"
BLOCK1 = bytes([0x01, 0x02, 0x03, 0x04])
BLOCK2 = bytes([0xA0, 0xB1])


def _block(content):
    return (len(content) * 8).to_bytes(2, "big") + content


def _write(tmp_path, content):
    path = tmp_path / "top.bit"
    path.write_bytes(content)
    return str(path)


def test_header_entries(tmp_path):
    path = _write(tmp_path, HEADER + _block(BLOCK1))
    parser = AnlogicBitParser(path, False)
    parser.parse()
    assert parser.header == {"tool": "Tang Dynasty", "Bitstream": "top"}


def test_blocks_concatenated(tmp_path):
    path = _write(tmp_path, HEADER + _block(BLOCK1) + _block(BLOCK2))
    parser = AnlogicBitParser(path, False)
    parser.parse()
    assert parser.data == BLOCK1 + BLOCK2
    assert parser.length == (len(BLOCK1) + len(BLOCK2)) * 8


def test_reverse_order(tmp_path):
    path = _write(tmp_path, HEADER + _block(BLOCK1) + _block(BLOCK2))
    parser = AnlogicBitParser(path, True)
    parser.parse()
    assert parser.data == bytes(reverse_byte(b) for b in BLOCK1 + BLOCK2)


def test_line_without_hash_rejected(tmp_path):
    path = _write(tmp_path, b"# ok\nbad line\n\n" + _block(BLOCK1))
    with pytest.raises(BitstreamError, match="must start with #"):
        AnlogicBitParser(path, False).parse()


def test_header_must_be_followed_by_zero(tmp_path):
    path = _write(tmp_path, HEADER + b"\x01\x00" + bytes(32))
    with pytest.raises(BitstreamError, match="0x00"):
        AnlogicBitParser(path, False).parse()


def test_length_not_byte_multiple(tmp_path):
    path = _write(tmp_path, HEADER + b"\x00\x21" + BLOCK1)
    with pytest.raises(BitstreamError):
        AnlogicBitParser(path, False).parse()


def test_block_larger_than_file(tmp_path):
    path = _write(tmp_path, HEADER + b"\x00\x40" + BLOCK1)
    with pytest.raises(BitstreamError, match="larger"):
        AnlogicBitParser(path, False).parse()


def test_missing_header_end(tmp_path):
    path = _write(tmp_path, b"# only header")
    with pytest.raises(BitstreamError, match="header end"):
        AnlogicBitParser(path, False).parse()