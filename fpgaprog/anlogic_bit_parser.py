"""Parser for Anlogic ``.bit`` bitstream files."""

from __future__ import annotations

from .bitstream import BitstreamError, ConfigBitstreamParser, reverse_byte
from .display import print_info


class AnlogicBitParser(ConfigBitstreamParser):
    """Reads the ``#`` text header and the length-prefixed data blocks."""

    def __init__(self, filename: str, reverse_order: bool = False,
                 verbose: bool = False):
        super().__init__(filename, verbose)
        self.reverse_order = reverse_order

    def _parse_header(self) -> int:
        raw = self._raw_data
        pos = 0
        while True:
            newline = raw.find(b"\n", pos)
            if newline == -1:
                raise BitstreamError("header end not found")
            line = raw[pos:newline].decode("latin-1")
            pos = newline + 1

            if not line:
                print_info("header end")
                break
            if not line.startswith("#"):
                raise BitstreamError("header must start with #")

            content = line[2:]
            entry, sep, _ = content.partition(":")
            if not sep:
                self._hdr["tool"] = content
            else:
                self._hdr[entry] = content[len(entry) + 2:]

        if pos >= len(raw) or raw[pos] != 0x00:
            raise BitstreamError("Header must end with 0x00 (binary) bit")
        return pos

    def parse(self) -> None:
        """Parse the header and concatenate every data block."""
        raw = self._raw_data
        pos = self._parse_header()
        blocks = []
        while True:
            if pos + 2 > len(raw):
                raise BitstreamError("error: truncated block length")
            length = int.from_bytes(raw[pos:pos + 2], "big")
            pos += 2
            if length & 7:
                raise BitstreamError("error: block length is not a byte multiple")
            length >>= 3
            if pos + length > len(raw):
                raise BitstreamError("error: block larger than file")
            blocks.append(raw[pos:pos + length])
            pos += length
            if pos >= len(raw):
                break

        data = b"".join(blocks)
        if self.reverse_order:
            data = bytes(reverse_byte(b) for b in data)
        self._bit_data = bytearray(data)
        self._bit_length = len(self._bit_data) * 8