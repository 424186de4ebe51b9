"""Parser for Xilinx ``.bit`` bitstream files."""

from __future__ import annotations

from .bitstream import BitstreamError, ConfigBitstreamParser, reverse_byte
from .display import print_warn


def _after_equal(text: str) -> str:
    _, sep, value = text.partition("=")
    return value if sep else text


class BitParser(ConfigBitstreamParser):
    """Reads the tagged header fields of a ``.bit`` file and its payload."""

    def __init__(self, filename: str, reverse_order: bool = False,
                 verbose: bool = False):
        super().__init__(filename, verbose)
        self.reverse_order = reverse_order

    def _u16(self, pos: int) -> int:
        if pos + 2 > len(self._raw_data):
            raise BitstreamError("Error: truncated bitstream header")
        return int.from_bytes(self._raw_data[pos:pos + 2], "big")

    def _parse_header(self) -> int:
        raw = self._raw_data
        pos = self._u16(0) + 2
        self._u16(pos)
        pos += 2

        while True:
            if pos >= len(raw):
                raise BitstreamError("Error: truncated bitstream header")
            field_type = chr(raw[pos])
            pos += 1
            if field_type != "e":
                length = self._u16(pos)
                pos += 2
            else:
                length = 4
            field = raw[pos:pos + length]
            if len(field) != length:
                raise BitstreamError("Error: truncated bitstream header")
            pos += length
            text = field.decode("latin-1").rstrip("\x00")

            if field_type == "a":
                parts = text.split(";")
                self._hdr["design_name"] = parts[0]
                self._hdr["userID"] = _after_equal(parts[1]) if len(parts) > 1 else ""
                self._hdr["toolVersion"] = (
                    _after_equal(";".join(parts[2:])) if len(parts) > 2 else "")
            elif field_type == "b":
                self._hdr["part_name"] = text
            elif field_type == "c":
                self._hdr["date"] = text
            elif field_type == "d":
                self._hdr["hour"] = text
            elif field_type == "e":
                self._bit_length = int.from_bytes(field, "big")
                return pos

    def parse(self) -> None:
        """Parse the header and extract the configuration payload."""
        pos = self._parse_header()
        rest = self.file_size - pos
        if self._bit_length < rest:
            print_warn("File is longer than bitstream length declared in the header: "
                       f"{rest} vs {self._bit_length}")
        elif self._bit_length > rest:
            raise BitstreamError(
                "File is shorter than bitstream length declared in the header: "
                f"{rest} vs {self._bit_length}")

        payload = self._raw_data[pos:pos + self._bit_length]
        if self.reverse_order:
            payload = bytes(reverse_byte(b) for b in payload)
        self._bit_data = bytearray(payload)
        self._bit_length *= 8