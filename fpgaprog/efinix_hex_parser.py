"""Parser for Efinix ``.hex`` configuration files."""

from __future__ import annotations

import re

from .bitstream import BitstreamError, ConfigBitstreamParser

_HEX_PREFIX = re.compile(r"\s*([+-]?)(?:0[xX])?([0-9a-fA-F]+)")


def _hex_byte(text: str) -> int:
    match = _HEX_PREFIX.match(text)
    if match is None:
        raise BitstreamError(f"invalid hexadecimal value: {text!r}")
    value = int(match.group(2), 16)
    if match.group(1) == "-":
        value = -value
    return value & 0xFF


class EfinixHexParser(ConfigBitstreamParser):
    """One hexadecimal byte per line, no comments, no blank lines."""

    def __init__(self, filename: str):
        super().__init__(filename, False)

    def parse(self) -> None:
        """Convert every line into one data byte."""
        lines = self._raw_data.decode("latin-1").split("\n")
        if lines and lines[-1] == "":
            lines.pop()
        self._bit_data = bytearray(_hex_byte(line) for line in lines)
        self._bit_length = len(self._bit_data) * 8