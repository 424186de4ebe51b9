"""Parser for Cologne Chip ``.cfg`` text configuration files."""

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


class CologneChipCfgParser(ConfigBitstreamParser):
    """One hexadecimal byte per line; ``//`` starts a comment."""

    def __init__(self, filename: str):
        super().__init__(filename, False)

    def parse(self) -> None:
        """Convert every non-empty line into one data byte."""
        text = self._raw_data.decode("latin-1")
        data = bytearray()
        for line in text.split("\n"):
            value = "".join(line.split("//", 1)[0].split())
            if value:
                data.append(_hex_byte(value))
        self._bit_data = data
        self._bit_length = len(data) * 8