"""Common loading of configuration bitstream files."""

from __future__ import annotations

import abc
import gzip
import os
import sys
import zlib

from .display import print_info, print_success

_REVERSED = bytes(int(f"{i:08b}"[::-1], 2) for i in range(256))


def reverse_byte(value: int) -> int:
    """Return the byte with its bit order reversed (MSB <-> LSB)."""
    if not 0 <= value <= 0xFF:
        raise ValueError(f"not a byte value: {value}")
    return _REVERSED[value]


class BitstreamError(Exception):
    """Raised when a bitstream file cannot be read or parsed."""


def _decompress(raw: bytes) -> bytes:
    try:
        return gzip.decompress(raw)
    except (OSError, EOFError, zlib.error) as exc:
        raise BitstreamError("Error: decompress failed") from exc


class ConfigBitstreamParser(abc.ABC):
    """Base class: loads a file (or piped stdin) and holds the parsed data.

    Files whose extension is ``gz`` or ``gzip`` are decompressed. When the
    given file does not exist but has an extension, the name without its
    last extension is tried instead.
    """

    def __init__(self, filename: str | os.PathLike = "", verbose: bool = False):
        filename = os.fspath(filename)
        self.filename = filename
        self.verbose = verbose
        self._bit_data = bytearray()
        self._bit_length = 0
        self._hdr: dict[str, str] = {}
        if filename:
            self._raw_data = self._read_file(filename)
        else:
            self._raw_data = self._read_stdin()
        self.file_size = len(self._raw_data)

    def _read_file(self, filename: str) -> bytes:
        offset = filename.rfind(".")
        try:
            with open(filename, "rb") as handle:
                raw = handle.read()
        except OSError as exc:
            if offset == -1:
                raise BitstreamError(f"Error: fail to open {filename}") from exc
            self.filename = filename[:offset]
            try:
                with open(self.filename, "rb") as handle:
                    raw = handle.read()
            except OSError as exc2:
                raise BitstreamError(f"Error: fail to open {filename}") from exc2

        if offset != -1:
            extension = self.filename[self.filename.rfind(".") + 1:]
            if extension in ("gz", "gzip"):
                raw = _decompress(raw)
        return raw

    @staticmethod
    def _read_stdin() -> bytes:
        stream = sys.stdin
        if stream is None or stream.isatty():
            raise BitstreamError("Error: fail to parse. No filename or pipe")
        return stream.buffer.read()

    @abc.abstractmethod
    def parse(self) -> None:
        """Parse the raw file content; raise BitstreamError on failure."""

    @property
    def data(self) -> bytes:
        """Configuration data ready to be sent."""
        return bytes(self._bit_data)

    @property
    def length(self) -> int:
        """Length of the configuration data in bits."""
        return self._bit_length

    @property
    def header(self) -> dict[str, str]:
        """Copy of the header key/value pairs."""
        return dict(self._hdr)

    def header_value(self, key: str) -> str:
        """Return one header value; BitstreamError if the key is absent."""
        try:
            return self._hdr[key]
        except KeyError:
            raise BitstreamError(f"Error key {key} not found") from None

    def display_header(self) -> None:
        """Print all header entries, sorted by key."""
        if not self._hdr:
            return
        print("bitstream header infos")
        for key in sorted(self._hdr):
            print_info(f"{key}: ", False)
            print_success(self._hdr[key])