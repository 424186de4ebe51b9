"""Parser for USB DFU firmware files, with optional DFU suffix."""

from __future__ import annotations

import struct
import zlib

from .bitstream import BitstreamError, ConfigBitstreamParser
from .display import print_warn

_SUFFIX_SIZE = 16
_SUFFIX = struct.Struct("<HHHH3sBI")


def dfu_crc(data: bytes) -> int:
    """CRC used by the DFU suffix: reflected CRC-32, seed 0xFFFFFFFF, no final XOR."""
    return zlib.crc32(data) ^ 0xFFFFFFFF


class DFUFileParser(ConfigBitstreamParser):
    """Reads a DFU file; when a DFU suffix is present it is decoded and checked."""

    def __init__(self, filename: str, verbose: bool = False):
        super().__init__(filename, verbose)
        self.bcd_dfu = 0
        self.bcd_device = 0
        self.dw_crc = 0
        self.b_length = 0
        self._id_vendor = 0
        self._id_product = 0

    @property
    def vendor_id(self) -> int:
        """USB vendor id found in the suffix (0 when absent)."""
        return self._id_vendor

    @property
    def product_id(self) -> int:
        """USB product id found in the suffix (0 when absent)."""
        return self._id_product

    def parse_header(self) -> bool:
        """Decode the DFU suffix.

        Returns True when a suffix is present, False otherwise. Raises
        BitstreamError when the file is too short to hold one.
        """
        if self.file_size <= _SUFFIX_SIZE:
            raise BitstreamError("Error: file too short for a DFU image")

        suffix = self._raw_data[-_SUFFIX_SIZE:]
        (bcd_device, id_product, id_vendor, bcd_dfu,
         signature, b_length, dw_crc) = _SUFFIX.unpack(suffix)
        signature = signature[::-1].decode("latin-1")
        if signature != "DFU":
            if self.verbose:
                print_warn("Not a DFU file")
            return False

        self.bcd_device = bcd_device
        self._id_product = id_product
        self._id_vendor = id_vendor
        self.bcd_dfu = bcd_dfu
        self.b_length = b_length
        self.dw_crc = dw_crc

        self._hdr = {
            "dwCRC": f"0x{dw_crc:08x}",
            "bLength": str(b_length),
            "ucDfuSignature": signature,
            "bcdDFU": f"0x{bcd_dfu:04x}",
            "idVendor": f"0x{id_vendor:04x}",
            "idProduct": f"0x{id_product:04x}",
            "bcdDevice": f"0X{bcd_device:04x}",
        }
        return True

    def parse(self) -> None:
        """Extract the firmware data and verify the suffix CRC if present."""
        has_suffix = self.parse_header()
        data = self._raw_data[:self.file_size - self.b_length]

        if has_suffix:
            crc = dfu_crc(self._raw_data[:-4])
            if crc != self.dw_crc:
                raise BitstreamError(
                    "Error: CRC didn't match computed value: "
                    f"{crc:08x} instead of {self.dw_crc:08x}")

        self._bit_data = bytearray(data)
        self._bit_length = len(self._bit_data) * 8