"""Base class shared by every programmable device."""

from __future__ import annotations

import abc
import enum
from typing import Any

from .display import print_error


class ProgMode(enum.IntEnum):
    """How the device is going to be accessed."""

    NONE = 0
    SPI = 1
    FLASH = 1
    MEM = 2
    READ = 3


class ProgType(enum.IntEnum):
    """What the user asked for."""

    WR_SRAM = 0
    WR_FLASH = 1
    RD_FLASH = 2
    PRG_NONE = 3


def resolve_file_extension(filename: str, file_type: str = "") -> str:
    """Return the effective type of a configuration file.

    An explicit ``file_type`` wins. A name without extension is ``raw``;
    for compressed files (``.gz``...) the extension before it is used.
    Raises ValueError when a compressed file has no inner extension.
    """
    offset = filename.rfind(".")
    extension = filename[offset + 1:]
    if file_type:
        return file_type
    if not filename:
        return extension
    if offset == -1:
        return "raw"
    if extension[:2] == "gz":
        inner = filename.rfind(".", 0, offset)
        if inner == -1:
            raise ValueError(
                f"file {filename} is compressed but its real type can't be "
                "determined: add the correct extension or give the file type")
        return filename[inner + 1:offset]
    return extension


class Device(abc.ABC):
    """A target that can be programmed, read back and reset."""

    def __init__(self, jtag: Any, filename: str, file_type: str = "",
                 verify: bool = False, verbose: int = 0):
        self.jtag = jtag
        self.filename = filename
        self.file_extension = resolve_file_extension(filename, file_type)
        self.mode = ProgMode.NONE
        self.verify = verify
        self.verbose = verbose > 0
        self.quiet = verbose < 0
        if self.verbose:
            print(f"File type : {self.file_extension}")

    @abc.abstractmethod
    def program(self, offset: int, unprotect_flash: bool) -> None:
        """Write the configuration file to the device."""

    def dump_flash(self, base_addr: int, length: int) -> bool:
        """Read flash content; devices without support report failure."""
        print_error("dump flash not supported")
        return False

    @abc.abstractmethod
    def protect_flash(self, length: int) -> bool:
        """Protect flash blocks covering ``length`` bytes."""

    @abc.abstractmethod
    def unprotect_flash(self) -> bool:
        """Remove flash block protection."""

    @abc.abstractmethod
    def bulk_erase_flash(self) -> bool:
        """Erase the whole flash."""

    @abc.abstractmethod
    def id_code(self) -> int:
        """Return the device IDCODE."""

    def reset(self) -> None:
        """Reset the device; reports and raises RuntimeError when unsupported."""
        message = f"reset not supported by {type(self).__name__}"
        print_error(message)
        raise RuntimeError(message)

    def connect_jtag_to_mcu(self) -> bool:
        """Route JTAG to an on-board MCU; unsupported by default."""
        return False