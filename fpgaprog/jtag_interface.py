"""Abstract interface between the JTAG engine and probe drivers."""

from __future__ import annotations

import abc


class CableError(Exception):
    """Raised when a probe cannot be opened or a transfer fails."""


class JtagInterface(abc.ABC):
    """Operations every JTAG probe provides.

    Bit buffers are LSB first: bit ``i`` lives in byte ``i // 8`` at
    position ``i % 8``.
    """

    _clk_hz: int = 0

    @abc.abstractmethod
    def set_clk_freq(self, clk_hz: int) -> int:
        """Configure the TCK frequency; return the frequency really used."""

    @property
    def clk_freq(self) -> int:
        """Current TCK frequency in Hz."""
        return self._clk_hz

    @abc.abstractmethod
    def write_tms(self, tms: bytes, length: int, flush_buffer: bool) -> int:
        """Send ``length`` TMS bits; return the number of bits handled."""

    @abc.abstractmethod
    def write_tdi(self, tx: bytes | None, length: int, end: bool,
                  read: bool = False) -> bytes | None:
        """Shift ``length`` TDI bits (zeros when ``tx`` is None).

        With ``end`` TMS rises together with the last bit. When ``read`` is
        true the captured TDO bits are returned, otherwise None.
        """

    def write_tms_tdi(self, tms: bytes, tdi: bytes,
                      length: int) -> bytes | None:
        """Send TMS and TDI together and return TDO.

        Probes without this combined transfer return None and send nothing.
        Raises ValueError when a buffer holds fewer than ``length`` bits.
        """
        needed = (length + 7) // 8
        for name, buf in (("tms", tms), ("tdi", tdi)):
            if len(buf) < needed:
                raise ValueError(
                    f"{name} holds {len(buf) * 8} bits, {length} required")
        return None

    @abc.abstractmethod
    def toggle_clk(self, tms: int, tdi: int, clk_len: int) -> int:
        """Pulse TCK ``clk_len`` times with constant TMS and TDI."""

    @abc.abstractmethod
    def buffer_size(self) -> int:
        """Size of the internal buffer in bytes."""

    @abc.abstractmethod
    def is_full(self) -> bool:
        """True when the internal buffer is full."""

    @abc.abstractmethod
    def flush(self) -> int:
        """Transmit whatever is buffered."""