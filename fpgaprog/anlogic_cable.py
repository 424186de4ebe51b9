"""Driver for the Anlogic USB JTAG cable."""

from __future__ import annotations

import enum
from typing import Protocol

from .display import print_warn
from .jtag_interface import CableError, JtagInterface

VID = 0x0547
PID = 0x1002

CONF_EP = 0x08
WRITE_EP = 0x06
READ_EP = 0x82

FREQ_CMD = 0x01
MAX_FREQ = 6_000_000

_BLOCK_SIZE = 512
_TIMEOUT_MS = 1000


class BulkTransport(Protocol):
    """USB bulk endpoint access used by the probe drivers."""

    def write(self, endpoint: int, data: bytes, timeout: int) -> int:
        """Send ``data`` to ``endpoint``; return the number of bytes sent."""

    def read(self, endpoint: int, size: int, timeout: int) -> bytes:
        """Read up to ``size`` bytes from ``endpoint``."""


class Pin(enum.IntFlag):
    """Signal bits in one cable state byte (low nibble: value, high: enable)."""

    TMS = 1 << 0
    TDI = 1 << 1
    TCK = 1 << 2


_TCK_ENABLE = int(Pin.TCK) << 4
_TMS_BOTH = int(Pin.TMS) | (int(Pin.TMS) << 4)
_TDI_BOTH = int(Pin.TDI) | (int(Pin.TDI) << 4)

# (lowest frequency of the range, divider code)
_FREQ_TABLE = (
    (6_000_000, 0x00),
    (3_000_000, 0x04),
    (1_000_000, 0x14),
    (600_000, 0x24),
    (400_000, 0x38),
    (200_000, 0x70),
    (100_000, 0xE8),
    (90_000, 0xFF),
)


def frequency_setting(clk_hz: int) -> tuple[int, int]:
    """Return ``(divider code, real frequency)`` for a requested frequency.

    Below the slowest supported rate the code stays 0 and the request is
    passed through unchanged.
    """
    clk = min(clk_hz, MAX_FREQ)
    for freq, code in _FREQ_TABLE:
        if clk >= freq:
            return code, freq
    return 0, clk


def _bit(buf: bytes, index: int) -> int:
    return (buf[index >> 3] >> (index & 7)) & 1


def _pack(bits: list[int]) -> bytes:
    out = bytearray((len(bits) + 7) // 8)
    for index, value in enumerate(bits):
        if value:
            out[index >> 3] |= 1 << (index & 7)
    return bytes(out)


def _check_buffer(buf: bytes, length: int, name: str) -> None:
    if len(buf) * 8 < length:
        raise ValueError(f"{name} holds {len(buf) * 8} bits, {length} requested")


class AnlogicCable(JtagInterface):
    """Every transfer is a 512 state block written, then read back."""

    def __init__(self, transport: BulkTransport, clk_hz: int):
        self._transport = transport
        self._clk_hz = 0
        self.set_clk_freq(clk_hz)

    def _bulk_write(self, endpoint: int, data: bytes, what: str) -> int:
        try:
            return self._transport.write(endpoint, bytes(data), _TIMEOUT_MS)
        except OSError as exc:
            raise CableError(f"{what}: usb bulk write failed: {exc}") from exc

    def _exchange(self, block: bytes) -> bytes:
        self._bulk_write(WRITE_EP, block, "write")
        try:
            return self._transport.read(READ_EP, len(block), _TIMEOUT_MS)
        except OSError as exc:
            raise CableError(f"write: usb bulk read failed: {exc}") from exc

    @staticmethod
    def _pad(block: bytearray) -> None:
        if len(block) < _BLOCK_SIZE:
            block.extend([block[-1] | int(Pin.TCK)] * (_BLOCK_SIZE - len(block)))

    def set_clk_freq(self, clk_hz: int) -> int:
        """Select the closest supported frequency at or below ``clk_hz``."""
        if clk_hz > MAX_FREQ:
            print_warn("Anlogic JTAG probe limited to 6MHz")
        code, real = frequency_setting(clk_hz)
        self._bulk_write(CONF_EP, bytes([FREQ_CMD, code]), "setClkFreq")
        print_warn(f"Jtag frequency : requested {clk_hz}Hz -> real {real}Hz")
        self._clk_hz = real
        return real

    def write_tms(self, tms: bytes, length: int, flush_buffer: bool = True) -> int:
        """Clock out ``length`` TMS bits; the buffer is never kept."""
        if length == 0:
            return 0
        _check_buffer(tms, length, "tms")
        for start in range(0, length, _BLOCK_SIZE):
            count = min(_BLOCK_SIZE, length - start)
            block = bytearray(
                _TCK_ENABLE | (_TMS_BOTH if _bit(tms, start + i) else 0)
                for i in range(count))
            self._pad(block)
            self._exchange(block)
        return length

    def toggle_clk(self, tms: int, tdi: int, clk_len: int) -> int:
        """Pulse TCK ``clk_len`` times; return the number of pulses."""
        sig = (int(Pin.TMS) if tms else 0) | (int(Pin.TDI) if tdi else 0)
        state = sig | (sig << 4) | _TCK_ENABLE
        idle = state | int(Pin.TCK)
        remaining = clk_len
        while remaining > 0:
            count = min(_BLOCK_SIZE, remaining)
            block = bytes([state]) * count + bytes([idle]) * (_BLOCK_SIZE - count)
            self._exchange(block)
            remaining -= count
        return clk_len

    def write_tdi(self, tx: bytes | None, length: int, end: bool,
                  read: bool = False) -> bytes | None:
        """Shift TDI bits; TMS rises with the last bit when ``end`` is set."""
        if tx is not None:
            _check_buffer(tx, length, "tx")
        captured: list[int] = []
        for start in range(0, length, _BLOCK_SIZE):
            count = min(_BLOCK_SIZE, length - start)
            block = bytearray(
                _TCK_ENABLE
                | (_TDI_BOTH if tx is not None and _bit(tx, start + i) else 0)
                for i in range(count))
            if end and start + count == length:
                block[-1] |= _TMS_BOTH
            self._pad(block)
            response = self._exchange(block)
            if read:
                captured.extend(
                    (response[i] >> 4) & 1 if i < len(response) else 0
                    for i in range(count))
        return _pack(captured) if read else None

    def buffer_size(self) -> int:
        """The cable has no host side buffer."""
        return 0

    def is_full(self) -> bool:
        """Never full: every call is sent immediately."""
        return False

    def flush(self) -> int:
        """Nothing is buffered, so nothing is sent."""
        return 0