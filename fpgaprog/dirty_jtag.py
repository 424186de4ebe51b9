"""Driver for DirtyJTAG USB probes (protocol versions 1 to 3)."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from .anlogic_cable import BulkTransport
from .display import print_error, print_info, print_warn
from .jtag_interface import CableError, JtagInterface

VID = 0x1209
PID = 0xC0CA

INTERFACE = 0
WRITE_EP = 0x01
READ_EP = 0x82

MAX_FREQ = 16_000_000
_TIMEOUT_MS = 1000
_TMS_PACKET_SIZE = 64


class Cmd(enum.IntEnum):
    """Probe commands."""

    STOP = 0x00
    INFO = 0x01
    FREQ = 0x02
    XFER = 0x03
    SETSIG = 0x04
    GETSIG = 0x05
    CLK = 0x06


EXTEND_LENGTH = 0x40
NO_READ = 0x80


class Sig(enum.IntFlag):
    """Signal bits used by SETSIG, GETSIG and CLK."""

    TCK = 1 << 1
    TDI = 1 << 2
    TDO = 1 << 3
    TMS = 1 << 4


@dataclass(frozen=True)
class _VersionOptions:
    no_read: int
    max_bits: int


_VERSION_OPTIONS = (
    _VersionOptions(0, 240),
    _VersionOptions(0, 240),
    _VersionOptions(NO_READ, 496),
    _VersionOptions(NO_READ, 4000),
)

_VERSION_BANNERS = {b"DJTAG1\n": 1, b"DJTAG2\n": 2, b"DJTAG3\n": 3}


def _bit(buf: bytes, index: int) -> int:
    return (buf[index >> 3] >> (index & 7)) & 1


def _pack(bits: list[int]) -> bytes:
    out = bytearray((len(bits) + 7) // 8)
    for index, value in enumerate(bits):
        if value:
            out[index >> 3] |= 1 << (index & 7)
    return bytes(out)


class DirtyJtag(JtagInterface):
    """JTAG over the DirtyJTAG bulk protocol."""

    def __init__(self, transport: BulkTransport, clk_hz: int, verbose: int = 0):
        self._transport = transport
        self.verbose = verbose
        self._clk_hz = 0
        self.version = 0
        self.read_version()
        self.set_clk_freq(clk_hz)

    def _bulk_write(self, data: bytes, what: str) -> int:
        try:
            return self._transport.write(WRITE_EP, bytes(data), _TIMEOUT_MS)
        except OSError as exc:
            raise CableError(f"{what}: usb bulk write failed: {exc}") from exc

    def _read_nonempty(self, size: int, what: str) -> bytes:
        while True:
            try:
                reply = self._transport.read(READ_EP, size, _TIMEOUT_MS)
            except OSError as exc:
                raise CableError(f"{what}: usb bulk read failed: {exc}") from exc
            if reply:
                return bytes(reply)

    def read_version(self) -> int:
        """Ask the probe for its protocol version (0 when unknown)."""
        self._bulk_write(bytes([Cmd.INFO, Cmd.STOP]), "getVersion")
        reply = self._read_nonempty(64, "getVersion")
        version = _VERSION_BANNERS.get(reply[:7])
        if version is None:
            print_error("dirtyJtag version unknown")
            version = 0
        self.version = version
        return version

    def set_clk_freq(self, clk_hz: int) -> int:
        """Set TCK in kHz steps, capped at 16 MHz; return the frequency used."""
        requested = clk_hz
        if clk_hz > MAX_FREQ:
            print_warn("DirtyJTAG probe limited to 16000kHz")
            clk_hz = MAX_FREQ
        self._clk_hz = clk_hz
        print_info(f"Jtag frequency : requested {requested}Hz -> real {clk_hz}Hz")
        khz = clk_hz // 1000
        self._bulk_write(
            bytes([Cmd.FREQ, (khz >> 8) & 0xFF, khz & 0xFF, Cmd.STOP]),
            "setClkFreq")
        return clk_hz

    def write_tms(self, tms: bytes, length: int, flush_buffer: bool = True) -> int:
        """Bit-bang ``length`` TMS states with SETSIG commands."""
        if length == 0:
            return 0
        if len(tms) * 8 < length:
            raise ValueError(f"tms holds {len(tms) * 8} bits, {length} requested")
        mask = int(Sig.TCK | Sig.TMS)
        packet = bytearray()
        for index in range(length):
            val = int(Sig.TMS) if _bit(tms, index) else 0
            packet += bytes([Cmd.SETSIG, mask, val,
                             Cmd.SETSIG, mask, val | int(Sig.TCK)])
            last = index == length - 1
            if len(packet) + 9 >= _TMS_PACKET_SIZE or last:
                if last:
                    packet += bytes([Cmd.SETSIG, mask, val])
                packet.append(Cmd.STOP)
                self._bulk_write(packet, "writeTMS")
                packet = bytearray()
        return length

    def toggle_clk(self, tms: int, tdi: int, clk_len: int) -> int:
        """Pulse TCK ``clk_len`` times, up to 64 per command."""
        sig = (int(Sig.TMS) if tms else 0) | (int(Sig.TDI) if tdi else 0)
        remaining = clk_len
        while remaining > 0:
            count = min(64, remaining)
            self._bulk_write(bytes([Cmd.CLK, sig, count, Cmd.STOP]), "toggleClk")
            remaining -= count
        return clk_len

    def _xfer_header(self, cmd: int, count: int) -> bytes:
        if self.version == 3:
            return bytes([cmd, (count >> 8) & 0xFF, count & 0xFF])
        if count > 255:
            return bytes([cmd | EXTEND_LENGTH, count - 256])
        return bytes([cmd & ~EXTEND_LENGTH, count])

    def write_tdi(self, tx: bytes | None, length: int, end: bool,
                  read: bool = False) -> bytes | None:
        """Shift TDI with XFER commands; the last bit goes with TMS if ``end``."""
        if length == 0:
            return b"" if read else None
        byte_len = (length + 7) // 8
        if tx is None:
            tx_bits = bytes(byte_len)
        else:
            if len(tx) * 8 < length:
                raise ValueError(f"tx holds {len(tx) * 8} bits, {length} requested")
            tx_bits = bytes(tx[:byte_len])

        options = _VERSION_OPTIONS[self.version]
        cmd = int(Cmd.XFER) | (0 if read else options.no_read)
        real_bits = length - (1 if end else 0)
        captured: list[int] = []

        offset = 0
        while offset < real_bits:
            count = min(real_bits - offset, options.max_bits)
            nbytes = (count + 7) // 8
            payload = bytearray(nbytes)
            for i in range(count):
                if _bit(tx_bits, offset + i):
                    payload[i >> 3] |= 0x80 >> (i & 7)
            packet = self._xfer_header(cmd, count) + bytes(payload)
            written = self._bulk_write(packet, "writeTDI")
            if written != len(packet):
                raise CableError(
                    f"writeTDI: usb bulk write failed, actual length: {written}")

            if read or self.version <= 1:
                size = nbytes if count > 255 else 32
                reply = self._read_nonempty(size, "writeTDI")
                if len(reply) < nbytes:
                    raise CableError(
                        f"writeTDI: short read: {len(reply)} of {nbytes} bytes")
                if read:
                    captured.extend((reply[i >> 3] >> (7 - (i & 7))) & 1
                                    for i in range(count))
            offset += count

        if end:
            last_bit = int(Sig.TDI) if _bit(tx_bits, length - 1) else 0
            mask = int(Sig.TMS | Sig.TDI)
            val = int(Sig.TMS) | last_bit
            if read:
                mask |= int(Sig.TCK)
                self._bulk_write(
                    bytes([Cmd.SETSIG, mask, val,
                           Cmd.SETSIG, mask, val | int(Sig.TCK),
                           Cmd.GETSIG, Cmd.STOP]),
                    "writeTDI: last bit")
                sig = self._read_nonempty(1, "writeTDI: last bit")[0]
                captured.append(1 if sig & Sig.TDO else 0)
                self._bulk_write(bytes([Cmd.SETSIG, mask, val, Cmd.STOP]),
                                 "writeTDI: last bit")
            else:
                self.toggle_clk(1, last_bit, 1)

        return _pack(captured) if read else None

    def buffer_size(self) -> int:
        """The probe driver keeps no buffer."""
        return 0

    def is_full(self) -> bool:
        """Never full: every call is sent immediately."""
        return False

    def flush(self) -> int:
        """Nothing is buffered, so nothing is sent."""
        return 0