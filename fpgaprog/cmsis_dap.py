"""Driver for CMSIS-DAP probes used as JTAG adapters."""

from __future__ import annotations

import enum
from typing import Protocol

from .display import print_error, print_info, print_success
from .jtag_interface import CableError, JtagInterface


class Cmd(enum.IntEnum):
    """CMSIS-DAP commands used by this driver."""

    INFO = 0x00
    HOST_STATUS = 0x01
    CONNECT = 0x02
    DISCONNECT = 0x03
    RESET_TARGET = 0x0A
    SWJ_CLK = 0x11
    SWJ_SEQUENCE = 0x12
    JTAG_SEQUENCE = 0x14


CONNECT_DEFAULT = 0x00
CONNECT_SWD = 0x01
CONNECT_JTAG = 0x02

DAP_OK = 0x00
DAP_ERROR = 0xFF

SEQ_TDO_CAPTURE = 0x80

_REPORT_SIZE = 65
_PAYLOAD_SIZE = 63
_MAX_TMS = 256
_MAX_SEQUENCES = 7
_TIMEOUT_MS = 1000
_HWCAP_JTAG = 1 << 1


class InfoId(enum.IntEnum):
    """Identifiers accepted by the DAP_Info command."""

    VID = 0x01
    PID = 0x02
    SERNUM = 0x03
    FWVERS = 0x04
    TARGET_DEV_VENDOR = 0x05
    TARGET_DEV_NAME = 0x06
    HWCAP = 0xF0
    SWO_TEST_TIM_PARAM = 0xF1
    SWO_TRACE_BUF_SIZE = 0xFD
    MAX_PKT_CNT = 0xFE
    MAX_PKT_SZ = 0xFF

    @property
    def label(self) -> str:
        """Human readable name of the information."""
        return _INFO_LABELS[self]


_INFO_LABELS = {
    InfoId.VID: "VID",
    InfoId.PID: "PID",
    InfoId.SERNUM: "serial number",
    InfoId.FWVERS: "firmware version",
    InfoId.TARGET_DEV_VENDOR: "target device vendor",
    InfoId.TARGET_DEV_NAME: "target device name",
    InfoId.HWCAP: "hardware capabilities",
    InfoId.SWO_TEST_TIM_PARAM: "test domain timer parameter",
    InfoId.SWO_TRACE_BUF_SIZE: "SWO trace buffer size",
    InfoId.MAX_PKT_CNT: "max packet cnt",
    InfoId.MAX_PKT_SZ: "max packet size",
}


class InfoType(enum.IntEnum):
    """Encoding of a DAP_Info answer."""

    STRING = 0
    BYTE = 1
    SHORT = 2
    WORD = 3


_INFO_SIZES = {InfoType.BYTE: 1, InfoType.SHORT: 2, InfoType.WORD: 4}

_VERBOSE_INFOS = (
    (InfoId.VID, InfoType.STRING),
    (InfoId.PID, InfoType.STRING),
    (InfoId.SERNUM, InfoType.STRING),
    (InfoId.FWVERS, InfoType.STRING),
    (InfoId.TARGET_DEV_VENDOR, InfoType.STRING),
    (InfoId.TARGET_DEV_NAME, InfoType.STRING),
    (InfoId.HWCAP, InfoType.BYTE),
    (InfoId.SWO_TRACE_BUF_SIZE, InfoType.WORD),
    (InfoId.MAX_PKT_CNT, InfoType.BYTE),
    (InfoId.MAX_PKT_SZ, InfoType.SHORT),
)


class HidDevice(Protocol):
    """An opened HID device speaking 64 byte reports."""

    def write(self, data: bytes) -> int:
        """Send one report (report id first); return the bytes written."""

    def read(self, size: int, timeout: int) -> bytes:
        """Read one report; an empty result means timeout."""

    def close(self) -> None:
        """Release the device."""


def _bit(buf: bytes, index: int) -> int:
    byte = index >> 3
    if byte >= len(buf):
        return 0
    return (buf[byte] >> (index & 7)) & 1


def _pack(bits: list[int]) -> bytes:
    out = bytearray((len(bits) + 7) // 8)
    for index, value in enumerate(bits):
        if value:
            out[index >> 3] |= 1 << (index & 7)
    return bytes(out)


class CmsisDAP(JtagInterface):
    """JTAG through the CMSIS-DAP SWJ and JTAG sequence commands.

    TMS bits are buffered (up to 256) and sent with SWJ_Sequence; TDI
    transfers use JTAG_Sequence packets of at most 7 sequences.
    """

    def __init__(self, device: HidDevice, verbose: int = 0):
        self._device = device
        self.verbose = verbose
        self.vendor_id = getattr(device, "vendor_id", 0)
        self.product_id = getattr(device, "product_id", 0)
        self.serial_number = getattr(device, "serial_number", "") or ""
        self._clk_hz = 0
        self._tms_bits: list[int] = []
        self._connected = False
        self._closed = False

        try:
            if verbose:
                for info, info_type in _VERBOSE_INFOS:
                    self.display_info(info, info_type)
            caps = self.read_info(InfoId.HWCAP)
            if verbose:
                print(f"Hardware cap {caps.hex(' ')}")
            if not caps or not caps[0] & _HWCAP_JTAG:
                raise CableError("JTAG is not supported by the probe")
            if not self.connect():
                raise CableError("DAP connection in JTAG mode failed")
        except CableError:
            self._closed = True
            device.close()
            raise

    def __enter__(self) -> CmsisDAP:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def connected(self) -> bool:
        """True while the probe is connected in JTAG mode."""
        return self._connected

    def _transfer(self, request: bytes) -> bytes:
        if len(request) > _REPORT_SIZE - 1:
            raise ValueError("request larger than one report")
        report = bytes([0]) + request + bytes(_REPORT_SIZE - 1 - len(request))
        try:
            written = self._device.write(report)
        except OSError as exc:
            raise CableError(f"Error: hid write failed: {exc}") from exc
        if written is not None and written < 0:
            raise CableError("Error: hid write failed")
        try:
            reply = self._device.read(_REPORT_SIZE, _TIMEOUT_MS)
        except OSError as exc:
            raise CableError(f"Error comm: {exc}") from exc
        if not reply:
            raise CableError("Error timeout")
        return bytes(reply)

    def _command(self, instruction: int, payload: bytes = b"") -> bytes:
        reply = self._transfer(bytes([instruction]) + payload)
        if len(reply) < 2 or (reply[0] != instruction and reply[1] != DAP_OK):
            raise CableError(f"Error: command error for 0x{instruction:02x}")
        return reply[2:]

    def connect(self) -> bool:
        """Switch the probe to JTAG mode; False when the probe refuses."""
        if self._connected:
            return True
        reply = self._transfer(bytes([Cmd.CONNECT, CONNECT_JTAG]))
        if len(reply) < 2 or reply[0] != Cmd.CONNECT or reply[1] != CONNECT_JTAG:
            return False
        self._connected = True
        return True

    def disconnect(self) -> bool:
        """Leave JTAG mode."""
        if not self._connected:
            return True
        self._transfer(bytes([Cmd.DISCONNECT]))
        self._connected = False
        return True

    def reset_target(self) -> bool:
        """Ask the probe to reset the target."""
        self._transfer(bytes([Cmd.RESET_TARGET]))
        return True

    def read_info(self, info: int) -> bytes:
        """Return the raw bytes of one DAP_Info answer."""
        reply = self._transfer(bytes([Cmd.INFO, int(info)]))
        if len(reply) < 2:
            raise CableError(f"Error: short answer for info 0x{int(info):02x}")
        return reply[2:2 + reply[1]]

    def display_info(self, info: int, info_type: int) -> str | None:
        """Print one probe information; return the displayed value or None."""
        info = InfoId(info)
        info_type = InfoType(info_type)
        try:
            value = self.read_info(info)
        except CableError as exc:
            print(f"received error {exc} for command {int(info)}")
            return None

        label = info.label
        if not value:
            if info is InfoId.VID:
                text = f"{self.vendor_id:04x}"
            elif info is InfoId.PID:
                text = f"{self.product_id:04x}"
            elif info is InfoId.SERNUM and self.serial_number:
                text = self.serial_number
            elif info in (InfoId.TARGET_DEV_NAME, InfoId.TARGET_DEV_VENDOR):
                return None
            else:
                print_error(f"\t{label} : NA")
                return None
            print_info(f"\t{label}: {text}")
            return text

        expected = _INFO_SIZES.get(info_type)
        if expected is not None and len(value) != expected:
            print(f"Error: Waiting for {expected}Byte received {len(value)}")
            print(value.hex(" "))
            return None

        if info_type is InfoType.BYTE:
            text = f"{value[0]:02x}"
        elif info_type in (InfoType.SHORT, InfoType.WORD):
            text = str(int.from_bytes(value, "little"))
        else:
            text = value.split(b"\x00", 1)[0].decode("latin-1")
        print_info(f"\t{label} : ", False)
        print(text)
        return text

    def set_clk_freq(self, clk_hz: int) -> int:
        """Configure TCK; the probe receives the frequency in Hz, LSB first."""
        self._clk_hz = clk_hz
        try:
            self._command(Cmd.SWJ_CLK, (clk_hz & 0xFFFFFFFF).to_bytes(4, "little"))
        except CableError as exc:
            print_error("Failed to configure clk frequency")
            raise CableError("Failed to configure clk frequency") from exc
        if self.verbose:
            print_success("clk frequency conf done")
        return clk_hz

    def write_tms(self, tms: bytes, length: int, flush_buffer: bool = True) -> int:
        """Buffer TMS bits; they are sent at 256 bits or when flushing."""
        if length == 0:
            return self.flush() if flush_buffer else 0
        if len(tms) * 8 < length:
            raise ValueError(f"tms holds {len(tms) * 8} bits, {length} requested")
        for index in range(length):
            if len(self._tms_bits) == _MAX_TMS:
                self.flush()
            self._tms_bits.append(_bit(tms, index))
        if flush_buffer or len(self._tms_bits) == _MAX_TMS:
            self.flush()
        return length

    def _send_sequences(self, packet: bytes, counts: list[int],
                        read: bool) -> list[int]:
        data = self._command(Cmd.JTAG_SEQUENCE, bytes([len(counts)]) + packet)
        if not read:
            return []
        bits: list[int] = []
        pos = 0
        for count in counts:
            nbytes = (count + 7) // 8
            chunk = data[pos:pos + nbytes]
            bits.extend(_bit(chunk, i) for i in range(count))
            pos += nbytes
        return bits

    def _jtag_sequence(self, tms: int, tx: bytes, length: int, end: bool,
                       read: bool) -> list[int]:
        self.flush()
        real_len = length - (1 if end else 0)
        capture = SEQ_TDO_CAPTURE if read else 0
        base = capture | ((tms & 1) << 6)
        captured: list[int] = []
        packet = bytearray()
        counts: list[int] = []

        offset = 0
        while offset < real_len:
            nbits = min(real_len - offset, 64)
            nbytes = (nbits + 7) // 8
            room = _PAYLOAD_SIZE - 2 - len(packet)
            if nbytes > room:
                nbytes = room
                nbits = room * 8
            packet.append(base | (nbits & 0x3F))
            start = offset >> 3
            chunk = tx[start:start + nbytes]
            packet += chunk + bytes(nbytes - len(chunk))
            counts.append(nbits)
            offset += nbits
            if (not end and offset == real_len) or len(counts) == _MAX_SEQUENCES:
                captured += self._send_sequences(bytes(packet), counts, read)
                packet = bytearray()
                counts = []

        if end:
            packet.append(capture | (((tms & 1) ^ 1) << 6) | 1)
            packet.append(_bit(tx, real_len))
            counts.append(1)
            captured += self._send_sequences(bytes(packet), counts, read)
        return captured

    def write_tdi(self, tx: bytes | None, length: int, end: bool,
                  read: bool = False) -> bytes | None:
        """Shift TDI bits with TMS low; TMS rises with the last bit if ``end``."""
        if length <= 0:
            return b"" if read else None
        if tx is None:
            tx = bytes((length + 7) // 8)
        elif len(tx) * 8 < length:
            raise ValueError(f"tx holds {len(tx) * 8} bits, {length} requested")
        bits = self._jtag_sequence(0, bytes(tx), length, end, read)
        return _pack(bits) if read else None

    def toggle_clk(self, tms: int, tdi: int, clk_len: int) -> int:
        """Pulse TCK ``clk_len`` times with constant TMS and TDI."""
        if clk_len <= 0:
            return 0
        tx = bytes([0xFF if tdi else 0x00]) * ((clk_len + 7) // 8)
        self._jtag_sequence(tms, tx, clk_len, False, False)
        return clk_len

    def buffer_size(self) -> int:
        """Not used by this probe."""
        return 0

    def is_full(self) -> bool:
        """The TMS buffer is flushed automatically, so never full."""
        return False

    def flush(self) -> int:
        """Send buffered TMS bits; return how many were sent."""
        count = len(self._tms_bits)
        if count == 0:
            return 0
        bits = self._tms_bits
        self._tms_bits = []
        self._command(Cmd.SWJ_SEQUENCE, bytes([count & 0xFF]) + _pack(bits))
        return count

    def close(self) -> None:
        """Disconnect the probe and release the device."""
        if self._closed:
            return
        self._closed = True
        try:
            if self._connected:
                self.disconnect()
        except CableError:
            pass
        finally:
            self._device.close()