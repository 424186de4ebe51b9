import pytest

from fpgaprog.cmsis_dap import CmsisDAP, InfoId, InfoType
from fpgaprog.jtag_interface import CableError


def _bits(buf, count):
    return [(buf[i >> 3] >> (i & 7)) & 1 for i in range(count)]


def _pack(bits):
    out = bytearray((len(bits) + 7) // 8)
    for i, value in enumerate(bits):
        if value:
            out[i >> 3] |= 1 << (i & 7)
    return bytes(out)


class FakeProbe:
    def __init__(self, caps=0x02, connect_reply=(0x02, 0x02), infos=None):
        self.vendor_id = 0x1234
        self.product_id = 0xABCD
        self.serial_number = "SN-TEST-0001"
        self.infos = {0xF0: bytes([caps])}
        if infos:
            self.infos.update(infos)
        self.connect_reply = bytes(connect_reply)
        self.reports = []
        self.closed = False
        self.force_reply = None
        self.swj_bits = []
        self.tdi = []
        self.tms = []
        self.packets = []
        self._pending = b""

    def write(self, data):
        data = bytes(data)
        self.reports.append(data)
        self._pending = self._respond(data)
        return len(data)

    def read(self, size, timeout):
        if self.force_reply is not None:
            return self.force_reply
        return (self._pending + bytes(64))[:64]

    def close(self):
        self.closed = True

    def _respond(self, data):
        cmd = data[1]
        body = data[2:]
        if cmd == 0x00:
            value = self.infos.get(body[0], b"")
            return bytes([0x00, len(value)]) + value
        if cmd == 0x02:
            return self.connect_reply
        if cmd == 0x12:
            count = body[0] or 256
            self.swj_bits.extend(_bits(body[1:], count))
            return bytes([cmd, 0])
        if cmd == 0x14:
            count = body[0]
            pos = 1
            tdo = bytearray()
            for _ in range(count):
                info = body[pos]
                pos += 1
                nbits = (info & 0x3F) or 64
                nbytes = (nbits + 7) // 8
                chunk = body[pos:pos + nbytes]
                pos += nbytes
                self.tdi.extend(_bits(chunk, nbits))
                self.tms.extend([(info >> 6) & 1] * nbits)
                if info & 0x80:
                    tdo += chunk
            self.packets.append((count, pos))
            return bytes([cmd, 0]) + bytes(tdo)
        return bytes([cmd, 0])


def _pattern(nbytes):
    return bytes((i * 37 + 11) & 0xFF for i in range(nbytes))


def test_constructor_connects_in_jtag_mode():
    probe = FakeProbe()
    dap = CmsisDAP(probe)
    assert dap.connected
    assert probe.reports[-1][:3] == bytes([0, 0x02, 0x02])
    assert len(probe.reports[-1]) == 65


def test_constructor_rejects_probe_without_jtag():
    probe = FakeProbe(caps=0x01)
    with pytest.raises(CableError, match="JTAG is not supported"):
        CmsisDAP(probe)
    assert probe.closed


def test_constructor_fails_when_connect_refused():
    probe = FakeProbe(connect_reply=(0x02, 0x00))
    with pytest.raises(CableError, match="connection"):
        CmsisDAP(probe)
    assert probe.closed


def test_verbose_constructor_displays_infos(capsys):
    probe = FakeProbe(infos={0xFF: (64).to_bytes(2, "little")})
    CmsisDAP(probe, verbose=1)
    out = capsys.readouterr().out
    assert "max packet size" in out
    assert "Hardware cap" in out


def test_connect_twice_sends_nothing():
    probe = FakeProbe()
    dap = CmsisDAP(probe)
    before = len(probe.reports)
    assert dap.connect() is True
    assert len(probe.reports) == before


def test_set_clk_freq_sends_little_endian():
    probe = FakeProbe()
    dap = CmsisDAP(probe)
    assert dap.set_clk_freq(1_000_000) == 1_000_000
    report = probe.reports[-1]
    assert report[1] == 0x11
    assert report[2:6] == (1_000_000).to_bytes(4, "little")
    assert dap.clk_freq == 1_000_000


def test_command_error_raises():
    probe = FakeProbe()
    dap = CmsisDAP(probe)
    probe.force_reply = bytes([0x99, 0xFF]) + bytes(62)
    with pytest.raises(CableError):
        dap.set_clk_freq(500_000)


def test_timeout_raises():
    probe = FakeProbe()
    dap = CmsisDAP(probe)
    probe.force_reply = b""
    with pytest.raises(CableError, match="timeout"):
        dap.reset_target()


def test_reset_target_sends_command():
    probe = FakeProbe()
    dap = CmsisDAP(probe)
    assert dap.reset_target() is True
    assert probe.reports[-1][1] == 0x0A


def test_write_tms_buffers_until_flush():
    probe = FakeProbe()
    dap = CmsisDAP(probe)
    before = len(probe.reports)
    assert dap.write_tms(bytes([0b101]), 3, False) == 3
    assert len(probe.reports) == before
    assert dap.flush() == 3
    assert probe.reports[-1][1] == 0x12
    assert probe.reports[-1][2] == 3
    assert probe.swj_bits == [1, 0, 1]


def test_flush_without_bits_sends_nothing():
    probe = FakeProbe()
    dap = CmsisDAP(probe)
    before = len(probe.reports)
    assert dap.flush() == 0
    assert len(probe.reports) == before


def test_write_tms_flushes_at_256_bits():
    probe = FakeProbe()
    dap = CmsisDAP(probe)
    pattern = _pattern(38)
    dap.write_tms(pattern, 300, False)
    swj_reports = [r for r in probe.reports if r[1] == 0x12]
    assert len(swj_reports) == 1
    assert swj_reports[0][2] == 0
    assert probe.swj_bits == _bits(pattern, 256)
    assert dap.flush() == 44
    assert probe.swj_bits == _bits(pattern, 300)


def test_write_tms_rejects_short_buffer():
    dap = CmsisDAP(FakeProbe())
    with pytest.raises(ValueError):
        dap.write_tms(b"\x00", 9, True)


@pytest.mark.parametrize("length", [1, 7, 8, 10, 63, 64, 65, 200, 447, 448, 449, 1000])
@pytest.mark.parametrize("end", [False, True])
def test_write_tdi_loopback(length, end):
    probe = FakeProbe()
    dap = CmsisDAP(probe)
    tx = _pattern((length + 7) // 8)
    rx = dap.write_tdi(tx, length, end, read=True)
    expected = _bits(tx, length)
    assert rx == _pack(expected)
    assert probe.tdi == expected
    assert probe.tms == [0] * (length - 1) + [1 if end else 0]


def test_sequence_packets_respect_limits():
    probe = FakeProbe()
    dap = CmsisDAP(probe)
    dap.write_tdi(_pattern(250), 2000, True, read=True)
    assert probe.packets
    assert all(count <= 7 for count, _ in probe.packets)
    assert all(used <= 63 for _, used in probe.packets)
    assert len(probe.tdi) == 2000


def test_write_tdi_flushes_pending_tms_first():
    probe = FakeProbe()
    dap = CmsisDAP(probe)
    dap.write_tms(bytes([0b11]), 2, False)
    dap.write_tdi(b"\xff", 8, False)
    commands = [r[1] for r in probe.reports[-2:]]
    assert commands == [0x12, 0x14]
    assert probe.swj_bits == [1, 1]


def test_write_tdi_without_tx_shifts_zeros():
    probe = FakeProbe()
    dap = CmsisDAP(probe)
    assert dap.write_tdi(None, 20, False) is None
    assert probe.tdi == [0] * 20


def test_write_tdi_rejects_short_buffer():
    dap = CmsisDAP(FakeProbe())
    with pytest.raises(ValueError):
        dap.write_tdi(b"\x00", 16, False)


def test_toggle_clk_keeps_tms_and_tdi():
    probe = FakeProbe()
    dap = CmsisDAP(probe)
    assert dap.toggle_clk(1, 1, 70) == 70
    assert probe.tms == [1] * 70
    assert probe.tdi == [1] * 70


def test_read_info_returns_value():
    probe = FakeProbe(infos={0x04: b"2.1.0\x00"})
    dap = CmsisDAP(probe)
    assert dap.read_info(InfoId.FWVERS) == b"2.1.0\x00"


def test_display_info_values(capsys):
    probe = FakeProbe(infos={0xFF: (64).to_bytes(2, "little"),
                             0x04: b"2.1.0\x00",
                             0xFE: b"\x01\x02"})
    dap = CmsisDAP(probe)
    assert dap.display_info(InfoId.MAX_PKT_SZ, InfoType.SHORT) == "64"
    assert dap.display_info(InfoId.FWVERS, InfoType.STRING) == "2.1.0"
    assert dap.display_info(InfoId.MAX_PKT_CNT, InfoType.BYTE) is None
    assert dap.display_info(InfoId.TARGET_DEV_NAME, InfoType.STRING) is None
    assert dap.display_info(InfoId.SERNUM, InfoType.STRING) == "SN-TEST-0001"
    out = capsys.readouterr().out
    assert "Waiting for 1Byte received 2" in out


def test_close_disconnects_and_releases():
    probe = FakeProbe()
    with CmsisDAP(probe) as dap:
        assert dap.connected
    assert probe.reports[-1][1] == 0x03
    assert probe.closed
    assert not dap.connected