import pytest

from fpgaprog.device import Device, ProgMode, ProgType, resolve_file_extension


class _Dummy(Device):
    def program(self, offset, unprotect_flash):
        self.programmed = (offset, unprotect_flash)

    def protect_flash(self, length):
        return True

    def unprotect_flash(self):
        return True

    def bulk_erase_flash(self):
        return True

    def id_code(self):
        return 0


def _blank():
    return _Dummy.__new__(_Dummy)


@pytest.mark.parametrize("filename,file_type,expected", [
    ("design.bit", "", "bit"),
    ("design", "", "raw"),
    ("design.bit.gz", "", "bit"),
    ("design.rbf.gzip", "", "rbf"),
    ("design.bit", "svf", "svf"),
    ("design", "rbf", "rbf"),
    ("", "", ""),
])
def test_resolve_file_extension(filename, file_type, expected):
    assert resolve_file_extension(filename, file_type) == expected


def test_compressed_without_inner_extension_raises():
    with pytest.raises(ValueError):
        resolve_file_extension("design.gz", "")


def test_device_defaults():
    dev = _blank()
    Device.__init__(dev, None, "top.bit", "", True, 0)
    assert dev.file_extension == "bit"
    assert dev.mode == ProgMode.NONE
    assert dev.verify is True
    assert dev.verbose is False
    assert dev.quiet is False


def test_device_quiet():
    dev = _blank()
    Device.__init__(dev, None, "top.bit", "", False, -1)
    assert dev.quiet is True
    assert dev.verbose is False


def test_device_verbose_prints_type(capsys):
    dev = _blank()
    Device.__init__(dev, None, "top.rbf.gz", "", False, 1)
    assert dev.verbose is True
    assert "File type : rbf" in capsys.readouterr().out


def test_device_bad_compressed_name_raises():
    with pytest.raises(ValueError):
        Device.__init__(_blank(), None, "top.gz", "", False, 0)


def test_reset_unsupported():
    dev = _blank()
    Device.__init__(dev, None, "top.bit", "", False, 0)
    with pytest.raises(RuntimeError):
        Device.reset(dev)


def test_dump_flash_unsupported(capsys):
    dev = _blank()
    Device.__init__(dev, None, "top.bit", "", False, 0)
    assert Device.dump_flash(dev, 0, 16) is False
    assert "dump flash not supported" in capsys.readouterr().err


def test_connect_jtag_to_mcu_default():
    dev = _blank()
    Device.__init__(dev, None, "a.bit", "", False, 0)
    assert Device.connect_jtag_to_mcu(dev) is False


def test_abstract_device_cannot_be_built():
    with pytest.raises(TypeError):
        Device(None, "a.bit", "", False, 0)


def test_mode_aliases_and_values():
    assert ProgMode(1) is ProgMode.SPI
    assert ProgMode(1) is ProgMode.FLASH
    assert ProgMode(2) is ProgMode.MEM
    assert ProgType(2) is ProgType.RD_FLASH