# fpgaprog

Readers for FPGA configuration files and protocol drivers for a few JTAG
probes. The package has no dependencies outside the standard library.

## Bitstream parsers

Every parser derives from `fpgaprog.bitstream.ConfigBitstreamParser`. The
constructor reads the whole file; `parse()` decodes it and raises
`fpgaprog.bitstream.BitstreamError` when the content is invalid. After
parsing:

- `data` (property): the configuration bytes ready to send;
- `length` (property): their length in bits;
- `header` (property): a copy of the header key/value pairs;
- `header_value(key)`: one header value, `BitstreamError` if missing;
- `display_header()`: prints the header entries sorted by key.

Files ending in `.gz` or `.gzip` are decompressed with gzip. When a named
file does not exist but has an extension, the name without its last
extension is tried. An empty file name reads piped standard input (it
raises `BitstreamError` if standard input is a terminal).

| Module | Class | Input |
| --- | --- | --- |
| `fpgaprog.bit_parser` | `BitParser(filename, reverse_order, verbose)` | `.bit` files with tagged `a`–`e` header fields |
| `fpgaprog.anlogic_bit_parser` | `AnlogicBitParser(filename, reverse_order, verbose)` | Anlogic bitstreams: `#` text header, then length-prefixed blocks |
| `fpgaprog.colognechip_cfg_parser` | `CologneChipCfgParser(filename)` | one hex byte per line, `//` comments |
| `fpgaprog.efinix_hex_parser` | `EfinixHexParser(filename)` | one hex byte per line |
| `fpgaprog.dfu_file_parser` | `DFUFileParser(filename, verbose)` | DFU images with optional DFU suffix |

`reverse_order` reverses the bit order of every payload byte, using
`fpgaprog.bitstream.reverse_byte(value)`.

`DFUFileParser` decodes the 16 byte suffix (`parse_header()` returns
whether one is present), exposes `vendor_id` and `product_id` as
properties, and checks the suffix CRC during `parse()`. `dfu_crc(data)`
computes that CRC.

```python
from fpgaprog.bit_parser import BitParser

parser = BitParser("design.bit", reverse_order=False, verbose=False)
parser.parse()
print(parser.header_value("part_name"))
payload = parser.data
print(parser.length, "bits")
```

```python
from fpgaprog.dfu_file_parser import DFUFileParser

image = DFUFileParser("firmware.dfu", verbose=False)
image.parse()
print(hex(image.vendor_id), hex(image.product_id))
```

## Device base class

`fpgaprog.device` holds `ProgMode`, `ProgType` and the abstract `Device`
class, which stores the JTAG object, the file name and its resolved type.
Subclasses implement `program`, `protect_flash`, `unprotect_flash`,
`bulk_erase_flash` and `id_code`. By default `dump_flash` reports that it is
unsupported and returns `False`, `reset` raises `RuntimeError`, and
`connect_jtag_to_mcu` returns `False`.

`resolve_file_extension(filename, file_type)` returns the explicit type if
given, `raw` for names without an extension, and the inner extension of
compressed names (`design.bit.gz` gives `bit`); a compressed name without an
inner extension raises `ValueError`.

## JTAG probe drivers

All drivers implement `fpgaprog.jtag_interface.JtagInterface`:
`set_clk_freq`, `clk_freq`, `write_tms`, `write_tdi`, `write_tms_tdi`,
`toggle_clk`, `buffer_size`, `is_full` and `flush`. Bit buffers are LSB
first. `write_tdi(tx, length, end, read=False)` returns the captured TDO
bits when `read` is true. Transfer failures raise
`fpgaprog.jtag_interface.CableError`.

The drivers do not open USB devices themselves; you pass an object that
does the I/O:

- `fpgaprog.anlogic_cable.AnlogicCable(transport, clk_hz)` and
  `fpgaprog.dirty_jtag.DirtyJtag(transport, clk_hz, verbose)` take a
  `BulkTransport` (defined in `fpgaprog.anlogic_cable`) with
  `write(endpoint, data, timeout)` returning the bytes written and
  `read(endpoint, size, timeout)` returning bytes.
  `frequency_setting(clk_hz)` gives the Anlogic divider code and the real
  frequency. `DirtyJtag.read_version()` queries the protocol version (1–3).
- `fpgaprog.cmsis_dap.CmsisDAP(device, verbose)` takes a `HidDevice` with
  `write(data)`, `read(size, timeout)` and `close()`. It checks that the
  probe supports JTAG and connects in JTAG mode. It can be used as a context
  manager, and `close()` disconnects and closes the device. It also offers
  `connect`, `disconnect`, `reset_target`, `read_info(info)` and
  `display_info(info, info_type)` with the `InfoId` and `InfoType`
  enumerations.

## Console messages

`fpgaprog.display` provides `print_error`, `print_warn`, `print_info` and
`print_success`. Each takes `(message, eol=True)`. Errors go to standard
error and the other messages to standard output. The text is coloured only
when the stream is a terminal.

## What it does not do

There is no command-line program. The package has no USB or HID backend of
its own; the caller supplies the transport. It has no concrete FPGA device
classes: `Device` is only a base class, so nothing here programs a
particular FPGA or flash chip.

## Installation and tests

```
pip install .
pip install .[test]
pytest
```