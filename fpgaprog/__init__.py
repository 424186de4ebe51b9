"""FPGA bitstream parsers, a device base class and JTAG probe protocol drivers."""

__version__ = "0.1.0"