[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fpgaprog"
version = "0.1.0"
description = "FPGA bitstream parsers, a device base class and JTAG probe protocol drivers"
requires-python = ">=3.10"
dependencies = []
keywords = ["fpga", "jtag", "bitstream", "dfu", "cmsis-dap", "dirtyjtag", "anlogic"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["fpgaprog"]

[tool.pytest.ini_options]
addopts = "-ra"
