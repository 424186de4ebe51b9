"""Coloured status messages for the terminal."""

from __future__ import annotations

import sys
from typing import TextIO

RESET = "\x1b[0m"
RED = "\x1b[31m"
GREEN = "\x1b[32m"
YELLOW = "\x1b[33m"
LIGHT_BLUE = "\x1b[94m"


def _emit(stream: TextIO, color: str, message: str, eol: bool) -> None:
    if stream.isatty():
        stream.write(f"{color}{message}{RESET}")
    else:
        stream.write(message)
    if eol:
        stream.write("\n")
    stream.flush()


def print_error(message: str, eol: bool = True) -> None:
    """Write an error message to standard error, red on a terminal."""
    _emit(sys.stderr, RED, message, eol)


def print_warn(message: str, eol: bool = True) -> None:
    """Write a warning to standard output, yellow on a terminal."""
    _emit(sys.stdout, YELLOW, message, eol)


def print_info(message: str, eol: bool = True) -> None:
    """Write an informational message to standard output, blue on a terminal."""
    _emit(sys.stdout, LIGHT_BLUE, message, eol)


def print_success(message: str, eol: bool = True) -> None:
    """Write a success message to standard output, green on a terminal."""
    _emit(sys.stdout, GREEN, message, eol)