"""Reporting and helper functions for virt-probe."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional, TextIO, Tuple

from virtprobe.constants import (
    MEMORY_PARAM_UNLIMITED,
    TRUTHY,
    VERSION_MAJOR_DIVISOR,
    VERSION_MINOR_DIVISOR,
)
from virtprobe.exceptions import ProbeError

_COLOURS = {
    "INFO": "\033[0;34m",
    "WARN": "\033[1;33m",
    "ERROR": "\033[0;31m",
    "SUCCESS": "\033[0;32m",
    "DEBUG": "\033[0;90m",
}


class Reporter:
    """Structured console output configured by its caller.

    Nothing here touches process-wide logging state: verbosity, colour and
    destinations are fixed when the reporter is built and every component
    that prints receives the reporter explicitly.
    """

    def __init__(
        self,
        verbose: bool = False,
        colour: Optional[bool] = None,
        stream: Optional[TextIO] = None,
        log_file: Optional[Path] = None,
    ) -> None:
        self.verbose = verbose
        self.stream = stream if stream is not None else sys.stdout
        if colour is None:
            colour = _is_tty(self.stream)
        self.colour = colour
        self.log_file = log_file
        if log_file is not None:
            try:
                open(log_file, "a", encoding="utf-8").close()
            except OSError as exc:
                raise ProbeError(f"Cannot open log file {log_file}: {exc}") from exc

    def log(self, level: str, message: str) -> None:
        if level == "DEBUG" and not self.verbose:
            return
        colour = _COLOURS.get(level, "") if self.colour else ""
        reset = "\033[0m" if colour else ""
        print(f"{colour}[{level}]{reset} {message}", file=self.stream, flush=True)
        if self.log_file is not None:
            try:
                with open(self.log_file, "a", encoding="utf-8") as f:
                    f.write(f"[{level}] {message}\n")
            except OSError as exc:
                # Console output continues without the file sink
                log_file, self.log_file = self.log_file, None
                self.log("WARN", f"Stopped writing to log file {log_file}: {exc}")


def _is_tty(stream: TextIO) -> bool:
    try:
        return stream.isatty()
    except (AttributeError, ValueError):
        return False


def decompose_version(version: int) -> Tuple[int, int, int]:
    """Split a libvirt encoded version into (major, minor, release)."""
    major = version // VERSION_MAJOR_DIVISOR
    version %= VERSION_MAJOR_DIVISOR
    minor = version // VERSION_MINOR_DIVISOR
    release = version % VERSION_MINOR_DIVISOR
    return major, minor, release


def format_kib(value: int) -> str:
    if value >= MEMORY_PARAM_UNLIMITED:
        return "unlimited"
    return f"{value} KiB"


def get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def get_env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.lower() in TRUTHY


def parse_int_env(name: str, default: str, min_val: int = 1, max_val: Optional[int] = None) -> int:
    raw = get_env(name, default)
    assert raw is not None
    return parse_int(name, raw, min_val=min_val, max_val=max_val)


def parse_int(name: str, raw, min_val: int = 1, max_val: Optional[int] = None) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ProbeError(f"{name} must be an integer (got '{raw}')")
    if value < min_val:
        raise ProbeError(f"{name} must be >= {min_val} (got {value})")
    if max_val is not None and value > max_val:
        raise ProbeError(f"{name} must be <= {max_val} (got {value})")
    return value
