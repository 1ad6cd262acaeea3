# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Host runtime information.

The compatibility gate needs the interpreter version and the CLI needs a
snapshot of the host for diagnostics. Both come from here so nothing else
calls sys/platform directly.
"""

import platform
import sys
from typing import NamedTuple

MINIMUM_PYTHON = "3.11"


class SystemInfo(NamedTuple):
    """Snapshot of the current system environment."""

    python_version: str
    platform: str
    architecture: str
    hostname: str


def get_python_version() -> tuple[int, int, int]:
    """Return the current Python version as a (major, minor, micro) tuple."""
    return tuple(sys.version_info[:3])  # type: ignore[return-value]


def parse_version_floor(floor: str) -> tuple[int, int]:
    """
    Parse a "MAJOR.MINOR" floor string.

    Raises:
        ValueError: If the string isn't two dot-separated integers.
    """
    parts = floor.strip().split(".")
    if len(parts) != 2 or not all(part.isdigit() for part in parts):
        raise ValueError(f"Invalid Python version floor {floor!r}, expected MAJOR.MINOR")
    return int(parts[0]), int(parts[1])


def meets_python_floor(
    floor: str = MINIMUM_PYTHON,
    version: tuple[int, int, int] | None = None,
) -> bool:
    major, minor, _ = version or get_python_version()
    return (major, minor) >= parse_version_floor(floor)


def get_system_info() -> SystemInfo:
    """Collect basic system information for logging and diagnostics."""
    return SystemInfo(
        python_version=platform.python_version(),
        platform=platform.system(),
        architecture=platform.machine(),
        hostname=platform.node(),
    )
