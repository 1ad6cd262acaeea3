# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Platform identification.

Maps the running OS and CPU architecture to one of the manifest's platform
keys, `{os}-{arch}`. The lookup is a fixed table. Two leniencies are kept on
purpose:
  - an unrecognized architecture falls back to x64, so an odd `uname -m`
    still produces an attempt instead of a refusal
  - an unrecognized OS name passes through unchanged, so a key like
    `sunos-x64` is formed and reported as unsupported downstream

detect() is a pure function of its inputs (or of `platform` when called with
none). The entry point calls it once and hands the result down.
"""

import platform as _platform
from typing import NamedTuple, Optional

SUPPORTED_PLATFORMS: tuple[str, ...] = (
    "win32-x64",
    "darwin-x64",
    "darwin-arm64",
    "linux-x64",
    "linux-arm64",
)

_OS_MAP: dict[str, str] = {
    "windows": "win32",
    "win32": "win32",
    "cygwin": "win32",
    "msys": "win32",
    "darwin": "darwin",
    "macos": "darwin",
    "linux": "linux",
}

_ARCH_MAP: dict[str, str] = {
    "x64": "x64",
    "x86_64": "x64",
    "amd64": "x64",
    "arm64": "arm64",
    "aarch64": "arm64",
    "armv8": "arm64",
    "armv8l": "arm64",
}

DEFAULT_ARCH = "x64"


class PlatformInfo(NamedTuple):
    """The platform key plus the raw values it was derived from."""

    key: str
    os: str
    arch: str
    raw_system: str
    raw_machine: str


def normalize_os(system: str) -> str:
    """Map an OS name to win32/darwin/linux; unknown names pass through lower-cased."""
    lowered = system.strip().lower()
    if lowered.startswith("cygwin") or lowered.startswith("mingw"):
        return "win32"
    return _OS_MAP.get(lowered, lowered)


def normalize_arch(machine: str) -> str:
    """Map an architecture string to x64/arm64, defaulting to x64."""
    return _ARCH_MAP.get(machine.strip().lower(), DEFAULT_ARCH)


def detect(system: Optional[str] = None, machine: Optional[str] = None) -> PlatformInfo:
    """
    Compute the platform key for this process.

    Args:
        system: OS name override, e.g. "Linux" or "win32". Defaults to platform.system().
        machine: Architecture override, e.g. "aarch64". Defaults to platform.machine().

    Returns:
        PlatformInfo with the normalized key and the raw inputs.
    """
    raw_system = system if system is not None else _platform.system()
    raw_machine = machine if machine is not None else _platform.machine()

    os_name = normalize_os(raw_system)
    arch = normalize_arch(raw_machine)

    return PlatformInfo(
        key=f"{os_name}-{arch}",
        os=os_name,
        arch=arch,
        raw_system=raw_system,
        raw_machine=raw_machine,
    )


def is_supported(platform_key: str) -> bool:
    return platform_key in SUPPORTED_PLATFORMS


def is_windows(platform_key: str) -> bool:
    """True for win32-* keys. Execute bits only matter when this is False."""
    return platform_key.split("-", 1)[0] == "win32"
