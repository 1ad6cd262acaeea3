# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Environment compatibility checks for the last install gate.

Unlike the earlier gates, every check here runs even after one fails, so the
user sees every compatibility problem in one go:
  - Python version floor
  - platform/arch support
  - artifact directory readable
  - artifact file readable, and executable on non-Windows targets

A missing execute bit is repaired in place rather than reported, since the
fetcher would have set it anyway.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from binguard.logging.logger import get_logger
from binguard.runtime.environment import get_python_version, meets_python_floor
from binguard.runtime.platforms import SUPPORTED_PLATFORMS, is_supported, is_windows
from binguard.utils.filesystem import is_executable, make_executable

_logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class EnvironmentCheck:
    """Result of a single compatibility check."""

    name: str
    passed: bool
    message: str
    value: str


def check_python_version(
    floor: str,
    version: Optional[tuple[int, int, int]] = None,
) -> EnvironmentCheck:
    """Verify the interpreter meets the configured MAJOR.MINOR floor."""
    current = version or get_python_version()
    version_str = ".".join(str(part) for part in current)
    passed = meets_python_floor(floor, current)
    if passed:
        msg = f"Python {version_str} meets minimum {floor}"
    else:
        msg = f"Python {version_str} is too old, requires Python {floor}+"
    return EnvironmentCheck(name="python_version", passed=passed, message=msg, value=version_str)


def check_platform(platform_key: str) -> EnvironmentCheck:
    passed = is_supported(platform_key)
    msg = "Platform supported" if passed else (
        f"Unsupported platform: {platform_key} (supported: {', '.join(SUPPORTED_PLATFORMS)})"
    )
    return EnvironmentCheck(name="platform", passed=passed, message=msg, value=platform_key)


def check_artifact_dir(artifact_dir: Path) -> EnvironmentCheck:
    if not artifact_dir.is_dir():
        return EnvironmentCheck(
            name="artifact_dir",
            passed=False,
            message=f"Artifact directory not found: {artifact_dir}",
            value="missing",
        )
    if not os.access(artifact_dir, os.R_OK | os.X_OK):
        return EnvironmentCheck(
            name="artifact_dir",
            passed=False,
            message=f"Artifact directory is not readable: {artifact_dir}",
            value="unreadable",
        )
    return EnvironmentCheck(
        name="artifact_dir", passed=True, message="Artifact directory readable", value=str(artifact_dir)
    )


def check_artifact_permissions(artifact_path: Path, platform_key: str) -> EnvironmentCheck:
    """
    Check the artifact is readable and, outside Windows, executable.

    A missing execute bit gets fixed here. Only a failed repair fails the check.
    """
    if not artifact_path.is_file():
        return EnvironmentCheck(
            name="artifact_permissions",
            passed=False,
            message=f"Artifact not found: {artifact_path}",
            value="missing",
        )
    if not os.access(artifact_path, os.R_OK):
        return EnvironmentCheck(
            name="artifact_permissions",
            passed=False,
            message=f"Artifact is not readable: {artifact_path}",
            value="unreadable",
        )

    if is_windows(platform_key) or is_executable(artifact_path):
        return EnvironmentCheck(
            name="artifact_permissions", passed=True, message="Permissions OK", value="ok"
        )

    try:
        make_executable(artifact_path)
    except OSError as err:
        return EnvironmentCheck(
            name="artifact_permissions",
            passed=False,
            message=f"Artifact is not executable and chmod failed: {err}",
            value="not_executable",
        )

    _logger.info("Execute permission repaired", extra={"path": str(artifact_path)})
    return EnvironmentCheck(
        name="artifact_permissions",
        passed=True,
        message="Execute permission was missing and has been repaired",
        value="repaired",
    )


def validate_environment(
    platform_key: str,
    artifact_dir: Path,
    artifact_path: Optional[Path],
    min_python: str,
) -> list[EnvironmentCheck]:
    """
    Run every compatibility check.

    Args:
        platform_key: The key resolved at the entry point.
        artifact_dir: Directory holding the artifacts.
        artifact_path: Resolved artifact, None when there is no file to check
            (a dev placeholder with nothing on disk).
        min_python: MAJOR.MINOR interpreter floor.

    Returns:
        One EnvironmentCheck per check, in a fixed order.
    """
    checks = [
        check_python_version(min_python),
        check_platform(platform_key),
        check_artifact_dir(artifact_dir),
    ]
    if artifact_path is not None:
        checks.append(check_artifact_permissions(artifact_path, platform_key))

    for check in checks:
        log_fn = _logger.info if check.passed else _logger.error
        log_fn(
            "Compatibility check",
            extra={"check": check.name, "passed": check.passed, "check_message": check.message},
        )

    return checks
