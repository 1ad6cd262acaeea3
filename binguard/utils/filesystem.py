# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Safe filesystem operations for binguard.

Two rules hold for everything the installer writes:
  - writes are atomic (no partial files on failure)
  - a failed write never leaves a file that looks present

Atomic writes go to a temporary file in the same directory as the target and
are renamed into place. Rename on the same filesystem is atomic on POSIX and
replaces the destination on Windows via os.replace.
"""

import os
import tempfile
from pathlib import Path
from typing import IO

TEMP_PREFIX = ".binguard_tmp_"
TEMP_SUFFIX = ".tmp"

EXECUTABLE_MODE = 0o755


def open_temp_sibling(target_path: Path, mode: str = "wb") -> tuple[IO, Path]:
    """
    Open a temp file next to target_path, ready to be renamed onto it.

    The caller owns the handle and must either call `commit_temp` or
    `discard_temp`.
    """
    target_path.parent.mkdir(parents=True, exist_ok=True)
    temp_fd = tempfile.NamedTemporaryFile(
        mode=mode,
        dir=str(target_path.parent),
        prefix=TEMP_PREFIX,
        suffix=TEMP_SUFFIX,
        delete=False,
    )
    return temp_fd, Path(temp_fd.name)


def commit_temp(temp_fd: IO, temp_path: Path, target_path: Path) -> None:
    """Flush, close and atomically move a temp file onto its target."""
    temp_fd.flush()
    temp_fd.close()
    os.replace(temp_path, target_path)


def discard_temp(temp_fd: IO, temp_path: Path) -> None:
    """Close and delete a temp file. Safe to call after a partial write."""
    temp_fd.close()
    if temp_path.exists():
        temp_path.unlink()


def atomic_write(target_path: Path, content: str, encoding: str = "utf-8") -> None:
    """
    Write text to a file atomically.

    If anything goes wrong during the write (disk full, permissions, crash),
    the target is never touched: you get the full new content or the old
    content, never a mix.

    Raises:
        OSError: If the write or rename fails.
    """
    atomic_write_bytes(target_path, content.encode(encoding))


def atomic_write_bytes(target_path: Path, data: bytes) -> None:
    """
    Write binary data to a file atomically. Same approach as atomic_write.

    Raises:
        OSError: If the write or rename fails.
    """
    temp_fd, temp_path = open_temp_sibling(target_path, mode="wb")
    try:
        temp_fd.write(data)
        commit_temp(temp_fd, temp_path, target_path)
    except BaseException:
        discard_temp(temp_fd, temp_path)
        raise


def is_executable(file_path: Path) -> bool:
    """True when the current user may execute file_path."""
    return os.access(file_path, os.X_OK)


def make_executable(file_path: Path) -> None:
    """Set rwxr-xr-x on file_path."""
    file_path.chmod(EXECUTABLE_MODE)

