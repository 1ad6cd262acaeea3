# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Hashing utilities for binguard.

One SHA-256 implementation for the whole codebase. The manifest generator and
the install-time verifier both call these functions, so a digest recorded at
authoring time and one recomputed on the user's machine are the same string
for the same bytes: lowercase hex, no separators.
"""

import hashlib
import re
from pathlib import Path

HASH_ALGORITHM = "sha256"
HASH_BUFFER_SIZE = 65536  # 64 KiB

SHA256_HEX_PATTERN = re.compile(r"^[0-9a-f]{64}$")


def compute_sha256(file_path: Path) -> str:
    """
    Compute the SHA256 hex digest of a file.

    Reads in 64 KiB chunks so large executables never sit fully in memory.

    Args:
        file_path: Path to the file to hash.

    Returns:
        Lowercase hex string of the SHA256 digest.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        OSError: If the file can't be read.
    """
    hasher = hashlib.sha256()
    with open(file_path, "rb") as f:
        while True:
            chunk = f.read(HASH_BUFFER_SIZE)
            if not chunk:
                break
            hasher.update(chunk)
    return hasher.hexdigest()


def compute_sha256_bytes(data: bytes) -> str:
    """
    Compute the SHA256 hex digest of raw bytes.

    Args:
        data: The bytes to hash.

    Returns:
        Lowercase hex string of the SHA256 digest.
    """
    return hashlib.sha256(data).hexdigest()


def is_sha256_hex(value: str) -> bool:
    """True when value is exactly 64 lowercase hex characters."""
    return bool(SHA256_HEX_PATTERN.match(value))


def verify_checksum(file_path: Path, expected_hash: str) -> bool:
    """
    Check whether a file's SHA256 matches the expected hash.

    The comparison is exact. Manifest digests are stored lowercase, and an
    uppercase expectation is a malformed manifest, not a match.

    Args:
        file_path: Path to the file to verify.
        expected_hash: Expected lowercase hex SHA256 digest.

    Returns:
        True if the hash matches, False otherwise.
    """
    return compute_sha256(file_path) == expected_hash
