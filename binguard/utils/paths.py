# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Path utilities for binguard.

The manifest, the artifact directory and the dotenv file are configured as
paths relative to the project root.
"""

from pathlib import Path


def resolve_under(root: Path, relative: str) -> Path:
    """
    Join a configured relative path onto root. Absolute paths are kept as-is
    and `~` is expanded, so a config can point outside the project on purpose.
    """
    candidate = Path(relative).expanduser()
    if candidate.is_absolute():
        return candidate
    return root / candidate
