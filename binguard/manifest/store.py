# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Manifest store: load, memoize and persist the manifest document.

A ManifestStore reads the file once and keeps the parsed Manifest for the
rest of its lifetime. The memo belongs to the instance, never to the process:
construct one store per install attempt, and a new store always re-reads
from disk. `refresh()` drops the memo explicitly, which the availability
gate uses after a fetch.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from binguard.exceptions import ManifestLoadError
from binguard.logging.logger import get_logger
from binguard.manifest.schema import ArtifactEntry, Manifest
from binguard.utils.filesystem import atomic_write

_logger: logging.Logger = get_logger(__name__)


def read_manifest(path: Path) -> Manifest:
    """
    Parse and validate a manifest file without any caching.

    Raises:
        ManifestLoadError: On any I/O, JSON or schema problem. The message
            always includes the attempted path.
    """
    if not path.exists():
        raise ManifestLoadError(path, "file not found")
    if not path.is_file():
        raise ManifestLoadError(path, "not a regular file")

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as err:
        raise ManifestLoadError(path, f"cannot read file: {err}") from err

    try:
        data = json.loads(content)
    except json.JSONDecodeError as err:
        raise ManifestLoadError(path, f"invalid JSON: {err}") from err

    if not isinstance(data, dict):
        raise ManifestLoadError(
            path, f"manifest root must be a JSON object, got {type(data).__name__}"
        )

    try:
        return Manifest.model_validate(data)
    except ValidationError as err:
        raise ManifestLoadError(path, f"schema validation failed:\n{err}") from err


def write_manifest(manifest: Manifest, path: Path) -> None:
    """
    Serialize a manifest to JSON and write it atomically.

    Optional sections that are unset are left out rather than written as null.
    Authoring side only: the installer never rewrites the manifest.
    """
    data = manifest.model_dump(mode="json", exclude_none=False)
    for optional_key in ("generation", "build_summary", "build_date"):
        if data.get(optional_key) is None:
            data.pop(optional_key, None)
    content = json.dumps(data, indent=2) + "\n"
    atomic_write(path, content)

    _logger.info(
        "Manifest written",
        extra={"path": str(path), "version": manifest.version, "platforms": len(manifest.binaries)},
    )


class ManifestStore:
    """Per-attempt view of the manifest file."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._manifest: Optional[Manifest] = None

    def load(self) -> Manifest:
        if self._manifest is None:
            self._manifest = read_manifest(self.path)
            _logger.debug(
                "Manifest loaded",
                extra={
                    "path": str(self.path),
                    "version": self._manifest.version,
                    "platforms": self._manifest.available_platforms(),
                },
            )
        return self._manifest

    def refresh(self) -> Manifest:
        """Forget the memoized manifest and read the file again."""
        self._manifest = None
        return self.load()

    def entry(self, platform_key: str) -> Optional[ArtifactEntry]:
        return self.load().entry(platform_key)

    def available_platforms(self) -> list[str]:
        return self.load().available_platforms()
