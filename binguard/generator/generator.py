# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Manifest authoring.

Three modes, all offline and all run by maintainers or CI, never by the
installer:
  - scan:     hash whatever is in the artifact directory and write a full
              manifest, classifying each expected file as real, placeholder
              or missing
  - update:   CI records the real digest of one freshly built artifact
  - validate: re-hash the artifacts and compare against the manifest

Placeholder sniffing (small file containing a marker string) lives here and
only here. At install time the manifest flag is the sole signal.
"""

import logging
import os
import subprocess
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from binguard.exceptions import ArtifactMissingError, UnsupportedPlatformError
from binguard.logging.logger import get_logger
from binguard.manifest.schema import (
    ArtifactEntry,
    BuildSummary,
    GenerationInfo,
    Manifest,
    SecurityFlags,
)
from binguard.manifest.store import read_manifest, write_manifest
from binguard.runtime.platforms import SUPPORTED_PLATFORMS
from binguard.utils.hashing import compute_sha256

_logger: logging.Logger = get_logger(__name__)

GENERATOR_VERSION = "1.0.0"

_FILENAME_OS = {"win32": "windows", "darwin": "macos", "linux": "linux"}


@dataclass(frozen=True)
class ManifestValidationReport:
    """Outcome of validate_manifest()."""

    is_valid: bool
    manifest_path: str
    verified: list[str] = field(default_factory=list)
    placeholders: list[str] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)


def _utc_now() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


def _mtime_iso(path: Path) -> str:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc).isoformat()


def artifact_filename(prefix: str, platform_key: str) -> str:
    """
    Release filename for a platform key.

    linux-x64 -> {prefix}-linux-x64, darwin-arm64 -> {prefix}-macos-arm64,
    win32-x64 -> {prefix}-windows-x64.exe
    """
    os_part, _, arch = platform_key.partition("-")
    name = f"{prefix}-{_FILENAME_OS.get(os_part, os_part)}-{arch}"
    if os_part == "win32":
        name += ".exe"
    return name


def expected_artifacts(prefix: str, platforms: Sequence[str] = SUPPORTED_PLATFORMS) -> dict[str, str]:
    return {key: artifact_filename(prefix, key) for key in platforms}


def looks_like_placeholder(path: Path, max_bytes: int = 10000, marker: str = "placeholder") -> bool:
    """A file smaller than max_bytes whose content contains marker."""
    size = path.stat().st_size
    if size >= max_bytes:
        return False
    content = path.read_bytes().decode("utf-8", errors="ignore")
    return marker in content


def get_git_commit() -> str:
    """
    Read the current HEAD commit hash from git.

    Returns "unknown" if git isn't available or this isn't a checkout.
    """
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            timeout=5,
            check=False,
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except (FileNotFoundError, subprocess.TimeoutExpired):
        pass

    _logger.warning("Could not determine git commit hash")
    return "unknown"


def scan_artifacts(
    artifact_dir: Path,
    version: str,
    prefix: str = "binguard-runner",
    placeholder_max_bytes: int = 10000,
    placeholder_marker: str = "placeholder",
    features: Optional[Sequence[str]] = None,
    build_commit: Optional[str] = None,
) -> Manifest:
    """
    Build a manifest from whatever is currently in artifact_dir.

    Every supported platform gets an entry:
      - real file        -> sha256/size recorded, verified=True
      - placeholder file -> hashed, dev_placeholder=True, verified=False
      - no file          -> sha256/size null, missing=True, dev_placeholder=True
    """
    expected = expected_artifacts(prefix)
    binaries: dict[str, ArtifactEntry] = {}
    found = placeholders = 0

    for platform_key, filename in expected.items():
        path = artifact_dir / filename

        if not path.is_file():
            _logger.warning("Artifact missing", extra={"platform": platform_key, "file": filename})
            binaries[platform_key] = ArtifactEntry(
                filename=filename, missing=True, dev_placeholder=True
            )
            continue

        is_placeholder = looks_like_placeholder(path, placeholder_max_bytes, placeholder_marker)
        binaries[platform_key] = ArtifactEntry(
            filename=filename,
            sha256=compute_sha256(path),
            size=path.stat().st_size,
            build_date=_mtime_iso(path),
            verified=not is_placeholder,
            dev_placeholder=is_placeholder,
        )
        if is_placeholder:
            placeholders += 1
        else:
            found += 1
        _logger.info(
            "Artifact scanned",
            extra={"platform": platform_key, "file": filename, "placeholder": is_placeholder},
        )

    total = len(expected)
    now = _utc_now()
    manifest = Manifest(
        version=version,
        build_commit=build_commit or get_git_commit(),
        build_date=now,
        binaries=binaries,
        security=SecurityFlags(),
        features=list(features) if features is not None else ["cross_platform_support"],
        platforms_supported=list(expected),
        generation=GenerationInfo(timestamp=now, dev_mode=True, generator_version=GENERATOR_VERSION),
        build_summary=BuildSummary(
            total_platforms=total,
            binaries_found=found,
            placeholders_found=placeholders,
            binaries_missing=total - found - placeholders,
            build_complete=found == total,
        ),
    )

    _logger.info(
        "Artifact scan complete",
        extra={"real": found, "placeholders": placeholders, "missing": total - found - placeholders},
    )
    return manifest


def update_platform_entry(
    manifest_path: Path,
    platform_key: str,
    artifact_path: Path,
    build_commit: Optional[str] = None,
) -> ArtifactEntry:
    """
    Record the real digest of a freshly built artifact.

    Clears `missing` and `dev_placeholder`, sets verified=True, and bumps the
    manifest's build_date and build_commit (GITHUB_SHA when set, else git HEAD).

    Raises:
        ManifestLoadError: The manifest can't be read.
        UnsupportedPlatformError: No entry for platform_key.
        ArtifactMissingError: artifact_path doesn't exist.
    """
    manifest = read_manifest(manifest_path)
    current = manifest.entry(platform_key)
    if current is None:
        raise UnsupportedPlatformError(platform_key, manifest.available_platforms())
    if not artifact_path.is_file():
        raise ArtifactMissingError(platform_key, artifact_path)

    digest = compute_sha256(artifact_path)
    size = artifact_path.stat().st_size
    updated = ArtifactEntry.model_validate(
        {
            **current.model_dump(),
            "sha256": digest,
            "size": size,
            "build_date": _mtime_iso(artifact_path),
            "last_updated": _utc_now(),
            "verified": True,
            "missing": False,
            "dev_placeholder": False,
        }
    )

    commit = build_commit or os.environ.get("GITHUB_SHA") or get_git_commit()
    write_manifest(
        manifest.model_copy(
            update={
                "binaries": {**manifest.binaries, platform_key: updated},
                "build_date": _utc_now(),
                "build_commit": commit,
            }
        ),
        manifest_path,
    )

    _logger.info(
        "Manifest entry updated",
        extra={"platform": platform_key, "sha256": f"{digest[:16]}...", "size": size},
    )
    return updated


def validate_manifest(manifest_path: Path, artifact_dir: Path) -> ManifestValidationReport:
    """
    Re-hash every real artifact and compare against the manifest.

    Placeholder and missing entries are reported but never fail validation.
    """
    manifest = read_manifest(manifest_path)
    verified: list[str] = []
    placeholders: list[str] = []
    failures: list[str] = []

    for platform_key in manifest.available_platforms():
        entry = manifest.binaries[platform_key]
        if not entry.is_real:
            placeholders.append(platform_key)
            continue

        path = artifact_dir / entry.filename
        if not path.is_file():
            failures.append(f"{platform_key}: artifact not found: {entry.filename}")
            continue

        actual = compute_sha256(path)
        if actual != entry.sha256:
            failures.append(
                f"{platform_key}: hash mismatch (expected {entry.sha256}, actual {actual})"
            )
            continue
        verified.append(platform_key)

    report = ManifestValidationReport(
        is_valid=not failures,
        manifest_path=str(manifest_path),
        verified=verified,
        placeholders=placeholders,
        failures=failures,
    )
    _logger.info(
        "Manifest validation complete",
        extra={"valid": report.is_valid, "verified": len(verified), "failed": len(failures)},
    )
    return report
