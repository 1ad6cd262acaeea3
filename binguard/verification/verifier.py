# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Artifact verification: decides verified / placeholder / failed for one platform.

Each call walks the same short path and keeps no state between calls apart
from the store's manifest memo:

    resolve entry -> resolve path -> classify -> (real) hash and compare

Classification uses the manifest flags only:
  - dev_placeholder or missing, dev mode on  -> verified placeholder, nothing hashed
  - dev_placeholder, dev mode off            -> PlaceholderInProductionError
  - missing, dev mode off                    -> ArtifactMissingError (fetch it)
  - real entry, no file                      -> ArtifactMissingError
  - real entry, digest differs               -> HashMismatchError

Integrity is binary. The size recorded in the manifest is only advisory: on a
digest match, a differing size is logged and flagged, never fatal.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from binguard.exceptions import (
    ArtifactMissingError,
    HashMismatchError,
    InstallError,
    PlaceholderInProductionError,
    UnsupportedPlatformError,
)
from binguard.logging.logger import get_logger
from binguard.manifest.schema import ArtifactEntry
from binguard.manifest.store import ManifestStore
from binguard.runtime.platforms import PlatformInfo
from binguard.utils.hashing import compute_sha256

_logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of one successful verify() call. Never cached or persisted."""

    verified: bool
    platform: str
    path: str
    hash: Optional[str] = None
    size: Optional[int] = None
    is_placeholder: bool = False
    dev_mode: bool = False
    size_mismatch: bool = False


@dataclass(frozen=True)
class ArtifactStatus:
    """Per-platform row of verify_all()."""

    platform: str
    status: str  # "verified", "placeholder", "missing", "failed"
    path: str
    error: Optional[str] = None
    result: Optional[VerificationResult] = field(default=None)


class ArtifactVerifier:
    """
    Verifies artifacts in `artifact_dir` against the manifest held by `store`.

    Construct one per install attempt; dev_mode comes from the InstallContext
    resolved at the entry point.
    """

    def __init__(self, store: ManifestStore, artifact_dir: Path, dev_mode: bool = False) -> None:
        self.store = store
        self.artifact_dir = artifact_dir
        self.dev_mode = dev_mode

    def resolve_entry(
        self,
        platform_key: str,
        raw_system: str = "",
        raw_machine: str = "",
    ) -> ArtifactEntry:
        entry = self.store.entry(platform_key)
        if entry is None:
            raise UnsupportedPlatformError(
                platform_key,
                self.store.available_platforms(),
                raw_system=raw_system,
                raw_machine=raw_machine,
            )
        return entry

    def artifact_path(self, entry: ArtifactEntry) -> Path:
        return self.artifact_dir / entry.filename

    def verify(
        self,
        platform_key: str,
        refresh: bool = False,
        platform_info: Optional[PlatformInfo] = None,
    ) -> VerificationResult:
        """
        Verify the artifact for platform_key.

        Args:
            platform_key: Manifest key, e.g. "linux-x64".
            refresh: Re-read the manifest before verifying (used after a fetch).
            platform_info: Raw detection values, only used to enrich the
                unsupported-platform message.

        Raises:
            UnsupportedPlatformError, ArtifactMissingError,
            PlaceholderInProductionError, HashMismatchError
        """
        if refresh:
            self.store.refresh()

        raw_system = platform_info.raw_system if platform_info else ""
        raw_machine = platform_info.raw_machine if platform_info else ""
        entry = self.resolve_entry(platform_key, raw_system, raw_machine)
        path = self.artifact_path(entry)

        if entry.dev_placeholder or entry.missing:
            if self.dev_mode:
                _logger.warning(
                    "Development placeholder accepted",
                    extra={"platform": platform_key, "file": entry.filename},
                )
                return VerificationResult(
                    verified=True,
                    platform=platform_key,
                    path=str(path),
                    size=path.stat().st_size if path.is_file() else None,
                    is_placeholder=True,
                    dev_mode=True,
                )
            if entry.dev_placeholder:
                raise PlaceholderInProductionError(platform_key, path)
            raise ArtifactMissingError(
                platform_key, path, reason="manifest marks the artifact as missing from this build"
            )

        if not path.is_file():
            raise ArtifactMissingError(platform_key, path)

        return self._verify_real(platform_key, entry, path)

    def _verify_real(self, platform_key: str, entry: ArtifactEntry, path: Path) -> VerificationResult:
        expected = entry.sha256
        actual = compute_sha256(path)
        size = path.stat().st_size

        if actual != expected:
            _logger.error(
                "Hash mismatch",
                extra={
                    "platform": platform_key,
                    "file": entry.filename,
                    "expected": f"{expected[:16]}...",
                    "actual": f"{actual[:16]}...",
                },
            )
            raise HashMismatchError(path, expected, actual, size)

        size_mismatch = entry.size is not None and entry.size != size
        if size_mismatch:
            _logger.warning(
                "Artifact size differs from manifest",
                extra={"platform": platform_key, "expected_size": entry.size, "actual_size": size},
            )

        _logger.info(
            "Artifact integrity verified",
            extra={"platform": platform_key, "file": entry.filename, "sha256": f"{actual[:16]}..."},
        )
        return VerificationResult(
            verified=True,
            platform=platform_key,
            path=str(path),
            hash=actual,
            size=size,
            is_placeholder=False,
            dev_mode=self.dev_mode,
            size_mismatch=size_mismatch,
        )

    def verify_all(self) -> dict[str, ArtifactStatus]:
        """
        Verify every manifest entry that has something on disk.

        Modeled failures are reported per platform rather than raised, so one
        bad artifact doesn't hide the state of the others.
        """
        statuses: dict[str, ArtifactStatus] = {}
        manifest = self.store.load()

        for platform_key in manifest.available_platforms():
            entry = manifest.binaries[platform_key]
            path = self.artifact_path(entry)

            if not path.is_file() and (entry.is_real or not self.dev_mode):
                statuses[platform_key] = ArtifactStatus(platform_key, "missing", str(path))
                continue

            try:
                result = self.verify(platform_key)
            except ArtifactMissingError as err:
                statuses[platform_key] = ArtifactStatus(platform_key, "missing", str(path), str(err))
                continue
            except InstallError as err:
                statuses[platform_key] = ArtifactStatus(platform_key, "failed", str(path), str(err))
                continue

            status = "placeholder" if result.is_placeholder else "verified"
            statuses[platform_key] = ArtifactStatus(platform_key, status, str(path), result=result)

        counts: dict[str, int] = {}
        for status in statuses.values():
            counts[status.status] = counts.get(status.status, 0) + 1
        _logger.info("Verification summary", extra={"platforms": len(statuses), **counts})

        return statuses

    def platform_report(self, platform_info: PlatformInfo) -> dict[str, object]:
        """Diagnostics for `binguard platform-info` and failed installs."""
        entry = self.store.entry(platform_info.key)
        return {
            "detected": platform_info.key,
            "raw": {"system": platform_info.raw_system, "machine": platform_info.raw_machine},
            "binary": entry.model_dump(mode="json") if entry is not None else None,
            "supported": entry is not None,
            "dev_mode": self.dev_mode,
            "available_platforms": self.store.available_platforms(),
        }
