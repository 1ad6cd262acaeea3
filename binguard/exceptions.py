# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Error taxonomy for the install pipeline.

Every failure the pipeline knows how to explain derives from InstallError.
The gate sequencer recovers exactly these into a GateOutcome; anything else
(an OSError nobody modeled, a programming bug) propagates unchanged and ends
the install.
"""

from pathlib import Path
from typing import Sequence


class InstallError(Exception):
    """Base for all modeled install pipeline failures."""


class ManifestLoadError(InstallError):
    """The manifest is absent, unreadable, not JSON, or violates the schema."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load manifest from {path}: {reason}")


class UnsupportedPlatformError(InstallError):
    """The manifest has no entry for the requested platform key."""

    def __init__(
        self,
        platform_key: str,
        available: Sequence[str],
        raw_system: str = "",
        raw_machine: str = "",
    ) -> None:
        self.platform_key = platform_key
        self.available = list(available)
        self.raw_system = raw_system
        self.raw_machine = raw_machine
        super().__init__(
            f"No artifact available for platform: {platform_key}\n"
            f"Available platforms: {', '.join(self.available) or '(none)'}\n"
            f"Detected OS: {raw_system or 'unknown'}\n"
            f"Detected architecture: {raw_machine or 'unknown'}\n"
            "This usually means your platform isn't supported yet or the "
            "release wasn't built for your architecture."
        )


class ArtifactMissingError(InstallError):
    """A real artifact is expected but there is nothing installable on disk."""

    def __init__(self, platform_key: str, path: Path, reason: str = "") -> None:
        self.platform_key = platform_key
        self.path = path
        detail = reason or f"expected file not found: {path}"
        super().__init__(f"Artifact missing for {platform_key}: {detail}")


class HashMismatchError(InstallError):
    """The artifact's SHA-256 differs from the manifest's recorded digest."""

    def __init__(self, path: Path, expected: str, actual: str, size: int) -> None:
        self.path = path
        self.expected = expected
        self.actual = actual
        self.size = size
        super().__init__(
            "Artifact integrity check FAILED: hash mismatch\n"
            f"  File:     {path.name}\n"
            f"  Expected: {expected}\n"
            f"  Actual:   {actual}\n"
            f"  Size:     {size} bytes\n"
            "Possible causes: modified or corrupted file, interrupted download, "
            "wrong release version, or tampering.\n"
            "Remediation:\n"
            "  1. Reinstall the package\n"
            "  2. Clear your package manager cache (e.g. `pip cache purge`)\n"
            "  3. Check that no security software is rewriting files in the artifact directory\n"
            "Installation cannot continue with an unverified artifact."
        )


class PlaceholderInProductionError(InstallError):
    """A development placeholder would have satisfied a production install."""

    def __init__(self, platform_key: str, path: Path) -> None:
        self.platform_key = platform_key
        self.path = path
        super().__init__(
            f"Development placeholder detected outside development mode for "
            f"{platform_key}: {path}"
        )


class DownloadError(InstallError):
    """Network failure, non-200 status, or a broken stream during fetch."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Download failed for {url}: {reason}")


class RedirectWithoutLocationError(DownloadError):
    """A 3xx response arrived without a Location header."""

    def __init__(self, url: str, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(url, f"HTTP {status_code} redirect without a Location header")


class TooManyRedirectsError(DownloadError):
    """The redirect chain exceeded the configured hop limit."""

    def __init__(self, url: str, max_redirects: int) -> None:
        self.max_redirects = max_redirects
        super().__init__(url, f"exceeded the limit of {max_redirects} redirects")


class RepositoryResolutionError(InstallError):
    """The release repository cannot be derived from the project metadata URL."""

    def __init__(self, repository_url: str) -> None:
        self.repository_url = repository_url
        super().__init__(
            f"Cannot derive owner/repo from repository URL {repository_url!r}. "
            "Expected a github.com URL such as https://github.com/<owner>/<repo>."
        )


class CredentialInvalidError(InstallError):
    """The credential collaborator rejected (or could not find) the access key."""


class CompatibilityError(InstallError):
    """One or more environment compatibility sub-checks failed."""

    def __init__(self, failures: Sequence[str]) -> None:
        self.failures = list(failures)
        super().__init__(
            "Environment compatibility checks failed:\n"
            + "\n".join(f"  - {failure}" for failure in self.failures)
        )
