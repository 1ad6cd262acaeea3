# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the artifact verifier.

Covers the classification table: verified real artifact, dev placeholder in
and out of dev mode, missing entries and files, hash mismatch, advisory size,
unsupported platform keys, and the all-platforms sweep.
"""

from pathlib import Path

import pytest

from binguard.exceptions import (
    ArtifactMissingError,
    HashMismatchError,
    PlaceholderInProductionError,
    UnsupportedPlatformError,
)
from binguard.runtime.platforms import detect
from binguard.verification.verifier import ArtifactVerifier

from conftest import Project, missing_entry, real_entry, sha256_of


def _placeholder_entry(filename: str, data: bytes) -> dict[str, object]:
    return real_entry(filename, data, verified=False, dev_placeholder=True)


class TestVerifyRealArtifact:
    def test_matching_artifact_verifies(self, linux_project: Project) -> None:
        verifier = ArtifactVerifier(linux_project.store(), linux_project.artifact_dir)

        result = verifier.verify("linux-x64")

        assert result.verified is True
        assert result.is_placeholder is False
        assert result.hash == sha256_of(b"\x7fELF real linux executable bytes")
        assert result.path.endswith("binguard-runner-linux-x64")

    def test_tampered_artifact_names_both_digests(self, linux_project: Project) -> None:
        linux_project.write_artifact("binguard-runner-linux-x64", b"tampered bytes")
        verifier = ArtifactVerifier(linux_project.store(), linux_project.artifact_dir)

        with pytest.raises(HashMismatchError) as exc_info:
            verifier.verify("linux-x64")

        message = str(exc_info.value)
        assert sha256_of(b"\x7fELF real linux executable bytes") in message
        assert sha256_of(b"tampered bytes") in message
        assert "Reinstall" in message

    def test_single_flipped_byte_is_a_mismatch(self, linux_project: Project) -> None:
        genuine = bytearray(b"\x7fELF real linux executable bytes")
        genuine[-1] ^= 0x01
        linux_project.write_artifact("binguard-runner-linux-x64", bytes(genuine))
        verifier = ArtifactVerifier(linux_project.store(), linux_project.artifact_dir)

        with pytest.raises(HashMismatchError) as exc_info:
            verifier.verify("linux-x64")

        assert exc_info.value.size == len(genuine)
        assert exc_info.value.actual == sha256_of(bytes(genuine))

    def test_size_difference_is_advisory(self, project: Project) -> None:
        data = b"actual bytes"
        project.write_artifact("tool", data)
        project.write_manifest({"linux-x64": real_entry("tool", data, size=999)})
        verifier = ArtifactVerifier(project.store(), project.artifact_dir)

        result = verifier.verify("linux-x64")

        assert result.verified is True
        assert result.size_mismatch is True
        assert result.size == len(data)

    def test_absent_file_raises_missing(self, project: Project) -> None:
        project.write_manifest({"linux-x64": real_entry("tool", b"never written")})
        verifier = ArtifactVerifier(project.store(), project.artifact_dir)

        with pytest.raises(ArtifactMissingError):
            verifier.verify("linux-x64")


class TestUnsupportedPlatform:
    def test_unknown_key_lists_available_platforms(self, linux_project: Project) -> None:
        verifier = ArtifactVerifier(linux_project.store(), linux_project.artifact_dir)

        with pytest.raises(UnsupportedPlatformError) as exc_info:
            verifier.verify("freebsd-x64")

        assert exc_info.value.available == ["darwin-arm64", "linux-x64"]
        assert "darwin-arm64, linux-x64" in str(exc_info.value)

    def test_raw_detection_values_in_message(self, linux_project: Project) -> None:
        verifier = ArtifactVerifier(linux_project.store(), linux_project.artifact_dir)
        info = detect("FreeBSD", "amd64")

        with pytest.raises(UnsupportedPlatformError, match="FreeBSD"):
            verifier.verify(info.key, platform_info=info)


class TestPlaceholders:
    def test_dev_mode_accepts_placeholder_without_hashing(self, project: Project) -> None:
        project.write_artifact("tool", b"placeholder")
        project.write_manifest({"linux-x64": _placeholder_entry("tool", b"something else")})
        verifier = ArtifactVerifier(project.store(), project.artifact_dir, dev_mode=True)

        result = verifier.verify("linux-x64")

        assert result.verified is True
        assert result.is_placeholder is True
        assert result.dev_mode is True
        assert result.hash is None

    def test_placeholder_outside_dev_mode_is_rejected(self, project: Project) -> None:
        project.write_artifact("tool", b"placeholder")
        project.write_manifest({"linux-x64": _placeholder_entry("tool", b"placeholder")})
        verifier = ArtifactVerifier(project.store(), project.artifact_dir, dev_mode=False)

        with pytest.raises(PlaceholderInProductionError):
            verifier.verify("linux-x64")

    def test_missing_entry_in_dev_mode_is_placeholder(self, project: Project) -> None:
        project.write_manifest({"linux-x64": missing_entry("tool")})
        verifier = ArtifactVerifier(project.store(), project.artifact_dir, dev_mode=True)

        result = verifier.verify("linux-x64")

        assert result.is_placeholder is True
        assert result.size is None

    def test_missing_entry_outside_dev_mode_needs_fetch(self, project: Project) -> None:
        project.write_manifest({"linux-x64": missing_entry("tool")})
        verifier = ArtifactVerifier(project.store(), project.artifact_dir)

        with pytest.raises(ArtifactMissingError, match="missing from this build"):
            verifier.verify("linux-x64")


class TestRefresh:
    def test_refresh_sees_rewritten_manifest(self, project: Project) -> None:
        project.write_manifest({"linux-x64": missing_entry("tool")})
        verifier = ArtifactVerifier(project.store(), project.artifact_dir)
        with pytest.raises(ArtifactMissingError):
            verifier.verify("linux-x64")

        project.write_artifact("tool", b"fresh")
        project.write_manifest({"linux-x64": real_entry("tool", b"fresh")})

        assert verifier.verify("linux-x64", refresh=True).hash == sha256_of(b"fresh")


class TestVerifyAll:
    def test_reports_every_platform(self, project: Project) -> None:
        project.write_artifact("good", b"good")
        project.write_artifact("bad", b"corrupted")
        project.write_manifest(
            {
                "linux-x64": real_entry("good", b"good"),
                "linux-arm64": real_entry("bad", b"original"),
                "darwin-arm64": real_entry("absent", b"absent"),
                "win32-x64": missing_entry("tool.exe"),
            }
        )
        verifier = ArtifactVerifier(project.store(), project.artifact_dir)

        statuses = verifier.verify_all()

        assert statuses["linux-x64"].status == "verified"
        assert statuses["linux-arm64"].status == "failed"
        assert statuses["darwin-arm64"].status == "missing"
        assert statuses["win32-x64"].status == "missing"

    def test_placeholders_in_dev_mode(self, project: Project) -> None:
        project.write_manifest({"win32-x64": missing_entry("tool.exe")})
        verifier = ArtifactVerifier(project.store(), project.artifact_dir, dev_mode=True)

        assert verifier.verify_all()["win32-x64"].status == "placeholder"


class TestPlatformReport:
    def test_report_for_supported_platform(self, linux_project: Project) -> None:
        verifier = ArtifactVerifier(linux_project.store(), linux_project.artifact_dir)

        report = verifier.platform_report(detect("Linux", "x86_64"))

        assert report["detected"] == "linux-x64"
        assert report["supported"] is True
        assert report["binary"]["filename"] == "binguard-runner-linux-x64"

    def test_report_for_unsupported_platform(self, linux_project: Project) -> None:
        verifier = ArtifactVerifier(linux_project.store(), linux_project.artifact_dir)

        report = verifier.platform_report(detect("Linux", "aarch64"))

        assert report["supported"] is False
        assert report["binary"] is None
