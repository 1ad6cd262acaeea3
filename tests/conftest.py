# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Shared pytest fixtures for binguard tests.

Fixtures here are available to every test file automatically. The project
fixture lays out what an installed package looks like on disk: a manifest.json
at the root and a bin/ directory with one artifact per platform key.
"""

import hashlib
import json
import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import pytest

from binguard.manifest.store import ManifestStore
from binguard.runtime.platforms import PlatformInfo

LINUX_X64 = PlatformInfo(key="linux-x64", os="linux", arch="x64", raw_system="Linux", raw_machine="x86_64")

VALID_PRO_KEY = "sk-local-pro-0123456789abcdef0123456789abcdef"
VALID_BASIC_KEY = "sk-local-basic-fedcba9876543210fedcba9876543210"


def sha256_of(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def real_entry(filename: str, data: bytes, **overrides: Any) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "filename": filename,
        "sha256": sha256_of(data),
        "size": len(data),
        "verified": True,
        "missing": False,
        "is_primary": True,
    }
    entry.update(overrides)
    return entry


def missing_entry(filename: str) -> dict[str, Any]:
    return {
        "filename": filename,
        "sha256": None,
        "size": None,
        "verified": False,
        "missing": True,
        "dev_placeholder": True,
        "is_primary": True,
    }


def write_manifest_json(path: Path, binaries: dict[str, Any], **top_level: Any) -> Path:
    document: dict[str, Any] = {
        "version": "1.2.0",
        "build_commit": "abc123",
        "binaries": binaries,
        "security": {"requires_api_key": True, "verification_required": True},
    }
    document.update(top_level)
    path.write_text(json.dumps(document, indent=2), encoding="utf-8")
    return path


@dataclass
class Project:
    """A project root with manifest.json and a bin/ directory."""

    root: Path
    manifest_path: Path
    artifact_dir: Path

    def write_artifact(self, filename: str, data: bytes, mode: int = 0o755) -> Path:
        self.artifact_dir.mkdir(parents=True, exist_ok=True)
        path = self.artifact_dir / filename
        path.write_bytes(data)
        path.chmod(mode)
        return path

    def write_manifest(self, binaries: dict[str, Any], **top_level: Any) -> Path:
        return write_manifest_json(self.manifest_path, binaries, **top_level)

    def store(self) -> ManifestStore:
        return ManifestStore(self.manifest_path)


@pytest.fixture()
def project(tmp_path: Path) -> Project:
    root = tmp_path / "project"
    artifact_dir = root / "bin"
    artifact_dir.mkdir(parents=True)
    return Project(root=root, manifest_path=root / "manifest.json", artifact_dir=artifact_dir)


@pytest.fixture()
def linux_project(project: Project) -> Project:
    """A project whose linux-x64 artifact matches the manifest (Scenario A)."""
    data = b"\x7fELF real linux executable bytes"
    project.write_artifact("binguard-runner-linux-x64", data)
    project.write_manifest(
        {
            "linux-x64": real_entry("binguard-runner-linux-x64", data),
            "darwin-arm64": real_entry("binguard-runner-macos-arm64", b"mach-o bytes"),
        }
    )
    return project


@pytest.fixture()
def manifest_factory(tmp_path: Path) -> Callable[..., Path]:
    def _factory(binaries: dict[str, Any], **top_level: Any) -> Path:
        return write_manifest_json(tmp_path / "manifest.json", binaries, **top_level)

    return _factory


@pytest.fixture()
def tmp_config_file(tmp_path: Path) -> Path:
    """
    Create a minimal valid config YAML file in a temp directory.

    This is the smallest config that passes schema validation.
    """
    config_content = textwrap.dedent("""\
        global:
          config_version: "1.0.0"
          project_name: "binguard-test"
          log_level: "DEBUG"
    """)
    config_file = tmp_path / "test_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def invalid_config_file(tmp_path: Path) -> Path:
    """Valid YAML that fails schema validation (missing config_version)."""
    config_content = textwrap.dedent("""\
        global:
          project_name: "binguard-test"
    """)
    config_file = tmp_path / "invalid_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def broken_yaml_file(tmp_path: Path) -> Path:
    """A file that isn't valid YAML at all."""
    config_file = tmp_path / "broken.yaml"
    config_file.write_text("{{not: yaml: at: all:::", encoding="utf-8")
    return config_file
