# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Type-safe configuration schemas for binguard.

Each config section gets its own frozen pydantic model:
  - frozen=True: immutability after construction
  - extra="forbid": unknown fields cause immediate failure
  - validate_default=True: even defaults get type-checked

Only `global:` is required in a config file. The other sections fall back to
their defaults, which describe the standard layout: manifest.json and bin/ at
the project root, GitHub releases as the remote store.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from binguard.runtime.environment import MINIMUM_PYTHON, parse_version_floor

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class GlobalConfig(BaseModel):
    """Cross-cutting settings: identity and observability."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    config_version: str = Field(
        description="Schema version for compatibility tracking, e.g. '1.0.0'"
    )
    project_name: str = Field(default="binguard", description="Human-readable project identifier")
    log_level: str = Field(
        default="INFO",
        description="One of DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional path for file-based log output, relative to project root",
    )

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        if value.upper() not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(sorted(_LOG_LEVELS))}")
        return value.upper()


class InstallConfig(BaseModel):
    """Where the manifest and artifacts live, and how strict the install is."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    manifest_path: str = Field(
        default="manifest.json",
        description="Manifest location, relative to project root",
    )
    artifact_dir: str = Field(
        default="bin",
        description="Directory holding one artifact per platform, relative to project root",
    )
    dev_mode: bool = Field(
        default=False,
        description="Accept development placeholders instead of real artifacts",
    )
    min_python: str = Field(
        default=MINIMUM_PYTHON,
        description="Host runtime floor checked by the compatibility gate, MAJOR.MINOR",
    )

    @field_validator("min_python")
    @classmethod
    def _check_min_python(cls, value: str) -> str:
        parse_version_floor(value)
        return value


class FetchConfig(BaseModel):
    """Remote release store settings used by the fetcher."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    repository_url: str = Field(
        default="https://github.com/binguard/binguard-runner",
        description="Project repository URL; owner/repo are parsed out of it",
    )
    release_base_url: str = Field(
        default="https://github.com",
        description="Host serving release downloads",
    )
    max_redirects: int = Field(
        default=5,
        ge=0,
        le=20,
        description="Maximum redirect hops followed for one download",
    )
    timeout_seconds: float = Field(
        default=60.0,
        gt=0.0,
        le=600.0,
        description="Connect/read timeout for each HTTP request",
    )
    chunk_size_bytes: int = Field(
        default=65536,
        ge=1024,
        description="Streaming chunk size when writing the download to disk",
    )


class CredentialsConfig(BaseModel):
    """Where the access credential is looked up, in priority order."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    env_var: str = Field(default="BINGUARD_API_KEY", description="Environment variable name")
    user_config_path: str = Field(
        default="~/.binguard/config.json",
        description="User-level JSON config holding {'api_key': ...}",
    )
    dotenv_path: str = Field(
        default=".env",
        description="Project-local dotenv file, relative to project root",
    )
    license_url: str = Field(
        default="https://binguard.dev/license",
        description="Where users obtain a key; shown in failure messages",
    )


class GeneratorConfig(BaseModel):
    """Authoring-side settings for the manifest generator."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    artifact_prefix: str = Field(
        default="binguard-runner",
        description="Artifact file name prefix, e.g. binguard-runner-linux-x64",
    )
    placeholder_max_bytes: int = Field(
        default=10_000,
        ge=1,
        description="Files at or above this size are never treated as placeholders",
    )
    placeholder_marker: str = Field(
        default="placeholder",
        min_length=1,
        description="Text that marks a small file as a development placeholder",
    )
    features: list[str] = Field(
        default_factory=lambda: ["cross_platform_support"],
        description="Capability tags written into the manifest",
    )


class BinguardConfig(BaseModel):
    """
    Top-level config container.

    A file may hold just `global:`. Sections not present come back as their
    default models so callers never have to None-check them.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    global_config: GlobalConfig = Field(alias="global")
    install: InstallConfig = Field(default_factory=InstallConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)
    generator: GeneratorConfig = Field(default_factory=GeneratorConfig)


def default_config() -> BinguardConfig:
    """The configuration used when no --config is given."""
    return BinguardConfig.model_validate({"global": {"config_version": "1.0.0"}})
