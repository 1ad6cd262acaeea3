# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Manifest schema.

The manifest is the trusted document: per platform key, which file to expect,
its SHA-256 and its size. It is authored offline (see binguard.generator) and
read-only at install time.

Parsing is strict about what it needs and lenient about what it doesn't:
  - missing required fields, wrong types and broken invariants are fatal
  - unknown extra fields are ignored (extra="ignore"), so an older installer
    can read a manifest written by a newer generator

A corrupted manifest must never quietly downgrade the checks, which is why
the entry invariants below are enforced at load rather than at use.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from binguard.utils.hashing import is_sha256_hex


class ArtifactEntry(BaseModel):
    """
    Expected artifact for one platform key.

    `missing` means no artifact existed when the manifest was generated.
    `dev_placeholder` means the file (if any) is a sentinel for local
    development. `verified` means sha256 was computed from a real artifact.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", validate_default=True)

    filename: str = Field(min_length=1)
    sha256: Optional[str] = None
    size: Optional[int] = Field(default=None, ge=0)
    build_date: Optional[str] = None
    verified: bool = False
    missing: bool = False
    dev_placeholder: bool = False
    is_primary: bool = True
    last_updated: Optional[str] = None

    @field_validator("filename")
    @classmethod
    def _bare_filename(cls, value: str) -> str:
        if "/" in value or "\\" in value or value in {".", ".."}:
            raise ValueError(f"filename must be a bare file name, got {value!r}")
        return value

    @field_validator("sha256")
    @classmethod
    def _lowercase_hex(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_sha256_hex(value):
            raise ValueError("sha256 must be 64 lowercase hex characters")
        return value

    @model_validator(mode="after")
    def _check_flags(self) -> "ArtifactEntry":
        if self.missing and (self.sha256 is not None or self.size is not None):
            raise ValueError("a missing entry must have null sha256 and size")
        if self.is_real and self.sha256 is None:
            raise ValueError("a real (non-missing, non-placeholder) entry requires sha256")
        return self

    @property
    def is_real(self) -> bool:
        return not self.missing and not self.dev_placeholder


class SecurityFlags(BaseModel):
    """
    Flags consumed by the gate sequencer.

    `requires_api_key` switches the credential gate on or off.
    `verification_required` is recorded by the integrity gate but can never
    relax it: hash verification runs either way.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    requires_api_key: bool = True
    verification_required: bool = True
    signature_required: bool = False


class GenerationInfo(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    timestamp: str
    dev_mode: bool = False
    generator_version: str = "1.0.0"


class BuildSummary(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    total_platforms: int = Field(ge=0)
    binaries_found: int = Field(ge=0)
    placeholders_found: int = Field(ge=0)
    binaries_missing: int = Field(ge=0)
    build_complete: bool


class Manifest(BaseModel):
    """The whole manifest document. `binaries` keys are platform keys."""

    model_config = ConfigDict(frozen=True, extra="ignore", validate_default=True)

    version: str = Field(min_length=1)
    build_commit: str = "unknown"
    build_date: Optional[str] = None
    binaries: dict[str, ArtifactEntry]
    security: SecurityFlags = Field(default_factory=SecurityFlags)
    features: list[str] = Field(default_factory=list)
    platforms_supported: list[str] = Field(default_factory=list)
    generation: Optional[GenerationInfo] = None
    build_summary: Optional[BuildSummary] = None

    def entry(self, platform_key: str) -> Optional[ArtifactEntry]:
        return self.binaries.get(platform_key)

    def available_platforms(self) -> list[str]:
        return sorted(self.binaries)
