# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Installation gate sequencer.

Runs the four install gates in a fixed order and stops at the first failure:

    NOT_STARTED -> CREDENTIAL -> AVAILABILITY -> INTEGRITY -> COMPATIBILITY -> PASSED
                        \\____________\\______________\\______________\\--> FAILED

Gates:
  1. credential    - the credential collaborator must report a valid key
  2. availability  - the artifact verifies, or is missing or a placeholder and
                     gets fetched and then verifies; a hash mismatch is fatal
  3. integrity     - re-verification, placeholder policy
  4. compatibility - every environment sub-check, failures aggregated

Modeled failures (InstallError subclasses) end up in the GateOutcome.
Anything else is a bug and propagates to the caller unchanged.

The sequencer never reads the environment; the InstallContext it receives
was resolved once at the entry point.
"""

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Protocol

from binguard.credentials.validator import CredentialCheck
from binguard.exceptions import (
    ArtifactMissingError,
    CompatibilityError,
    CredentialInvalidError,
    InstallError,
    PlaceholderInProductionError,
)
from binguard.gates.compatibility import validate_environment
from binguard.gates.mode import InstallContext
from binguard.logging.logger import get_logger
from binguard.runtime.environment import MINIMUM_PYTHON
from binguard.runtime.platforms import PlatformInfo
from binguard.verification.verifier import ArtifactVerifier, VerificationResult

_logger: logging.Logger = get_logger(__name__)

# Errors gate 2 treats as "go fetch it". A hash mismatch is never one of them:
# a tampered artifact fails the install instead of being quietly replaced.
_FETCHABLE_ERRORS = (ArtifactMissingError, PlaceholderInProductionError)


class CredentialChecker(Protocol):
    def check(self) -> CredentialCheck: ...


class ArtifactFetcher(Protocol):
    def fetch(self, platform_key: str) -> Path: ...


class GateState(enum.Enum):
    NOT_STARTED = "not_started"
    CREDENTIAL = "credential"
    AVAILABILITY = "availability"
    INTEGRITY = "integrity"
    COMPATIBILITY = "compatibility"
    PASSED = "passed"
    FAILED = "failed"


GATE_ORDER: tuple[GateState, ...] = (
    GateState.CREDENTIAL,
    GateState.AVAILABILITY,
    GateState.INTEGRITY,
    GateState.COMPATIBILITY,
)


@dataclass(frozen=True)
class GateResult:
    """Outcome of one gate."""

    name: str
    passed: bool
    message: str = ""
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GateOutcome:
    """Result of a full gate run. `passed` is the only thing the CLI needs."""

    state: GateState
    passed: bool
    platform: str
    skipped: bool = False
    results: list[GateResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    failed_gate: Optional[str] = None
    error_type: Optional[str] = None
    credential_tier: Optional[str] = None
    bypass_reason: Optional[str] = None
    dev_mode: bool = False


class _GateFailed(Exception):
    """Internal signal: a gate produced a failing GateResult."""

    def __init__(self, result: GateResult, error_type: str) -> None:
        super().__init__(result.message)
        self.result = result
        self.error_type = error_type


class GateSequencer:
    """
    Drives the install gates for one attempt.

    Args:
        context: InstallContext resolved at the entry point.
        platform_info: Platform detected at the entry point. Every gate
            targets platform_info.key.
        verifier: ArtifactVerifier for the project's manifest and artifact dir.
        fetcher: Anything with `fetch(platform_key) -> Path`.
        credential_checker: Anything with `check() -> CredentialCheck`.
        min_python: MAJOR.MINOR floor for the compatibility gate.
    """

    def __init__(
        self,
        context: InstallContext,
        platform_info: PlatformInfo,
        verifier: ArtifactVerifier,
        fetcher: ArtifactFetcher,
        credential_checker: CredentialChecker,
        min_python: str = MINIMUM_PYTHON,
    ) -> None:
        self.context = context
        self.platform_info = platform_info
        self.verifier = verifier
        self.fetcher = fetcher
        self.credential_checker = credential_checker
        self.min_python = min_python
        self.state = GateState.NOT_STARTED

        self._results: list[GateResult] = []
        self._warnings: list[str] = []
        self._credential_tier: Optional[str] = None
        self._last_verification: Optional[VerificationResult] = None

    @property
    def platform_key(self) -> str:
        return self.platform_info.key

    def run(self) -> GateOutcome:
        """
        Run every gate in order.

        Returns:
            GateOutcome with state PASSED or FAILED. A bypassed context
            returns PASSED with skipped=True without touching any collaborator.
        """
        if self.context.bypassed:
            _logger.info(
                "Installation gates bypassed",
                extra={"platform": self.platform_key, "reason": self.context.bypass_reason},
            )
            self.state = GateState.PASSED
            return GateOutcome(
                state=GateState.PASSED,
                passed=True,
                platform=self.platform_key,
                skipped=True,
                bypass_reason=self.context.bypass_reason,
                dev_mode=self.context.dev_mode,
            )

        _logger.info(
            "Running installation gates",
            extra={"platform": self.platform_key, "dev_mode": self.context.dev_mode},
        )

        gates = {
            GateState.CREDENTIAL: self._credential_gate,
            GateState.AVAILABILITY: self._availability_gate,
            GateState.INTEGRITY: self._integrity_gate,
            GateState.COMPATIBILITY: self._compatibility_gate,
        }

        for gate_state in GATE_ORDER:
            self.state = gate_state
            try:
                result = gates[gate_state]()
            except _GateFailed as failure:
                return self._fail(gate_state, failure.result, failure.error_type)
            except InstallError as err:
                errors = list(err.failures) if isinstance(err, CompatibilityError) else [str(err)]
                result = GateResult(name=gate_state.value, passed=False, message=str(err), errors=errors)
                return self._fail(gate_state, result, type(err).__name__)

            self._results.append(result)
            self._warnings.extend(result.warnings)
            _logger.info("Gate passed", extra={"gate": gate_state.value, "gate_message": result.message})

        self.state = GateState.PASSED
        _logger.info("All installation gates passed", extra={"platform": self.platform_key})
        return GateOutcome(
            state=GateState.PASSED,
            passed=True,
            platform=self.platform_key,
            results=list(self._results),
            warnings=list(self._warnings),
            credential_tier=self._credential_tier,
            dev_mode=self.context.dev_mode,
        )

    def _fail(self, gate_state: GateState, result: GateResult, error_type: str) -> GateOutcome:
        self._results.append(result)
        self.state = GateState.FAILED
        _logger.error(
            "Gate failed",
            extra={"gate": gate_state.value, "error_type": error_type, "platform": self.platform_key},
        )
        return GateOutcome(
            state=GateState.FAILED,
            passed=False,
            platform=self.platform_key,
            results=list(self._results),
            errors=list(result.errors) or [result.message],
            warnings=list(self._warnings),
            failed_gate=gate_state.value,
            error_type=error_type,
            credential_tier=self._credential_tier,
            dev_mode=self.context.dev_mode,
        )

    def _credential_gate(self) -> GateResult:
        manifest = self.verifier.store.load()
        if not manifest.security.requires_api_key:
            return GateResult(name="credential", passed=True, message="Credential not required")

        check = self.credential_checker.check()
        if not check.valid:
            error = check.error or "Invalid API key"
            raise _GateFailed(
                GateResult(name="credential", passed=False, message=error, errors=[error]),
                CredentialInvalidError.__name__,
            )

        self._credential_tier = check.tier
        return GateResult(
            name="credential",
            passed=True,
            message=f"Valid {check.tier} credential",
            details={"tier": check.tier, "source": check.source},
        )

    def _availability_gate(self) -> GateResult:
        try:
            result = self.verifier.verify(self.platform_key, platform_info=self.platform_info)
            return GateResult(
                name="availability",
                passed=True,
                message="Artifact present",
                details={"path": result.path},
            )
        except _FETCHABLE_ERRORS as err:
            _logger.warning(
                "Artifact unavailable, fetching",
                extra={"platform": self.platform_key, "reason": type(err).__name__},
            )

        path = self.fetcher.fetch(self.platform_key)
        result = self.verifier.verify(self.platform_key, refresh=True, platform_info=self.platform_info)
        return GateResult(
            name="availability",
            passed=True,
            message="Artifact fetched",
            details={"path": str(path), "fetched": True, "sha256": result.hash},
        )

    def _integrity_gate(self) -> GateResult:
        verification_required = self.verifier.store.load().security.verification_required
        if not verification_required:
            _logger.warning(
                "Manifest sets verification_required=false; verifying anyway",
                extra={"platform": self.platform_key},
            )

        result: VerificationResult = self.verifier.verify(
            self.platform_key, platform_info=self.platform_info
        )
        self._last_verification = result

        if result.is_placeholder:
            if not self.context.dev_mode:
                raise PlaceholderInProductionError(self.platform_key, Path(result.path))
            warning = (
                f"Using development placeholder for {self.platform_key}; "
                "this artifact will not run in production"
            )
            return GateResult(
                name="integrity",
                passed=True,
                message="Development placeholder accepted",
                warnings=[warning],
                details={
                    "path": result.path,
                    "placeholder": True,
                    "verification_required": verification_required,
                },
            )

        warnings: list[str] = []
        if result.size_mismatch:
            warnings.append(f"Artifact size for {self.platform_key} differs from the manifest")
        return GateResult(
            name="integrity",
            passed=True,
            message="Integrity verified",
            warnings=warnings,
            details={
                "path": result.path,
                "sha256": result.hash,
                "size": result.size,
                "verification_required": verification_required,
            },
        )

    def _compatibility_gate(self) -> GateResult:
        verification = self._last_verification
        artifact_path: Optional[Path] = None
        if verification is not None:
            candidate = Path(verification.path)
            if not verification.is_placeholder or candidate.is_file():
                artifact_path = candidate

        checks = validate_environment(
            platform_key=self.platform_key,
            artifact_dir=self.verifier.artifact_dir,
            artifact_path=artifact_path,
            min_python=self.min_python,
        )
        failures = [check.message for check in checks if not check.passed]
        if failures:
            raise CompatibilityError(failures)

        return GateResult(
            name="compatibility",
            passed=True,
            message="Environment compatible",
            details={check.name: check.value for check in checks},
        )
