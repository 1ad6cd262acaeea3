# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Human-readable rendering of a GateOutcome.

The CLI prints these; nothing here decides anything.
"""

from typing import Optional

from binguard.gates.sequencer import GateOutcome

DEFAULT_LICENSE_URL = "https://binguard.dev/license"

_REMEDIATION: dict[str, list[str]] = {
    "credential": [
        "Set a valid API key (see `binguard check-license`)",
        "Get a key at: {license_url}",
    ],
    "availability": [
        "Check your network connection and proxy settings",
        "Clear your package manager cache: pip cache purge",
        "Reinstall: pip install --force-reinstall --no-cache-dir <package>",
    ],
    "integrity": [
        "Clear your package manager cache: pip cache purge",
        "Reinstall: pip install --force-reinstall --no-cache-dir <package>",
        "For local development, enable dev mode with --dev-mode or BINGUARD_DEV_MODE=1",
    ],
    "compatibility": [
        "Run `binguard platform-info` to see what was detected",
        "Check file permissions in the artifact directory",
    ],
}


# Error types whose remediation does not depend on the gate that raised them.
_ERROR_REMEDIATION: dict[str, list[str]] = {
    "HashMismatchError": [
        "Clear your package manager cache: pip cache purge",
        "Reinstall: pip install --force-reinstall --no-cache-dir <package>",
        "Check whether anything on this machine modified the artifact directory",
    ],
}


def remediation_for(
    gate: str,
    license_url: str = DEFAULT_LICENSE_URL,
    error_type: Optional[str] = None,
) -> list[str]:
    steps = _ERROR_REMEDIATION.get(error_type or "") or _REMEDIATION.get(gate, [])
    return [step.format(license_url=license_url) for step in steps]


def render_success(outcome: GateOutcome) -> str:
    if outcome.skipped:
        return f"Installation gates skipped: {outcome.bypass_reason or 'bypassed'}\n"

    lines = [f"All installation gates passed for {outcome.platform}"]
    if outcome.credential_tier:
        lines.append(f"  License tier: {outcome.credential_tier}")
    for result in outcome.results:
        lines.append(f"  [ok] {result.name}: {result.message}")
    for warning in outcome.warnings:
        lines.append(f"  warning: {warning}")
    return "\n".join(lines) + "\n"


def render_failure(outcome: GateOutcome, license_url: str = DEFAULT_LICENSE_URL) -> str:
    """
    Render a failed outcome: which gates passed, which one failed and why,
    and the remediation steps for the failed gate.
    """
    lines = [f"Installation failed for {outcome.platform}"]
    for result in outcome.results:
        marker = "ok" if result.passed else "FAILED"
        lines.append(f"  [{marker}] {result.name}")

    lines.append("")
    if outcome.failed_gate:
        lines.append(f"Failed gate: {outcome.failed_gate} ({outcome.error_type or 'error'})")
    for error in outcome.errors:
        lines.append(error)

    steps = remediation_for(outcome.failed_gate or "", license_url, outcome.error_type)
    if steps:
        lines.append("")
        lines.append("To fix this:")
        lines.extend(f"  {index}. {step}" for index, step in enumerate(steps, start=1))

    return "\n".join(lines) + "\n"


def render_outcome(outcome: GateOutcome, license_url: str = DEFAULT_LICENSE_URL) -> str:
    if outcome.passed:
        return render_success(outcome)
    return render_failure(outcome, license_url)
