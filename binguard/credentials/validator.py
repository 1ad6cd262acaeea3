# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Local credential validation for the `check-license` command and gate 1.

The gate sequencer only sees the `{valid, tier, error}` result; what a valid
key looks like is decided here. Validation is offline: format, length,
entropy of the hex part, and a deny-list of obvious test values. Backend
license semantics are someone else's job.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping, Optional

from binguard.credentials.source import CredentialSource, resolve_credential
from binguard.logging.logger import get_logger

_logger: logging.Logger = get_logger(__name__)

KEY_FORMATS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("sk-local-<basic|pro>-<32 hex>", re.compile(r"^sk-local-(basic|pro)-[a-f0-9]{32}$", re.IGNORECASE)),
    ("mcp_<live|test>_<32 hex>", re.compile(r"^mcp_(live|test)_[a-f0-9]{32}$", re.IGNORECASE)),
    ("opt_<40 hex>", re.compile(r"^opt_[a-f0-9]{40}$", re.IGNORECASE)),
)

_TEST_KEY_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"test.*key", re.IGNORECASE),
    re.compile(r"demo.*key", re.IGNORECASE),
    re.compile(r"example.*key", re.IGNORECASE),
    re.compile(r"^sk-local-(basic|pro)-0{20,}", re.IGNORECASE),
    re.compile(r"^sk-local-(basic|pro)-1{20,}", re.IGNORECASE),
    re.compile(r"^mcp_(live|test)_0{20,}", re.IGNORECASE),
    re.compile(r"dummy", re.IGNORECASE),
    re.compile(r"placeholder", re.IGNORECASE),
)

_HEX_RUN = re.compile(r"[a-f0-9]{20,}", re.IGNORECASE)

MIN_KEY_LENGTH = 25
MIN_DISTINCT_HEX_CHARS = 8


@dataclass(frozen=True)
class CredentialCheck:
    """What gate 1 consumes. `error` is user-facing when valid is False."""

    valid: bool
    tier: str = "unknown"
    error: Optional[str] = None
    source: Optional[str] = None
    checks: dict[str, bool] = field(default_factory=dict)


def is_valid_key_format(key: str) -> bool:
    return any(pattern.match(key) for _, pattern in KEY_FORMATS)


def has_good_entropy(key: str) -> bool:
    """The first run of 20+ hex characters must use at least 8 distinct ones."""
    match = _HEX_RUN.search(key)
    if match is None:
        return False
    return len(set(match.group(0).lower())) >= MIN_DISTINCT_HEX_CHARS


def is_test_key(key: str) -> bool:
    return any(pattern.search(key) for pattern in _TEST_KEY_PATTERNS)


def key_tier(key: str) -> str:
    lowered = key.lower()
    if "-pro-" in lowered or "_live_" in lowered:
        return "pro"
    if "-basic-" in lowered or "_test_" in lowered:
        return "basic"
    return "unknown"


def key_strength_checks(key: str) -> dict[str, bool]:
    return {
        "length": len(key) >= MIN_KEY_LENGTH,
        "format": is_valid_key_format(key),
        "entropy": has_good_entropy(key),
        "not_test_key": not is_test_key(key),
    }


def expected_formats() -> str:
    return ", ".join(name for name, _ in KEY_FORMATS)


class LocalCredentialValidator:
    """
    Default credential collaborator.

    `resolver` returns the credential (or None); by default it is
    resolve_credential bound to the configured sources.
    """

    def __init__(
        self,
        resolver: Callable[[], Optional[CredentialSource]],
        env_var: str = "BINGUARD_API_KEY",
        license_url: str = "https://binguard.dev/license",
    ) -> None:
        self.resolver = resolver
        self.env_var = env_var
        self.license_url = license_url

    @classmethod
    def from_sources(
        cls,
        env_var: str,
        user_config_path: Path,
        dotenv_path: Path,
        license_url: str,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "LocalCredentialValidator":
        def resolver() -> Optional[CredentialSource]:
            return resolve_credential(env_var, user_config_path, dotenv_path, environ)

        return cls(resolver, env_var=env_var, license_url=license_url)

    def check(self) -> CredentialCheck:
        source = self.resolver()
        if source is None:
            return CredentialCheck(
                valid=False,
                error=(
                    "No API key found. Set it with one of:\n"
                    f"  1. Environment variable: export {self.env_var}=your-key-here\n"
                    '  2. User config (~/.binguard/config.json): {"api_key": "your-key-here"}\n'
                    f"  3. Project .env file: {self.env_var}=your-key-here\n"
                    f"Get your key at: {self.license_url}"
                ),
            )

        key = source.value
        checks = key_strength_checks(key)
        if not all(checks.values()):
            failed = [name for name, passed in checks.items() if not passed]
            _logger.warning(
                "Credential rejected",
                extra={"origin": source.origin, "failed_checks": failed},
            )
            return CredentialCheck(
                valid=False,
                error=(
                    f"Invalid API key ({', '.join(failed)}). "
                    f"Your key: {key[:12]}...\n"
                    f"Expected formats: {expected_formats()}\n"
                    f"Get a valid key at: {self.license_url}"
                ),
                source=source.origin,
                checks=checks,
            )

        tier = key_tier(key)
        _logger.info("Credential validated", extra={"origin": source.origin, "tier": tier})
        return CredentialCheck(valid=True, tier=tier, source=source.origin, checks=checks)
