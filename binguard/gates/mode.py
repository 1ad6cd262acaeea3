# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Install mode resolution.

The environment is inspected exactly once, at the entry point, and the
result travels down as an InstallContext. Nothing below the CLI reads
os.environ to decide how strict to be.

BYPASSED is reserved for builds that produce the artifact themselves, where
credential and integrity gates have nothing meaningful to check. To keep a
stray `CI=1` in a developer shell from disabling security, strict CI needs
two independent signals: a truthy `CI` and at least one provider marker.
The explicit override variable is the only single-signal bypass.
"""

import enum
import os
from dataclasses import dataclass
from typing import Mapping, Optional

CI_FLAG = "CI"
CI_PROVIDER_MARKERS: tuple[str, ...] = (
    "GITHUB_ACTIONS",
    "GITLAB_CI",
    "BUILDKITE",
    "CIRCLECI",
    "TRAVIS",
    "JENKINS_URL",
    "TF_BUILD",
)
SKIP_GATES_ENV = "BINGUARD_SKIP_GATES"
DEV_MODE_ENV = "BINGUARD_DEV_MODE"

_FALSY = {"", "0", "false", "no", "off"}


class InstallMode(enum.Enum):
    STANDARD = "standard"
    BYPASSED = "bypassed"


@dataclass(frozen=True)
class InstallContext:
    """How this install attempt runs. Immutable once resolved."""

    mode: InstallMode = InstallMode.STANDARD
    dev_mode: bool = False
    bypass_reason: Optional[str] = None

    @property
    def bypassed(self) -> bool:
        return self.mode is InstallMode.BYPASSED


def _truthy(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() not in _FALSY


def detect_strict_ci(environ: Mapping[str, str]) -> Optional[str]:
    """
    Return a description of the CI signals when strict CI is detected, else None.
    """
    if not _truthy(environ.get(CI_FLAG)):
        return None
    providers = [name for name in CI_PROVIDER_MARKERS if _truthy(environ.get(name))]
    if not providers:
        return None
    return f"{CI_FLAG} + {', '.join(providers)}"


def resolve_install_context(
    environ: Optional[Mapping[str, str]] = None,
    dev_mode: bool = False,
) -> InstallContext:
    """
    Compute the InstallContext for this process.

    Args:
        environ: Environment mapping, defaults to os.environ.
        dev_mode: Dev mode requested by config or CLI flag; the
            BINGUARD_DEV_MODE variable can also turn it on.
    """
    env = os.environ if environ is None else environ
    dev = dev_mode or _truthy(env.get(DEV_MODE_ENV))

    if _truthy(env.get(SKIP_GATES_ENV)):
        return InstallContext(
            mode=InstallMode.BYPASSED,
            dev_mode=dev,
            bypass_reason=f"explicit override ({SKIP_GATES_ENV})",
        )

    ci_signals = detect_strict_ci(env)
    if ci_signals is not None:
        return InstallContext(
            mode=InstallMode.BYPASSED,
            dev_mode=dev,
            bypass_reason=f"automated build environment ({ci_signals})",
        )

    return InstallContext(mode=InstallMode.STANDARD, dev_mode=dev)
