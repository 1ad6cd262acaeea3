# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Errors raised while reading binguard.yaml.

These sit outside the InstallError hierarchy on purpose: a broken config is
an operator problem found before any gate runs, and the CLI reports it with
its own exit code.
"""

from pathlib import Path
from typing import Optional


class ConfigError(Exception):
    """Base for config failures. `path` is the offending file, if known."""

    def __init__(self, message: str, path: Optional[Path] = None) -> None:
        super().__init__(message)
        self.path = path


class ConfigLoadError(ConfigError):
    """The file is missing, unreadable, or not a YAML mapping."""


class ConfigValidationError(ConfigError):
    """The YAML parsed but the pydantic schema rejected it."""
