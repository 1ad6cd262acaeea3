# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Reads binguard.yaml into a frozen BinguardConfig.

A config can be named explicitly (--config) or discovered in the project
root. When neither yields a file the built-in defaults apply. A file that
exists but is broken never falls back to defaults.
"""

from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from binguard.config.exceptions import ConfigLoadError, ConfigValidationError
from binguard.config.schema import BinguardConfig, default_config

# Searched in order under the project root.
CONFIG_FILENAMES: tuple[str, ...] = ("binguard.yaml", "binguard.yml", ".binguard.yaml")


def _read_mapping(config_path: Path) -> dict[str, Any]:
    if not config_path.is_file():
        reason = "not found" if not config_path.exists() else "is not a file"
        raise ConfigLoadError(f"Config file {reason}: {config_path}", path=config_path)

    try:
        parsed = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except OSError as err:
        raise ConfigLoadError(f"Cannot read config file {config_path}: {err}", path=config_path) from err
    except yaml.YAMLError as err:
        raise ConfigLoadError(f"Invalid YAML in {config_path}: {err}", path=config_path) from err

    if not isinstance(parsed, dict):
        raise ConfigLoadError(
            f"Config file must contain a YAML mapping, got {type(parsed).__name__}",
            path=config_path,
        )
    return parsed


def load_config(config_path: Path) -> BinguardConfig:
    """
    Parse and validate one config file.

    Raises:
        ConfigLoadError: the file cannot be read or is not a YAML mapping.
        ConfigValidationError: the schema rejected it (missing section,
            wrong type, unknown key).
    """
    raw = _read_mapping(config_path)
    try:
        return BinguardConfig.model_validate(raw)
    except ValidationError as err:
        raise ConfigValidationError(
            f"Config validation failed for {config_path}:\n{err}", path=config_path
        ) from err


def discover_config(project_root: Path) -> Optional[Path]:
    """First entry of CONFIG_FILENAMES present in project_root, or None."""
    for name in CONFIG_FILENAMES:
        candidate = project_root / name
        if candidate.is_file():
            return candidate
    return None


def load_project_config(
    project_root: Path,
    explicit_path: Optional[Path] = None,
) -> tuple[BinguardConfig, Optional[Path]]:
    """
    Resolve the config for a project.

    Returns the config together with the file it came from (None when the
    defaults were used). An explicit path is never replaced by discovery.
    """
    source = explicit_path if explicit_path is not None else discover_config(project_root)
    if source is None:
        return default_config(), None
    return load_config(source), source
