# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Credential lookup.

The access key comes from exactly one place, first hit wins:
  1. an environment variable
  2. a user-level JSON config file ({"api_key": "..."})
  3. a project-local dotenv file (NAME=value)

Sources are never merged. A source that exists but is unreadable or
malformed is skipped with a debug log, and the lookup moves on.
"""

import json
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from binguard.logging.logger import get_logger

_logger: logging.Logger = get_logger(__name__)

_USER_CONFIG_KEYS = ("api_key", "apiKey")


@dataclass(frozen=True)
class CredentialSource:
    """A resolved credential and where it came from."""

    value: str
    origin: str  # "env", "user_config", "dotenv"
    location: str


def _from_user_config(path: Path) -> Optional[str]:
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as err:
        _logger.debug("Skipping unreadable user config", extra={"path": str(path), "error": str(err)})
        return None
    if not isinstance(data, dict):
        return None
    for key in _USER_CONFIG_KEYS:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _from_dotenv(path: Path, env_var: str) -> Optional[str]:
    if not path.is_file():
        return None
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as err:
        _logger.debug("Skipping unreadable dotenv", extra={"path": str(path), "error": str(err)})
        return None

    pattern = re.compile(rf"^\s*(?:export\s+)?{re.escape(env_var)}\s*=\s*(.+?)\s*$", re.MULTILINE)
    match = pattern.search(content)
    if match is None:
        return None
    value = match.group(1).strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        value = value[1:-1]
    return value or None


def resolve_credential(
    env_var: str,
    user_config_path: Path,
    dotenv_path: Path,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[CredentialSource]:
    """
    Find the access credential.

    Args:
        env_var: Environment variable name, also the dotenv key.
        user_config_path: User-level JSON config.
        dotenv_path: Project-local dotenv file.
        environ: Environment mapping, defaults to os.environ.

    Returns:
        The first credential found, or None.
    """
    env = os.environ if environ is None else environ

    value = env.get(env_var, "").strip()
    if value:
        return CredentialSource(value=value, origin="env", location=env_var)

    value = _from_user_config(user_config_path)
    if value:
        return CredentialSource(value=value, origin="user_config", location=str(user_config_path))

    value = _from_dotenv(dotenv_path, env_var)
    if value:
        return CredentialSource(value=value, origin="dotenv", location=str(dotenv_path))

    return None
