# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Subcommand handlers for the binguard CLI.

Each handler loads config, resolves paths against the project root, wires
up the collaborators and maps the result onto an exit code. This is the only
layer that reads the process environment (through resolve_install_context)
or turns InstallError into an exit status.

Diagnostics go through the structured logger. Reports meant for a human
(gate results, verification tables, platform info) are written to stdout,
failures to stderr.
"""

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from binguard import __version__
from binguard.cli.exit_codes import CONFIG_ERROR, RUNTIME_ERROR, SUCCESS, VALIDATION_ERROR
from binguard.config.exceptions import ConfigError
from binguard.config.loader import load_project_config
from binguard.config.schema import BinguardConfig
from binguard.credentials.validator import LocalCredentialValidator
from binguard.exceptions import (
    DownloadError,
    InstallError,
    ManifestLoadError,
    RepositoryResolutionError,
)
from binguard.fetch.fetcher import RemoteFetcher
from binguard.gates.mode import InstallContext, resolve_install_context
from binguard.gates.report import render_outcome
from binguard.gates.sequencer import GateSequencer
from binguard.generator.generator import scan_artifacts, update_platform_entry, validate_manifest
from binguard.logging.logger import get_logger, set_package_log_level
from binguard.manifest.store import ManifestStore, read_manifest, write_manifest
from binguard.runtime.environment import get_system_info
from binguard.runtime.platforms import PlatformInfo, detect
from binguard.utils.paths import resolve_under
from binguard.verification.verifier import ArtifactVerifier


@dataclass(frozen=True)
class _Workspace:
    """Everything a handler needs, resolved once per invocation."""

    config: BinguardConfig
    project_root: Path
    manifest_path: Path
    artifact_dir: Path
    context: InstallContext


def _load_workspace(
    args: argparse.Namespace,
    command_name: str,
) -> tuple[int, Optional[_Workspace], logging.Logger]:
    """
    Shared setup: load config, settle the log level, resolve paths and the
    install context.

    Returns (exit_code, workspace, logger). If exit_code is not SUCCESS the
    caller should return it immediately.
    """
    logger = get_logger(f"binguard.cli.{command_name}", log_level=args.log_level or "INFO")

    project_root = Path(args.project_root).resolve() if args.project_root else Path.cwd()
    explicit = Path(args.config) if args.config is not None else None

    try:
        config, source = load_project_config(project_root, explicit)
    except ConfigError as err:
        logger.error(
            "Configuration error",
            extra={"command": command_name, "config_path": str(err.path), "error": str(err)},
        )
        return CONFIG_ERROR, None, logger

    if source is None:
        logger.debug("No config file found, running with defaults", extra={"command": command_name})
    else:
        logger.debug("Loaded config", extra={"command": command_name, "config_path": str(source)})

    log_file = config.global_config.log_file
    set_package_log_level(
        args.log_level or config.global_config.log_level,
        log_file=resolve_under(project_root, log_file) if log_file else None,
    )

    context = resolve_install_context(dev_mode=args.dev_mode or config.install.dev_mode)

    workspace = _Workspace(
        config=config,
        project_root=project_root,
        manifest_path=resolve_under(project_root, config.install.manifest_path),
        artifact_dir=resolve_under(project_root, config.install.artifact_dir),
        context=context,
    )
    return SUCCESS, workspace, logger


def _platform_info(args: argparse.Namespace) -> PlatformInfo:
    """The --platform override if given, else the detected platform."""
    key = getattr(args, "platform", None)
    if not key:
        return detect()
    os_name, _, arch = key.partition("-")
    return PlatformInfo(key=key, os=os_name, arch=arch, raw_system="", raw_machine="")


def _verifier(workspace: _Workspace, store: ManifestStore) -> ArtifactVerifier:
    return ArtifactVerifier(store, workspace.artifact_dir, dev_mode=workspace.context.dev_mode)


def _fetcher(workspace: _Workspace, store: ManifestStore) -> RemoteFetcher:
    fetch_config = workspace.config.fetch
    return RemoteFetcher(
        store,
        workspace.artifact_dir,
        repository_url=fetch_config.repository_url,
        release_base_url=fetch_config.release_base_url,
        max_redirects=fetch_config.max_redirects,
        timeout_seconds=fetch_config.timeout_seconds,
        chunk_size=fetch_config.chunk_size_bytes,
    )


def _credential_validator(workspace: _Workspace) -> LocalCredentialValidator:
    credentials = workspace.config.credentials
    return LocalCredentialValidator.from_sources(
        env_var=credentials.env_var,
        user_config_path=Path(credentials.user_config_path).expanduser(),
        dotenv_path=resolve_under(workspace.project_root, credentials.dotenv_path),
        license_url=credentials.license_url,
    )


def _exit_code_for(err: InstallError) -> int:
    if isinstance(err, ManifestLoadError):
        return CONFIG_ERROR
    if isinstance(err, (DownloadError, RepositoryResolutionError)):
        return RUNTIME_ERROR
    return VALIDATION_ERROR


def _write_out(text: str) -> None:
    sys.stdout.write(text if text.endswith("\n") else text + "\n")
    sys.stdout.flush()


def _write_err(text: str) -> None:
    sys.stderr.write(text if text.endswith("\n") else text + "\n")
    sys.stderr.flush()


def handle_install(args: argparse.Namespace) -> int:
    """Run the installation gates for the target platform."""
    exit_code, workspace, logger = _load_workspace(args, "install")
    if exit_code != SUCCESS or workspace is None:
        return exit_code

    try:
        store = ManifestStore(workspace.manifest_path)
        sequencer = GateSequencer(
            context=workspace.context,
            platform_info=_platform_info(args),
            verifier=_verifier(workspace, store),
            fetcher=_fetcher(workspace, store),
            credential_checker=_credential_validator(workspace),
            min_python=workspace.config.install.min_python,
        )
        outcome = sequencer.run()
    except Exception as err:
        logger.error("Install failed unexpectedly", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR

    rendered = render_outcome(outcome, license_url=workspace.config.credentials.license_url)
    if outcome.passed:
        _write_out(rendered)
        return SUCCESS
    _write_err(rendered)
    return VALIDATION_ERROR


def handle_verify(args: argparse.Namespace) -> int:
    """Verify the target platform's artifact, or every entry with --all."""
    exit_code, workspace, logger = _load_workspace(args, "verify")
    if exit_code != SUCCESS or workspace is None:
        return exit_code

    verifier = _verifier(workspace, ManifestStore(workspace.manifest_path))

    try:
        if args.all_platforms:
            statuses = verifier.verify_all()
            for status in statuses.values():
                line = f"{status.platform:<14} {status.status:<12} {status.path}"
                _write_out(line)
            bad = [s for s in statuses.values() if s.status in {"missing", "failed"}]
            return VALIDATION_ERROR if bad else SUCCESS

        platform_info = _platform_info(args)
        result = verifier.verify(platform_info.key, platform_info=platform_info)
    except InstallError as err:
        _write_err(str(err))
        return _exit_code_for(err)
    except Exception as err:
        logger.error("Verification failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR

    label = "placeholder accepted (dev mode)" if result.is_placeholder else "verified"
    _write_out(f"{result.platform}: {label} ({result.path})")
    return SUCCESS


def handle_platform_info(args: argparse.Namespace) -> int:
    """Print the detected platform and its manifest entry as JSON."""
    exit_code, workspace, logger = _load_workspace(args, "platform-info")
    if exit_code != SUCCESS or workspace is None:
        return exit_code

    platform_info = _platform_info(args)
    system_info = get_system_info()
    verifier = _verifier(workspace, ManifestStore(workspace.manifest_path))

    try:
        report: dict[str, object] = verifier.platform_report(platform_info)
    except ManifestLoadError as err:
        report = {
            "detected": platform_info.key,
            "raw": {"system": platform_info.raw_system, "machine": platform_info.raw_machine},
            "manifest_error": str(err),
        }

    report["binguard_version"] = __version__
    report["python_version"] = system_info.python_version
    report["bypassed"] = workspace.context.bypassed
    _write_out(json.dumps(report, indent=2))
    logger.debug("Platform info reported", extra={"platform": platform_info.key})
    return SUCCESS


def handle_fetch(args: argparse.Namespace) -> int:
    """Download the target platform's artifact, then verify it."""
    exit_code, workspace, logger = _load_workspace(args, "fetch")
    if exit_code != SUCCESS or workspace is None:
        return exit_code

    store = ManifestStore(workspace.manifest_path)
    platform_info = _platform_info(args)

    try:
        path = _fetcher(workspace, store).fetch(platform_info.key)
        result = _verifier(workspace, store).verify(
            platform_info.key, refresh=True, platform_info=platform_info
        )
    except InstallError as err:
        _write_err(str(err))
        return _exit_code_for(err)
    except Exception as err:
        logger.error("Fetch failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR

    _write_out(f"{platform_info.key}: fetched and verified ({path}, sha256 {result.hash})")
    return SUCCESS


def handle_check_license(args: argparse.Namespace) -> int:
    """Run the local credential check and print {valid, tier, error}."""
    exit_code, workspace, _ = _load_workspace(args, "check-license")
    if exit_code != SUCCESS or workspace is None:
        return exit_code

    check = _credential_validator(workspace).check()
    _write_out(
        json.dumps(
            {"valid": check.valid, "tier": check.tier, "error": check.error, "source": check.source},
            indent=2,
        )
    )
    return SUCCESS if check.valid else VALIDATION_ERROR


def handle_manifest_scan(args: argparse.Namespace) -> int:
    """Hash the artifact directory and write a complete manifest."""
    exit_code, workspace, logger = _load_workspace(args, "manifest-scan")
    if exit_code != SUCCESS or workspace is None:
        return exit_code

    version = args.release_version
    if version is None and workspace.manifest_path.is_file():
        try:
            version = read_manifest(workspace.manifest_path).version
        except ManifestLoadError as err:
            logger.warning("Existing manifest unreadable, using package version", extra={"error": str(err)})
    version = version or __version__

    generator_config = workspace.config.generator
    try:
        manifest = scan_artifacts(
            workspace.artifact_dir,
            version=version,
            prefix=generator_config.artifact_prefix,
            placeholder_max_bytes=generator_config.placeholder_max_bytes,
            placeholder_marker=generator_config.placeholder_marker,
            features=generator_config.features,
        )
        write_manifest(manifest, workspace.manifest_path)
    except Exception as err:
        logger.error("Manifest scan failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR

    summary = manifest.build_summary
    if summary is not None:
        _write_out(
            f"Manifest written to {workspace.manifest_path}: "
            f"{summary.binaries_found} real, {summary.placeholders_found} placeholders, "
            f"{summary.binaries_missing} missing"
        )
    return SUCCESS


def handle_manifest_update(args: argparse.Namespace) -> int:
    """Record the digest of a freshly built artifact for one platform."""
    exit_code, workspace, logger = _load_workspace(args, "manifest-update")
    if exit_code != SUCCESS or workspace is None:
        return exit_code

    try:
        entry = update_platform_entry(
            workspace.manifest_path,
            args.platform,
            Path(args.artifact).resolve(),
            build_commit=args.commit,
        )
    except InstallError as err:
        _write_err(str(err))
        return _exit_code_for(err)
    except Exception as err:
        logger.error("Manifest update failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR

    _write_out(f"Updated {args.platform}: sha256 {entry.sha256}, {entry.size} bytes")
    return SUCCESS


def handle_manifest_validate(args: argparse.Namespace) -> int:
    """Re-hash every real artifact and compare against the manifest."""
    exit_code, workspace, _ = _load_workspace(args, "manifest-validate")
    if exit_code != SUCCESS or workspace is None:
        return exit_code

    try:
        report = validate_manifest(workspace.manifest_path, workspace.artifact_dir)
    except ManifestLoadError as err:
        _write_err(str(err))
        return CONFIG_ERROR

    for platform_key in report.verified:
        _write_out(f"{platform_key}: verified")
    for platform_key in report.placeholders:
        _write_out(f"{platform_key}: development placeholder")
    for failure in report.failures:
        _write_err(failure)

    return SUCCESS if report.is_valid else VALIDATION_ERROR
