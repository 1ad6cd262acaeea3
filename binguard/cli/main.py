# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI entrypoint for binguard.

Single root command, every operation is a subcommand of `binguard`. The
global options (--config, --log-level, --dev-mode, --project-root) are
inherited by every subcommand through argparse's parent parser mechanism.

Usage:
    binguard install
    binguard verify --all
    binguard platform-info
    binguard manifest scan --version 1.2.0
    binguard manifest update --platform linux-x64 --artifact dist/binguard-runner-linux-x64
"""

import argparse
import sys

from binguard.cli.commands import (
    handle_check_license,
    handle_fetch,
    handle_install,
    handle_manifest_scan,
    handle_manifest_update,
    handle_manifest_validate,
    handle_platform_info,
    handle_verify,
)
from binguard.cli.exit_codes import USER_ERROR


def _build_global_parser() -> argparse.ArgumentParser:
    """
    Parent parser with the global options.

    add_help=False so help text doesn't collide between the parent and the
    subcommand parsers.
    """
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file (default: binguard.yaml in the project root, if present).",
    )
    parent.add_argument(
        "--log-level",
        type=str,
        default=None,
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging verbosity level (overrides config).",
    )
    parent.add_argument(
        "--dev-mode",
        action="store_true",
        default=False,
        dest="dev_mode",
        help="Accept development placeholders instead of real artifacts.",
    )
    parent.add_argument(
        "--project-root",
        type=str,
        default=None,
        dest="project_root",
        help="Directory holding the manifest and artifact dir (default: cwd).",
    )
    return parent


def _add_platform_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--platform",
        type=str,
        default=None,
        help="Target platform key (e.g. linux-x64) instead of the detected one.",
    )


def _register_subcommands(
    subparsers: argparse._SubParsersAction,  # type: ignore[type-arg]
    parent: argparse.ArgumentParser,
) -> None:
    commands = [
        ("install", "Run the installation gates for this platform.", handle_install),
        ("verify", "Verify the artifact against the manifest.", handle_verify),
        ("platform-info", "Show the detected platform and its manifest entry.", handle_platform_info),
        ("fetch", "Download this platform's artifact and re-verify it.", handle_fetch),
        ("check-license", "Validate the configured API key locally.", handle_check_license),
    ]

    for name, help_text, handler in commands:
        parser = subparsers.add_parser(name, parents=[parent], help=help_text)
        parser.set_defaults(func=handler)

    for name in ("install", "verify", "platform-info", "fetch"):
        _add_platform_option(subparsers.choices[name])

    subparsers.choices["verify"].add_argument(
        "--all",
        action="store_true",
        default=False,
        dest="all_platforms",
        help="Verify every manifest entry, not just the current platform.",
    )

    manifest_parser = subparsers.add_parser(
        "manifest", parents=[parent], help="Author or validate the manifest."
    )
    manifest_parser.set_defaults(func=None, help_parser=manifest_parser)
    manifest_sub = manifest_parser.add_subparsers(dest="manifest_command")

    scan = manifest_sub.add_parser(
        "scan", parents=[parent], help="Hash the artifact directory and write a full manifest."
    )
    scan.add_argument("--version", dest="release_version", default=None, help="Release version to record.")
    scan.set_defaults(func=handle_manifest_scan)

    update = manifest_sub.add_parser(
        "update", parents=[parent], help="Record a freshly built artifact for one platform."
    )
    update.add_argument("--platform", required=True, help="Platform key to update.")
    update.add_argument("--artifact", required=True, help="Path to the built artifact.")
    update.add_argument("--commit", default=None, help="Build commit (default: GITHUB_SHA or git HEAD).")
    update.set_defaults(func=handle_manifest_update)

    validate = manifest_sub.add_parser(
        "validate", parents=[parent], help="Re-hash artifacts and compare against the manifest."
    )
    validate.set_defaults(func=handle_manifest_validate)


def build_parser() -> argparse.ArgumentParser:
    parent = _build_global_parser()

    root_parser = argparse.ArgumentParser(
        prog="binguard",
        description="binguard: verified installation of per-platform executables.",
        parents=[parent],
    )
    subparsers = root_parser.add_subparsers(dest="command")
    _register_subcommands(subparsers, parent)
    return root_parser


def main() -> None:
    """
    Main CLI entrypoint, referenced by [project.scripts].

    With no subcommand (or `manifest` with no mode) help is shown and the
    process exits with USER_ERROR.
    """
    root_parser = build_parser()
    args = root_parser.parse_args()

    if getattr(args, "func", None) is None:
        getattr(args, "help_parser", root_parser).print_help()
        sys.exit(USER_ERROR)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
