# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
binguard: verified installation of prebuilt per-platform executables.

A package that ships a native executable per OS/architecture uses binguard
at install time to pick the right artifact, check it against a trusted
SHA-256 manifest, fetch it from a versioned release when it is missing or
wrong, and refuse to finish installing anything it cannot verify.
"""

__version__ = "1.0.0"
