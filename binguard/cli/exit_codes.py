# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI exit codes.

The install pipeline itself only answers pass/fail; mapping that (and config
or runtime trouble) onto a process exit code happens in the CLI and nowhere
else. These are the only codes the CLI returns.
"""

SUCCESS: int = 0
USER_ERROR: int = 1
CONFIG_ERROR: int = 2
RUNTIME_ERROR: int = 3
VALIDATION_ERROR: int = 4
