"""Chromium --no-sandbox injection for sandboxed Python processes.

Chromium cannot start its own sandbox inside the scode sandbox. Importing
this module and calling `install()` makes every Chromium launch from the
current interpreter carry --no-sandbox, wherever the binary sits in the
command: behind `sudo`, `env`, `nice`, `timeout` and friends, or inside a
`bash -c "..."` string. Outside the sandbox (`SCODE_SANDBOXED` unset)
`install()` does nothing.
"""

from .no_sandbox_impl.binaries import BinaryRole, RoleKind, classify
from .no_sandbox_impl.hook import install, installed, uninstall
from .no_sandbox_impl.inject import NO_SANDBOX_FLAG, inject, inject_args
from .no_sandbox_impl.shell import Token, tokenize

__all__ = [
    "NO_SANDBOX_FLAG",
    "BinaryRole",
    "RoleKind",
    "Token",
    "classify",
    "inject",
    "inject_args",
    "install",
    "installed",
    "tokenize",
    "uninstall",
]
