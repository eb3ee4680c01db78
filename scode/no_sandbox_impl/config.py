"""Environment settings for the no-sandbox launch hook."""

import os
from collections.abc import Mapping
from dataclasses import dataclass

SANDBOXED_VAR = "SCODE_SANDBOXED"
QUIET_VAR = "SCODE_NO_SANDBOX_QUIET"

_TRUTHY = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True)
class Settings:
    """Hook settings read from the environment.

    sandboxed: set by the scode launcher for processes it runs inside the
        sandbox. The hook stays out of the way otherwise.
    quiet: suppress the one-time fallback warning.
    """

    sandboxed: bool = False
    quiet: bool = False


def _env_truthy(environ: Mapping[str, str], name: str) -> bool:
    val = (environ.get(name) or "").strip().lower()
    return val in _TRUTHY


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Load settings from `environ` (defaults to `os.environ`)."""
    if environ is None:
        environ = os.environ
    return Settings(
        sandboxed=_env_truthy(environ, SANDBOXED_VAR),
        quiet=_env_truthy(environ, QUIET_VAR),
    )
