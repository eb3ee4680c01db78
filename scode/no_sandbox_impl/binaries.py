"""Binary classification: the role a command name plays in a launch."""

import enum
import os
import re
from dataclasses import dataclass
from types import MappingProxyType


class RoleKind(enum.Enum):
    TARGET = "target"
    SHELL = "shell"
    ENV = "env"
    WRAPPER = "wrapper"
    PLAIN = "plain"


class Positional(enum.Enum):
    """What a wrapper accepts between its options and the wrapped command."""

    NONE = "none"
    NUMERIC = "numeric"  # nice-style priority, e.g. `nice 5 cmd`
    OPAQUE = "opaque"  # timeout duration, taskset mask


@dataclass(frozen=True)
class WrapperSpec:
    """Option grammar of a process wrapper.

    `value_flags` consume the following word. `stop_flags` mean the wrapper
    will not run the command that follows (`command -v`, `sudo -l`). When
    `generic_flags` is set the shared wrapper tables apply on top.
    """

    value_flags: frozenset[str] = frozenset()
    positional: Positional = Positional.NONE
    stop_flags: frozenset[str] = frozenset()
    generic_flags: bool = True


@dataclass(frozen=True)
class BinaryRole:
    kind: RoleKind
    spec: WrapperSpec | None = None


_TARGET_PATTERNS = (
    re.compile(r"\bchrom(?:e|ium)\b", re.IGNORECASE),
    re.compile(r"\bbrave\b", re.IGNORECASE),
    re.compile(r"\bmsedge\b", re.IGNORECASE),
    re.compile(r"\bheadless[_-]?shell\b", re.IGNORECASE),
    re.compile(r"\belectron\b", re.IGNORECASE),
)

# Developer tooling named after the engine. These never start a browser.
_TOOLING_PATTERNS = (
    re.compile(r"^electron[-_]", re.IGNORECASE),
    re.compile(r"^chrome-devtools-", re.IGNORECASE),
)

SHELLS = frozenset({"sh", "bash", "zsh", "dash", "ksh", "ash", "mksh"})

ENV_NAME = "env"

GENERIC_VALUE_FLAGS = frozenset(
    {
        "-n",
        "--adjustment",
        "-i",
        "-o",
        "-e",
        "--input",
        "--output",
        "--error",
        "-k",
        "--kill-after",
        "-s",
        "--signal",
    }
)

GENERIC_STOP_FLAGS = frozenset({"--help", "--version"})

SUDO_VALUE_FLAGS = frozenset(
    {
        "-u",
        "--user",
        "-g",
        "--group",
        "-h",
        "--host",
        "-p",
        "--prompt",
        "-C",
        "--close-from",
        "-R",
        "--chroot",
        "-D",
        "--chdir",
        "-r",
        "--role",
        "-t",
        "--type",
        "-U",
        "--other-user",
        "-T",
        "--command-timeout",
    }
)

_SUDO = WrapperSpec(
    value_flags=SUDO_VALUE_FLAGS,
    generic_flags=False,
    stop_flags=frozenset(
        {
            "-e",
            "--edit",
            "-l",
            "--list",
            "-v",
            "--validate",
            "-K",
            "--remove-timestamp",
            "-V",
            "--version",
            "--help",
        }
    ),
)

WRAPPERS = MappingProxyType(
    {
        "sudo": _SUDO,
        "nohup": WrapperSpec(),
        "setsid": WrapperSpec(),
        "command": WrapperSpec(stop_flags=frozenset({"-v", "-V"})),
        "nice": WrapperSpec(positional=Positional.NUMERIC),
        "ionice": WrapperSpec(
            value_flags=frozenset({"-c", "--class", "--classdata"}),
            stop_flags=frozenset({"-p", "--pid", "-P", "--pgid", "-u", "--uid"}),
        ),
        "time": WrapperSpec(value_flags=frozenset({"-f", "--format"})),
        "timeout": WrapperSpec(positional=Positional.OPAQUE),
        "strace": WrapperSpec(
            value_flags=frozenset(
                {"-a", "-b", "-E", "-I", "-p", "-P", "-S", "-u", "-X", "--attach"}
            )
        ),
        "ltrace": WrapperSpec(
            value_flags=frozenset(
                {"-a", "-A", "-D", "-F", "-l", "-p", "-u", "-w", "-x"}
            )
        ),
        "taskset": WrapperSpec(
            positional=Positional.OPAQUE,
            stop_flags=frozenset({"-p", "--pid"}),
        ),
        "stdbuf": WrapperSpec(),
        "xvfb-run": WrapperSpec(
            value_flags=frozenset(
                {
                    "-f",
                    "-p",
                    "--server-num",
                    "--server-args",
                    "--auth-file",
                    "--error-file",
                    "--xauth-protocol",
                }
            )
        ),
    }
)

_TARGET = BinaryRole(RoleKind.TARGET)
_SHELL = BinaryRole(RoleKind.SHELL)
_ENV = BinaryRole(RoleKind.ENV)
_PLAIN = BinaryRole(RoleKind.PLAIN)
_WRAPPER_ROLES = MappingProxyType(
    {name: BinaryRole(RoleKind.WRAPPER, spec) for name, spec in WRAPPERS.items()}
)


def command_basename(name) -> str:
    """Reduce a program name to its last path component.

    Accepts `str`, `bytes` and path-like objects; anything else gives "".
    Both `/` and `\\` count as separators.
    """
    if isinstance(name, (bytes, os.PathLike)):
        try:
            name = os.fsdecode(name)
        except TypeError:
            return ""
    if not isinstance(name, str):
        return ""
    return name.rsplit("/", 1)[-1].rsplit("\\", 1)[-1]


def _is_target_basename(basename: str) -> bool:
    if any(p.search(basename) for p in _TOOLING_PATTERNS):
        return False
    return any(p.search(basename) for p in _TARGET_PATTERNS)


def classify(name) -> BinaryRole:
    """Classify a program name. Total: unknown or non-string input is PLAIN."""
    basename = command_basename(name)
    if not basename:
        return _PLAIN
    if _is_target_basename(basename):
        return _TARGET
    if basename in SHELLS:
        return _SHELL
    if basename == ENV_NAME:
        return _ENV
    return _WRAPPER_ROLES.get(basename, _PLAIN)


def is_target(name) -> bool:
    return classify(name).kind is RoleKind.TARGET


def is_shell(name) -> bool:
    return classify(name).kind is RoleKind.SHELL


def is_env(name) -> bool:
    return classify(name).kind is RoleKind.ENV


def is_wrapper(name) -> bool:
    return classify(name).kind is RoleKind.WRAPPER
