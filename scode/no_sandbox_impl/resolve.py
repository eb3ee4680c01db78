"""Find the word that names the program a shell segment or argv will run."""

import enum
import re
from collections.abc import Sequence
from dataclasses import dataclass

from .binaries import (
    GENERIC_STOP_FLAGS,
    GENERIC_VALUE_FLAGS,
    Positional,
    RoleKind,
    WrapperSpec,
    classify,
)
from .shell import GROUPING, is_assignment, short_flag_letters


class Position(enum.Enum):
    TARGET = "target"
    NESTED = "nested"
    NONE = "none"


@dataclass(frozen=True)
class Resolution:
    """Outcome of a command-position scan.

    For TARGET, `index` is the guarded binary's word. For NESTED, `index` is
    the word holding an inline command string and `launcher` is the shell or
    env word that will run it. `prefix` is the option text in front of the
    command string when both share one word (`--split-string=CMD`).
    """

    kind: Position
    index: int | None = None
    launcher: int | None = None
    prefix: str = ""


NOT_FOUND = Resolution(Position.NONE)

END_OF_OPTIONS = "--"

SHELL_KEYWORDS = frozenset(
    {"if", "then", "else", "elif", "do", "while", "until", "!", "{"}
)

# Builtins that run the rest of the segment as a command.
PASSTHROUGH_BUILTINS = frozenset({"exec"})

# Builtins whose arguments are never executed.
STATE_BUILTINS = frozenset(
    {
        "set",
        "export",
        "unset",
        "readonly",
        "declare",
        "typeset",
        "local",
        "shopt",
        "trap",
        "umask",
        "alias",
        "unalias",
        "cd",
        "pushd",
        "popd",
        "source",
        ".",
    }
)

_EXEC_VALUE_FLAGS = frozenset({"-a"})
_SHELL_VALUE_FLAGS = frozenset({"-o", "+o", "-O", "+O", "--rcfile", "--init-file"})
_ENV_VALUE_FLAGS = frozenset({"-u", "--unset", "-C", "--chdir", "-P"})
_ENV_SPLIT_FLAGS = frozenset({"-S", "--split-string"})

_NUMERIC_RE = re.compile(r"^[-+]?\d+$")


def resolve_command_position(
    words: Sequence[str],
    start: int = 0,
    end: int | None = None,
    *,
    shell_syntax: bool = True,
) -> Resolution:
    """Scan `words[start:end]` for the program that will actually run.

    Assignments, launchers and wrappers are skipped (nested to any depth).
    The first word that is none of those decides: the guarded binary gives
    TARGET, a shell `-c` or `env -S` gives NESTED, anything else NOT_FOUND.
    `shell_syntax` enables keywords, grouping, builtins and case patterns,
    which only mean something in a command string.
    """
    if end is None:
        end = len(words)

    i = start
    while i < end:
        word = words[i]
        if is_assignment(word) or word == END_OF_OPTIONS:
            i += 1
            continue

        if shell_syntax:
            step = _shell_syntax_step(words, i, end)
            if step is None:
                return NOT_FOUND
            if step:
                i += step
                continue

        role = classify(word)
        if role.kind is RoleKind.TARGET:
            return Resolution(Position.TARGET, i)
        if role.kind is RoleKind.SHELL:
            return _resolve_shell(words, i, end)
        if role.kind is RoleKind.ENV:
            skipped = _skip_env(words, i, end)
            if isinstance(skipped, Resolution):
                return skipped
            i = skipped
            continue
        if role.kind is RoleKind.WRAPPER and role.spec is not None:
            after = _skip_wrapper(words, i, end, role.spec)
            if after is None:
                return NOT_FOUND
            i = after
            continue

        return NOT_FOUND

    return NOT_FOUND


def _shell_syntax_step(words: Sequence[str], i: int, end: int) -> int | None:
    """Return how many words shell syntax skips at `i`.

    0 means the word is not shell syntax; None means the segment runs no
    command at all.
    """
    word = words[i]
    if word.startswith("#") or "`" in word:
        return None
    # Case-clause pattern with its optional leading paren: `(pat)`.
    if (
        word == "("
        and i + 2 < end
        and words[i + 2] == ")"
        and _starts_case_arm(words, i)
    ):
        return 3
    if word in GROUPING or word in SHELL_KEYWORDS:
        return 1
    if word == "case":
        if i + 2 < end and words[i + 2] == "in":
            return 3
        return None
    # Case-clause pattern: `pat)` with no subshell left open before it.
    if i + 1 < end and words[i + 1] == ")" and not _inside_group(words, i):
        return 2
    if word in STATE_BUILTINS:
        return None
    if word in PASSTHROUGH_BUILTINS:
        return _skip_exec(words, i, end) - i
    return 0


def _starts_case_arm(words: Sequence[str], i: int) -> bool:
    if i >= 1 and words[i - 1] == ";;":
        return True
    return i >= 3 and words[i - 1] == "in" and words[i - 3] == "case"


def _inside_group(words: Sequence[str], i: int) -> bool:
    depth = 0
    for word in words[:i]:
        if word == "(":
            depth += 1
        elif word == ")" and depth:
            depth -= 1
    return depth > 0


def _skip_exec(words: Sequence[str], i: int, end: int) -> int:
    j = i + 1
    while j < end:
        word = words[j]
        if word == END_OF_OPTIONS:
            return j + 1
        if word in _EXEC_VALUE_FLAGS:
            j += 2
            continue
        if short_flag_letters(word):
            j += 1
            continue
        break
    return j


def _resolve_shell(words: Sequence[str], i: int, end: int) -> Resolution:
    # Handles: <shell> -c 'cmd', <shell> -lc 'cmd', <shell> -o pipefail -ec 'cmd'
    j = i + 1
    while j < end:
        word = words[j]
        if word == END_OF_OPTIONS:
            return NOT_FOUND
        if word in _SHELL_VALUE_FLAGS:
            j += 2
            continue
        letters = short_flag_letters(word)
        if "c" in letters:
            command = j + 1
            if command >= end or words[command] == END_OF_OPTIONS:
                return NOT_FOUND
            return Resolution(Position.NESTED, command, i)
        if letters and letters[-1] in "oO":
            j += 2
            continue
        if len(word) > 1 and word[0] in "-+":
            j += 1
            continue
        # A script path: the shell runs a file, not a command string.
        return NOT_FOUND
    return NOT_FOUND


def _skip_env(words: Sequence[str], i: int, end: int) -> int | Resolution:
    j = i + 1
    while j < end:
        word = words[j]
        if word == END_OF_OPTIONS:
            return j + 1
        if word in _ENV_SPLIT_FLAGS:
            if j + 1 < end:
                return Resolution(Position.NESTED, j + 1, i)
            return NOT_FOUND
        prefix = _split_string_prefix(word)
        if prefix:
            return Resolution(Position.NESTED, j, i, prefix)
        if word in _ENV_VALUE_FLAGS:
            j += 2
            continue
        if word.startswith("-") or is_assignment(word):
            j += 1
            continue
        break
    return j


def _split_string_prefix(word: str) -> str:
    if word.startswith("--split-string="):
        return "--split-string="
    if word.startswith("-S") and len(word) > 2:
        return "-S"
    return ""


def _skip_wrapper(
    words: Sequence[str], i: int, end: int, spec: WrapperSpec
) -> int | None:
    value_flags = spec.value_flags
    stop_flags = spec.stop_flags
    if spec.generic_flags:
        value_flags = value_flags | GENERIC_VALUE_FLAGS
        stop_flags = stop_flags | GENERIC_STOP_FLAGS

    positional_taken = False
    j = i + 1
    while j < end:
        word = words[j]
        if word == END_OF_OPTIONS:
            return j + 1
        if word in stop_flags:
            return None
        if word in value_flags:
            j += 2
            continue
        if len(word) > 1 and word.startswith("-"):
            if word.startswith("--"):
                # Long form with "=" carries its value in the same word.
                if word.split("=", 1)[0] in stop_flags:
                    return None
                j += 1
                continue
            step = 1
            letters = short_flag_letters(word)
            for pos, ch in enumerate(letters):
                if f"-{ch}" in stop_flags:
                    return None
                if f"-{ch}" in value_flags:
                    # getopt: the rest of the cluster is the value, if any.
                    if pos == len(letters) - 1:
                        step = 2
                    break
            j += step
            continue
        if not positional_taken and _takes_positional(spec.positional, word):
            positional_taken = True
            j += 1
            continue
        break
    return j


def _takes_positional(policy: Positional, word: str) -> bool:
    if policy is Positional.NUMERIC:
        return bool(_NUMERIC_RE.match(word))
    if policy is Positional.OPAQUE:
        # `timeout --foreground chromium` has no duration to skip.
        return classify(word).kind is not RoleKind.TARGET
    return False
