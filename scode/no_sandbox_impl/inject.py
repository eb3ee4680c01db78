"""Insert --no-sandbox after the Chromium binary a command will launch."""

import logging
import os

from .binaries import RoleKind, classify
from .resolve import Position, resolve_command_position
from .shell import quote, split_quotes, split_segments, tokenize, unquote

logger = logging.getLogger(__name__)

NO_SANDBOX_FLAG = "--no-sandbox"

_MAX_RECURSION_DEPTH = 8

# Characters that make an unquoted `-c` word unsafe to re-quote.
_UNSAFE_UNQUOTED = frozenset("\"'\\`$")


def inject(command):
    """Return `command` with --no-sandbox after each guarded binary it runs.

    Every segment between control operators is resolved on its own, and shell
    `-c` / `env -S` command strings are rewritten in place, keeping their
    quote style. Segments that already carry the flag are left alone, so the
    function is idempotent. Non-string input comes back as it went in, and
    so does any command the engine fails on.
    """
    if not isinstance(command, str):
        return command
    try:
        return _inject_command(command, enclosing=(), depth=0)
    except Exception:
        logger.debug("no-sandbox injection failed for %r", command, exc_info=True)
        return command


def _inject_command(command: str, *, enclosing: tuple[str, ...], depth: int) -> str:
    if depth > _MAX_RECURSION_DEPTH:
        return command

    escaped = _inside_double_quotes(enclosing)
    tokens = tokenize(command, escaped_quotes=escaped)
    words = [unquote(tok.text, escaped=escaped) for tok in tokens]
    edits: list[tuple[int, int, str]] = []

    for start, end in split_segments(tokens, command):
        found = resolve_command_position(words, start, end)
        if found.kind is Position.TARGET:
            if NO_SANDBOX_FLAG in words[start:end]:
                continue
            tok = tokens[found.index]
            edits.append((tok.end, tok.end, f" {NO_SANDBOX_FLAG}"))
        elif found.kind is Position.NESTED:
            tok = tokens[found.index]
            # `--split-string=CMD` and `-SCMD` carry the command after a prefix.
            if not tok.text.startswith(found.prefix):
                continue
            begin = tok.offset + len(found.prefix)
            replacement = _inject_nested(
                tok.text[len(found.prefix) :], enclosing=enclosing, depth=depth
            )
            if replacement is not None:
                edits.append((begin, tok.end, replacement))

    # Highest offset first keeps the earlier offsets valid.
    for begin, stop, text in sorted(edits, reverse=True):
        command = command[:begin] + text + command[stop:]
    return command


def _inject_nested(
    text: str, *, enclosing: tuple[str, ...], depth: int
) -> str | None:
    """Rewrite an inline command string token, or return None to leave it."""
    style, inner = split_quotes(text, escaped=_inside_double_quotes(enclosing))
    if style is None:
        # `bash -c chromium` must become one quoted word, not two.
        if any(ch in _UNSAFE_UNQUOTED for ch in text):
            return None
        style = _pick_quote(enclosing)
        if style is None:
            return None

    patched = _inject_command(inner, enclosing=(*enclosing, style), depth=depth + 1)
    if patched == inner:
        return None
    return quote(patched, style)


def _inside_double_quotes(enclosing: tuple[str, ...]) -> bool:
    # Only a plain `"` layer turns `\"` back into a quote for the inner shell.
    return enclosing[-1:] == ('"',)


def _pick_quote(enclosing: tuple[str, ...]) -> str | None:
    used = {style[-1] for style in enclosing}
    for candidate in ('"', "'"):
        if candidate not in used:
            return candidate
    return None


def _as_word(value) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, os.PathLike)):
        try:
            return os.fsdecode(value)
        except TypeError:
            return ""
    return ""


def _like(original, text: str):
    """Return `text` in the same string type as `original`."""
    if isinstance(original, bytes):
        return os.fsencode(text)
    return text


def inject_args(executable, args):
    """Return `args` with --no-sandbox after the guarded binary, if any.

    `executable` is the program being launched and `args` its arguments
    (without argv[0]). Wrappers and launchers in the vector are walked with
    the same rules as command strings, and a shell `-c` or `env -S` element
    is rewritten with `inject`. The caller's list is never modified: an
    unchanged result is `args` itself, a changed one is a new list.
    """
    if not isinstance(args, (list, tuple)):
        return args

    words = [_as_word(arg) for arg in args]
    if NO_SANDBOX_FLAG in words:
        return args

    role = classify(executable)
    if role.kind is RoleKind.TARGET:
        return [NO_SANDBOX_FLAG, *args]
    if role.kind is RoleKind.PLAIN:
        return args

    found = resolve_command_position(
        [_as_word(executable), *words], shell_syntax=False
    )
    if found.kind is Position.TARGET:
        # Index 0 is the executable, so found.index is where the flag goes.
        at = found.index
        return [*args[:at], NO_SANDBOX_FLAG, *args[at:]]
    if found.kind is Position.NESTED:
        at = found.index - 1
        prefix = found.prefix
        command = words[at][len(prefix) :]
        patched = inject(command)
        if patched != command:
            result = list(args)
            result[at] = _like(args[at], prefix + patched)
            return result
    return args
