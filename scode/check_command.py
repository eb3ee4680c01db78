#!/usr/bin/env python3
"""Show how the no-sandbox hook would rewrite a command.

    python -m scode.check_command 'sudo nice -n 5 chromium --headless'
    python -m scode.check_command --argv -- bash -c 'chromium --headless'

Exits 0 when the command is left alone and 1 when it would be rewritten.
"""

import argparse
import json
import sys

from scode.no_sandbox_impl.binaries import classify
from scode.no_sandbox_impl.inject import inject, inject_args

_HEADER = "scode no-sandbox"
_SEPARATOR = "═" * len(_HEADER)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="check_command",
        description="Print a command with --no-sandbox injected where needed.",
    )
    parser.add_argument(
        "--argv",
        action="store_true",
        help="treat the words as a program and its arguments (put -- first)",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="print only the rewritten command",
    )
    parser.add_argument("words", nargs="+", help="shell command string, or argv")
    return parser


def _print_header(role: str) -> None:
    print(_HEADER)
    print(_SEPARATOR)
    print(f"program role: {role}")


def main(argv: list[str] | None = None) -> int:
    """Rewrite the given command and print the result."""
    parser = _build_parser()
    options = parser.parse_args(argv)

    if options.argv:
        program, *rest = options.words
        patched = inject_args(program, rest)
        if not options.quiet:
            _print_header(classify(program).kind.value)
        print(json.dumps([program, *patched]))
        return 0 if patched is rest else 1

    if len(options.words) != 1:
        parser.error("pass the shell command as a single argument, or use --argv")

    command = options.words[0]
    patched = inject(command)
    if not options.quiet:
        _print_header("shell command")
    print(patched)
    return 0 if patched == command else 1


if __name__ == "__main__":
    sys.exit(main())
