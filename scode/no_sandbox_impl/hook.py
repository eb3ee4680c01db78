"""Launch-time hook: rewrite Chromium launches made by this interpreter.

Inside the scode sandbox Chromium cannot set up its own sandbox, so every
launch of it has to carry --no-sandbox. `install()` wraps the process launch
entry points of the running interpreter:

  - subprocess.Popen (run, call, check_output, getoutput, os.popen and
    asyncio.create_subprocess_* all construct it)
  - os.system
  - os.execv / os.execve (the os.exec* family funnels into these)

Shell-mode launches go through `inject`, argument-vector launches through
`inject_args`. If the engine fails, the hook warns once per process and falls
back to checking the program name alone. The real launch always happens.
"""

import inspect
import logging
import os
import subprocess

from .binaries import is_target
from .config import Settings, load_settings
from .inject import NO_SANDBOX_FLAG, inject, inject_args

logger = logging.getLogger(__name__)

_originals: dict[str, object] = {}
_settings = Settings()
_warning_emitted = False


def _reset_warning_state() -> None:
    global _warning_emitted
    _warning_emitted = False


def _emit_fallback_warning(entry: str, error: BaseException) -> None:
    global _warning_emitted
    if _warning_emitted:
        return
    _warning_emitted = True
    if _settings.quiet:
        return
    logger.warning("[scode no-sandbox] patch fallback in %s: %s", entry, error)


def _fallback_args(program, args):
    if not is_target(program) or not isinstance(args, (list, tuple)):
        return args
    if NO_SANDBOX_FLAG in args:
        return args
    return [NO_SANDBOX_FLAG, *args]


def patch_command(entry: str, command):
    """Shell-string launch: rewrite `command`, never raising."""
    try:
        if isinstance(command, bytes):
            text = os.fsdecode(command)
            patched = inject(text)
            return command if patched == text else os.fsencode(patched)
        return inject(command)
    except Exception as e:
        _emit_fallback_warning(entry, e)
        return command


def patch_argv(entry: str, program, args):
    """Argument-vector launch: rewrite `args`, never raising."""
    try:
        return inject_args(program, args)
    except Exception as e:
        _emit_fallback_warning(entry, e)
        return _fallback_args(program, args)


def inject_popen_args(args, *, shell: bool = False, executable=None, entry: str = "Popen"):
    """Rewrite a `subprocess.Popen` `args` value (POSIX semantics).

    With `shell=True` the command string is `args` itself or, for a sequence,
    its first element. Otherwise a string is a bare program name and a
    sequence is `[argv0, *arguments]`, where `executable` (if given) is the
    program that actually runs.
    """
    if shell:
        if isinstance(args, (str, bytes)):
            return patch_command(entry, args)
        if isinstance(args, (list, tuple)) and args:
            patched = patch_command(entry, args[0])
            if patched is not args[0]:
                return [patched, *args[1:]]
        return args

    if isinstance(args, (str, bytes, os.PathLike)):
        program = args if executable is None else executable
        patched = patch_argv(entry, program, [])
        return [args, *patched] if patched else args
    if isinstance(args, (list, tuple)) and args:
        program = args[0] if executable is None else executable
        rest = list(args[1:])
        patched = patch_argv(entry, program, rest)
        if patched is not rest:
            return [args[0], *patched]
    return args


_POPEN_SIGNATURE = inspect.signature(subprocess.Popen)


class _NoSandboxPopen(subprocess.Popen):
    def __init__(self, *args, **kwargs):
        try:
            bound = _POPEN_SIGNATURE.bind(*args, **kwargs)
        except TypeError:
            # Let Popen report the bad call itself.
            super().__init__(*args, **kwargs)
            return
        bound.arguments["args"] = inject_popen_args(
            bound.arguments["args"],
            shell=bool(bound.arguments.get("shell", False)),
            executable=bound.arguments.get("executable"),
        )
        super().__init__(*bound.args, **bound.kwargs)


def _system(command):
    return _originals["system"](patch_command("system", command))


def _exec_argv(entry: str, path, argv):
    if not isinstance(argv, (list, tuple)) or not argv:
        return argv
    rest = list(argv[1:])
    patched = patch_argv(entry, path, rest)
    if patched is rest:
        return argv
    return [argv[0], *patched]


def _execv(path, argv):
    return _originals["execv"](path, _exec_argv("execv", path, argv))


def _execve(path, argv, env):
    return _originals["execve"](path, _exec_argv("execve", path, argv), env)


def installed() -> bool:
    return bool(_originals)


def install(settings: Settings | None = None) -> bool:
    """Wrap the launch entry points. Returns True when the hook is active.

    Does nothing outside the sandbox, and a second call is a no-op.
    """
    global _settings
    if settings is None:
        settings = load_settings()
    if not settings.sandboxed:
        return False
    if _originals:
        return True

    _settings = settings
    _originals["Popen"] = subprocess.Popen
    _originals["system"] = os.system
    _originals["execv"] = os.execv
    _originals["execve"] = os.execve
    subprocess.Popen = _NoSandboxPopen
    os.system = _system
    os.execv = _execv
    os.execve = _execve
    logger.debug("no-sandbox launch hook installed")
    return True


def uninstall() -> None:
    """Restore the original launch entry points."""
    if not _originals:
        return
    subprocess.Popen = _originals.pop("Popen")
    os.system = _originals.pop("system")
    os.execv = _originals.pop("execv")
    os.execve = _originals.pop("execve")
    logger.debug("no-sandbox launch hook removed")
