"""Tests for the launch hook."""

import os
import subprocess
from unittest import mock

from scode.no_sandbox_impl import hook
from scode.no_sandbox_impl.config import SANDBOXED_VAR, Settings
from scode.no_sandbox_impl.hook import (
    inject_popen_args,
    install,
    installed,
    patch_argv,
    patch_command,
    uninstall,
)

from . import CleanEnvTestCase

_SANDBOXED = Settings(sandboxed=True)


class HookTestCase(CleanEnvTestCase):
    """Base class that leaves the launch functions as it found them."""

    def setUp(self) -> None:
        super().setUp()
        self._saved = (subprocess.Popen, os.system, os.execv, os.execve)
        self._settings_patch = mock.patch.object(hook, "_settings", Settings())
        self._settings_patch.start()
        hook._reset_warning_state()

    def tearDown(self) -> None:
        uninstall()
        hook._reset_warning_state()
        self._settings_patch.stop()
        self.assertEqual(
            (subprocess.Popen, os.system, os.execv, os.execve), self._saved
        )
        super().tearDown()


class InstallTests(HookTestCase):
    def test_not_sandboxed_does_nothing(self) -> None:
        self.assertFalse(install(Settings(sandboxed=False)))
        self.assertFalse(installed())
        self.assertIs(subprocess.Popen, self._saved[0])

    def test_reads_environment_when_no_settings_given(self) -> None:
        self.assertFalse(install())
        with mock.patch.dict(os.environ, {SANDBOXED_VAR: "1"}):
            self.assertTrue(install())
        self.assertTrue(installed())

    def test_install_wraps_launch_functions(self) -> None:
        self.assertTrue(install(_SANDBOXED))
        self.assertTrue(installed())
        self.assertTrue(issubclass(subprocess.Popen, self._saved[0]))
        self.assertIsNot(subprocess.Popen, self._saved[0])
        self.assertIsNot(os.system, self._saved[1])
        self.assertIsNot(os.execv, self._saved[2])
        self.assertIsNot(os.execve, self._saved[3])

    def test_double_install_is_a_no_op(self) -> None:
        install(_SANDBOXED)
        wrapped = (subprocess.Popen, os.system, os.execv, os.execve)
        self.assertTrue(install(_SANDBOXED))
        self.assertEqual((subprocess.Popen, os.system, os.execv, os.execve), wrapped)
        self.assertIs(hook._originals["Popen"], self._saved[0])

    def test_uninstall_restores(self) -> None:
        install(_SANDBOXED)
        uninstall()
        self.assertFalse(installed())
        self.assertEqual((subprocess.Popen, os.system, os.execv, os.execve), self._saved)

    def test_uninstall_without_install(self) -> None:
        uninstall()
        self.assertFalse(installed())


class PopenArgsTests(HookTestCase):
    def test_shell_string(self) -> None:
        self.assertEqual(
            inject_popen_args("chromium --headless", shell=True),
            "chromium --no-sandbox --headless",
        )
        self.assertEqual(inject_popen_args(b"chromium", shell=True), b"chromium --no-sandbox")

    def test_shell_sequence_uses_first_element(self) -> None:
        self.assertEqual(
            inject_popen_args(["bash -c chromium", "arg0"], shell=True),
            ['bash -c "chromium --no-sandbox"', "arg0"],
        )
        args = ["echo hi", "arg0"]
        self.assertIs(inject_popen_args(args, shell=True), args)

    def test_vector(self) -> None:
        self.assertEqual(
            inject_popen_args(["chromium", "--headless"]),
            ["chromium", "--no-sandbox", "--headless"],
        )
        self.assertEqual(
            inject_popen_args(("sudo", "-u", "root", "chromium")),
            ["sudo", "-u", "root", "chromium", "--no-sandbox"],
        )

    def test_bare_program_string(self) -> None:
        self.assertEqual(inject_popen_args("chromium"), ["chromium", "--no-sandbox"])
        self.assertEqual(inject_popen_args("ls"), "ls")

    def test_executable_overrides_argv0(self) -> None:
        self.assertEqual(
            inject_popen_args(["browser", "--headless"], executable="/usr/bin/chromium"),
            ["browser", "--no-sandbox", "--headless"],
        )

    def test_unrelated_launches_are_untouched(self) -> None:
        for args in (["node", "script.js"], [], ("ls", "-la")):
            with self.subTest(args=args):
                self.assertIs(inject_popen_args(args), args)


class FallbackTests(HookTestCase):
    def test_engine_failure_warns_once_and_prepends(self) -> None:
        with mock.patch.object(hook, "inject_args", side_effect=RuntimeError("boom")):
            with self.assertLogs("scode.no_sandbox_impl.hook", level="WARNING") as logs:
                result = patch_argv("Popen", "/usr/bin/chromium", ["--headless"])
            self.assertEqual(result, ["--no-sandbox", "--headless"])
            self.assertEqual(len(logs.records), 1)
            self.assertIn("[scode no-sandbox] patch fallback in Popen: boom", logs.output[0])

            with self.assertNoLogs("scode.no_sandbox_impl.hook", level="WARNING"):
                patch_argv("execv", "chromium", [])

    def test_fallback_leaves_other_programs(self) -> None:
        args = ["chromium"]
        with mock.patch.object(hook, "inject_args", side_effect=RuntimeError("boom")):
            with self.assertLogs("scode.no_sandbox_impl.hook", level="WARNING"):
                self.assertIs(patch_argv("execv", "sudo", args), args)

    def test_fallback_does_not_double_the_flag(self) -> None:
        with mock.patch.object(hook, "inject_args", side_effect=RuntimeError("boom")):
            with self.assertLogs("scode.no_sandbox_impl.hook", level="WARNING"):
                self.assertEqual(
                    patch_argv("Popen", "chromium", ["--no-sandbox"]), ["--no-sandbox"]
                )

    def test_shell_failure_forwards_command(self) -> None:
        with mock.patch.object(hook, "inject", side_effect=RuntimeError("boom")):
            with self.assertLogs("scode.no_sandbox_impl.hook", level="WARNING") as logs:
                self.assertEqual(patch_command("system", "chromium"), "chromium")
        self.assertIn("patch fallback in system", logs.output[0])

    def test_quiet_setting_suppresses_warning(self) -> None:
        with mock.patch.object(hook, "_settings", Settings(quiet=True)):
            with mock.patch.object(hook, "inject", side_effect=RuntimeError("boom")):
                with self.assertNoLogs("scode.no_sandbox_impl.hook", level="WARNING"):
                    patch_command("system", "chromium")


class WrappedLaunchTests(HookTestCase):
    def setUp(self) -> None:
        super().setUp()
        install(_SANDBOXED)

    def test_system(self) -> None:
        fake = mock.Mock(return_value=0)
        with mock.patch.dict(hook._originals, {"system": fake}):
            self.assertEqual(os.system("nice chromium --headless"), 0)
        fake.assert_called_once_with("nice chromium --no-sandbox --headless")

    def test_execv(self) -> None:
        fake = mock.Mock()
        with mock.patch.dict(hook._originals, {"execv": fake}):
            os.execv("/usr/bin/chromium", ["chromium", "--headless"])
        fake.assert_called_once_with(
            "/usr/bin/chromium", ["chromium", "--no-sandbox", "--headless"]
        )

    def test_execv_unrelated_argv_is_passed_through(self) -> None:
        fake = mock.Mock()
        argv = ["ls", "-la"]
        with mock.patch.dict(hook._originals, {"execv": fake}):
            os.execv("/bin/ls", argv)
        self.assertIs(fake.call_args.args[1], argv)

    def test_execve(self) -> None:
        fake = mock.Mock()
        env = {"DISPLAY": ":1"}
        with mock.patch.dict(hook._originals, {"execve": fake}):
            os.execve("/usr/bin/env", ["env", "chromium"], env)
        fake.assert_called_once_with(
            "/usr/bin/env", ["env", "chromium", "--no-sandbox"], env
        )

    def test_popen_vector(self) -> None:
        with mock.patch.object(self._saved[0], "__init__", return_value=None) as init:
            subprocess.Popen(["chromium", "--headless"], stdout=subprocess.DEVNULL)
        self.assertEqual(init.call_args.args[0], ["chromium", "--no-sandbox", "--headless"])
        self.assertEqual(init.call_args.kwargs, {"stdout": subprocess.DEVNULL})

    def test_popen_shell(self) -> None:
        with mock.patch.object(self._saved[0], "__init__", return_value=None) as init:
            subprocess.Popen("chromium", shell=True)
        self.assertEqual(init.call_args.args[0], "chromium --no-sandbox")
        self.assertEqual(init.call_args.kwargs, {"shell": True})
