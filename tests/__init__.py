"""Shared fixtures for the no-sandbox test suites."""

from __future__ import annotations

import os
import unittest
from typing import Any
from unittest import mock


class CleanEnvTestCase(unittest.TestCase):
    """Base test class that strips scode variables from the environment.

    Tests then control SCODE_SANDBOXED and friends explicitly instead of
    inheriting whatever the surrounding shell exports.
    """

    _env_patch: Any  # started patch.dict, stopped in tearDown

    def setUp(self) -> None:
        super().setUp()
        clean = {k: v for k, v in os.environ.items() if not k.startswith("SCODE_")}
        self._env_patch = mock.patch.dict(os.environ, clean, clear=True)
        self._env_patch.start()

    def tearDown(self) -> None:
        self._env_patch.stop()
        super().tearDown()
