# __init__.py -- The tests for plain
# Copyright (C) 2025 The plain authors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# plain is dual-licensed under the Apache License, Version 2.0 and the GNU
# General Public License as published by the Free Software Foundation; version 2.0
# or (at your option) any later version. You can redistribute it and/or
# modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""Tests for plain."""

__all__ = [
    "TestCase",
    "test_suite",
]

import os
import unittest
from unittest import TestCase as _TestCase

# Variables that change how plain finds repositories or logs.
_ISOLATED_VARIABLES = ("GIT_DIR", "GIT_TRACE", "PLAIN_TRACE", "PLAIN_GIT")


class TestCase(_TestCase):
    """Test case that runs without the user's environment."""

    def setUp(self) -> None:
        super().setUp()
        self.overrideEnv("HOME", "/nonexistent")
        for name in _ISOLATED_VARIABLES:
            self.overrideEnv(name, None)

    def overrideEnv(self, name: str, value: str | None) -> None:
        """Set or unset an environment variable for the duration of a test."""

        def restore(oldvalue: str | None) -> None:
            if oldvalue is None:
                os.environ.pop(name, None)
            else:
                os.environ[name] = oldvalue

        self.addCleanup(restore, os.environ.get(name))
        if value is None:
            os.environ.pop(name, None)
        else:
            os.environ[name] = value


def test_suite() -> unittest.TestSuite:
    names = [
        "cli",
        "client",
        "decode",
        "history",
        "log_utils",
        "object_store",
        "objects",
        "porcelain",
        "repo",
    ]
    module_names = ["tests.test_" + name for name in names]
    loader = unittest.TestLoader()
    return loader.loadTestsFromNames(module_names)
