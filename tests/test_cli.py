# test_cli.py -- tests for plain.cli
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

"""Tests for plain.cli."""

import io
import os
import shutil
import sys
import tempfile
from unittest.mock import patch

from plain import cli
from plain.errors import DetachedHead, GitCommandError
from plain.history import build_history_parallel

from . import TestCase
from .utils import compress, make_repo

DAG = {"A": [], "B": ["A"], "C": ["B"], "D": ["A"], "M": ["C", "D"]}


class PlainCliTestCase(TestCase):
    """Base class for CLI tests."""

    def setUp(self) -> None:
        super().setUp()
        self.test_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.test_dir)
        self.repo_path = os.path.join(self.test_dir, "repo")
        os.mkdir(self.repo_path)
        self.ids = make_repo(self.repo_path, DAG, {"main": "M", "side": "D"})
        patcher = patch("plain.cli.default_logging_config")
        patcher.start()
        self.addCleanup(patcher.stop)

    def _run_cli(self, *args: str) -> tuple[int | None, str, str]:
        """Run CLI command and capture output."""
        old_stdout = sys.stdout
        old_stderr = sys.stderr
        old_cwd = os.getcwd()
        try:
            sys.stdout = io.StringIO()
            sys.stderr = io.StringIO()
            os.chdir(self.repo_path)
            result = cli.main(list(args))
            return result, sys.stdout.getvalue(), sys.stderr.getvalue()
        finally:
            sys.stdout = old_stdout
            sys.stderr = old_stderr
            os.chdir(old_cwd)


class MainTests(PlainCliTestCase):
    def test_no_command(self) -> None:
        result, stdout, _stderr = self._run_cli()
        self.assertEqual(1, result)
        self.assertIn("usage: plain", stdout)

    def test_help(self) -> None:
        result, stdout, _stderr = self._run_cli("--help")
        self.assertEqual(1, result)
        self.assertIn("preview", stdout)

    def test_unknown_command(self) -> None:
        with self.assertLogs("plain.cli", level="CRITICAL") as cm:
            result, _stdout, _stderr = self._run_cli("frobnicate")
        self.assertEqual(1, result)
        self.assertIn("No such subcommand: frobnicate", cm.output[0])

    def test_commands_registered(self) -> None:
        self.assertEqual(
            ["done", "init", "log", "preview", "start"], sorted(cli.commands)
        )


class LogCommandTest(PlainCliTestCase):
    def test_log(self) -> None:
        result, stdout, _stderr = self._run_cli("log")
        self.assertIsNone(result)
        self.assertTrue(stdout.startswith("commit " + self.ids["M"]))
        self.assertEqual(5, stdout.count("Author: "))

    def test_oneline(self) -> None:
        _result, stdout, _stderr = self._run_cli("log", "--oneline")
        self.assertEqual(
            [self.ids[n][:7] + " " + n for n in ["M", "C", "D", "B", "A"]],
            stdout.splitlines(),
        )

    def test_first_parent(self) -> None:
        _result, stdout, _stderr = self._run_cli("log", "--oneline", "--first-parent")
        self.assertEqual(["M", "C", "B", "A"], [line.split()[1] for line in stdout.splitlines()])

    def test_max_count(self) -> None:
        _result, stdout, _stderr = self._run_cli("log", "--oneline", "-n", "1")
        self.assertEqual([self.ids["M"][:7] + " M"], stdout.splitlines())

    def test_branch(self) -> None:
        _result, stdout, _stderr = self._run_cli("log", "--oneline", "side")
        self.assertEqual(["D", "A"], [line.split()[1] for line in stdout.splitlines()])

    def test_jobs(self) -> None:
        _result, sequential, _stderr = self._run_cli("log")
        _result, parallel, _stderr = self._run_cli("log", "-j", "4")
        self.assertEqual(sequential, parallel)

    def test_jobs_sets_pool_size(self) -> None:
        with patch(
            "plain.repo.build_history_parallel", wraps=build_history_parallel
        ) as builder:
            _result, stdout, _stderr = self._run_cli("log", "--oneline", "-j", "4")
        builder.assert_called_once()
        self.assertEqual(4, builder.call_args[1]["max_workers"])
        self.assertEqual(5, len(stdout.splitlines()))

    def test_no_jobs_is_sequential(self) -> None:
        with patch("plain.repo.build_history_parallel") as builder:
            self._run_cli("log", "--oneline")
        builder.assert_not_called()

    def test_jobs_must_be_positive(self) -> None:
        for jobs in ("0", "-2"):
            with self.subTest(jobs=jobs):
                with self.assertRaises(SystemExit) as cm:
                    self._run_cli("log", "-j", jobs)
                self.assertEqual(2, cm.exception.code)

    def test_missing_branch(self) -> None:
        with self.assertLogs("plain.cli", level="ERROR") as cm:
            result, _stdout, _stderr = self._run_cli("log", "nope")
        self.assertEqual(1, result)
        self.assertIn("no such branch or ref", cm.output[0])

    def test_corrupt_object(self) -> None:
        sha = self.ids["B"]
        path = os.path.join(self.repo_path, ".git", "objects", sha[:2], sha[2:])
        with open(path, "wb") as f:
            f.write(compress(b"bogus 0\0"))
        with self.assertLogs("plain.cli", level="ERROR") as cm:
            result, _stdout, _stderr = self._run_cli("log")
        self.assertEqual(1, result)
        self.assertIn("cannot read history", cm.output[0])

    def test_missing_object(self) -> None:
        sha = self.ids["A"]
        os.unlink(os.path.join(self.repo_path, ".git", "objects", sha[:2], sha[2:]))
        with self.assertLogs("plain.cli", level="ERROR") as cm:
            result, _stdout, _stderr = self._run_cli("log")
        self.assertEqual(1, result)
        self.assertIn(sha, cm.output[0])

    def test_not_a_repository(self) -> None:
        shutil.rmtree(os.path.join(self.repo_path, ".git"))
        with self.assertLogs("plain.cli", level="ERROR"):
            result, _stdout, _stderr = self._run_cli("log")
        self.assertEqual(1, result)


class PreviewCommandTest(PlainCliTestCase):
    def test_preview(self) -> None:
        result, stdout, _stderr = self._run_cli("preview")
        self.assertIsNone(result)
        lines = stdout.splitlines()
        self.assertEqual("Branch:  main", lines[0])
        self.assertIn("Commits: 5", lines)
        self.assertIn("Merges:  1", lines)

    def test_preview_branch(self) -> None:
        _result, stdout, _stderr = self._run_cli("preview", "side")
        self.assertIn("Commits: 2", stdout.splitlines())


class ClientCommandTest(PlainCliTestCase):
    def setUp(self) -> None:
        super().setUp()
        patcher = patch("plain.porcelain.ShellClient")
        self.client_cls = patcher.start()
        self.addCleanup(patcher.stop)
        self.client = self.client_cls.return_value

    def test_init(self) -> None:
        result, _stdout, _stderr = self._run_cli("init", "newdir")
        self.assertIsNone(result)
        self.client_cls.assert_called_once_with("newdir")
        self.client.init.assert_called_once_with()

    def test_start(self) -> None:
        result, stdout, _stderr = self._run_cli("start", "feature")
        self.assertIsNone(result)
        self.client.create_branch.assert_called_once_with("feature", "main")
        self.assertEqual("Started feature feature on a new branch.\n", stdout)

    def test_start_from(self) -> None:
        self._run_cli("start", "feature", "--from", "here")
        self.client.create_branch.assert_called_once_with("feature", "here")

    def test_start_fails(self) -> None:
        self.client.create_branch.side_effect = GitCommandError(
            ["git", "checkout", "-b", "feature", "main"], 128, b"fatal: bad ref\n"
        )
        with self.assertLogs("plain.cli", level="ERROR") as cm:
            result, stdout, _stderr = self._run_cli("start", "feature")
        self.assertEqual(1, result)
        self.assertEqual("", stdout)
        self.assertIn("fatal: bad ref", cm.output[0])

    def test_done_clean(self) -> None:
        self.client.is_branch_dirty.return_value = False
        result, stdout, _stderr = self._run_cli("done")
        self.assertEqual(0, result)
        self.assertEqual("branch is clean\n", stdout)

    def test_done_dirty(self) -> None:
        self.client.is_branch_dirty.return_value = True
        result, stdout, _stderr = self._run_cli("done")
        self.assertEqual(1, result)
        self.assertEqual("branch is dirty\n", stdout)

    def test_start_here_detached(self) -> None:
        self.client.create_branch.side_effect = DetachedHead(
            "start feature from the current branch"
        )
        with self.assertLogs("plain.cli", level="ERROR") as cm:
            result, stdout, _stderr = self._run_cli("start", "feature", "-f", "here")
        self.assertEqual(1, result)
        self.assertEqual("", stdout)
        self.assertIn("HEAD is detached", cm.output[0])
