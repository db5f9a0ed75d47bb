# client.py -- Branch operations through the git binary
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

"""Operations that change repository state.

These are delegated to the ``git`` executable rather than implemented on
top of the object decoder. Set ``PLAIN_GIT`` to use a specific binary.
"""

__all__ = [
    "DEFAULT_BASE_BRANCH",
    "HERE",
    "ShellClient",
    "get_git_path",
]

import os
import subprocess
from collections.abc import Sequence

from .errors import DetachedHead, GitCommandError
from .log_utils import getLogger

logger = getLogger(__name__)

DEFAULT_BASE_BRANCH = "main"
# Base name meaning "the branch that is checked out".
HERE = "here"


def get_git_path() -> str:
    """Return the git executable to run."""
    return os.environ.get("PLAIN_GIT", "git")


class ShellClient:
    """Run git subcommands in a working directory."""

    def __init__(self, cwd: str | os.PathLike[str] | None = None) -> None:
        self.cwd = cwd

    def run_git(
        self, args: Sequence[str], capture_stdout: bool = False
    ) -> subprocess.CompletedProcess[bytes]:
        """Run a git command.

        Output goes to the standard streams unless capture_stdout is set.

        Args:
          args: Arguments to the git command
          capture_stdout: Whether to capture stdout and stderr
        Returns: The completed process; its return code is not checked
        Raises:
          OSError: if the git executable was not found
        """
        argv = [get_git_path(), *args]
        logger.debug("running %s", " ".join(argv))
        return subprocess.run(
            argv,
            cwd=self.cwd,
            stdout=subprocess.PIPE if capture_stdout else None,
            stderr=subprocess.PIPE if capture_stdout else None,
            check=False,
        )

    def run_git_or_fail(
        self, args: Sequence[str], capture_stdout: bool = False
    ) -> bytes:
        """Run a git command and raise GitCommandError if it fails."""
        p = self.run_git(args, capture_stdout=capture_stdout)
        if p.returncode != 0:
            raise GitCommandError([get_git_path(), *args], p.returncode, p.stderr)
        return p.stdout or b""

    def init(self) -> None:
        """Create a repository in the working directory."""
        self.run_git_or_fail(["init"])

    def is_branch_dirty(self) -> bool:
        """Check whether the working tree differs from HEAD."""
        args = ["diff", "--quiet", "--ignore-submodules", "HEAD"]
        p = self.run_git(args, capture_stdout=True)
        if p.returncode == 0:
            return False
        if p.returncode == 1:
            return True
        raise GitCommandError([get_git_path(), *args], p.returncode, p.stderr)

    def current_branch(self) -> str:
        """Return the name of the checked out branch (empty if detached)."""
        out = self.run_git_or_fail(["branch", "--show-current"], capture_stdout=True)
        return out.decode("utf-8").rstrip("\n")

    def create_branch(self, name: str, from_branch: str = DEFAULT_BASE_BRANCH) -> None:
        """Create a branch and check it out.

        Args:
          name: Name of the new branch
          from_branch: Branch to start from; ``"here"`` means the current one
        Raises:
          DetachedHead: if ``from_branch`` is ``"here"`` and HEAD is detached
        """
        if from_branch == HERE:
            from_branch = self.current_branch()
            if not from_branch:
                raise DetachedHead(f"start {name} from the current branch")
        self.run_git_or_fail(["checkout", "-b", name, from_branch])

    def switch_branch(self, name: str) -> None:
        """Check out an existing branch."""
        self.run_git_or_fail(["switch", name])
