# repo.py -- For dealing with git repositories.
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

"""Repository discovery and ref resolution.

Only reads are supported. Branch manipulation goes through the external
git binary, see :mod:`plain.client`.
"""

__all__ = [
    "CONTROLDIR",
    "Repo",
    "find_git_dir",
    "read_gitfile",
    "read_packed_refs",
]

import os
from collections.abc import Iterator
from typing import BinaryIO

from .errors import NotGitRepository
from .history import CommitGraph, build_history, build_history_parallel
from .log_utils import getLogger
from .object_store import DiskObjectStore

logger = getLogger(__name__)

CONTROLDIR = ".git"
OBJECTDIR = "objects"
SYMREF = b"ref: "
LOCAL_BRANCH_PREFIX = "refs/heads/"
HEADREF = "HEAD"
PACKED_REFS = "packed-refs"

# Symbolic refs are followed at most this many times.
MAX_SYMREF_DEPTH = 5


def read_gitfile(f: BinaryIO) -> str:
    """Read a ``.git`` file.

    The first line of the file should start with "gitdir: "

    Args:
      f: File-like object to read from
    Returns: A path
    """
    cs = f.read()
    if not cs.startswith(b"gitdir: "):
        raise ValueError("Expected file to start with 'gitdir: '")
    return cs[len(b"gitdir: ") :].rstrip(b"\r\n").decode("utf-8")


def find_git_dir(start: str | os.PathLike[str] = ".") -> str:
    """Find the control directory of the repository containing ``start``.

    ``GIT_DIR`` in the environment overrides the search. Otherwise parent
    directories are searched for a ``.git`` directory, or a ``.git`` file
    pointing elsewhere.

    Raises:
      NotGitRepository: if the filesystem root is reached without a match
    """
    env_dir = os.environ.get("GIT_DIR")
    if env_dir:
        return os.path.abspath(env_dir)
    path = os.path.abspath(start)
    while True:
        candidate = os.path.join(path, CONTROLDIR)
        if os.path.isdir(candidate):
            return candidate
        if os.path.isfile(candidate):
            with open(candidate, "rb") as f:
                gitdir = read_gitfile(f)
            return os.path.abspath(os.path.join(path, gitdir))
        parent, _tail = os.path.split(path)
        if parent == path:
            break
        path = parent
    raise NotGitRepository(f"No git repository was found at {os.fspath(start)}")


def read_packed_refs(f: BinaryIO) -> Iterator[tuple[str, str]]:
    """Read a packed refs file.

    Comment lines and peeled (``^``) lines are skipped.

    Args:
      f: file-like object to read from
    Returns: Iterator over tuples with SHA1s and ref names.
    """
    for line in f:
        if line.startswith((b"#", b"^")):
            continue
        line = line.rstrip(b"\r\n")
        if not line:
            continue
        sha, sep, name = line.partition(b" ")
        if not sep:
            continue
        yield sha.decode("ascii"), name.decode("utf-8")


class Repo:
    """A git repository on disk, opened read-only.

    Args:
      controldir: Path of the control directory (usually ``.git``)
    """

    def __init__(self, controldir: str | os.PathLike[str]) -> None:
        controldir = os.fspath(controldir)
        if not os.path.isdir(os.path.join(controldir, OBJECTDIR)):
            raise NotGitRepository(f"No git repository was found at {controldir}")
        self._controldir = controldir
        self.object_store = DiskObjectStore(os.path.join(controldir, OBJECTDIR))

    @classmethod
    def discover(cls, start: str | os.PathLike[str] = ".") -> "Repo":
        """Open the repository containing ``start``."""
        return cls(find_git_dir(start))

    def __repr__(self) -> str:
        return f"<Repo at {self._controldir!r}>"

    def controldir(self) -> str:
        """Return the path of the control directory."""
        return self._controldir

    def _read_loose_ref(self, name: str) -> bytes | None:
        path = os.path.join(self._controldir, *name.split("/"))
        try:
            with open(path, "rb") as f:
                return f.read().rstrip(b"\r\n")
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            return None

    def _read_packed_ref(self, name: str) -> str | None:
        path = os.path.join(self._controldir, PACKED_REFS)
        try:
            with open(path, "rb") as f:
                for sha, refname in read_packed_refs(f):
                    if refname == name:
                        return sha
        except FileNotFoundError:
            pass
        return None

    def read_symref(self, name: str) -> str | None:
        """Return the target of a symbolic ref, or None if it is not one."""
        contents = self._read_loose_ref(name)
        if contents is None or not contents.startswith(SYMREF):
            return None
        return contents[len(SYMREF) :].decode("utf-8")

    def read_ref(self, name: str) -> str:
        """Resolve a ref name to an object id, following symbolic refs.

        Raises:
          KeyError: if the ref does not exist
        """
        current = name
        for _ in range(MAX_SYMREF_DEPTH):
            contents = self._read_loose_ref(current)
            if contents is None:
                sha = self._read_packed_ref(current)
                if sha is None:
                    raise KeyError(name)
                return sha
            if contents.startswith(SYMREF):
                current = contents[len(SYMREF) :].decode("utf-8")
                continue
            return contents.decode("ascii")
        raise KeyError(name)

    def branch_head(self, branch: str) -> str:
        """Return the id of the commit a local branch points at."""
        if not branch.startswith(LOCAL_BRANCH_PREFIX):
            branch = LOCAL_BRANCH_PREFIX + branch
        return self.read_ref(branch)

    def current_branch(self) -> str | None:
        """Return the short name of the checked out branch.

        Returns None when HEAD is detached.
        """
        target = self.read_symref(HEADREF)
        if target is None or not target.startswith(LOCAL_BRANCH_PREFIX):
            return None
        return target[len(LOCAL_BRANCH_PREFIX) :]

    def resolve_branch(self, branch: str | None = None) -> str:
        """Return ``branch``, or the checked out branch when it is None.

        Raises:
          KeyError: if no branch was given and HEAD is detached
        """
        if branch is not None:
            return branch
        current = self.current_branch()
        if current is None:
            raise KeyError(HEADREF)
        return current

    def get_history(
        self,
        branch: str | None = None,
        parallel: bool = False,
        max_workers: int | None = None,
    ) -> CommitGraph:
        """Build the commit graph of a branch.

        Args:
          branch: Branch name; the checked out branch when None
          parallel: Decode objects on a thread pool
          max_workers: Worker pool size when parallel
        Returns: A CommitGraph
        """
        branch = self.resolve_branch(branch)
        head = self.branch_head(branch)
        logger.debug("branch %s is at %s", branch, head)
        if parallel:
            return build_history_parallel(
                head, self.object_store.lookup, max_workers=max_workers
            )
        return build_history(head, self.object_store.lookup)
