# porcelain.py -- Porcelain-like layer on top of plain
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

"""Simple wrapper that provides porcelain-like functions on top of plain.

Currently implemented:
 * done
 * init
 * log
 * preview
 * start

These functions are meant to behave similarly to the git subcommands.
Differences in behaviour are considered bugs.
"""

__all__ = [
    "done",
    "init",
    "log",
    "preview",
    "print_commit",
    "start",
]

import os
import sys
from typing import TextIO

from .client import DEFAULT_BASE_BRANCH, ShellClient
from .history import CommitGraph
from .objects import Commit, Signature, format_timezone
from .repo import Repo

RepoPath = str | os.PathLike[str] | Repo


def _open_repo(repo: RepoPath) -> Repo:
    if isinstance(repo, Repo):
        return repo
    return Repo.discover(repo)


def format_date(signature: Signature) -> str:
    """Format a signature time in its own recorded offset."""
    when = signature.time
    offset = when.utcoffset()
    seconds = int(offset.total_seconds()) if offset is not None else 0
    return when.strftime("%a %b %d %H:%M:%S %Y") + " " + format_timezone(seconds)


def print_commit(commit: Commit, outstream: TextIO = sys.stdout) -> None:
    """Write a human-readable commit log entry.

    Args:
      commit: A `Commit` object
      outstream: A stream file to write to
    """
    outstream.write("commit " + commit.id + "\n")
    if commit.is_merge():
        outstream.write(
            "Merge: " + " ".join(p[:7] for p in commit.parents) + "\n"
        )
    if commit.author is not None:
        outstream.write("Author: " + str(commit.author) + "\n")
        outstream.write("Date:   " + format_date(commit.author) + "\n")
    if commit.committer is not None and commit.committer != commit.author:
        outstream.write("Commit: " + str(commit.committer) + "\n")
    outstream.write("\n")
    for line in commit.message.split("\n"):
        outstream.write(("    " + line).rstrip() + "\n")
    outstream.write("\n")


def _select(graph: CommitGraph, first_parent: bool) -> list[Commit]:
    if first_parent:
        return list(graph.first_parent_chain())
    return graph.topo_order()


def log(
    repo: RepoPath = ".",
    branch: str | None = None,
    outstream: TextIO = sys.stdout,
    oneline: bool = False,
    first_parent: bool = False,
    max_entries: int | None = None,
    parallel: bool = False,
    max_workers: int | None = None,
) -> None:
    """Write commit logs.

    Args:
      repo: Path to repository
      branch: Branch to show; the checked out branch when None
      outstream: Stream to write log output to
      oneline: Print one line per commit
      first_parent: Only follow the first parent of merges
      max_entries: Optional maximum number of entries to display
      parallel: Decode objects on a thread pool
      max_workers: Worker pool size when parallel
    """
    r = _open_repo(repo)
    graph = r.get_history(branch, parallel=parallel, max_workers=max_workers)
    commits = _select(graph, first_parent)
    if max_entries is not None:
        commits = commits[:max_entries]
    for commit in commits:
        if oneline:
            outstream.write(f"{commit.short_id} {commit.summary()}\n")
        else:
            print_commit(commit, outstream)


def preview(
    repo: RepoPath = ".",
    branch: str | None = None,
    outstream: TextIO = sys.stdout,
) -> CommitGraph:
    """Summarize the history of a branch.

    Returns: The CommitGraph that was summarized
    """
    r = _open_repo(repo)
    branch = r.resolve_branch(branch)
    graph = r.get_history(branch)
    head = graph.head
    outstream.write(f"Branch:  {branch}\n")
    outstream.write(f"Head:    {head.short_id} {head.summary()}\n")
    outstream.write(f"Commits: {len(graph)}\n")
    outstream.write(f"Merges:  {len(graph.merges())}\n")
    for root in sorted(graph.roots(), key=lambda c: c.id):
        outstream.write(f"Root:    {root.short_id} {root.summary()}\n")
    return graph


def init(path: str | os.PathLike[str] = ".", client: ShellClient | None = None) -> None:
    """Create a new git repository."""
    if client is None:
        client = ShellClient(path)
    client.init()


def start(
    name: str,
    from_branch: str = DEFAULT_BASE_BRANCH,
    path: str | os.PathLike[str] = ".",
    outstream: TextIO = sys.stdout,
    client: ShellClient | None = None,
) -> None:
    """Start a feature on a new branch.

    Args:
      name: Name of the feature branch
      from_branch: Base branch; ``"here"`` means the checked out branch
      path: Working directory
      outstream: Stream to report to
      client: Client used to run git
    """
    if client is None:
        client = ShellClient(path)
    client.create_branch(name, from_branch)
    outstream.write(f"Started feature {name} on a new branch.\n")


def done(
    path: str | os.PathLike[str] = ".",
    outstream: TextIO = sys.stdout,
    client: ShellClient | None = None,
) -> bool:
    """Report whether the current branch has uncommitted changes.

    Returns: True if the branch is dirty
    """
    if client is None:
        client = ShellClient(path)
    dirty = client.is_branch_dirty()
    outstream.write("branch is dirty\n" if dirty else "branch is clean\n")
    return dirty
