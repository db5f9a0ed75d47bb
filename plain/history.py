# history.py -- Rebuild the commit graph of a branch
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

"""Rebuild the commit DAG reachable from a branch head."""

__all__ = [
    "CommitGraph",
    "ObjectLookup",
    "build_history",
    "build_history_parallel",
]

from collections.abc import Callable, Iterator, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from heapq import heappop, heappush
from types import MappingProxyType
from typing import BinaryIO

from .decode import ObjectDecoder
from .errors import NotCommitError
from .log_utils import getLogger
from .objects import Commit, ObjectHeader, ObjectKind

logger = getLogger(__name__)

ObjectLookup = Callable[[str], BinaryIO]


@dataclass(frozen=True)
class CommitGraph:
    """Commits reachable from a branch head, keyed by id.

    The mapping is read-only; every reachable commit appears exactly once.
    """

    head: Commit
    commits: Mapping[str, Commit]

    def __post_init__(self) -> None:
        object.__setattr__(self, "commits", MappingProxyType(dict(self.commits)))

    def __len__(self) -> int:
        return len(self.commits)

    def __contains__(self, sha: object) -> bool:
        return sha in self.commits

    def __getitem__(self, sha: str) -> Commit:
        return self.commits[sha]

    def __iter__(self) -> Iterator[str]:
        return iter(self.commits)

    def roots(self) -> list[Commit]:
        """Commits without parents."""
        return [c for c in self.commits.values() if c.is_leaf()]

    def merges(self) -> list[Commit]:
        """Commits with more than one parent."""
        return [c for c in self.commits.values() if c.is_merge()]

    def children(self) -> dict[str, list[str]]:
        """Map each commit id to the ids of its children in this graph."""
        result: dict[str, list[str]] = {sha: [] for sha in self.commits}
        for commit in self.commits.values():
            for parent in dict.fromkeys(commit.parents):
                if parent in result:
                    result[parent].append(commit.id)
        return result

    def first_parent_chain(self) -> Iterator[Commit]:
        """Walk from the head following only first parents."""
        commit: Commit | None = self.head
        while commit is not None:
            yield commit
            if not commit.parents:
                break
            commit = self.commits.get(commit.parents[0])

    def topo_order(self) -> list[Commit]:
        """Return commits with every child before its parents.

        Among commits that are ready at the same time the most recently
        committed one comes first.
        """
        waiting = {sha: len(kids) for sha, kids in self.children().items()}
        heap: list[tuple[int, str]] = []
        for sha, count in waiting.items():
            if count == 0:
                heappush(heap, (-self.commits[sha].commit_time, sha))
        ordered = []
        while heap:
            _, sha = heappop(heap)
            commit = self.commits[sha]
            ordered.append(commit)
            for parent in dict.fromkeys(commit.parents):
                if parent not in waiting:
                    continue
                waiting[parent] -= 1
                if waiting[parent] == 0:
                    heappush(heap, (-self.commits[parent].commit_time, parent))
        return ordered


def _decode_head(decoder: ObjectDecoder, sha: str) -> Commit:
    header = decoder.header()
    if header.kind is not ObjectKind.COMMIT:
        raise NotCommitError(sha)
    return decoder.decode_commit(sha)


def _skip(sha: str, header: ObjectHeader) -> None:
    logger.warning(
        "skipping %s: parent reference points at a %s", sha, header.kind.value
    )


def build_history(head_sha: str, lookup: ObjectLookup) -> CommitGraph:
    """Decode every commit reachable from ``head_sha``.

    One decoder is reset onto each object in turn. Objects reached through
    a parent reference that turn out not to be commits are skipped; any
    other failure aborts the whole build.

    Args:
      head_sha: Id of the branch head
      lookup: Callable returning the compressed bytes of an object
    Returns: A CommitGraph
    Raises:
      NotCommitError: if the head is not a commit
      ObjectNotFound: if a reachable object is missing
    """
    with lookup(head_sha) as f:
        decoder = ObjectDecoder.open(f)
        try:
            head = _decode_head(decoder, head_sha)
        except BaseException:
            decoder.close()
            raise

    commits = {head_sha: head}
    skipped: set[str] = set()
    stack = list(dict.fromkeys(head.parents))
    pending = set(stack)
    with decoder:
        while stack:
            sha = stack.pop()
            pending.discard(sha)
            if sha in commits or sha in skipped:
                continue
            with lookup(sha) as f:
                decoder.reset(f)
                header = decoder.header()
                if header.kind is not ObjectKind.COMMIT:
                    _skip(sha, header)
                    skipped.add(sha)
                    continue
                commit = decoder.decode_commit(sha)
            logger.debug("decoded commit %s", sha)
            commits[sha] = commit
            for parent in commit.parents:
                if parent not in commits and parent not in pending:
                    stack.append(parent)
                    pending.add(parent)

    logger.debug("history of %s has %d commits", head_sha, len(commits))
    return CommitGraph(head=head, commits=commits)


def _decode_object(
    sha: str, lookup: ObjectLookup
) -> tuple[ObjectHeader, Commit | None]:
    with lookup(sha) as f, ObjectDecoder.open(f) as decoder:
        header = decoder.header()
        if header.kind is not ObjectKind.COMMIT:
            return header, None
        return header, decoder.decode_commit(sha)


def build_history_parallel(
    head_sha: str, lookup: ObjectLookup, max_workers: int | None = None
) -> CommitGraph:
    """Decode every commit reachable from ``head_sha`` using a thread pool.

    Each frontier of unseen parents is decoded concurrently, one decoder
    per object. The calling thread owns the set of seen ids, so the result
    is the same graph :func:`build_history` returns.

    Args:
      head_sha: Id of the branch head
      lookup: Thread-safe callable returning compressed object bytes
      max_workers: Size of the worker pool
    Returns: A CommitGraph
    """
    header, head = _decode_object(head_sha, lookup)
    if head is None:
        raise NotCommitError(head_sha)

    commits = {head_sha: head}
    seen = {head_sha}
    frontier = [p for p in dict.fromkeys(head.parents) if p not in seen]
    seen.update(frontier)
    decode = partial(_decode_object, lookup=lookup)
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        while frontier:
            next_frontier = []
            for sha, (header, commit) in zip(frontier, executor.map(decode, frontier)):
                if commit is None:
                    _skip(sha, header)
                    continue
                logger.debug("decoded commit %s", sha)
                commits[sha] = commit
                for parent in commit.parents:
                    if parent not in seen:
                        seen.add(parent)
                        next_frontier.append(parent)
            frontier = next_frontier

    logger.debug("history of %s has %d commits", head_sha, len(commits))
    return CommitGraph(head=head, commits=commits)
