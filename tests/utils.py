# utils.py -- Test utilities for plain.
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

"""Utility functions common to plain tests.

plain itself never writes objects, so the fixtures here build compressed
loose objects by hand.
"""

import hashlib
import os
import zlib
from collections.abc import Iterable, Mapping, Sequence

from plain.object_store import MemoryObjectStore, hex_to_filename

EMPTY_TREE = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"
DEFAULT_TIME = 1703123456
DEFAULT_AUTHOR = b"A U Thor <author@example.com>"


def raw_object(kind: str, payload: bytes, size: int | None = None) -> bytes:
    """Return the decompressed bytes of an object: header plus payload."""
    if size is None:
        size = len(payload)
    return kind.encode("ascii") + b" " + str(size).encode("ascii") + b"\0" + payload


def compress(data: bytes) -> bytes:
    return zlib.compress(data)


def object_id(kind: str, payload: bytes) -> str:
    """Compute the SHA-1 id git would give an object."""
    return hashlib.sha1(raw_object(kind, payload)).hexdigest()


def make_commit_payload(
    tree: str = EMPTY_TREE,
    parents: Sequence[str] = (),
    author: bytes = DEFAULT_AUTHOR,
    committer: bytes | None = None,
    timestamp: int = DEFAULT_TIME,
    timezone: bytes = b"+0000",
    message: bytes = b"Test commit\n",
    extra_headers: Iterable[tuple[bytes, bytes]] = (),
) -> bytes:
    """Make the payload of a commit object with sensible defaults."""
    if committer is None:
        committer = author
    stamp = str(timestamp).encode("ascii") + b" " + timezone
    lines = [b"tree " + tree.encode("ascii")]
    lines.extend(b"parent " + p.encode("ascii") for p in parents)
    lines.append(b"author " + author + b" " + stamp)
    lines.append(b"committer " + committer + b" " + stamp)
    lines.extend(key + b" " + value for key, value in extra_headers)
    return b"\n".join(lines) + b"\n\n" + message


def build_objects(
    dag: Mapping[str, Sequence[str]],
    extra_objects: Mapping[str, tuple[str, bytes]] | None = None,
) -> tuple[dict[str, bytes], dict[str, str]]:
    """Build compressed objects for a DAG of commit names.

    Args:
      dag: Map of commit name to the names of its parents; parent names
        may also refer to ``extra_objects``
      extra_objects: Map of name to (kind, payload) for non-commit objects
    Returns: Tuple of compressed objects by id and a map from names to ids
    """
    objects: dict[str, bytes] = {}
    ids: dict[str, str] = {}
    for name, (kind, payload) in (extra_objects or {}).items():
        ids[name] = object_id(kind, payload)
        objects[ids[name]] = compress(raw_object(kind, payload))

    remaining = dict(dag)
    tick = 0
    while remaining:
        ready = [
            name
            for name, parents in remaining.items()
            if all(p in ids for p in parents)
        ]
        if not ready:
            raise ValueError("cycle or missing parent in DAG")
        for name in sorted(ready):
            payload = make_commit_payload(
                parents=[ids[p] for p in remaining[name]],
                timestamp=DEFAULT_TIME + tick,
                message=name.encode("utf-8") + b"\n",
            )
            tick += 60
            ids[name] = object_id("commit", payload)
            objects[ids[name]] = compress(raw_object("commit", payload))
            del remaining[name]
    return objects, ids


def build_commit_graph(
    dag: Mapping[str, Sequence[str]],
    extra_objects: Mapping[str, tuple[str, bytes]] | None = None,
) -> tuple[MemoryObjectStore, dict[str, str]]:
    """Build an in-memory object store from a DAG of commit names."""
    objects, ids = build_objects(dag, extra_objects)
    return MemoryObjectStore(objects), ids


def write_loose_objects(objects_dir: str, objects: Mapping[str, bytes]) -> None:
    """Write compressed objects into an ``objects`` directory."""
    for sha, data in objects.items():
        path = hex_to_filename(objects_dir, sha)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)


def make_repo(
    path: str,
    dag: Mapping[str, Sequence[str]],
    branches: Mapping[str, str],
    checked_out: str | None = "main",
) -> dict[str, str]:
    """Create a repository whose branches point into a commit DAG.

    Args:
      path: Working tree directory; ``.git`` is created inside it
      dag: Commit DAG as for build_commit_graph
      branches: Map of branch name to commit name
      checked_out: Branch HEAD refers to, or None for no HEAD
    Returns: Map from commit names to ids
    """
    objects, ids = build_objects(dag)
    controldir = os.path.join(path, ".git")
    os.makedirs(os.path.join(controldir, "objects"), exist_ok=True)
    write_loose_objects(os.path.join(controldir, "objects"), objects)
    heads = os.path.join(controldir, "refs", "heads")
    os.makedirs(heads, exist_ok=True)
    for branch, commit in branches.items():
        ref_path = os.path.join(heads, *branch.split("/"))
        os.makedirs(os.path.dirname(ref_path), exist_ok=True)
        with open(ref_path, "w") as f:
            f.write(ids[commit] + "\n")
    if checked_out is not None:
        with open(os.path.join(controldir, "HEAD"), "w") as f:
            f.write(f"ref: refs/heads/{checked_out}\n")
    return ids
