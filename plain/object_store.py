# object_store.py -- Loose object storage
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

"""Read-only access to the compressed bytes of loose objects.

Stores hand out compressed byte sources; decoding them is the job of
:mod:`plain.decode`. Packed objects are not supported.
"""

__all__ = [
    "BaseObjectStore",
    "DiskObjectStore",
    "MemoryObjectStore",
    "hex_to_filename",
]

import os
from collections.abc import Iterator, Mapping
from io import BytesIO
from typing import BinaryIO

from .errors import ObjectNotFound
from .log_utils import getLogger
from .objects import valid_hexsha

logger = getLogger(__name__)


def hex_to_filename(path: str | os.PathLike[str], hex: str) -> str:
    """Takes a hex sha and returns its filename relative to the given path."""
    directory = hex[:2]
    file = hex[2:]
    return os.path.join(os.fspath(path), directory, file)


class BaseObjectStore:
    """Object store interface."""

    def lookup(self, sha: str) -> BinaryIO:
        """Open the compressed bytes of an object.

        Args:
          sha: Hex id of the object
        Returns: Binary file-like object; the caller closes it
        Raises:
          ObjectNotFound: if the object is not in the store
        """
        raise NotImplementedError(self.lookup)

    def contains_loose(self, sha: str) -> bool:
        """Check if a particular object is present by SHA1 and is loose."""
        raise NotImplementedError(self.contains_loose)

    def __contains__(self, sha: object) -> bool:
        return isinstance(sha, str) and self.contains_loose(sha)

    def __call__(self, sha: str) -> BinaryIO:
        return self.lookup(sha)


class DiskObjectStore(BaseObjectStore):
    """Loose objects in a git ``objects`` directory."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        """Open an object store.

        Args:
          path: Path of the ``objects`` directory
        """
        self.path = os.fspath(path)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}({self.path!r})>"

    def _get_shafile_path(self, sha: str) -> str:
        return hex_to_filename(self.path, sha)

    def lookup(self, sha: str) -> BinaryIO:
        if not valid_hexsha(sha):
            raise ObjectNotFound(sha)
        path = self._get_shafile_path(sha)
        try:
            f = open(path, "rb")
        except FileNotFoundError as e:
            raise ObjectNotFound(sha) from e
        logger.debug("opened loose object %s", path)
        return f

    def contains_loose(self, sha: str) -> bool:
        return valid_hexsha(sha) and os.path.exists(self._get_shafile_path(sha))

    def iter_loose_objects(self) -> Iterator[str]:
        """Iterate over the ids of all loose objects."""
        try:
            bases = sorted(os.listdir(self.path))
        except FileNotFoundError:
            return
        for base in bases:
            if len(base) != 2:
                continue
            for rest in sorted(os.listdir(os.path.join(self.path, base))):
                sha = base + rest
                if valid_hexsha(sha):
                    yield sha


class MemoryObjectStore(BaseObjectStore):
    """Object store holding already-compressed loose objects in memory."""

    def __init__(self, objects: Mapping[str, bytes] | None = None) -> None:
        self._data: dict[str, bytes] = dict(objects or {})

    def lookup(self, sha: str) -> BinaryIO:
        try:
            return BytesIO(self._data[sha])
        except KeyError as e:
            raise ObjectNotFound(sha) from e

    def contains_loose(self, sha: str) -> bool:
        return sha in self._data

    def __len__(self) -> int:
        return len(self._data)
