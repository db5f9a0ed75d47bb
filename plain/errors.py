# errors.py -- errors for plain
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

"""Exception classes raised while reading git objects and repositories."""

__all__ = [
    "DecompressionFailure",
    "DetachedHead",
    "FileFormatException",
    "GitCommandError",
    "MalformedSignature",
    "MalformedSize",
    "MalformedTimestamp",
    "MissingSeparator",
    "NotCommitError",
    "NotGitRepository",
    "NotReset",
    "ObjectFormatException",
    "ObjectNotFound",
    "UnknownObjectKind",
    "WrongObjectException",
]

from collections.abc import Sequence


def _show(value: bytes | str) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", "backslashreplace")
    return value


class FileFormatException(Exception):
    """Base class for exceptions relating to reading git file formats."""


class ObjectFormatException(FileFormatException):
    """Indicates an error parsing an object."""


class UnknownObjectKind(ObjectFormatException):
    """The object header names a kind that is not commit, tree, blob or tag."""

    def __init__(self, token: bytes) -> None:
        """Initialize an UnknownObjectKind exception.

        Args:
            token: The raw kind token read from the header.
        """
        self.token = token
        super().__init__(f"Not a known object kind: {_show(token)!r}")


class MalformedSize(ObjectFormatException):
    """The size field of an object header is not a decimal number."""

    def __init__(self, text: bytes) -> None:
        """Initialize a MalformedSize exception.

        Args:
            text: The raw size field.
        """
        self.text = text
        super().__init__(f"Invalid object size: {_show(text)!r}")


class MissingSeparator(ObjectFormatException):
    """A commit header line has no space between key and value."""

    def __init__(self, sha: str, line: bytes) -> None:
        """Initialize a MissingSeparator exception.

        Args:
            sha: Id of the commit being parsed.
            line: The offending header line.
        """
        self.sha = sha
        self.line = line
        super().__init__(
            f"{sha}: header line without separator: {_show(line)!r}"
        )


class MalformedSignature(ObjectFormatException):
    """An author or committer line does not match ``Name <email> time tz``."""

    def __init__(self, sha: str, line: bytes, reason: str | None = None) -> None:
        """Initialize a MalformedSignature exception.

        Args:
            sha: Id of the commit being parsed.
            line: The offending signature value.
            reason: Optional description of what was wrong.
        """
        self.sha = sha
        self.line = line
        message = f"{sha}: malformed signature {_show(line)!r}"
        if reason is not None:
            message += f": {reason}"
        super().__init__(message)


class MalformedTimestamp(ObjectFormatException):
    """A signature timestamp is not ``<seconds> <+|-HHMM>``."""

    def __init__(
        self, text: bytes | str, reason: str, sha: str | None = None
    ) -> None:
        """Initialize a MalformedTimestamp exception.

        Args:
            text: The raw timestamp text.
            reason: Description of what was wrong.
            sha: Id of the commit being parsed, when known.
        """
        self.text = text
        self.reason = reason
        self.sha = sha
        message = f"Invalid timestamp {_show(text)!r}: {reason}"
        if sha is not None:
            message = f"{sha}: {message}"
        super().__init__(message)


class DecompressionFailure(FileFormatException):
    """The compressed byte source is not a valid zlib stream."""


class NotReset(Exception):
    """A decoder was asked for a second header without being reset."""

    def __init__(self, *args: object) -> None:
        """Initialize a NotReset exception."""
        if not args:
            args = ("decoder must be reset before reading another object",)
        super().__init__(*args)


class WrongObjectException(Exception):
    """Baseclass for all the _ is not a _ exceptions on objects.

    Do not instantiate directly.

    Subclasses should define a type_name attribute that indicates what
    was expected if they were raised.
    """

    type_name: str

    def __init__(self, sha: str) -> None:
        """Initialize a WrongObjectException.

        Args:
            sha: The id of the object that was not of the expected type.
        """
        self.sha = sha
        super().__init__(f"{sha} is not a {self.type_name}")


class NotCommitError(WrongObjectException):
    """Indicates that the sha requested does not point to a commit."""

    type_name = "commit"


class ObjectNotFound(KeyError):
    """Indicates that a requested object is not in the object store."""

    def __init__(self, sha: str) -> None:
        """Initialize an ObjectNotFound exception.

        Args:
            sha: The id that could not be found.
        """
        self.sha = sha
        super().__init__(sha)

    def __str__(self) -> str:
        return f"{self.sha} is not in the object store"


class NotGitRepository(Exception):
    """Indicates that no Git repository was found."""


class DetachedHead(Exception):
    """An operation needed the checked out branch but HEAD is detached."""

    def __init__(self, operation: str) -> None:
        """Initialize a DetachedHead exception.

        Args:
            operation: What needed the current branch.
        """
        self.operation = operation
        super().__init__(f"cannot {operation}: HEAD is detached")


class GitCommandError(Exception):
    """An invocation of the external git binary failed."""

    def __init__(
        self, args: Sequence[str], returncode: int, stderr: bytes | None = None
    ) -> None:
        """Initialize a GitCommandError.

        Args:
            args: The command line that was run.
            returncode: Exit status of the process.
            stderr: Captured standard error, if any.
        """
        self.command = list(args)
        self.returncode = returncode
        self.stderr = stderr
        message = f"{' '.join(self.command)} exited with status {returncode}"
        if stderr:
            message += f": {_show(stderr).strip()}"
        super().__init__(message)
