# objects.py -- Access to decoded git objects
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

"""Decoded git objects and the commit body parser."""

__all__ = [
    "Commit",
    "ObjectHeader",
    "ObjectKind",
    "Signature",
    "format_timezone",
    "object_kind",
    "parse_commit",
    "parse_signature",
    "parse_timestamp",
    "parse_timezone",
    "valid_hexsha",
]

import binascii
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import BinaryIO

from .errors import (
    MalformedSignature,
    MalformedTimestamp,
    MissingSeparator,
    UnknownObjectKind,
)

# Header fields for commits
_TREE_HEADER = b"tree"
_PARENT_HEADER = b"parent"
_AUTHOR_HEADER = b"author"
_COMMITTER_HEADER = b"committer"
_ENCODING_HEADER = b"encoding"

DEFAULT_ENCODING = "utf-8"
SHORT_ID_LENGTH = 7
HEX_LENGTHS = (40, 64)


class ObjectKind(Enum):
    """Kinds of objects found in a git object store."""

    COMMIT = "commit"
    TREE = "tree"
    BLOB = "blob"
    TAG = "tag"


def object_kind(token: bytes | str) -> ObjectKind:
    """Map a header token to its object kind.

    Args:
      token: Kind token as found in the object header, e.g. ``b"commit"``
    Returns: The matching ObjectKind
    Raises:
      UnknownObjectKind: if the token is not a known kind
    """
    raw = token.encode("ascii") if isinstance(token, str) else token
    try:
        return ObjectKind(raw.decode("ascii"))
    except (UnicodeDecodeError, ValueError) as e:
        raise UnknownObjectKind(raw) from e


@dataclass(frozen=True)
class ObjectHeader:
    """The ``<kind> <size>`` prefix of a decompressed object."""

    kind: ObjectKind
    size: int


def valid_hexsha(hex: bytes | str) -> bool:
    """Check if a string is a valid hex object id."""
    if len(hex) not in HEX_LENGTHS:
        return False
    try:
        binascii.unhexlify(hex)
    except (TypeError, binascii.Error):
        return False
    else:
        return True


def parse_timezone(text: bytes | str) -> int:
    """Parse a timezone text fragment (e.g. '+0100').

    Args:
      text: Text to parse.
    Returns: Offset from UTC in seconds.
    Raises:
      MalformedTimestamp: if the text is not a sign followed by four digits
    """
    if isinstance(text, bytes):
        text = text.decode("ascii", "replace")
    if len(text) != 5:
        raise MalformedTimestamp(text, "offset must look like +HHMM")
    sign, hours, minutes = text[0], text[1:3], text[3:5]
    if sign not in "+-" or not (_is_digits(hours) and _is_digits(minutes)):
        raise MalformedTimestamp(text, "offset must look like +HHMM")
    offset = int(hours) * 3600 + int(minutes) * 60
    return -offset if sign == "-" else offset


def format_timezone(offset: int) -> str:
    """Format a timezone offset in seconds as ``+HHMM``."""
    if offset % 60 != 0:
        raise ValueError("Unable to handle non-minute offset.")
    sign = "-" if offset < 0 else "+"
    offset = abs(offset)
    return "%c%02d%02d" % (sign, offset // 3600, (offset // 60) % 60)


def parse_timestamp(text: bytes | str) -> datetime:
    """Parse ``<unix-seconds> <+|-HHMM>`` into an aware datetime.

    The result carries the recorded offset as a fixed timezone, so it
    displays in the committer's own local time.
    """
    if isinstance(text, bytes):
        text = text.decode("ascii", "replace")
    fields = text.split()
    if len(fields) != 2:
        raise MalformedTimestamp(text, "expected '<seconds> <offset>'")
    seconds, tz_text = fields
    if not _is_digits(seconds):
        raise MalformedTimestamp(text, "seconds must be a decimal number")
    offset = parse_timezone(tz_text)
    tz = timezone(timedelta(seconds=offset))
    try:
        return datetime.fromtimestamp(int(seconds), tz)
    except (OverflowError, OSError, ValueError) as e:
        raise MalformedTimestamp(text, str(e)) from e


def _is_digits(text: str) -> bool:
    return bool(text) and text.isascii() and text.isdigit()


@dataclass(frozen=True)
class Signature:
    """Who authored or committed an object, and when."""

    name: str
    email: str
    time: datetime

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"


def parse_signature(
    sha: str, value: bytes, encoding: str = DEFAULT_ENCODING
) -> Signature:
    """Parse an ``author`` or ``committer`` header value.

    Args:
      sha: Id of the commit the value belongs to, for error reporting
      value: ``Name <email> timestamp offset``
      encoding: Encoding used to decode name and email
    Returns: A Signature
    """
    start = value.find(b"<")
    end = value.find(b">")
    if start == -1 or end == -1:
        raise MalformedSignature(sha, value, "missing angle brackets")
    if end < start:
        raise MalformedSignature(sha, value, "'>' before '<'")
    name = value[:start]
    if name.endswith(b" "):
        name = name[:-1]
    email = value[start + 1 : end]
    try:
        when = parse_timestamp(value[end + 1 :])
    except MalformedTimestamp as e:
        raise MalformedTimestamp(e.text, e.reason, sha=sha) from e
    return Signature(
        name=name.decode(encoding, "replace"),
        email=email.decode(encoding, "replace"),
        time=when,
    )


@dataclass(frozen=True)
class Commit:
    """A git commit object.

    Commits are immutable once parsed; ``parents`` keeps the on-disk order,
    so ``parents[0]`` is the mainline parent. ``author`` and ``committer``
    are None only for truncated bodies that end before those headers.
    """

    id: str
    tree: str
    parents: tuple[str, ...]
    author: Signature | None
    committer: Signature | None
    message: str
    encoding: str | None = None

    @property
    def short_id(self) -> str:
        """Abbreviated id used for display."""
        return self.id[:SHORT_ID_LENGTH]

    def is_leaf(self) -> bool:
        """Return True if this is a root commit without parents."""
        return not self.parents

    def is_merge(self) -> bool:
        """Return True if this commit has more than one parent."""
        return len(self.parents) > 1

    @property
    def commit_time(self) -> int:
        """Committer time as seconds since the epoch, 0 if unknown."""
        if self.committer is None:
            return 0
        return int(self.committer.time.timestamp())

    def summary(self) -> str:
        """First line of the commit message."""
        return self.message.split("\n", 1)[0]


def parse_commit(sha: str, f: BinaryIO) -> Commit:
    """Parse the body of a commit object.

    Header lines are read until a blank line; everything after it is the
    message, with one trailing newline removed. Unknown header keys are
    ignored, and so are continuation lines of multi-line headers.

    Args:
      sha: Id of the commit, recorded on the result
      f: Binary stream positioned at the start of the payload
    Returns: The parsed Commit
    Raises:
      MissingSeparator: if a header line has no space
      MalformedSignature: if author or committer cannot be parsed
    """
    tree = b""
    parents: list[str] = []
    author = committer = None
    encoding = None
    at_eof = False

    while True:
        line = f.readline()
        if not line:
            at_eof = True
            break
        if line == b"\n":
            break
        line = line.rstrip(b"\n")
        key, sep, value = line.partition(b" ")
        if not sep:
            raise MissingSeparator(sha, line)
        if key == _TREE_HEADER:
            tree = value
        elif key == _PARENT_HEADER:
            parents.append(value.decode("ascii", "replace"))
        elif key == _AUTHOR_HEADER:
            author = value
        elif key == _COMMITTER_HEADER:
            committer = value
        elif key == _ENCODING_HEADER:
            encoding = value.decode("ascii", "replace")

    message = b"" if at_eof else f.read()
    if message.endswith(b"\n"):
        message = message[:-1]

    text_encoding = _codec(encoding)
    return Commit(
        id=sha,
        tree=tree.decode("ascii", "replace"),
        parents=tuple(parents),
        author=None if author is None else parse_signature(sha, author, text_encoding),
        committer=(
            None
            if committer is None
            else parse_signature(sha, committer, text_encoding)
        ),
        message=message.decode(text_encoding, "replace"),
        encoding=encoding,
    )


def _codec(encoding: str | None) -> str:
    if encoding is None:
        return DEFAULT_ENCODING
    try:
        "".encode(encoding)
    except LookupError:
        return DEFAULT_ENCODING
    return encoding
