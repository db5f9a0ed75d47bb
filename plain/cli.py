#!/usr/bin/python3 -u
#
# cli.py -- command-line interface for plain
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

"""Command-line interface to plain.

Reads branch history straight from the object store; commands that change
the repository are run through git.
"""

__all__ = [
    "Command",
    "commands",
    "main",
]

import argparse
import signal
import sys
import types
from collections.abc import Sequence
from typing import ClassVar

from . import porcelain
from .client import DEFAULT_BASE_BRANCH, HERE
from .errors import (
    DetachedHead,
    FileFormatException,
    GitCommandError,
    NotCommitError,
    NotGitRepository,
    NotReset,
    ObjectNotFound,
)
from .log_utils import default_logging_config, getLogger

logger = getLogger(__name__)


def signal_int(signal: int, frame: types.FrameType | None) -> None:
    """Handle interrupt signal by exiting.

    Args:
        signal: Signal number
        frame: Current stack frame
    """
    sys.exit(1)


class Command:
    """A plain subcommand."""

    description: ClassVar[str] = ""

    def parser(self) -> argparse.ArgumentParser:
        """Build the argument parser for this command."""
        return argparse.ArgumentParser(description=self.description)

    def run(self, args: Sequence[str]) -> int | None:
        """Run the command."""
        raise NotImplementedError(self.run)


class cmd_log(Command):
    """Show the history of a branch."""

    description = "Show commit logs of a branch, read from the object store"

    def run(self, args: Sequence[str]) -> None:
        """Execute the log command.

        Args:
            args: Command line arguments
        """
        parser = self.parser()
        parser.add_argument("branch", nargs="?", help="Branch (default: current)")
        parser.add_argument(
            "--oneline", action="store_true", help="Show one line per commit"
        )
        parser.add_argument(
            "--first-parent",
            action="store_true",
            help="Follow only the first parent of merge commits",
        )
        parser.add_argument(
            "-n", "--max-count", type=int, default=None, help="Limit entries"
        )
        parser.add_argument(
            "-j",
            "--jobs",
            type=int,
            default=None,
            help="Decode objects with this many threads",
        )
        parsed_args = parser.parse_args(args)
        if parsed_args.jobs is not None and parsed_args.jobs < 1:
            parser.error("--jobs must be at least 1")
        porcelain.log(
            ".",
            branch=parsed_args.branch,
            outstream=sys.stdout,
            oneline=parsed_args.oneline,
            first_parent=parsed_args.first_parent,
            max_entries=parsed_args.max_count,
            parallel=parsed_args.jobs is not None,
            max_workers=parsed_args.jobs,
        )


class cmd_preview(Command):
    """Summarize the history of a branch."""

    description = "Summarize the commits reachable from a branch"

    def run(self, args: Sequence[str]) -> None:
        parser = self.parser()
        parser.add_argument("branch", nargs="?", help="Branch (default: current)")
        parsed_args = parser.parse_args(args)
        porcelain.preview(".", branch=parsed_args.branch, outstream=sys.stdout)


class cmd_init(Command):
    """Initialize git tracking in the current directory."""

    description = "Initiates git tracking for this repository"

    def run(self, args: Sequence[str]) -> None:
        parser = self.parser()
        parser.add_argument("path", nargs="?", default=".")
        parsed_args = parser.parse_args(args)
        porcelain.init(parsed_args.path)


class cmd_start(Command):
    """Start a feature on a new branch."""

    description = "Start a new feature on a clean branch"

    def run(self, args: Sequence[str]) -> None:
        parser = self.parser()
        parser.add_argument("name", help="Name of the feature branch")
        parser.add_argument(
            "-f",
            "--from",
            dest="from_branch",
            default=DEFAULT_BASE_BRANCH,
            help=f"Base branch to start from ('{HERE}' for the current branch)",
        )
        parsed_args = parser.parse_args(args)
        porcelain.start(
            parsed_args.name, from_branch=parsed_args.from_branch, outstream=sys.stdout
        )


class cmd_done(Command):
    """Check whether the current branch is ready to be finished."""

    description = "Report whether the working tree has uncommitted changes"

    def run(self, args: Sequence[str]) -> int:
        parser = self.parser()
        parser.parse_args(args)
        dirty = porcelain.done(".", outstream=sys.stdout)
        return 1 if dirty else 0


commands: dict[str, type[Command]] = {
    "done": cmd_done,
    "init": cmd_init,
    "log": cmd_log,
    "preview": cmd_preview,
    "start": cmd_start,
}


def main(argv: Sequence[str] | None = None) -> int | None:
    """Main entry point for the plain CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code or None
    """
    if argv is None:
        argv = sys.argv[1:]

    # Parse only the global options, the command comes first in the rest
    parser = argparse.ArgumentParser(
        prog="plain",
        description="Branch history straight from the object store",
        add_help=False,
    )
    parser.add_argument("--help", "-h", action="store_true", help="Show help")
    global_args, remaining = parser.parse_known_args(argv)

    if global_args.help or not remaining:
        parser = argparse.ArgumentParser(
            prog="plain", description="Branch history straight from the object store"
        )
        parser.add_argument(
            "command",
            nargs="?",
            help=f"Command to run. Available: {', '.join(sorted(commands))}",
        )
        parser.print_help()
        return 1

    default_logging_config()

    cmd = remaining[0]
    cmd_args = remaining[1:]

    try:
        cmd_kls = commands[cmd]
    except KeyError:
        logger.fatal("No such subcommand: %s", cmd)
        return 1

    try:
        return cmd_kls().run(cmd_args)
    except NotGitRepository as e:
        logger.error("%s", e)
    except (NotCommitError, ObjectNotFound, FileFormatException, NotReset) as e:
        logger.error("cannot read history: %s", e)
    except (GitCommandError, DetachedHead) as e:
        logger.error("%s", e)
    except KeyError as e:
        logger.error("no such branch or ref: %s", e.args[0])
    return 1


def _main() -> None:
    signal.signal(signal.SIGINT, signal_int)
    sys.exit(main())


if __name__ == "__main__":
    _main()
