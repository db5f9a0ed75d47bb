# log_utils.py -- Logging utilities for plain
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

"""Logging utilities for plain.

plain is usable as a library, so the ``plain`` logger carries a no-op
handler until an application asks for output. Modules get their loggers
through :func:`getLogger`; the command-line entry point calls
:func:`default_logging_config`.

Tracing is switched on with the ``PLAIN_TRACE`` environment variable,
falling back to ``GIT_TRACE`` when it is unset.
"""

import logging
import os
import sys

getLogger = logging.getLogger

TRACE_VARIABLES = ("PLAIN_TRACE", "GIT_TRACE")
TRACE_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"


class _NullHandler(logging.Handler):
    """No-op logging handler to avoid unexpected logging warnings."""

    def emit(self, record: logging.LogRecord) -> None:
        pass


_NULL_HANDLER = _NullHandler()
_PLAIN_LOGGER = getLogger("plain")
_PLAIN_LOGGER.addHandler(_NULL_HANDLER)


def _trace_value() -> str:
    for name in TRACE_VARIABLES:
        value = os.environ.get(name)
        if value is not None:
            return value
    return ""


def _get_trace_target() -> str | int | None:
    """Get the trace target from the environment.

    Returns:
        - None if tracing is disabled
        - 2 for stderr output (values "1", "2", "true")
        - str for an absolute file or directory path
    """
    value = _trace_value()
    if not value or value.lower() in ("0", "false"):
        return None
    if value.lower() in ("1", "2", "true"):
        return 2
    if os.path.isabs(value):
        return value
    return None


def _configure_logging_from_trace() -> bool:
    """Configure logging from the trace environment variables.

    Returns True if tracing was configured, False otherwise.
    """
    target = _get_trace_target()
    if target is None:
        return False

    if target == 2:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format=TRACE_FORMAT)
        return True

    assert isinstance(target, str)
    if os.path.isdir(target):
        filename = os.path.join(target, f"trace.{os.getpid()}")
    else:
        filename = target
    try:
        logging.basicConfig(
            level=logging.DEBUG, filename=filename, filemode="a", format=TRACE_FORMAT
        )
    except OSError as e:
        sys.stderr.write(f"Warning: Failed to open trace file {target}: {e}\n")
        return False
    return True


def default_logging_config() -> None:
    """Set up logging for command-line use.

    Trace output wins when configured; otherwise INFO messages go to stderr
    without decoration.
    """
    remove_null_handler()
    if not _configure_logging_from_trace():
        logging.basicConfig(level=logging.INFO, stream=sys.stderr, format="%(message)s")


def remove_null_handler() -> None:
    """Remove the null handler from the plain logger."""
    _PLAIN_LOGGER.removeHandler(_NULL_HANDLER)
