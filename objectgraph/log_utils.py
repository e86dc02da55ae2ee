# log_utils.py -- Logging utilities for objectgraph
# Copyright (C) 2025 The objectgraph developers
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# objectgraph is dual-licensed under the Apache License, Version 2.0 and the GNU
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


"""Logging for objectgraph.

Library modules log through ``getLogger(__name__)``, below the
``objectgraph`` logger. That logger is silent until an application
configures logging, so a scan of a damaged repository does not print a
warning per corrupt object into somebody else's program.

The command line front end calls :func:`configure_logging`, which honours
the ``GIT_TRACE`` variable git users already know: "1", "2" or "true"
trace to stderr and an absolute path appends to that file.
"""

__all__ = [
    "TRACE_ENVIRONMENT_VARIABLE",
    "TRACE_FORMAT",
    "configure_logging",
    "getLogger",
    "remove_null_handler",
    "trace_handler",
]

import logging
import os
import sys
from collections.abc import Mapping
from typing import Optional

getLogger = logging.getLogger

TRACE_ENVIRONMENT_VARIABLE = "GIT_TRACE"
TRACE_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"

_STDERR_VALUES = ("1", "2", "true")

_PACKAGE_LOGGER = getLogger("objectgraph")
_NULL_HANDLER = logging.NullHandler()
_PACKAGE_LOGGER.addHandler(_NULL_HANDLER)


def remove_null_handler() -> None:
    """Stop silencing the objectgraph logger."""
    _PACKAGE_LOGGER.removeHandler(_NULL_HANDLER)


def trace_handler(
    env: Optional[Mapping[str, str]] = None,
) -> Optional[logging.Handler]:
    """Create the handler requested by GIT_TRACE.

    Args:
      env: Environment variables dict (defaults to os.environ)
    Returns: A handler writing to stderr or appending to a file, or None if
        tracing is off or the value is not understood
    Raises:
      OSError: if the trace file can not be opened
    """
    if env is None:
        env = os.environ
    value = env.get(TRACE_ENVIRONMENT_VARIABLE, "").strip()
    if value.lower() in _STDERR_VALUES:
        return logging.StreamHandler(sys.stderr)
    if os.path.isabs(value):
        return logging.FileHandler(value, mode="a")
    return None


def configure_logging(env: Optional[Mapping[str, str]] = None) -> bool:
    """Set up logging for command line use.

    When tracing, every record down to DEBUG goes to the trace target with a
    timestamp. Otherwise INFO records, which carry the command output, are
    written to stderr as bare messages.

    Args:
      env: Environment variables dict (defaults to os.environ)
    Returns: Whether tracing was enabled
    """
    remove_null_handler()
    try:
        handler = trace_handler(env)
    except OSError as e:
        sys.stderr.write(f"Warning: unable to open trace file: {e}\n")
        handler = None
    if handler is None:
        logging.basicConfig(level=logging.INFO, format="%(message)s")
        return False
    handler.setFormatter(logging.Formatter(TRACE_FORMAT))
    logging.basicConfig(level=logging.DEBUG, handlers=[handler])
    return True
