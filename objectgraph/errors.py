# errors.py -- errors for objectgraph
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

"""objectgraph-related exception classes."""

__all__ = [
    "DiffCollaboratorUnavailable",
    "FileFormatException",
    "NotGitRepository",
    "ObjectFormatException",
    "StoreNotFound",
]


class NotGitRepository(Exception):
    """Indicates that no Git repository was found."""

    def __init__(self, *args: object, **kwargs: object) -> None:
        """Initialize a NotGitRepository exception.

        Args:
            *args: Error message and additional positional arguments.
            **kwargs: Additional keyword arguments.
        """
        Exception.__init__(self, *args, **kwargs)


class StoreNotFound(Exception):
    """The object store directory of a repository does not exist."""

    def __init__(self, path: str) -> None:
        """Initialize a StoreNotFound exception.

        Args:
            path: Path where the object store was expected.
        """
        self.path = path
        super().__init__(f"No object store found at {path}")


class FileFormatException(Exception):
    """Base class for exceptions relating to reading git file formats."""


class ObjectFormatException(FileFormatException):
    """Indicates an error parsing an object."""


class DiffCollaboratorUnavailable(Exception):
    """The history traversal that provides per-commit changes failed."""

    def __init__(self, reason: str) -> None:
        """Initialize a DiffCollaboratorUnavailable exception.

        Args:
            reason: Human readable description of the failure.
        """
        self.reason = reason
        super().__init__(reason)
