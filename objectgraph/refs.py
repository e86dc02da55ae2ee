# refs.py -- Reading of lightweight tags and HEAD
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


"""Reading of lightweight tags and HEAD."""

__all__ = [
    "HEADREF",
    "LOCAL_BRANCH_PREFIX",
    "LOCAL_TAG_PREFIX",
    "SYMREF",
    "TagRef",
    "parse_symref_value",
    "read_head",
    "read_tags",
]

import os
from typing import NamedTuple, Optional

from . import log_utils
from .errors import NotGitRepository
from .objects import valid_hexsha

logger = log_utils.getLogger(__name__)

HEADREF = "HEAD"
SYMREF = "ref: "
LOCAL_BRANCH_PREFIX = "refs/heads/"
LOCAL_TAG_PREFIX = "refs/tags/"


class TagRef(NamedTuple):
    """A lightweight tag: a ref file whose content is the target sha."""

    name: str
    sha: str


def parse_symref_value(contents: str) -> str:
    """Parse a symref value.

    Args:
      contents: Contents to parse
    Returns: Destination
    Raises:
      ValueError: if the contents are not a symref
    """
    if contents.startswith(SYMREF):
        return contents[len(SYMREF) :].rstrip("\r\n")
    raise ValueError(contents)


def read_tags(path: str) -> tuple[list[TagRef], list[tuple[str, str]]]:
    """Read the lightweight tags stored below a refs/tags directory.

    Tags in subdirectories are named by their path relative to ``path``,
    using forward slashes. A missing directory means there are no tags.

    Args:
      path: Path to the refs/tags directory
    Returns: Tuple with the tags sorted by name and a list of
        (tag name, reason) tuples for tag files that could not be used
    """
    tags: list[TagRef] = []
    failures: list[tuple[str, str]] = []
    if not os.path.isdir(path):
        return tags, failures
    for dirpath, dirnames, filenames in os.walk(path):
        dirnames.sort()
        for filename in sorted(filenames):
            filepath = os.path.join(dirpath, filename)
            name = os.path.relpath(filepath, path).replace(os.sep, "/")
            try:
                with open(filepath, "rb") as f:
                    sha = f.read().decode("utf-8").strip()
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Failed to read tag file %s: %s", name, e)
                failures.append((name, str(e)))
                continue
            if not valid_hexsha(sha):
                logger.warning("Tag %s does not contain a sha: %r", name, sha)
                failures.append((name, f"invalid sha {sha!r}"))
                continue
            tags.append(TagRef(name, sha))
    tags.sort()
    return tags, failures


def read_head(controldir: str) -> Optional[str]:
    """Determine the branch HEAD points at.

    Args:
      controldir: Path to the repository control directory
    Returns: The branch name, or None if HEAD is detached or points
        outside refs/heads
    Raises:
      NotGitRepository: if there is no HEAD file
    """
    head_path = os.path.join(controldir, HEADREF)
    try:
        with open(head_path, "rb") as f:
            contents = f.read().decode("utf-8", "replace")
    except FileNotFoundError as e:
        raise NotGitRepository(f"No HEAD found in {controldir}") from e
    try:
        target = parse_symref_value(contents).strip()
    except ValueError:
        return None
    if target.startswith(LOCAL_BRANCH_PREFIX):
        return target[len(LOCAL_BRANCH_PREFIX) :] or None
    return None
