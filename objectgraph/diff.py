# diff.py -- Per-commit file changes
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


"""Per-commit file changes.

The changes introduced by each commit are not derived from the object
store. They come from a :class:`DiffProvider`, which returns a table
mapping commit shas to the raw diff lines git prints for
``git log --raw``::

    :100644 100644 5716ca5... a012c34... M\tsrc/index.ts
    :100644 100644 5716ca5... a012c34... R100\told/path.ts\tnew/path.ts

This module turns those lines into :class:`FileChangeRecord` values.
"""

__all__ = [
    "DEFAULT_DIFF_MAX_OUTPUT",
    "DEFAULT_DIFF_TIMEOUT",
    "DiffProvider",
    "FileChangeRecord",
    "GitLogDiffProvider",
    "NullDiffProvider",
    "StaticDiffProvider",
    "correlate",
    "parse_log_output",
    "parse_raw_diff_line",
]

import subprocess
import sys
import tempfile
import threading
from collections.abc import Mapping, Sequence
from typing import NamedTuple, Optional

if sys.version_info >= (3, 12):
    from typing import override
else:
    from typing_extensions import override

from . import log_utils
from .errors import DiffCollaboratorUnavailable

logger = log_utils.getLogger(__name__)

DEFAULT_DIFF_TIMEOUT = 60
DEFAULT_DIFF_MAX_OUTPUT = 10 * 1024 * 1024

_READ_CHUNK_SIZE = 64 * 1024

COMMIT_PREFIX = "COMMIT:"

# Statuses that carry both the old and the new path.
RENAME_STATUSES = ("R", "C")

RawChangeTable = Mapping[str, Sequence[str]]


class FileChangeRecord(NamedTuple):
    """A single file changed by a commit.

    Attributes:
      status: Single letter status (A, M, D, R, C, T, ...)
      path: Path after the change
      sha: Resulting blob sha; all zeros for deletions
    """

    status: str
    path: str
    sha: str


def parse_raw_diff_line(line: str) -> Optional[FileChangeRecord]:
    """Parse a single raw diff line.

    Args:
      line: A line as printed by ``git log --raw --no-abbrev``
    Returns: A FileChangeRecord, or None if the line is not a raw diff line
    """
    if not line.startswith(":"):
        return None
    meta, *paths = line.split("\t")
    fields = meta.split()
    if len(fields) < 5:
        return None
    sha = fields[3]
    status = fields[4][:1]
    if status in RENAME_STATUSES and len(paths) >= 2:
        path = paths[1]
    else:
        # Paths may contain tabs themselves.
        path = "\t".join(paths)
    if not path:
        return None
    return FileChangeRecord(status, path, sha)


def parse_log_output(text: str) -> dict[str, list[str]]:
    """Split ``git log`` output into raw diff lines per commit.

    Every commit is introduced by a ``COMMIT:<sha>`` line. Commits without
    changes still get an (empty) entry.

    Args:
      text: Output of git log with ``--pretty=format:COMMIT:%H``
    Returns: Dictionary mapping commit shas to their raw diff lines
    """
    table: dict[str, list[str]] = {}
    current: Optional[list[str]] = None
    for line in text.split("\n"):
        line = line.rstrip("\r")
        if line.startswith(COMMIT_PREFIX):
            current = table[line[len(COMMIT_PREFIX) :].strip()] = []
        elif current is not None and line.strip():
            current.append(line)
    return table


def correlate(table: RawChangeTable) -> dict[str, tuple[FileChangeRecord, ...]]:
    """Turn a table of raw diff lines into change records.

    Lines that can not be parsed are skipped.

    Args:
      table: Mapping from commit sha to raw diff lines
    Returns: Dictionary mapping commit shas to their change records
    """
    result = {}
    for sha, lines in table.items():
        records = []
        for line in lines:
            record = parse_raw_diff_line(line)
            if record is None:
                logger.debug("Skipping diff line for %s: %r", sha, line)
                continue
            records.append(record)
        result[sha] = tuple(records)
    return result


class DiffProvider:
    """Source of raw per-commit change lines for a repository."""

    def get_changes(self, repo_path: str) -> RawChangeTable:
        """Return raw diff lines for every known commit.

        Args:
          repo_path: Path to the repository
        Returns: Mapping from commit sha to raw diff lines
        Raises:
          DiffCollaboratorUnavailable: if the changes can not be determined
        """
        raise NotImplementedError(self.get_changes)


class NullDiffProvider(DiffProvider):
    """Diff provider that knows no changes."""

    @override
    def get_changes(self, repo_path: str) -> RawChangeTable:
        return {}


class StaticDiffProvider(DiffProvider):
    """Diff provider backed by a fixed table."""

    def __init__(self, table: RawChangeTable) -> None:
        self._table = table

    @override
    def get_changes(self, repo_path: str) -> RawChangeTable:
        return self._table


class GitLogDiffProvider(DiffProvider):
    """Diff provider that runs ``git log`` across all branches.

    Each commit is compared against its first parent. Output is read
    incrementally; git is killed as soon as it exceeds ``max_output`` bytes
    or runs longer than ``timeout`` seconds.
    """

    def __init__(
        self,
        git_path: str = "git",
        timeout: float = DEFAULT_DIFF_TIMEOUT,
        max_output: int = DEFAULT_DIFF_MAX_OUTPUT,
    ) -> None:
        """Create a GitLogDiffProvider.

        Args:
          git_path: Path to the git executable
          timeout: Seconds to wait for git to finish
          max_output: Largest accepted output, in bytes
        """
        self.git_path = git_path
        self.timeout = timeout
        self.max_output = max_output

    def _args(self) -> list[str]:
        return [
            self.git_path,
            "log",
            "--all",
            "--raw",
            "--no-abbrev",
            f"--pretty=format:{COMMIT_PREFIX}%H",
        ]

    def _read_output(self, proc: "subprocess.Popen[bytes]") -> bytes:
        """Read stdout until EOF, killing git once it exceeds max_output."""
        assert proc.stdout is not None
        chunks = []
        total = 0
        while True:
            chunk = proc.stdout.read(_READ_CHUNK_SIZE)
            if not chunk:
                return b"".join(chunks)
            total += len(chunk)
            if total > self.max_output:
                proc.kill()
                raise DiffCollaboratorUnavailable(
                    f"git log output exceeds {self.max_output} bytes"
                )
            chunks.append(chunk)

    @override
    def get_changes(self, repo_path: str) -> RawChangeTable:
        with tempfile.TemporaryFile() as stderr:
            try:
                proc = subprocess.Popen(
                    self._args(),
                    cwd=repo_path,
                    stdout=subprocess.PIPE,
                    stderr=stderr,
                )
            except OSError as e:
                raise DiffCollaboratorUnavailable(
                    f"unable to run {self.git_path}: {e}"
                ) from e
            timed_out = threading.Event()

            def expire() -> None:
                timed_out.set()
                proc.kill()

            timer = threading.Timer(self.timeout, expire)
            timer.start()
            try:
                output = self._read_output(proc)
                returncode = proc.wait()
            finally:
                timer.cancel()
                assert proc.stdout is not None
                proc.stdout.close()
                if proc.poll() is None:
                    proc.kill()
                proc.wait()
            if timed_out.is_set():
                raise DiffCollaboratorUnavailable(
                    f"git log timed out after {self.timeout} seconds"
                )
            if returncode != 0:
                stderr.seek(0)
                message = stderr.read().decode("utf-8", "replace").strip()
                raise DiffCollaboratorUnavailable(
                    f"git log exited with status {returncode}: {message}"
                )
        return parse_log_output(output.decode("utf-8", "replace"))
