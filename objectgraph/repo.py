# repo.py -- Scanning a repository into a reference graph
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


"""Scanning a repository into a reference graph.

A scan reads the loose objects, the lightweight tags and the per-commit
changes of a repository and assembles them into an :class:`ObjectGraph`.
The three sources are independent of each other and are read
concurrently; the graph is only built once all of them are available.

Every scan starts from scratch. Apart from a missing object store, problems
with individual objects, tags or the change history are reported as
diagnostics next to the (possibly incomplete) graph.
"""

__all__ = [
    "CONTROLDIR",
    "OBJECTDIR",
    "REFSDIR",
    "Diagnostic",
    "Repo",
    "ScanOptions",
    "ScanReport",
    "read_gitfile",
    "scan",
]

import os
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import BinaryIO, NamedTuple, Optional, Union

from . import log_utils
from .diff import DiffProvider, GitLogDiffProvider, RawChangeTable, correlate
from .errors import DiffCollaboratorUnavailable, NotGitRepository, StoreNotFound
from .graph import DEFAULT_ROOT_NAME, ObjectGraph, build_graph
from .object_store import DEFAULT_MAX_WORKERS, LooseObjectStore
from .objects import MAX_BLOB_DISPLAY_SIZE
from .refs import read_head, read_tags

logger = log_utils.getLogger(__name__)

CONTROLDIR = ".git"
OBJECTDIR = "objects"
REFSDIR = "refs"
REFSDIR_TAGS = "tags"
COMMONDIR = "commondir"

WORKERS_ENVIRONMENT_VARIABLE = "OBJECTGRAPH_WORKERS"


def read_gitfile(f: BinaryIO) -> str:
    """Read a ``.git`` file.

    The first line of the file should start with "gitdir: "

    Args:
      f: File-like object to read from
    Returns: A path
    """
    cs = f.read()
    if not cs.startswith(b"gitdir: "):
        raise ValueError("Expected file to start with 'gitdir: '")
    return cs[len(b"gitdir: ") :].rstrip(b"\r\n").decode("utf-8")


class Diagnostic(NamedTuple):
    """A problem that was worked around during a scan.

    Attributes:
      source: What was being read: "object", "tag", "diff" or "head"
      key: The sha, tag name or path concerned
      message: Description of the problem
    """

    source: str
    key: str
    message: str


@dataclass
class ScanOptions:
    """Tunables for a scan.

    Attributes:
      max_workers: Number of threads decoding loose objects
      max_blob_display_size: Blobs at least this large are not decoded
    """

    max_workers: int = DEFAULT_MAX_WORKERS
    max_blob_display_size: int = MAX_BLOB_DISPLAY_SIZE

    @classmethod
    def from_environ(cls, env: Optional[Mapping[str, str]] = None) -> "ScanOptions":
        """Create options, honouring the OBJECTGRAPH_WORKERS variable.

        Args:
          env: Environment variables dict (defaults to os.environ)
        """
        if env is None:
            env = os.environ
        options = cls()
        value = env.get(WORKERS_ENVIRONMENT_VARIABLE, "").strip()
        if value:
            try:
                workers = int(value)
            except ValueError:
                workers = 0
            if workers > 0:
                options.max_workers = workers
            else:
                logger.warning(
                    "Ignoring invalid %s value %r", WORKERS_ENVIRONMENT_VARIABLE, value
                )
        return options


@dataclass(frozen=True)
class ScanReport:
    """Result of a scan.

    Attributes:
      graph: The reference graph
      diagnostics: Problems encountered while scanning
      head: Branch HEAD points at, or None if detached or unknown
    """

    graph: ObjectGraph
    diagnostics: tuple[Diagnostic, ...] = ()
    head: Optional[str] = None


class Repo:
    """A git repository on local disk, opened for scanning.

    Attributes:
      path: Path to the working copy, or the control directory if bare
      bare: Whether this is a bare repository
    """

    def __init__(self, root: Union[str, "os.PathLike[str]"]) -> None:
        """Open a repository.

        The object store itself is not checked until it is scanned.

        Args:
          root: Path to the working copy or to a bare repository
        Raises:
          NotGitRepository: if a ``.git`` file does not point at a directory
        """
        root = os.fspath(root)
        hidden_path = os.path.join(root, CONTROLDIR)
        if os.path.isfile(hidden_path):
            try:
                with open(hidden_path, "rb") as f:
                    gitdir = read_gitfile(f)
            except ValueError as e:
                raise NotGitRepository(f"Invalid .git file in {root}: {e}") from e
            self.bare = False
            self._controldir = os.path.join(root, gitdir)
        elif os.path.isdir(hidden_path) or not (
            os.path.isdir(os.path.join(root, OBJECTDIR))
            and os.path.isdir(os.path.join(root, REFSDIR))
        ):
            self.bare = False
            self._controldir = hidden_path
        else:
            self.bare = True
            self._controldir = root
        self._commondir = self._controldir
        commondir_path = os.path.join(self._controldir, COMMONDIR)
        if os.path.isfile(commondir_path):
            with open(commondir_path, "rb") as f:
                self._commondir = os.path.join(
                    self._controldir, os.fsdecode(f.read().rstrip(b"\r\n"))
                )
        self.path = root

    def __repr__(self) -> str:
        return f"<{type(self).__name__}({self.path!r})>"

    def controldir(self) -> str:
        """Return the path of the control directory."""
        return self._controldir

    def commondir(self) -> str:
        """Return the path of the directory shared between worktrees."""
        return self._commondir

    @property
    def name(self) -> str:
        """Folder name of the repository, used to name root trees."""
        return (
            os.path.basename(os.path.normpath(os.path.abspath(self.path)))
            or DEFAULT_ROOT_NAME
        )

    @property
    def objects_path(self) -> str:
        return os.path.join(self.commondir(), OBJECTDIR)

    @property
    def tags_path(self) -> str:
        return os.path.join(self.commondir(), REFSDIR, REFSDIR_TAGS)

    def object_store(
        self, max_blob_display_size: int = MAX_BLOB_DISPLAY_SIZE
    ) -> LooseObjectStore:
        return LooseObjectStore(self.objects_path, max_blob_display_size)

    def head(self) -> Optional[str]:
        """Return the branch HEAD points at, or None if it is detached.

        Raises:
          NotGitRepository: if there is no HEAD file
        """
        return read_head(self.controldir())

    def _collect_changes(
        self, diff_provider: DiffProvider
    ) -> tuple[RawChangeTable, Optional[str]]:
        try:
            return diff_provider.get_changes(self.path), None
        except DiffCollaboratorUnavailable as e:
            logger.warning("Failed to load commit diffs: %s", e)
            return {}, e.reason
        except Exception as e:
            logger.warning(
                "Diff provider %r failed: %s", diff_provider, e, exc_info=True
            )
            return {}, f"{type(e).__name__}: {e}"

    def scan(
        self,
        diff_provider: Optional[DiffProvider] = None,
        options: Optional[ScanOptions] = None,
    ) -> ScanReport:
        """Scan the repository into a reference graph.

        Args:
          diff_provider: Source of per-commit changes; defaults to running
            ``git log``
          options: Scan tunables; defaults to ScanOptions.from_environ()
        Returns: A ScanReport
        Raises:
          StoreNotFound: if the repository has no object store
        """
        if diff_provider is None:
            diff_provider = GitLogDiffProvider()
        if options is None:
            options = ScanOptions.from_environ()
        store = self.object_store(options.max_blob_display_size)
        if not os.path.isdir(store.path):
            raise StoreNotFound(store.path)

        with ThreadPoolExecutor(max_workers=3) as executor:
            objects_future = executor.submit(store.scan, options.max_workers)
            tags_future = executor.submit(read_tags, self.tags_path)
            changes_future = executor.submit(self._collect_changes, diff_provider)
            results = objects_future.result()
            tags, tag_failures = tags_future.result()
            raw_changes, diff_failure = changes_future.result()

        diagnostics = [
            Diagnostic("object", result.sha, result.error)
            for result in results
            if result.error is not None
        ]
        diagnostics.extend(
            Diagnostic("tag", name, reason) for name, reason in tag_failures
        )
        if diff_failure is not None:
            diagnostics.append(Diagnostic("diff", self.path, diff_failure))

        try:
            head = self.head()
        except NotGitRepository as e:
            diagnostics.append(Diagnostic("head", self.controldir(), str(e)))
            head = None

        graph = build_graph(
            (result.object for result in results if result.object is not None),
            tags,
            correlate(raw_changes),
            root_name=self.name,
        )
        logger.info(
            "Scanned %s: %d nodes, %d diagnostics",
            self.path,
            len(graph),
            len(diagnostics),
        )
        return ScanReport(graph, tuple(diagnostics), head)


def scan(
    path: Union[str, "os.PathLike[str]"],
    diff_provider: Optional[DiffProvider] = None,
    options: Optional[ScanOptions] = None,
) -> ScanReport:
    """Scan the repository at ``path``; see :meth:`Repo.scan`."""
    return Repo(path).scan(diff_provider=diff_provider, options=options)
