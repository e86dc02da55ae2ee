# object_store.py -- Scanning of the loose object store
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


"""Scanning of the loose object store.

Only loose objects are read; objects stored in pack files are invisible to
this module.
"""

__all__ = [
    "DEFAULT_MAX_WORKERS",
    "LooseObjectStore",
    "ScanResult",
    "hex_to_filename",
]

import os
import zlib
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from typing import NamedTuple, Optional

from . import log_utils
from .errors import ObjectFormatException, StoreNotFound
from .objects import MAX_BLOB_DISPLAY_SIZE, LooseObject, decode_object, valid_hexsha

logger = log_utils.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8

_HEX_DIGITS = frozenset("0123456789abcdef")


def hex_to_filename(path: str, hex: str) -> str:
    """Takes a hex sha and returns its filename relative to the given path."""
    return os.path.join(path, hex[:2], hex[2:])


class ScanResult(NamedTuple):
    """Outcome of loading a single loose object.

    Exactly one of ``object`` and ``error`` is set.
    """

    sha: str
    object: Optional[LooseObject] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, obj: LooseObject) -> "ScanResult":
        return cls(obj.sha, obj, None)

    @classmethod
    def failure(cls, sha: str, reason: str) -> "ScanResult":
        return cls(sha, None, reason)

    @property
    def ok(self) -> bool:
        return self.object is not None


class LooseObjectStore:
    """Read-only view on the loose objects of a git object directory."""

    def __init__(
        self, path: str, max_blob_display_size: int = MAX_BLOB_DISPLAY_SIZE
    ) -> None:
        """Open an object store.

        Args:
          path: Path to the objects directory (usually ``.git/objects``)
          max_blob_display_size: Blobs at least this large are not decoded
        """
        self.path = path
        self.max_blob_display_size = max_blob_display_size

    def __repr__(self) -> str:
        return f"<{type(self).__name__}({self.path!r})>"

    def _check_exists(self) -> None:
        if not os.path.isdir(self.path):
            raise StoreNotFound(self.path)

    def iter_loose_objects(self) -> Iterator[str]:
        """Iterate over the hex shas of all loose objects, in sorted order.

        Only two character hex directories are considered, which excludes
        ``info`` and ``pack``.

        Raises:
          StoreNotFound: if the object directory does not exist
        """
        self._check_exists()
        for base in sorted(os.listdir(self.path)):
            if len(base) != 2 or not _HEX_DIGITS.issuperset(base):
                continue
            shard = os.path.join(self.path, base)
            if not os.path.isdir(shard):
                continue
            try:
                names = sorted(os.listdir(shard))
            except OSError as e:
                logger.warning("Unable to list %s: %s", shard, e)
                continue
            for rest in names:
                sha = base + rest
                if not valid_hexsha(sha):
                    continue
                yield sha

    def count_loose_objects(self) -> int:
        """Count the number of loose objects in the object store."""
        return sum(1 for _ in self.iter_loose_objects())

    def loose_object_path(self, sha: str) -> str:
        return hex_to_filename(self.path, sha)

    def read_loose_object(self, sha: str) -> bytes:
        """Read and decompress a loose object.

        Args:
          sha: Hex sha of the object
        Returns: The decompressed contents, header included
        Raises:
          OSError: if the file can not be read
          zlib.error: if the file is not valid zlib data
        """
        with open(self.loose_object_path(sha), "rb") as f:
            return zlib.decompress(f.read())

    def get_object(self, sha: str) -> LooseObject:
        """Read and decode a single loose object.

        Raises:
          OSError: if the file can not be read
          zlib.error: if the file is not valid zlib data
          ObjectFormatException: if the header is malformed
        """
        return decode_object(
            sha, self.read_loose_object(sha), self.max_blob_display_size
        )

    def _load(self, sha: str) -> ScanResult:
        try:
            obj = self.get_object(sha)
        except (OSError, zlib.error, ObjectFormatException) as e:
            logger.warning("Failed to parse object %s: %s", sha, e)
            return ScanResult.failure(sha, str(e))
        return ScanResult.success(obj)

    def scan(self, max_workers: Optional[int] = None) -> list[ScanResult]:
        """Load every loose object.

        Objects are loaded on a bounded thread pool. A file that fails to
        load produces a failed ScanResult rather than aborting the scan.

        Args:
          max_workers: Size of the worker pool
        Returns: List of ScanResult, ordered by sha
        Raises:
          StoreNotFound: if the object directory does not exist
        """
        shas = list(self.iter_loose_objects())
        if not shas:
            return []
        with ThreadPoolExecutor(
            max_workers=max_workers or DEFAULT_MAX_WORKERS
        ) as executor:
            return list(executor.map(self._load, shas))
