# utils.py -- Test utilities for objectgraph
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


"""Utility functions common to objectgraph tests."""

import hashlib
import os
import shutil
import tempfile
import zlib
from collections.abc import Iterable, Sequence
from typing import Optional

from objectgraph.objects import TreeEntry, object_header, serialize_tree

# Plain files are very frequently used in tests, so let the mode be very short.
F = "100644"
D = "40000"


def object_sha(type_name: str, body: bytes) -> str:
    """Compute the sha git would assign to an object."""
    return hashlib.sha1(object_header(type_name, len(body)) + body).hexdigest()


def write_loose_object(objects_path: str, type_name: str, body: bytes) -> str:
    """Write a loose object and return its sha."""
    sha = object_sha(type_name, body)
    write_raw_loose_object(
        objects_path, sha, zlib.compress(object_header(type_name, len(body)) + body)
    )
    return sha


def write_raw_loose_object(objects_path: str, sha: str, data: bytes) -> None:
    """Write arbitrary bytes to the location of a loose object."""
    shard = os.path.join(objects_path, sha[:2])
    os.makedirs(shard, exist_ok=True)
    with open(os.path.join(shard, sha[2:]), "wb") as f:
        f.write(data)


def tree_body(entries: Iterable[tuple[str, str, str]]) -> bytes:
    """Build a tree body from (mode, name, sha) tuples."""
    return serialize_tree(TreeEntry(mode, name, sha) for mode, name, sha in entries)


def commit_body(
    tree: str,
    parents: Sequence[str] = (),
    message: str = "Initial commit\n",
    author: str = "Test Author <test@example.com> 1700000000 +0000",
) -> bytes:
    """Build a commit body."""
    lines = [f"tree {tree}"]
    lines.extend(f"parent {parent}" for parent in parents)
    lines.append(f"author {author}")
    lines.append(f"committer {author}")
    return ("\n".join(lines) + "\n\n" + message).encode("utf-8")


class RepoFixture:
    """A repository layout on disk, built object by object."""

    def __init__(self, name: str = "myrepo", bare: bool = False) -> None:
        self.tempdir = tempfile.mkdtemp()
        self.path = os.path.join(self.tempdir, name)
        os.mkdir(self.path)
        if bare:
            self.controldir = self.path
        else:
            self.controldir = os.path.join(self.path, ".git")
            os.mkdir(self.controldir)
        self.objects_path = os.path.join(self.controldir, "objects")
        self.tags_path = os.path.join(self.controldir, "refs", "tags")
        os.makedirs(os.path.join(self.objects_path, "info"))
        os.makedirs(os.path.join(self.objects_path, "pack"))
        os.makedirs(os.path.join(self.controldir, "refs", "heads"))
        os.makedirs(self.tags_path)
        self.set_head("ref: refs/heads/master\n")

    def cleanup(self) -> None:
        shutil.rmtree(self.tempdir)

    def set_head(self, contents: str) -> None:
        with open(os.path.join(self.controldir, "HEAD"), "w") as f:
            f.write(contents)

    def add_blob(self, content: bytes) -> str:
        return write_loose_object(self.objects_path, "blob", content)

    def add_tree(self, entries: Iterable[tuple[str, str, str]]) -> str:
        return write_loose_object(self.objects_path, "tree", tree_body(entries))

    def add_commit(
        self, tree: str, parents: Sequence[str] = (), message: str = "Message\n"
    ) -> str:
        return write_loose_object(
            self.objects_path, "commit", commit_body(tree, parents, message)
        )

    def add_raw(self, sha: str, data: bytes) -> None:
        write_raw_loose_object(self.objects_path, sha, data)

    def add_tag(self, name: str, sha: str, contents: Optional[str] = None) -> None:
        path = os.path.join(self.tags_path, *name.split("/"))
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w") as f:
            f.write(contents if contents is not None else sha + "\n")
