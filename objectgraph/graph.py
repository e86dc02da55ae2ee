# graph.py -- Reference graph over loose objects
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


"""Reference graph over loose objects.

Building the graph happens in two passes. The first pass, done while
decoding, gives every object its forward references: a tree refers to its
entries, a commit to its tree and parents, a tag to its target. The second
pass runs over the complete table and derives the inverse edges
(``referenced_by``) and the display names of blobs and trees.

A reference to a sha that is not in the table is legal; it usually points
at an object in a pack file. It simply produces no backlink.
"""

__all__ = [
    "GraphNode",
    "ObjectGraph",
    "build_graph",
    "compute_backlinks",
    "resolve_names",
    "tag_object",
]

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Optional

from . import log_utils
from .diff import FileChangeRecord
from .objects import Blob, Commit, LooseObject, Payload, Tag, Tree
from .refs import TagRef

logger = log_utils.getLogger(__name__)

DEFAULT_ROOT_NAME = "repository"

# Only these objects can be named by a tree entry.
_NAMEABLE_TYPES = (Blob.type_name, Tree.type_name)


@dataclass(frozen=True)
class GraphNode:
    """A node of the reference graph.

    Attributes:
      sha: Hex sha of the object, or the tag name for tag nodes
      type_name: One of "blob", "tree", "commit" or "tag"
      size: Size declared in the object header (0 for tags)
      payload: Decoded object contents
      references: Forward edges, in payload order
      referenced_by: Shas of the nodes referring to this one
      names: Display names, in order of discovery
      diff: Files changed by a commit; None for other types
    """

    sha: str
    type_name: str
    size: int
    payload: Payload
    references: tuple[str, ...] = ()
    referenced_by: tuple[str, ...] = ()
    names: tuple[str, ...] = ()
    diff: Optional[tuple[FileChangeRecord, ...]] = None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-compatible representation of this node."""
        ret: dict[str, Any] = {
            "hash": self.sha,
            "type": self.type_name,
            "size": self.size,
            "names": list(self.names),
            "references": list(self.references),
            "referencedBy": list(self.referenced_by),
        }
        payload = self.payload
        if isinstance(payload, Blob):
            ret["content"] = payload.content
        elif isinstance(payload, Tree):
            ret["entries"] = [
                {
                    "mode": entry.mode,
                    "name": entry.name,
                    "hash": entry.sha,
                    "type": entry.type_name,
                }
                for entry in payload.entries
            ]
        elif isinstance(payload, Commit):
            ret["tree"] = payload.tree
            ret["parent"] = list(payload.parents)
            ret["author"] = payload.author
            ret["committer"] = payload.committer
            ret["message"] = payload.message
        elif isinstance(payload, Tag):
            ret["objectHash"] = payload.object_hash
        if self.diff is not None:
            ret["diff"] = [
                {"status": c.status, "path": c.path, "hash": c.sha}
                for c in self.diff
            ]
        return ret


def tag_object(tag: TagRef) -> LooseObject:
    """Represent a lightweight tag as a graph object keyed by its name."""
    return LooseObject(tag.name, Tag.type_name, 0, Tag(tag.sha))


def compute_backlinks(objects: Sequence[LooseObject]) -> dict[str, tuple[str, ...]]:
    """Compute the inverse of the forward references.

    Args:
      objects: The complete object table
    Returns: Dictionary mapping shas to the shas referring to them, in
        discovery order. Each referrer is listed once per target.
    """
    known = {obj.sha for obj in objects}
    backlinks: dict[str, list[str]] = {}
    for obj in objects:
        for ref in dict.fromkeys(obj.references()):
            if ref in known:
                backlinks.setdefault(ref, []).append(obj.sha)
    return {sha: tuple(referrers) for sha, referrers in backlinks.items()}


def resolve_names(
    objects: Sequence[LooseObject], root_name: str
) -> dict[str, tuple[str, ...]]:
    """Assign display names to blobs and trees.

    A blob or tree is named after every tree entry that refers to it. A tree
    that no entry names is a root tree and is named ``root_name``.

    Args:
      objects: The complete object table
      root_name: Name for root trees, usually the repository folder name
    Returns: Dictionary mapping shas to names
    """
    types = {obj.sha: obj.type_name for obj in objects}
    names: dict[str, list[str]] = {}
    for obj in objects:
        if not isinstance(obj.payload, Tree):
            continue
        for entry in obj.payload.entries:
            if types.get(entry.sha) not in _NAMEABLE_TYPES:
                continue
            target = names.setdefault(entry.sha, [])
            if entry.name not in target:
                target.append(entry.name)
    for obj in objects:
        if obj.type_name == Tree.type_name and not names.get(obj.sha):
            names[obj.sha] = [root_name]
    return {sha: tuple(n) for sha, n in names.items()}


class ObjectGraph:
    """Ordered, immutable collection of graph nodes indexed by sha."""

    def __init__(self, nodes: Iterable[GraphNode]) -> None:
        self.nodes = tuple(nodes)
        self._index = {node.sha: node for node in self.nodes}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} with {len(self.nodes)} nodes>"

    def __getitem__(self, sha: str) -> GraphNode:
        return self._index[sha]

    def __contains__(self, sha: object) -> bool:
        return sha in self._index

    def __iter__(self) -> Iterator[GraphNode]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def get(self, sha: str) -> Optional[GraphNode]:
        return self._index.get(sha)

    def by_type(self, type_name: str) -> list[GraphNode]:
        """Return the nodes of the given type, in graph order."""
        return [node for node in self.nodes if node.type_name == type_name]

    def to_dict(self) -> list[dict[str, Any]]:
        """Return a JSON-compatible representation of all nodes."""
        return [node.to_dict() for node in self.nodes]


def build_graph(
    objects: Iterable[LooseObject],
    tags: Iterable[TagRef] = (),
    changes: Optional[Mapping[str, Sequence[FileChangeRecord]]] = None,
    root_name: str = DEFAULT_ROOT_NAME,
) -> ObjectGraph:
    """Assemble the reference graph.

    Args:
      objects: Decoded loose objects
      tags: Lightweight tags, appended after the objects
      changes: Change records by commit sha; entries for commits that are
        not among ``objects`` are ignored
      root_name: Name given to root trees
    Returns: An ObjectGraph
    """
    table: list[LooseObject] = []
    seen: set[str] = set()
    for obj in list(objects) + [tag_object(tag) for tag in tags]:
        if obj.sha in seen:
            logger.warning("Ignoring duplicate object %s", obj.sha)
            continue
        seen.add(obj.sha)
        table.append(obj)

    backlinks = compute_backlinks(table)
    names = resolve_names(table, root_name)
    if changes is None:
        changes = {}

    nodes = []
    for obj in table:
        diff = None
        if obj.type_name == Commit.type_name:
            diff = tuple(changes.get(obj.sha, ()))
        nodes.append(
            GraphNode(
                sha=obj.sha,
                type_name=obj.type_name,
                size=obj.size,
                payload=obj.payload,
                references=obj.references(),
                referenced_by=backlinks.get(obj.sha, ()),
                names=names.get(obj.sha, ()),
                diff=diff,
            )
        )
    unmatched = len(set(changes) - seen)
    if unmatched:
        logger.debug("Discarded changes for %d commits without loose objects", unmatched)
    return ObjectGraph(nodes)
