# test_graph.py -- tests for graph.py
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


"""Tests for objectgraph.graph."""

from objectgraph.diff import FileChangeRecord
from objectgraph.graph import (
    GraphNode,
    build_graph,
    compute_backlinks,
    resolve_names,
    tag_object,
)
from objectgraph.objects import Blob, Commit, LooseObject, Tag, Tree, TreeEntry
from objectgraph.refs import TagRef

from . import TestCase

blob_sha = "aa11" + "0" * 36
tree_sha = "bb22" + "0" * 36
commit_sha = "cc33" + "0" * 36
missing_sha = "dd44" + "0" * 36


def blob(sha: str, content: str = "hello") -> LooseObject:
    return LooseObject(sha, "blob", len(content), Blob(content))


def tree(sha: str, *entries: tuple[str, str, str]) -> LooseObject:
    return LooseObject(
        sha, "tree", 0, Tree(tuple(TreeEntry(*entry) for entry in entries))
    )


def commit(sha: str, tree_sha: str, *parents: str) -> LooseObject:
    return LooseObject(sha, "commit", 0, Commit(tree=tree_sha, parents=parents))


class BuildGraphTests(TestCase):
    def test_single_commit(self) -> None:
        graph = build_graph(
            [
                blob(blob_sha),
                tree(tree_sha, ("100644", "f.txt", blob_sha)),
                commit(commit_sha, tree_sha),
            ],
            root_name="myrepo",
        )
        self.assertEqual(3, len(graph))
        self.assertEqual((tree_sha,), graph[blob_sha].referenced_by)
        self.assertEqual(("f.txt",), graph[blob_sha].names)
        self.assertEqual((commit_sha,), graph[tree_sha].referenced_by)
        self.assertEqual(("myrepo",), graph[tree_sha].names)
        self.assertEqual((tree_sha,), graph[commit_sha].references)
        self.assertEqual((), graph[commit_sha].referenced_by)
        self.assertEqual((), graph[commit_sha].names)
        self.assertEqual((), graph[commit_sha].diff)
        self.assertIsNone(graph[blob_sha].diff)

    def test_order_preserved(self) -> None:
        objects = [commit(commit_sha, tree_sha), blob(blob_sha), tree(tree_sha)]
        graph = build_graph(objects, [TagRef("v1", commit_sha)])
        self.assertEqual(
            [commit_sha, blob_sha, tree_sha, "v1"], [node.sha for node in graph]
        )

    def test_dangling_reference(self) -> None:
        graph = build_graph([commit(commit_sha, missing_sha, missing_sha)])
        self.assertEqual((missing_sha, missing_sha), graph[commit_sha].references)
        self.assertNotIn(missing_sha, graph)

    def test_backlink_listed_once_per_referrer(self) -> None:
        graph = build_graph(
            [
                blob(blob_sha),
                tree(
                    tree_sha,
                    ("100644", "a.txt", blob_sha),
                    ("100644", "b.txt", blob_sha),
                ),
            ]
        )
        self.assertEqual((blob_sha, blob_sha), graph[tree_sha].references)
        self.assertEqual((tree_sha,), graph[blob_sha].referenced_by)
        self.assertEqual(("a.txt", "b.txt"), graph[blob_sha].names)

    def test_backlinks_in_discovery_order(self) -> None:
        other_tree = "ee55" + "0" * 36
        graph = build_graph(
            [
                tree(other_tree, ("100644", "x", blob_sha)),
                blob(blob_sha),
                tree(tree_sha, ("100644", "x", blob_sha)),
            ]
        )
        self.assertEqual((other_tree, tree_sha), graph[blob_sha].referenced_by)
        self.assertEqual(("x",), graph[blob_sha].names)

    def test_every_reference_has_backlink(self) -> None:
        parent_sha = "ff66" + "0" * 36
        subtree_sha = "ee55" + "0" * 36
        graph = build_graph(
            [
                blob(blob_sha),
                tree(subtree_sha, ("100644", "f.txt", blob_sha)),
                tree(
                    tree_sha,
                    ("40000", "sub", subtree_sha),
                    ("100644", "g.txt", blob_sha),
                ),
                commit(parent_sha, tree_sha),
                commit(commit_sha, tree_sha, parent_sha),
            ],
            [TagRef("v1", commit_sha)],
        )
        for node in graph:
            for ref in node.references:
                if ref in graph:
                    self.assertEqual(1, graph[ref].referenced_by.count(node.sha))
        self.assertEqual(("sub",), graph[subtree_sha].names)
        self.assertEqual(("repository",), graph[tree_sha].names)

    def test_tag(self) -> None:
        graph = build_graph([commit(commit_sha, tree_sha)], [TagRef("v1.0", commit_sha)])
        node = graph["v1.0"]
        self.assertEqual("tag", node.type_name)
        self.assertEqual(0, node.size)
        self.assertEqual((commit_sha,), node.references)
        self.assertEqual(("v1.0",), graph[commit_sha].referenced_by)
        self.assertIsNone(node.diff)

    def test_changes(self) -> None:
        change = FileChangeRecord("A", "f.txt", blob_sha)
        graph = build_graph(
            [commit(commit_sha, tree_sha), blob(blob_sha)],
            changes={commit_sha: [change], missing_sha: [change], blob_sha: [change]},
        )
        self.assertEqual((change,), graph[commit_sha].diff)
        self.assertIsNone(graph[blob_sha].diff)
        self.assertNotIn(missing_sha, graph)

    def test_duplicate_sha(self) -> None:
        with self.assertLogs("objectgraph.graph", level="WARNING"):
            graph = build_graph([blob(blob_sha, "a"), blob(blob_sha, "b")])
        self.assertEqual(1, len(graph))
        self.assertEqual(Blob("a"), graph[blob_sha].payload)


class ComputeBacklinksTests(TestCase):
    def test_inputs_untouched(self) -> None:
        objects = [blob(blob_sha), tree(tree_sha, ("100644", "f", blob_sha))]
        self.assertEqual({blob_sha: (tree_sha,)}, compute_backlinks(objects))
        self.assertEqual((), objects[0].references())


class ResolveNamesTests(TestCase):
    def test_root_trees(self) -> None:
        subtree_sha = "ee55" + "0" * 36
        other_root = "ff66" + "0" * 36
        names = resolve_names(
            [
                tree(tree_sha, ("40000", "sub", subtree_sha)),
                tree(subtree_sha),
                tree(other_root, ("40000", "sub", subtree_sha)),
            ],
            "myrepo",
        )
        self.assertEqual(
            {tree_sha: ("myrepo",), other_root: ("myrepo",), subtree_sha: ("sub",)},
            names,
        )

    def test_orphan_blob_nameless(self) -> None:
        self.assertEqual({}, resolve_names([blob(blob_sha)], "myrepo"))

    def test_gitlink_commit_not_named(self) -> None:
        names = resolve_names(
            [
                commit(commit_sha, missing_sha),
                tree(tree_sha, ("160000", "submodule", commit_sha)),
            ],
            "myrepo",
        )
        self.assertEqual({tree_sha: ("myrepo",)}, names)


class GraphNodeTests(TestCase):
    def test_tag_object(self) -> None:
        self.assertEqual(
            LooseObject("v1", "tag", 0, Tag(commit_sha)),
            tag_object(TagRef("v1", commit_sha)),
        )

    def test_to_dict_blob(self) -> None:
        node = GraphNode(blob_sha, "blob", 5, Blob("hello"), names=("f.txt",))
        self.assertEqual(
            {
                "hash": blob_sha,
                "type": "blob",
                "size": 5,
                "names": ["f.txt"],
                "references": [],
                "referencedBy": [],
                "content": "hello",
            },
            node.to_dict(),
        )

    def test_to_dict_commit(self) -> None:
        graph = build_graph(
            [commit(commit_sha, tree_sha)],
            changes={commit_sha: [FileChangeRecord("M", "f.txt", blob_sha)]},
        )
        data = graph.to_dict()[0]
        self.assertEqual(tree_sha, data["tree"])
        self.assertEqual([], data["parent"])
        self.assertEqual([{"status": "M", "path": "f.txt", "hash": blob_sha}], data["diff"])

    def test_to_dict_tree(self) -> None:
        node = tree(tree_sha, ("40000", "sub", blob_sha))
        data = build_graph([node])[tree_sha].to_dict()
        self.assertEqual(
            [{"mode": "40000", "name": "sub", "hash": blob_sha, "type": "tree"}],
            data["entries"],
        )

    def test_by_type(self) -> None:
        graph = build_graph([blob(blob_sha), tree(tree_sha), commit(commit_sha, tree_sha)])
        self.assertEqual([tree_sha], [n.sha for n in graph.by_type("tree")])
        self.assertIsNone(graph.get(missing_sha))
