# objects.py -- Access to loose git objects
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


"""Access to loose git objects.

A loose object is a zlib-compressed buffer of the form
``<type> <size>\\0<body>``. This module splits that buffer and decodes the
body into one immutable payload per object type.
"""

__all__ = [
    "BLOB_PLACEHOLDER",
    "HEX_LENGTH",
    "MAX_BLOB_DISPLAY_SIZE",
    "OBJECT_TYPES",
    "RAW_LENGTH",
    "ZERO_SHA",
    "Blob",
    "Commit",
    "LooseObject",
    "Payload",
    "Tag",
    "Tree",
    "TreeEntry",
    "as_loose_object",
    "decode_object",
    "hex_to_sha",
    "object_class",
    "object_header",
    "parse_commit",
    "parse_header",
    "parse_tree",
    "serialize_tree",
    "sha_to_hex",
    "valid_hexsha",
]

import binascii
import zlib
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import ClassVar, NamedTuple, Optional, Union

from .errors import ObjectFormatException

HEX_LENGTH = 40
RAW_LENGTH = 20
ZERO_SHA = "0" * HEX_LENGTH

# Blobs at or above this many bytes are not decoded for display.
MAX_BLOB_DISPLAY_SIZE = 10000
BLOB_PLACEHOLDER = "(Binary or too large)"

# Header fields for commits
_TREE_HEADER = "tree"
_PARENT_HEADER = "parent"
_AUTHOR_HEADER = "author"
_COMMITTER_HEADER = "committer"

# Directory modes are written as "40000" by git and "040000" by some tools.
_TREE_MODE_PREFIXES = ("04", "40")

_HEX_DIGITS = frozenset("0123456789abcdef")


def sha_to_hex(sha: bytes) -> str:
    """Takes a raw sha and returns its lowercase hex form."""
    hexsha = binascii.hexlify(sha).decode("ascii")
    assert len(hexsha) == HEX_LENGTH, f"Incorrect length of sha string: {hexsha!r}"
    return hexsha


def hex_to_sha(hex: str) -> bytes:
    """Takes a hex sha and returns a binary sha."""
    assert len(hex) == HEX_LENGTH, f"Incorrect length of hexsha: {hex}"
    try:
        return binascii.unhexlify(hex)
    except binascii.Error as exc:
        raise ValueError(exc.args[0]) from exc


def valid_hexsha(hex: str) -> bool:
    """Check whether a string is a 40 character lowercase hex sha."""
    return len(hex) == HEX_LENGTH and _HEX_DIGITS.issuperset(hex)


class TreeEntry(NamedTuple):
    """Named tuple encapsulating a single tree entry."""

    mode: str
    name: str
    sha: str

    def is_tree(self) -> bool:
        """Whether this entry points at a subtree.

        This is a textual prefix check on the mode, not a numeric comparison.
        """
        return self.mode.startswith(_TREE_MODE_PREFIXES)

    @property
    def type_name(self) -> str:
        return "tree" if self.is_tree() else "blob"


@dataclass(frozen=True)
class Blob:
    """Contents of a blob, decoded for display.

    Attributes:
      content: The text of the blob, or BLOB_PLACEHOLDER
      is_text: False when the content was replaced by the placeholder
    """

    type_name: ClassVar[str] = "blob"

    content: str
    is_text: bool = True

    def references(self) -> tuple[str, ...]:
        return ()


@dataclass(frozen=True)
class Tree:
    """A directory listing: ordered entries as they appear in the body."""

    type_name: ClassVar[str] = "tree"

    entries: tuple[TreeEntry, ...] = ()

    def references(self) -> tuple[str, ...]:
        return tuple(entry.sha for entry in self.entries)


@dataclass(frozen=True)
class Commit:
    """Commit metadata.

    Attributes:
      tree: Hex sha of the root tree, if a tree header was present
      parents: Parent hex shas in declaration order
      author: Raw author line value (identity and timestamp)
      committer: Raw committer line value (identity and timestamp)
      message: Commit message with trailing whitespace removed
    """

    type_name: ClassVar[str] = "commit"

    tree: Optional[str] = None
    parents: tuple[str, ...] = ()
    author: Optional[str] = None
    committer: Optional[str] = None
    message: str = ""

    def references(self) -> tuple[str, ...]:
        if self.tree is None:
            return self.parents
        return (self.tree, *self.parents)


@dataclass(frozen=True)
class Tag:
    """A tag pointing at another object.

    Annotated tag objects found in the object store are not decoded and
    carry no target.
    """

    type_name: ClassVar[str] = "tag"

    object_hash: Optional[str] = None

    def references(self) -> tuple[str, ...]:
        if self.object_hash is None:
            return ()
        return (self.object_hash,)


Payload = Union[Blob, Tree, Commit, Tag]

_TYPE_MAP: dict[str, type[Payload]] = {
    cls.type_name: cls for cls in (Blob, Tree, Commit, Tag)
}

OBJECT_TYPES = tuple(_TYPE_MAP)


def object_class(type_name: str) -> type[Payload]:
    """Get the payload class corresponding to the given type name.

    Args:
      type_name: A type name such as "blob"
    Returns: The payload class
    Raises:
      KeyError: if the type name is unknown
    """
    return _TYPE_MAP[type_name]


class LooseObject(NamedTuple):
    """A decoded loose object.

    The size is the one declared in the header and is informational only.
    """

    sha: str
    type_name: str
    size: int
    payload: Payload

    def references(self) -> tuple[str, ...]:
        return self.payload.references()


def parse_tree(text: bytes) -> Iterator[TreeEntry]:
    """Parse a tree body.

    Parsing stops quietly at the first incomplete record, so a truncated
    body yields the entries that precede the damage.

    Args:
      text: Serialized tree body
    Returns: Iterator over TreeEntry objects in body order
    """
    count = 0
    length = len(text)
    while count < length:
        mode_end = text.find(b" ", count)
        if mode_end == -1:
            return
        name_end = text.find(b"\0", mode_end + 1)
        if name_end == -1:
            return
        sha_end = name_end + 1 + RAW_LENGTH
        if sha_end > length:
            return
        yield TreeEntry(
            text[count:mode_end].decode("ascii", "replace"),
            text[mode_end + 1 : name_end].decode("utf-8", "replace"),
            sha_to_hex(text[name_end + 1 : sha_end]),
        )
        count = sha_end


def serialize_tree(entries: Iterable[TreeEntry]) -> bytes:
    """Serialize tree entries in the given order.

    Args:
      entries: Iterable over TreeEntry objects
    Returns: Serialized tree body
    """
    return b"".join(
        entry.mode.encode("ascii")
        + b" "
        + entry.name.encode("utf-8")
        + b"\0"
        + hex_to_sha(entry.sha)
        for entry in entries
    )


def parse_commit(text: bytes) -> Commit:
    """Parse a commit body.

    Header lines are read up to the first empty line; everything after it
    is the message. Unknown headers and continuation lines are ignored.

    Args:
      text: Serialized commit body
    Returns: A Commit
    """
    tree = None
    parents = []
    author = None
    committer = None
    lines = text.decode("utf-8", "replace").split("\n")
    message_start = len(lines)
    for i, line in enumerate(lines):
        if line == "":
            message_start = i + 1
            break
        field, _, value = line.partition(" ")
        if field == _TREE_HEADER:
            tree = value
        elif field == _PARENT_HEADER:
            parents.append(value)
        elif field == _AUTHOR_HEADER:
            author = value
        elif field == _COMMITTER_HEADER:
            committer = value
    message = "\n".join(lines[message_start:]).rstrip()
    return Commit(
        tree=tree,
        parents=tuple(parents),
        author=author,
        committer=committer,
        message=message,
    )


def _parse_blob(text: bytes, max_display_size: int) -> Blob:
    if len(text) >= max_display_size:
        return Blob(BLOB_PLACEHOLDER, is_text=False)
    return Blob(text.decode("utf-8", "replace"))


def object_header(type_name: str, length: int) -> bytes:
    """Return an object header for the given type name and body length."""
    return f"{type_name} {length}".encode("ascii") + b"\0"


def as_loose_object(type_name: str, body: bytes) -> bytes:
    """Return the compressed on-disk representation of an object."""
    return zlib.compress(object_header(type_name, len(body)) + body)


def parse_header(buffer: bytes) -> tuple[str, int, int]:
    """Split the header off a decompressed loose object.

    Args:
      buffer: Decompressed object contents
    Returns: Tuple with type name, declared size and the offset of the body
    Raises:
      ObjectFormatException: if the header is missing or malformed
    """
    nul = buffer.find(b"\0")
    if nul == -1:
        raise ObjectFormatException("object header is not terminated")
    try:
        header = buffer[:nul].decode("ascii")
    except UnicodeDecodeError as exc:
        raise ObjectFormatException(f"invalid object header: {exc}") from exc
    type_name, _, size_text = header.partition(" ")
    if type_name not in _TYPE_MAP:
        raise ObjectFormatException(f"unknown object type {type_name!r}")
    if not size_text.isdigit():
        raise ObjectFormatException(f"invalid object size {size_text!r}")
    return type_name, int(size_text), nul + 1


def decode_object(
    sha: str, buffer: bytes, max_blob_display_size: int = MAX_BLOB_DISPLAY_SIZE
) -> LooseObject:
    """Decode a decompressed loose object.

    The type is taken from the header alone; the body is never checked
    against the declared size or the sha.

    Args:
      sha: Hex sha of the object, as derived from its location
      buffer: Decompressed object contents
      max_blob_display_size: Blobs at least this large get a placeholder
    Returns: A LooseObject
    Raises:
      ObjectFormatException: if the header is malformed
    """
    type_name, size, offset = parse_header(buffer)
    body = buffer[offset:]
    payload: Payload
    if type_name == Blob.type_name:
        payload = _parse_blob(body, max_blob_display_size)
    elif type_name == Tree.type_name:
        payload = Tree(tuple(parse_tree(body)))
    elif type_name == Commit.type_name:
        payload = parse_commit(body)
    else:
        payload = Tag()
    return LooseObject(sha, type_name, size, payload)
