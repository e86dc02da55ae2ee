# cli.py -- Command line interface for objectgraph
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


"""Simple command-line interface to objectgraph.

This is a thin wrapper around :func:`objectgraph.repo.scan` for inspecting
the object graph of a repository from a terminal.
"""

__all__ = [
    "Command",
    "commands",
    "main",
]

import argparse
import json
import logging
import signal
import sys
import types
from collections import Counter
from collections.abc import Sequence
from typing import Optional

from .diff import DiffProvider, NullDiffProvider
from .errors import NotGitRepository, StoreNotFound
from .graph import GraphNode
from .log_utils import configure_logging
from .objects import OBJECT_TYPES, Blob, Commit, Tag, Tree
from .refs import read_tags
from .repo import Repo, ScanOptions, ScanReport

logger = logging.getLogger(__name__)


def signal_int(signal: int, frame: Optional[types.FrameType]) -> None:
    """Handle interrupt signal by exiting.

    Args:
        signal: Signal number
        frame: Current stack frame
    """
    sys.exit(1)


def _positive_int(value: str) -> int:
    """Parse a strictly positive integer command line argument."""
    try:
        number = int(value)
    except ValueError:
        number = 0
    if number <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}")
    return number


class Command:
    """An objectgraph subcommand."""

    def run(self, args: Sequence[str]) -> Optional[int]:
        """Run the command."""
        raise NotImplementedError(self.run)


class _ScanningCommand(Command):
    """Base class for commands that scan a repository."""

    def _add_scan_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--no-diff",
            action="store_true",
            help="Do not collect per-commit changes.",
        )
        parser.add_argument(
            "--workers",
            type=_positive_int,
            help="Number of threads decoding objects.",
        )

    def _scan(self, path: str, parsed_args: argparse.Namespace) -> ScanReport:
        diff_provider: Optional[DiffProvider] = None
        if parsed_args.no_diff:
            diff_provider = NullDiffProvider()
        options = ScanOptions.from_environ()
        if parsed_args.workers:
            options.max_workers = parsed_args.workers
        return Repo(path).scan(diff_provider=diff_provider, options=options)


class cmd_scan(_ScanningCommand):
    """Scan a repository and summarize its object graph."""

    def run(self, args: Sequence[str]) -> Optional[int]:
        """Execute the scan command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(prog="objectgraph scan")
        parser.add_argument("path", nargs="?", default=".", help="Repository path")
        parser.add_argument(
            "--json", action="store_true", help="Write the full graph as JSON."
        )
        self._add_scan_arguments(parser)
        parsed_args = parser.parse_args(args)

        report = self._scan(parsed_args.path, parsed_args)
        if parsed_args.json:
            json.dump(report.graph.to_dict(), sys.stdout, indent=2)
            sys.stdout.write("\n")
            return 0

        counts = Counter(node.type_name for node in report.graph)
        logger.info("%d objects", len(report.graph))
        for type_name in OBJECT_TYPES:
            logger.info("  %s: %d", type_name, counts[type_name])
        logger.info("HEAD: %s", report.head or "(detached)")
        for diagnostic in report.diagnostics:
            logger.info(
                "warning: %s %s: %s",
                diagnostic.source,
                diagnostic.key,
                diagnostic.message,
            )
        return 0


def _format_node(node: GraphNode) -> list[str]:
    lines = [f"{node.sha} {node.type_name} {node.size}"]
    if node.names:
        lines.append("names: " + ", ".join(node.names))
    for sha in node.references:
        lines.append(f"references: {sha}")
    for sha in node.referenced_by:
        lines.append(f"referenced by: {sha}")
    payload = node.payload
    if isinstance(payload, Blob):
        lines.append("")
        lines.append(payload.content)
    elif isinstance(payload, Tree):
        lines.append("")
        for entry in payload.entries:
            lines.append(f"{entry.mode} {entry.type_name} {entry.sha}\t{entry.name}")
    elif isinstance(payload, Commit):
        if payload.tree is not None:
            lines.append(f"tree {payload.tree}")
        for parent in payload.parents:
            lines.append(f"parent {parent}")
        if payload.author is not None:
            lines.append(f"author {payload.author}")
        if payload.committer is not None:
            lines.append(f"committer {payload.committer}")
        lines.append("")
        lines.append(payload.message)
        if node.diff:
            lines.append("")
            for change in node.diff:
                lines.append(f"{change.status}\t{change.path}")
    elif isinstance(payload, Tag) and payload.object_hash is not None:
        lines.append(f"object {payload.object_hash}")
    return lines


class cmd_show(_ScanningCommand):
    """Show a single node of the object graph."""

    def run(self, args: Sequence[str]) -> Optional[int]:
        """Execute the show command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(prog="objectgraph show")
        parser.add_argument("sha", help="Object sha or tag name")
        parser.add_argument("path", nargs="?", default=".", help="Repository path")
        self._add_scan_arguments(parser)
        parsed_args = parser.parse_args(args)

        report = self._scan(parsed_args.path, parsed_args)
        node = report.graph.get(parsed_args.sha)
        if node is None:
            logger.error("No such object: %s", parsed_args.sha)
            return 1
        for line in _format_node(node):
            logger.info("%s", line)
        return 0


class cmd_head(Command):
    """Show the branch HEAD points at."""

    def run(self, args: Sequence[str]) -> Optional[int]:
        """Execute the head command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(prog="objectgraph head")
        parser.add_argument("path", nargs="?", default=".", help="Repository path")
        parsed_args = parser.parse_args(args)
        branch = Repo(parsed_args.path).head()
        logger.info("%s", branch if branch is not None else "(detached)")
        return 0


class cmd_tags(Command):
    """List lightweight tags."""

    def run(self, args: Sequence[str]) -> Optional[int]:
        """Execute the tags command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(prog="objectgraph tags")
        parser.add_argument("path", nargs="?", default=".", help="Repository path")
        parsed_args = parser.parse_args(args)
        tags, failures = read_tags(Repo(parsed_args.path).tags_path)
        for tag in tags:
            logger.info("%s %s", tag.sha, tag.name)
        for name, reason in failures:
            logger.info("warning: tag %s: %s", name, reason)
        return 0


class cmd_count_objects(Command):
    """Count loose objects."""

    def run(self, args: Sequence[str]) -> Optional[int]:
        """Execute the count-objects command.

        Args:
            args: Command line arguments
        """
        parser = argparse.ArgumentParser(prog="objectgraph count-objects")
        parser.add_argument("path", nargs="?", default=".", help="Repository path")
        parsed_args = parser.parse_args(args)
        count = Repo(parsed_args.path).object_store().count_loose_objects()
        logger.info("%d objects", count)
        return 0


commands: dict[str, type[Command]] = {
    "count-objects": cmd_count_objects,
    "head": cmd_head,
    "scan": cmd_scan,
    "show": cmd_show,
    "tags": cmd_tags,
}


def main(argv: Optional[Sequence[str]] = None) -> Optional[int]:
    """Main entry point for the objectgraph CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code or None
    """
    if argv is None:
        argv = sys.argv[1:]

    if not argv or argv[0] in ("-h", "--help"):
        parser = argparse.ArgumentParser(
            prog="objectgraph", description="Inspect the object graph of a repository"
        )
        parser.add_argument(
            "command",
            nargs="?",
            help=f"Command to run. Available: {', '.join(sorted(commands.keys()))}",
        )
        parser.print_help()
        return 1

    configure_logging()

    cmd = argv[0]
    try:
        cmd_kls = commands[cmd]
    except KeyError:
        logging.fatal("No such subcommand: %s", cmd)
        return 1
    try:
        return cmd_kls().run(argv[1:])
    except (StoreNotFound, NotGitRepository) as e:
        logging.fatal("%s", e)
        return 1


def _main() -> None:
    signal.signal(signal.SIGINT, signal_int)
    sys.exit(main())


if __name__ == "__main__":
    _main()
