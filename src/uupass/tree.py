"""
Path tree -- the folder view of the index.

Nodes live in flat lists addressed by integer handles. Node 0 is the
synthetic root; every other node is one path segment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from rich.text import Text
from rich.tree import Tree

ROOT = 0


@dataclass
class PathTree:
    """Arena of path segments with parent/children adjacency lists."""

    labels: list[str] = field(default_factory=lambda: ["root"])
    parents: list[Optional[int]] = field(default_factory=lambda: [None])
    children: list[list[int]] = field(default_factory=lambda: [[]])

    @property
    def root(self) -> int:
        return ROOT

    def __len__(self) -> int:
        return len(self.labels)

    def add_child(self, parent: int, label: str) -> int:
        """Append a node below ``parent`` and return its handle."""
        node = len(self.labels)
        self.labels.append(label)
        self.parents.append(parent)
        self.children.append([])
        self.children[parent].append(node)
        return node

    def is_leaf(self, node: int) -> bool:
        return not self.children[node]

    def full_path(self, node: int) -> str:
        parts: list[str] = []
        current: Optional[int] = node
        while current is not None and current != ROOT:
            parts.append(self.labels[current])
            current = self.parents[current]
        return "/".join(reversed(parts))

    def leaf_paths(self) -> list[str]:
        """Depth-first list of the full paths of all leaves."""
        result: list[str] = []
        pending = [ROOT]
        while pending:
            node = pending.pop()
            if node != ROOT and self.is_leaf(node):
                result.append(self.full_path(node))
            pending.extend(reversed(self.children[node]))
        return result


def to_tree(paths: Iterable[str], separator: str = "/") -> PathTree:
    """Build the path tree from paths sorted by path, descending.

    Consecutive paths share their common leading segments. The sort is a
    precondition: unsorted input produces duplicate folder nodes.
    """
    tree = PathTree()
    stack: list[int] = []
    for full_path in paths:
        parts = full_path.split(separator)

        same = 0
        for part, node in zip(parts, stack):
            if tree.labels[node] != part:
                break
            same += 1
        del stack[same:]

        for part in parts[same:]:
            parent = stack[-1] if stack else tree.root
            stack.append(tree.add_child(parent, part))
    return tree


def sort_for_tree(paths: Iterable[str], separator: str = "/") -> list[str]:
    """Order paths so that ``to_tree`` sees shared prefixes adjacently.

    Comparison is per segment and case-insensitive, with the exact
    spelling as tie breaker so ``A/x`` and ``a/y`` never interleave.
    """
    return sorted(
        paths,
        key=lambda p: [(part.lower(), part) for part in p.split(separator)],
        reverse=True,
    )


def render_tree(tree: PathTree, title: str = "Password Store") -> Tree:
    """Convert the arena into a rich Tree, folders first in blue."""
    rendered = Tree(Text(title, style="bold"))

    def _attach(node: int, branch: Tree) -> None:
        # children were added in descending order; show them ascending
        for child in reversed(tree.children[node]):
            if tree.is_leaf(child):
                branch.add(Text(tree.labels[child]))
            else:
                _attach(child, branch.add(Text(tree.labels[child], style="bold blue")))

    _attach(tree.root, rendered)
    return rendered
