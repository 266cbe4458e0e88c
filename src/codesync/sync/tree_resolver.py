"""Tree resolver: hierarchical folder/file view over a flat path set."""

from typing import Iterable, Iterator, Literal

from codesync.models import TreeNode
from codesync.sync.exceptions import TreeConflictError

ConflictPolicy = Literal["reuse", "error"]


def resolve_or_create_path(
    tree: list[TreeNode],
    file_path: str,
    *,
    on_conflict: ConflictPolicy = "reuse",
) -> list[TreeNode]:
    """Ensure every segment of ``file_path`` exists in ``tree``.

    Intermediate segments must be folders and the last segment a file;
    missing nodes are created. The tree is mutated in place and returned.

    When a node with the right name but the wrong type exists, the
    ``"reuse"`` policy keeps that node as-is (no duplicate is created) and
    keeps walking at the same level, so the remaining segments land beside
    it. ``"error"`` raises TreeConflictError instead.
    """
    parts = [part for part in file_path.split("/") if part]
    current_level = tree
    current_path = ""

    for i, part in enumerate(parts):
        current_path = f"{current_path}/{part}" if current_path else part
        is_file = i == len(parts) - 1
        expected_type = "file" if is_file else "folder"

        existing = next(
            (n for n in current_level if n.name == part and n.type == expected_type),
            None,
        )
        if existing is None:
            existing = next((n for n in current_level if n.name == part), None)
            if existing is not None and on_conflict == "error":
                raise TreeConflictError(
                    f"'{current_path}' exists as a {existing.type}, expected a {expected_type}"
                )
            if existing is None:
                existing = (
                    TreeNode.file(part, current_path)
                    if is_file
                    else TreeNode.folder(part, current_path)
                )
                current_level.append(existing)

        if not is_file and existing.children is not None:
            current_level = existing.children

    return tree


def build_tree(
    paths: Iterable[str],
    *,
    on_conflict: ConflictPolicy = "reuse",
) -> list[TreeNode]:
    """Build a fresh tree from a flat path set (sorted, so deterministic)."""
    tree: list[TreeNode] = []
    for path in sorted(set(paths)):
        resolve_or_create_path(tree, path, on_conflict=on_conflict)
    return tree


def iter_tree(tree: list[TreeNode]) -> Iterator[TreeNode]:
    """Yield every node depth-first, parents before children."""
    for node in tree:
        yield node
        if node.children:
            yield from iter_tree(node.children)
