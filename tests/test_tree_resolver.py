"""Unit tests for codesync.sync.tree_resolver."""
import pytest

from codesync.models import TreeNode
from codesync.sync.exceptions import TreeConflictError
from codesync.sync.tree_resolver import build_tree, iter_tree, resolve_or_create_path


class TestResolveOrCreatePath:
    def test_creates_missing_folders_and_file(self):
        tree = resolve_or_create_path([], "src/components/Button.tsx")

        src = tree[0]
        assert (src.name, src.type, src.path) == ("src", "folder", "src")
        components = src.children[0]
        assert (components.name, components.type, components.path) == (
            "components",
            "folder",
            "src/components",
        )
        button = components.children[0]
        assert (button.name, button.type, button.path) == (
            "Button.tsx",
            "file",
            "src/components/Button.tsx",
        )
        assert button.children is None

    def test_mutates_and_returns_same_list(self):
        tree: list[TreeNode] = []
        assert resolve_or_create_path(tree, "a.ts") is tree
        assert len(tree) == 1

    def test_idempotent(self):
        tree = resolve_or_create_path([], "src/pages/Home.tsx")
        before = [n.model_dump() for n in tree]
        resolve_or_create_path(tree, "src/pages/Home.tsx")
        assert [n.model_dump() for n in tree] == before

    def test_sibling_files_share_folder(self):
        tree: list[TreeNode] = []
        resolve_or_create_path(tree, "src/a.ts")
        resolve_or_create_path(tree, "src/b.ts")
        assert len(tree) == 1
        assert [c.name for c in tree[0].children] == ["a.ts", "b.ts"]

    def test_reuse_policy_keeps_conflicting_node(self):
        tree = [TreeNode.file("src", "src")]
        resolve_or_create_path(tree, "src/a.ts")
        assert tree[0].type == "file"
        assert tree[0].children is None
        # The leaf is still recorded, beside the node that blocked descent.
        leaf = tree[1]
        assert (leaf.name, leaf.type, leaf.path) == ("a.ts", "file", "src/a.ts")

    def test_error_policy_raises(self):
        tree = [TreeNode.file("src", "src")]
        with pytest.raises(TreeConflictError, match="exists as a file"):
            resolve_or_create_path(tree, "src/a.ts", on_conflict="error")

    def test_error_policy_file_over_folder(self):
        tree = resolve_or_create_path([], "src/a.ts")
        with pytest.raises(TreeConflictError):
            resolve_or_create_path(tree, "src", on_conflict="error")


class TestBuildTree:
    def test_deterministic_regardless_of_order(self):
        paths = ["b/x.ts", "a.ts", "b/a.ts"]
        first = [n.model_dump() for n in build_tree(paths)]
        second = [n.model_dump() for n in build_tree(reversed(paths))]
        assert first == second

    def test_iter_tree_depth_first(self):
        tree = build_tree(["b/x.ts", "a.ts", "b/a.ts"])
        assert [n.path for n in iter_tree(tree)] == ["a.ts", "b", "b/a.ts", "b/x.ts"]

    def test_file_and_nested_path_with_same_prefix(self):
        tree = build_tree(["src", "src/a.ts"])
        assert sorted(n.path for n in iter_tree(tree)) == ["src", "src/a.ts"]

    def test_empty(self):
        assert build_tree([]) == []
