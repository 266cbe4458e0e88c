"""Code synchronization engine: parse, guard, patch, and apply file commands."""

from codesync.sync.context_summary import build_context_summary
from codesync.sync.output_parser import (
    extract_file_operations,
    extract_routes,
    parse_tool_calls,
    strip_code_blocks,
)
from codesync.sync.patch_engine import apply_patch, apply_patches
from codesync.sync.path_guard import is_path_writeable, is_secret_path, validate_file_path
from codesync.sync.project_state import ProjectState
from codesync.sync.tree_resolver import build_tree, iter_tree, resolve_or_create_path

__all__ = [
    "ProjectState",
    "apply_patch",
    "apply_patches",
    "build_context_summary",
    "build_tree",
    "extract_file_operations",
    "extract_routes",
    "is_path_writeable",
    "is_secret_path",
    "iter_tree",
    "parse_tool_calls",
    "resolve_or_create_path",
    "strip_code_blocks",
    "validate_file_path",
]
