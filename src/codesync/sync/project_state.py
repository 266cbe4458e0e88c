"""In-memory project state that applies file commands safely.

Every command passes the protected-path check first; patches are applied
all-or-nothing; the hierarchical tree is regenerated from the flat path set
on demand, so it can never drift from the files.
"""

import logging
from typing import Iterable, Mapping, Optional, Union

from codesync.config import PipelineConfig
from codesync.models import (
    CommandOutcome,
    CommandStatus,
    CommandType,
    FileCommand,
    ProjectFile,
    TreeNode,
)
from codesync.sync.exceptions import TreeConflictError
from codesync.sync.patch_engine import apply_patches
from codesync.sync.path_guard import validate_file_path
from codesync.sync.tree_resolver import build_tree, resolve_or_create_path
from codesync.utils.diff_generator import generate_unified_diff

logger = logging.getLogger(__name__)


def _as_project_file(path: str, entry: Union[ProjectFile, str]) -> ProjectFile:
    if isinstance(entry, ProjectFile):
        return entry.model_copy()
    return ProjectFile.from_content(path, entry)


class ProjectState:
    """Working copy of a project's files for one pipeline invocation.

    The initial contents are kept as a baseline so the changes of the turn
    can be listed and diffed.
    """

    def __init__(
        self,
        files: Optional[Mapping[str, Union[ProjectFile, str]]] = None,
        config: Optional[PipelineConfig] = None,
    ):
        self.config = config or PipelineConfig()
        self._files: dict[str, ProjectFile] = {
            path: _as_project_file(path, entry) for path, entry in (files or {}).items()
        }
        self._baseline: dict[str, str] = {p: f.content for p, f in self._files.items()}
        self._touched: list[str] = []

    @property
    def files(self) -> dict[str, ProjectFile]:
        return dict(self._files)

    @property
    def paths(self) -> list[str]:
        return sorted(self._files)

    def get(self, path: str) -> ProjectFile | None:
        return self._files.get(path)

    def contents(self) -> dict[str, str]:
        """Return a plain ``{path: content}`` snapshot."""
        return {path: f.content for path, f in self._files.items()}

    def __contains__(self, path: str) -> bool:
        return path in self._files

    def __len__(self) -> int:
        return len(self._files)

    @property
    def tree(self) -> list[TreeNode]:
        return build_tree(self._files, on_conflict=self.config.tree_conflict_policy)

    @property
    def touched_paths(self) -> list[str]:
        """Paths that received an applied command this turn, first-touch order."""
        return list(self._touched)

    def copy(self) -> "ProjectState":
        clone = ProjectState(config=self.config)
        clone._files = {p: f.model_copy() for p, f in self._files.items()}
        clone._baseline = dict(self._baseline)
        clone._touched = list(self._touched)
        return clone

    def _touch(self, path: str) -> None:
        if path not in self._touched:
            self._touched.append(path)

    def _write(self, path: str, content: str) -> None:
        existing = self._files.get(path)
        if existing is not None:
            existing.content = content
        else:
            self._files[path] = ProjectFile.from_content(path, content)
        self._touch(path)

    def _check_tree(self, path: str) -> str | None:
        """Return an error if adding ``path`` conflicts with the tree."""
        if path in self._files or self.config.tree_conflict_policy != "error":
            return None
        try:
            resolve_or_create_path(self.tree, path, on_conflict="error")
        except TreeConflictError as e:
            return str(e)
        return None

    def apply_command(self, command: FileCommand) -> CommandOutcome:
        """Apply one command and report what happened.

        Never raises for bad commands: rejected paths, failed patches, and
        missing targets are reported in the outcome and leave every file
        untouched.
        """
        path = command.path
        check = validate_file_path(path, self.config.protected_patterns)
        if not check.valid:
            logger.warning("Rejected %s %s: %s", command.command.value, path, check.error)
            return CommandOutcome(
                command=command.command,
                path=path,
                status=CommandStatus.REJECTED,
                error=check.error,
            )

        if command.command in (CommandType.CREATE_FILE, CommandType.UPDATE_FILE):
            conflict = self._check_tree(path)
            if conflict:
                logger.warning("Rejected %s: %s", path, conflict)
                return CommandOutcome(
                    command=command.command,
                    path=path,
                    status=CommandStatus.REJECTED,
                    error=conflict,
                )
            self._write(path, command.content or "")

        elif command.command == CommandType.PATCH_FILE:
            existing = self._files.get(path)
            if existing is None:
                return CommandOutcome(
                    command=command.command,
                    path=path,
                    status=CommandStatus.MISSING,
                    error=f"Cannot patch missing file: {path}",
                )
            patched = apply_patches(existing.content, command.patches or [])
            if patched is None:
                return CommandOutcome(
                    command=command.command,
                    path=path,
                    status=CommandStatus.PATCH_FAILED,
                    error=f"Patch failed for {path}; full-file replacement required",
                )
            self._write(path, patched)

        else:
            if path not in self._files:
                return CommandOutcome(
                    command=command.command,
                    path=path,
                    status=CommandStatus.MISSING,
                    error=f"Cannot delete missing file: {path}",
                )
            del self._files[path]
            self._touch(path)

        logger.debug("Applied %s %s", command.command.value, path)
        return CommandOutcome(command=command.command, path=path, status=CommandStatus.APPLIED)

    def apply_commands(self, commands: Iterable[FileCommand]) -> list[CommandOutcome]:
        return [self.apply_command(command) for command in commands]

    def replace_content(self, path: str, content: str) -> None:
        """Overwrite an existing file; used for validation repairs."""
        if path not in self._files:
            raise KeyError(path)
        self._write(path, content)

    def changed_paths(self) -> list[str]:
        """Sorted paths whose content differs from the baseline."""
        all_paths = set(self._baseline) | set(self._files)
        return sorted(
            p for p in all_paths
            if self._baseline.get(p) != (self._files[p].content if p in self._files else None)
        )

    def deleted_paths(self) -> list[str]:
        return sorted(p for p in self._baseline if p not in self._files)

    def diff(self, path: str) -> str:
        """Unified diff of ``path`` against the baseline ("" if unchanged)."""
        before = self._baseline.get(path, "")
        after = self._files[path].content if path in self._files else ""
        return generate_unified_diff(path, before, after)
