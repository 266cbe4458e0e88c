"""Protected-path validation.

Pure functions; every path produced by any component passes through
``validate_file_path`` before content is written.
"""

import re
from functools import lru_cache
from typing import Iterable

from codesync.config import DEFAULT_PROTECTED_PATTERNS
from codesync.models import PathCheck

_DRIVE_PREFIX_RE = re.compile(r"^[A-Za-z]:")
_SECRET_FILE_RE = re.compile(r"(^|/)\.env")


@lru_cache(maxsize=32)
def _compile(patterns: tuple[str, ...]) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p) for p in patterns)


def is_path_writeable(
    path: str,
    protected_patterns: Iterable[str] | None = None,
) -> bool:
    """Return False if ``path`` matches any protected pattern."""
    patterns = tuple(protected_patterns) if protected_patterns is not None else DEFAULT_PROTECTED_PATTERNS
    return not any(p.search(path) for p in _compile(patterns))


def is_secret_path(path: str) -> bool:
    """Return True for dotenv files anywhere in the tree."""
    return bool(_SECRET_FILE_RE.search(path))


def validate_file_path(
    path: str,
    protected_patterns: Iterable[str] | None = None,
) -> PathCheck:
    """Check that ``path`` is project-relative, non-traversing, and writeable.

    Args:
        path: Candidate project-relative path.
        protected_patterns: Regex deny-list; defaults to the built-in list.

    Returns:
        PathCheck with ``valid`` and, when invalid, a human-readable ``error``.
    """
    if not path or not path.strip():
        return PathCheck(valid=False, error="Empty path")
    if ".." in path:
        return PathCheck(valid=False, error="Path traversal not allowed")
    if path.startswith(("/", "\\")) or _DRIVE_PREFIX_RE.match(path):
        return PathCheck(valid=False, error="Absolute paths not allowed")
    if not is_path_writeable(path, protected_patterns):
        return PathCheck(valid=False, error=f"Protected path: {path}")
    return PathCheck(valid=True)
