"""Search-and-replace patch engine.

Patches locate text by content rather than line number, so they survive
unrelated edits elsewhere in the file. A patch that cannot be found is
reported as ``None`` (the not-found sentinel) and never applied partially.
"""

import logging
import re
from typing import Iterable

from codesync.models import SearchReplacePatch

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def _normalize_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text)


def apply_patch(content: str, patch: SearchReplacePatch) -> str | None:
    """Apply one patch to ``content``.

    The first exact occurrence of ``patch.search`` is replaced. When there is
    no exact match but the search matches after collapsing whitespace runs,
    a trimmed literal replace is attempted on the original content instead of
    mapping offsets back from normalized space.

    Returns:
        The patched content, or None when the search text cannot be located.
    """
    index = content.find(patch.search)
    if index != -1:
        return content[:index] + patch.replace + content[index + len(patch.search):]

    if _normalize_whitespace(patch.search) not in _normalize_whitespace(content):
        return None

    trimmed_search = patch.search.strip()
    if not trimmed_search or trimmed_search not in content:
        # Matches only modulo inner whitespace; no safe span to replace.
        return None
    return content.replace(trimmed_search, patch.replace.strip(), 1)


def apply_patches(content: str, patches: Iterable[SearchReplacePatch]) -> str | None:
    """Apply patches strictly in order; all-or-nothing.

    Returns:
        The fully patched content, or None if any patch fails. Callers should
        fall back to full-file replacement on None.
    """
    result = content
    for position, patch in enumerate(patches):
        patched = apply_patch(result, patch)
        if patched is None:
            logger.warning(
                "Patch %d failed - search string not found (%r)",
                position,
                patch.search[:60],
            )
            return None
        result = patched
    return result
