"""Compact project-state digest re-embedded into generation prompts."""

from typing import Mapping, Union

from codesync.models import ProjectFile

NO_FILES_SENTINEL = "No existing files."
KEY_FILE_PATTERNS = ("/pages/", "/components/layout/", "index.css", "App.tsx")
MAX_KEY_FILES = 5
PREVIEW_CHARS = 200


def build_context_summary(files: Mapping[str, Union[ProjectFile, str]]) -> str:
    """Summarize the project: sorted path list plus previews of key files.

    Output depends only on the mapping's contents, never on insertion order.
    """
    if not files:
        return NO_FILES_SENTINEL

    paths = sorted(files)
    lines = [f"## Current Project Files ({len(paths)} files)", ""]
    lines.extend(f"- {p}" for p in paths)
    summary = "\n".join(lines)

    key_files = [p for p in paths if any(pattern in p for pattern in KEY_FILE_PATTERNS)]
    if key_files:
        summary += "\n\n### Key File Summaries:\n"
        for path in key_files[:MAX_KEY_FILES]:
            entry = files[path]
            content = entry.content if isinstance(entry, ProjectFile) else entry
            preview = content[:PREVIEW_CHARS].replace("\n", " ").strip()
            summary += f"\n**{path}**: {preview}..."

    return summary
