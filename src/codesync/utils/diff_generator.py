"""Diff rendering and code-style detection for project files."""

import difflib
from collections import Counter


def generate_unified_diff(
    file_path: str,
    original_content: str,
    modified_content: str,
) -> str:
    """Render a git-style unified diff of one file.

    Args:
        file_path: Project-relative path (e.g. "src/App.tsx").
        original_content: Content before the turn; "" for a created file.
        modified_content: Content after the turn; "" for a deleted file.

    Returns:
        Diff text with a/ b/ prefixes, or "" when nothing changed.
    """
    if original_content == modified_content:
        return ""

    from_file = f"a/{file_path}" if original_content else "/dev/null"
    to_file = f"b/{file_path}" if modified_content else "/dev/null"
    diff_lines = difflib.unified_diff(
        original_content.splitlines(),
        modified_content.splitlines(),
        fromfile=from_file,
        tofile=to_file,
        lineterm="",
    )
    return "\n".join(diff_lines)


def detect_code_style(source_code: str) -> dict[str, str]:
    """Guess indentation and quote conventions of existing code.

    The result is embedded in the code-phase prompt so generated files match
    the project.

    Returns:
        Dict with "indent" ("2 spaces", "4 spaces", "tabs") and
        "quotes" ("single" or "double").
    """
    indent_style = "2 spaces"
    if not source_code:
        return {"indent": indent_style, "quotes": "single"}

    widths: Counter[int] = Counter()
    for line in source_code.splitlines():
        if line.startswith("\t"):
            indent_style = "tabs"
            break
        stripped = len(line) - len(line.lstrip(" "))
        if stripped and line.strip():
            widths[stripped] += 1

    if indent_style != "tabs" and widths:
        indent_style = f"{min(widths)} spaces"

    quotes = "single" if source_code.count("'") >= source_code.count('"') else "double"
    return {"indent": indent_style, "quotes": quotes}
