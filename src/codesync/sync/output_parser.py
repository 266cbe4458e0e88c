"""Output parser: turn model output into typed file commands.

Fence scraping is heuristic. Structured tool calls are preferred where the
generation service supports them; ``extract_file_operations`` is the
fallback for free-form text.
"""

import json
import logging
import re
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from codesync.models import CommandType, FileCommand, SearchReplacePatch, ToolCall
from codesync.sync.exceptions import CommandParseError

logger = logging.getLogger(__name__)

_TAGGED_BLOCK_RE = re.compile(r"```(\w+)?:([^\n]+)\n([\s\S]*?)```")
_LABELED_BLOCK_RE = re.compile(
    r"(?:(?:File|Path):\s*`?([^\s`\n]+)`?|(?:\*\*([^\*\n]+)\*\*))\s*\n```(\w+)?\n([\s\S]*?)```",
    re.IGNORECASE,
)
_SCRIPT_BLOCK_RE = re.compile(r"```(tsx?|jsx?)\n([\s\S]*?)```")
_COMPONENT_NAME_RE = re.compile(r"(?:export\s+default\s+function|function|const)\s+(\w+)")

_TAGGED_FENCE_RE = re.compile(r"```\w+:[^\n]+\n[\s\S]*?```")
_PLAIN_FENCE_RE = re.compile(r"```\w*\n[\s\S]*?```")
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")
MIN_MESSAGE_CHARS = 20

_PAGE_RE = re.compile(r"/pages/([^/]+)\.tsx$")


def _command_for(path: str, existing_paths: Optional[set[str]]) -> CommandType:
    if existing_paths and path in existing_paths:
        return CommandType.UPDATE_FILE
    return CommandType.CREATE_FILE


def _tagged_blocks(text: str) -> list[tuple[str, str]]:
    found = []
    for match in _TAGGED_BLOCK_RE.finditer(text):
        path = match.group(2).strip().lstrip("/")
        content = match.group(3).strip()
        if path and content:
            found.append((path, content))
    return found


def _labeled_blocks(text: str) -> list[tuple[str, str]]:
    found = []
    for match in _LABELED_BLOCK_RE.finditer(text):
        path = (match.group(1) or match.group(2) or "").strip().lstrip("/")
        content = match.group(4).strip()
        if "/" in path and content:
            found.append((path, content))
    return found


def _script_blocks(text: str) -> list[tuple[str, str]]:
    found = []
    for i, match in enumerate(_SCRIPT_BLOCK_RE.finditer(text)):
        content = match.group(2).strip()
        if not content:
            continue
        name_match = _COMPONENT_NAME_RE.search(content)
        name = name_match.group(1) if name_match else f"Component{i}"
        found.append((f"src/components/{name}.tsx", content))
    return found


def extract_file_operations(
    text: str,
    existing_paths: Optional[Iterable[str]] = None,
) -> list[FileCommand]:
    """Extract file commands from free-form model output.

    Three strategies are tried in priority order; a later one runs only if
    every earlier one found nothing:

    1. fences tagged ``lang:path``
    2. a ``File:``/``Path:`` label or a bold path right before a fence
    3. bare ts/tsx/js/jsx fences, with a synthesized component path

    Args:
        text: Raw model output.
        existing_paths: Paths already in the project. Matching paths become
            UPDATE_FILE commands, everything else CREATE_FILE.

    Returns:
        Commands in document order. An empty list means "no changes".
    """
    known = set(existing_paths) if existing_paths is not None else None

    for strategy in (_tagged_blocks, _labeled_blocks, _script_blocks):
        blocks = strategy(text)
        if blocks:
            logger.debug("Extracted %d file block(s) via %s", len(blocks), strategy.__name__)
            return [
                FileCommand(command=_command_for(path, known), path=path, content=content)
                for path, content in blocks
            ]
    return []


def strip_code_blocks(text: str) -> str:
    """Remove code fences, leaving the conversational part of a response.

    Returns ``""`` when fewer than 20 characters would remain.
    """
    stripped = _TAGGED_FENCE_RE.sub("", text)
    stripped = _PLAIN_FENCE_RE.sub("", stripped)
    stripped = _EXCESS_NEWLINES_RE.sub("\n\n", stripped).strip()
    if len(stripped) < MIN_MESSAGE_CHARS:
        return ""
    return stripped


class _WriteFileArgs(BaseModel):
    model_config = ConfigDict(extra="ignore")

    path: str = Field(min_length=1)
    content: str


class _PatchFileArgs(BaseModel):
    model_config = ConfigDict(extra="ignore")

    path: str = Field(min_length=1)
    patches: list[SearchReplacePatch] = Field(min_length=1)


class _DeleteFileArgs(BaseModel):
    model_config = ConfigDict(extra="ignore")

    path: str = Field(min_length=1)


def _clean_path(path: str) -> str:
    path = path.strip().lstrip("/")
    while path.startswith("./"):
        path = path[2:]
    return path


def _decode_arguments(call: ToolCall) -> dict:
    arguments = call.arguments
    if isinstance(arguments, str):
        try:
            arguments = json.loads(arguments) if arguments.strip() else {}
        except json.JSONDecodeError as e:
            raise CommandParseError(f"{call.name}: arguments are not valid JSON: {e}") from e
    if not isinstance(arguments, dict):
        raise CommandParseError(f"{call.name}: arguments must be an object")
    return arguments


def tool_call_to_command(
    call: ToolCall,
    existing_paths: Optional[set[str]] = None,
) -> FileCommand:
    """Convert one structured tool call into a FileCommand.

    Raises:
        CommandParseError: Unknown tool or arguments that fail validation.
    """
    arguments = _decode_arguments(call)
    try:
        if call.name == "write_file":
            args = _WriteFileArgs.model_validate(arguments)
            path = _clean_path(args.path)
            return FileCommand(
                command=_command_for(path, existing_paths),
                path=path,
                content=args.content,
            )
        if call.name == "patch_file":
            args = _PatchFileArgs.model_validate(arguments)
            return FileCommand(
                command=CommandType.PATCH_FILE,
                path=_clean_path(args.path),
                patches=args.patches,
            )
        if call.name == "delete_file":
            args = _DeleteFileArgs.model_validate(arguments)
            return FileCommand(command=CommandType.DELETE_FILE, path=_clean_path(args.path))
    except ValidationError as e:
        raise CommandParseError(f"{call.name}: {e.error_count()} invalid argument(s): {e}") from e
    raise CommandParseError(f"Unknown tool: {call.name}")


def parse_tool_calls(
    calls: Iterable[ToolCall],
    existing_paths: Optional[Iterable[str]] = None,
) -> tuple[list[FileCommand], list[str]]:
    """Convert tool calls into commands, collecting rejections.

    Returns:
        ``(commands, errors)``. Malformed calls are skipped and described in
        ``errors``; they are never coerced into a command.
    """
    known = set(existing_paths) if existing_paths is not None else None
    commands: list[FileCommand] = []
    errors: list[str] = []
    for call in calls:
        try:
            commands.append(tool_call_to_command(call, known))
        except CommandParseError as e:
            logger.warning("Rejected tool call: %s", e)
            errors.append(str(e))
    return commands, errors


def extract_routes(paths: Iterable[str]) -> list[str]:
    """Derive app routes from page files: ``/`` plus ``/<name>`` per page."""
    routes = ["/"]
    for path in paths:
        match = _PAGE_RE.search(path)
        if not match:
            continue
        name = match.group(1).lower()
        if name == "index":
            continue
        route = f"/{name}"
        if route not in routes:
            routes.append(route)
    return routes
