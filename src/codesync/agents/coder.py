"""Coder agent: generates file commands that follow the architect's plan."""

import logging
from typing import Any, Mapping, Sequence

from codesync.agents.exceptions import CodeGenerationError
from codesync.agents.generation_service import GenerationService
from codesync.models import ArchitecturePlan, ChatMessage, CodeDraft
from codesync.sync.output_parser import (
    extract_file_operations,
    parse_tool_calls,
    strip_code_blocks,
)
from codesync.utils.ast_parser import SCRIPT_EXTENSIONS
from codesync.utils.diff_generator import detect_code_style

logger = logging.getLogger(__name__)

MAX_LISTED_FILES = 5

CODE_PROMPT = """You are the Code phase of a multi-stage code generation pipeline.

YOUR ROLE:
1. Follow the Architect's plan exactly
2. Generate complete, production-ready code
3. Use the write_file tool for new files or full rewrites
4. Use the patch_file tool for small edits to existing files
5. Use the delete_file tool to remove files

OUTPUT RULES:
1. Use tool calls to write files
2. Include ALL necessary imports
3. Use TypeScript with proper types
4. Use Tailwind semantic tokens
5. Make components mobile-responsive

If tools are unavailable, emit each file as a fenced block tagged
```lang:path/to/file``` with the complete file content."""

WRITE_FILE_TOOL: dict[str, Any] = {
    "name": "write_file",
    "description": "Create a file or replace its entire content",
    "input_schema": {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "Project-relative path, e.g. src/components/Button.tsx",
            },
            "content": {
                "type": "string",
                "description": "Complete file content",
            },
        },
        "required": ["path", "content"],
    },
}

PATCH_FILE_TOOL: dict[str, Any] = {
    "name": "patch_file",
    "description": "Apply search-and-replace edits to an existing file, in order",
    "input_schema": {
        "type": "object",
        "properties": {
            "path": {"type": "string", "description": "Project-relative path"},
            "patches": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "search": {
                            "type": "string",
                            "description": "Exact text to find (first occurrence is replaced)",
                        },
                        "replace": {"type": "string", "description": "Replacement text"},
                        "context": {
                            "type": "string",
                            "description": "Optional surrounding text for disambiguation",
                        },
                    },
                    "required": ["search", "replace"],
                },
            },
        },
        "required": ["path", "patches"],
    },
}

DELETE_FILE_TOOL: dict[str, Any] = {
    "name": "delete_file",
    "description": "Delete a file from the project",
    "input_schema": {
        "type": "object",
        "properties": {"path": {"type": "string", "description": "Project-relative path"}},
        "required": ["path"],
    },
}

FILE_TOOLS = [WRITE_FILE_TOOL, PATCH_FILE_TOOL, DELETE_FILE_TOOL]


def _style_sample(files: Mapping[str, str]) -> str:
    for path in sorted(files):
        if any(path.endswith(ext) for ext in SCRIPT_EXTENSIONS):
            return files[path]
    return ""


class CoderAgent:
    """Produces file commands for a plan, preferring structured tool calls."""

    def __init__(self, service: GenerationService):
        self.service = service

    def _build_system_prompt(self, files: Mapping[str, str], context_summary: str) -> str:
        style = detect_code_style(_style_sample(files))
        prompt = (
            f"{CODE_PROMPT}\n\n{context_summary}\n\n"
            f"CODE STYLE: indent with {style['indent']}, prefer {style['quotes']} quotes."
        )
        if files:
            prompt += "\n\nEXISTING FILES TO PRESERVE:\n"
            prompt += "".join(f"- {path}\n" for path in sorted(files)[:MAX_LISTED_FILES])
        return prompt

    def generate(
        self,
        plan: ArchitecturePlan,
        messages: Sequence[ChatMessage],
        files: Mapping[str, str],
        context_summary: str,
    ) -> CodeDraft:
        """Generate commands for ``plan``.

        Tool calls win when present; otherwise the response text is scraped
        for fenced file blocks. Malformed tool calls are reported in
        ``CodeDraft.tool_errors``.

        Raises:
            GenerationServiceError: If the service call fails.
            CodeGenerationError: If the response is empty.
        """
        plan_context = (
            "ARCHITECT'S PLAN (FOLLOW EXACTLY):\n"
            f"{plan.model_dump_json(by_alias=True, indent=2)}\n\n"
            "Now generate the code following this plan. Use tool calls for each file."
        )
        response = self.service.generate(
            "code",
            self._build_system_prompt(files, context_summary),
            [*messages, ChatMessage(role="user", content=plan_context)],
            tools=FILE_TOOLS,
        )
        if not response.text.strip() and not response.tool_calls:
            raise CodeGenerationError("Code phase returned an empty response")

        if response.tool_calls:
            commands, errors = parse_tool_calls(response.tool_calls, files)
            draft = CodeDraft(
                message=strip_code_blocks(response.text),
                commands=commands,
                tool_errors=errors,
                from_tool_calls=True,
            )
        else:
            draft = CodeDraft(
                message=strip_code_blocks(response.text),
                commands=extract_file_operations(response.text, files),
            )

        logger.info(
            "Code phase produced %d command(s) (%s)",
            len(draft.commands),
            "tool calls" if draft.from_tool_calls else "text blocks",
        )
        return draft
