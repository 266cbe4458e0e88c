"""Architect agent: turns a request into a structured file plan."""

import logging
from typing import Iterable, Mapping, Sequence

from pydantic import ValidationError

from codesync.agents.exceptions import PlanValidationError
from codesync.agents.generation_service import GenerationService, parse_json_object
from codesync.models import ArchitecturePlan, ChatMessage
from codesync.sync.path_guard import is_path_writeable, is_secret_path

logger = logging.getLogger(__name__)

MAX_CONTEXT_FILES = 8
MAX_FILE_PREVIEW = 2000

ARCHITECT_PROMPT = """You are the Architect phase of a multi-stage code generation pipeline.

YOUR ROLE:
1. Analyze the user's request thoroughly
2. Identify what files need to be created or modified
3. Plan the component structure and data flow
4. Output a structured plan for the Code phase

OUTPUT FORMAT (JSON):
{
  "understanding": "Brief summary of what the user wants",
  "plan": [
    {
      "step": 1,
      "action": "create",
      "path": "src/components/MyComponent.tsx",
      "description": "Main component that handles X",
      "dependencies": [],
      "considerations": ["Must import Y"]
    }
  ],
  "architecture": {
    "components": ["ComponentA", "ComponentB"],
    "dataFlow": "User input -> ComponentA -> ComponentB",
    "stateManagement": "Local state with useState"
  },
  "risks": ["Potential issue X"]
}

RULES:
- Be thorough but concise
- "action" is one of create, update, delete, patch
- Paths are project-relative and never touch config or lock files
- Use Tailwind semantic tokens and React/TypeScript conventions"""


def build_file_context(
    files: Mapping[str, str],
    protected_patterns: Iterable[str] | None = None,
) -> str:
    """Render up to MAX_CONTEXT_FILES project files as fenced previews.

    Dotenv files are never included. Writeable files come first, in path
    order, so protected config and lock files cannot crowd out sources.
    """
    patterns = tuple(protected_patterns) if protected_patterns is not None else None
    paths = sorted(
        (p for p in files if not is_secret_path(p)),
        key=lambda p: (not is_path_writeable(p, patterns), p),
    )
    if not paths:
        return ""
    context = "\n\nEXISTING PROJECT FILES:\n"
    for path in paths[:MAX_CONTEXT_FILES]:
        context += f"\n{path}:\n```\n{files[path][:MAX_FILE_PREVIEW]}\n```\n"
    return context


def parse_plan(text: str) -> ArchitecturePlan:
    """Validate an architect response into an ArchitecturePlan.

    Raises:
        PlanValidationError: If the text is not JSON or not plan-shaped.
    """
    try:
        data = parse_json_object(text)
    except ValueError as e:
        raise PlanValidationError(f"Architect response is not a JSON object: {e}") from e
    try:
        return ArchitecturePlan.model_validate(data)
    except ValidationError as e:
        raise PlanValidationError(f"Architect plan is malformed: {e}") from e


class ArchitectAgent:
    """Plans the files a request needs."""

    def __init__(self, service: GenerationService):
        self.service = service

    def plan(
        self,
        messages: Sequence[ChatMessage],
        files: Mapping[str, str],
        context_summary: str,
    ) -> ArchitecturePlan:
        """Ask the service for a plan and validate it.

        Args:
            messages: Trimmed history followed by the current request.
            files: Current project contents, ``{path: content}``.
            context_summary: Digest from ``build_context_summary``.

        Returns:
            The validated plan.

        Raises:
            GenerationServiceError: If the service call fails.
            PlanValidationError: If the response is not a valid plan.
        """
        system_prompt = (
            ARCHITECT_PROMPT
            + "\n\n"
            + context_summary
            + build_file_context(files, self.service.config.protected_patterns)
        )
        response = self.service.generate(
            "architect",
            system_prompt,
            messages,
            json_mode=True,
        )
        plan = parse_plan(response.text)
        logger.info("Architect planned %d step(s)", len(plan.steps))
        return plan
