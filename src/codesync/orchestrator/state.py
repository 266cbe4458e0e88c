"""State definition for the LangGraph pipeline."""

import operator
from typing import Annotated, Mapping, Optional, Sequence, TypedDict

from codesync.config import PipelineConfig
from codesync.models import (
    ArchitecturePlan,
    ChatMessage,
    CodeDraft,
    CommandOutcome,
    FileCommand,
    PhaseResult,
    ValidationReport,
    ValidationResult,
)
from codesync.sync.context_summary import build_context_summary
from codesync.sync.project_state import ProjectState


class AppliedChange(TypedDict):
    """A command that reached the project, with the file content right after it.

    ``content`` is None for deletions.
    """

    command: FileCommand
    content: Optional[str]


class PipelineState(TypedDict):
    """State for one pipeline invocation.

    Fields with Annotated[list, operator.add] reducers accumulate across nodes.
    All other fields use default overwrite semantics.
    """

    # Input
    request: str
    messages: list[ChatMessage]
    project: ProjectState
    context_summary: str

    # Architect
    plan: ArchitecturePlan | None

    # Code
    draft: CodeDraft | None
    outcomes: Annotated[list[CommandOutcome], operator.add]
    applied: Annotated[list[AppliedChange], operator.add]

    # Validate
    report: ValidationReport | None
    validation: ValidationResult | None

    # Bookkeeping
    phases: Annotated[list[PhaseResult], operator.add]
    warnings: Annotated[list[str], operator.add]
    errors: Annotated[list[str], operator.add]
    failed_phase: str | None


def trim_history(history: Sequence[ChatMessage], limit: int) -> list[ChatMessage]:
    """Keep the most recent ``limit`` messages (none when ``limit`` is 0)."""
    if limit <= 0:
        return []
    return list(history)[-limit:]


def make_initial_state(
    request: str,
    history: Sequence[ChatMessage] = (),
    files: Mapping[str, str] | None = None,
    config: PipelineConfig | None = None,
) -> PipelineState:
    """Create the initial state for one pipeline run.

    Args:
        request: The user's request for this turn.
        history: Prior conversation, oldest first; trimmed to
            ``config.history_limit``.
        files: Current project contents, ``{path: content}``.
        config: Pipeline configuration.

    Returns:
        PipelineState with a private ProjectState copy of ``files``.
    """
    config = config or PipelineConfig()
    project = ProjectState(files or {}, config=config)
    messages = trim_history(history, config.history_limit)
    messages.append(ChatMessage(role="user", content=request))
    return {
        "request": request,
        "messages": messages,
        "project": project,
        "context_summary": build_context_summary(project.files),
        "plan": None,
        "draft": None,
        "outcomes": [],
        "applied": [],
        "report": None,
        "validation": None,
        "phases": [],
        "warnings": [],
        "errors": [],
        "failed_phase": None,
    }
