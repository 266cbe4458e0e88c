"""LangGraph graph for the architect -> code -> validate pipeline.

Each node is built by a factory that closes over its agent. Nodes never
raise: failures are recorded in ``errors``/``failed_phase`` and a
conditional edge ends the run. No phase is retried.
"""

import logging
import time
from typing import Callable

from langgraph.graph import END, START, StateGraph

from codesync.agents.architect import ArchitectAgent
from codesync.agents.coder import CoderAgent
from codesync.agents.reviewer import ReviewerAgent
from codesync.config import PipelineConfig
from codesync.models import CommandStatus, CommandType, PhaseResult, ValidationResult
from codesync.orchestrator.exceptions import GraphBuildError
from codesync.orchestrator.state import AppliedChange, PipelineState
from codesync.validation.validator import ValidationEngine

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _failure(
    phase: str,
    model: str,
    started: float,
    exc: Exception,
) -> dict:
    logger.error("%s phase failed: %s", phase, exc)
    return {
        "errors": [str(exc)],
        "failed_phase": phase,
        "phases": [
            PhaseResult(
                phase=phase,
                model=model,
                duration_ms=_elapsed_ms(started),
                success=False,
                summary=str(exc),
            )
        ],
    }


def make_architect_node(
    architect: ArchitectAgent,
    config: PipelineConfig,
) -> Callable[[PipelineState], dict]:
    """Factory: returns a node closure that produces the plan.

    On error: returns {"errors": [str], "failed_phase": "architect", ...}
    """
    model = config.model_for_phase("architect")

    def architect_node(state: PipelineState) -> dict:
        started = time.monotonic()
        try:
            plan = architect.plan(
                state["messages"],
                state["project"].contents(),
                state["context_summary"],
            )
        except Exception as exc:
            return _failure("architect", model, started, exc)

        return {
            "plan": plan,
            "phases": [
                PhaseResult(
                    phase="architect",
                    model=model,
                    duration_ms=_elapsed_ms(started),
                    success=True,
                    summary=plan.understanding or "Plan created",
                )
            ],
        }

    return architect_node


def make_code_node(
    coder: CoderAgent,
    config: PipelineConfig,
) -> Callable[[PipelineState], dict]:
    """Factory: returns a node closure that generates and applies commands.

    Commands are applied to a copy of the project state in order. Rejected,
    failed, and missing commands are reported as outcomes and warnings; only
    applied commands appear in ``applied``.
    """
    model = config.model_for_phase("code")

    def code_node(state: PipelineState) -> dict:
        started = time.monotonic()
        project = state["project"].copy()
        try:
            draft = coder.generate(
                state["plan"],
                state["messages"],
                project.contents(),
                state["context_summary"],
            )
        except Exception as exc:
            return _failure("code", model, started, exc)

        outcomes = []
        applied: list[AppliedChange] = []
        warnings = [f"Rejected tool call: {error}" for error in draft.tool_errors]
        for command in draft.commands:
            outcome = project.apply_command(command)
            outcomes.append(outcome)
            if outcome.status == CommandStatus.APPLIED:
                current = project.get(command.path)
                applied.append(
                    {
                        "command": command,
                        "content": None
                        if command.command == CommandType.DELETE_FILE
                        else current.content,
                    }
                )
            else:
                warnings.append(f"{outcome.path}: {outcome.error}")

        return {
            "project": project,
            "draft": draft,
            "outcomes": outcomes,
            "applied": applied,
            "warnings": warnings,
            "phases": [
                PhaseResult(
                    phase="code",
                    model=model,
                    duration_ms=_elapsed_ms(started),
                    success=bool(applied),
                    summary=f"Generated {len(applied)} files",
                )
            ],
        }

    return code_node


def make_validate_node(
    engine: ValidationEngine,
    reviewer: ReviewerAgent | None,
    config: PipelineConfig,
) -> Callable[[PipelineState], dict]:
    """Factory: returns a node closure that validates and repairs this turn's files.

    Local checks always run. The reviewer is consulted only when local
    validation found errors; a reviewer failure is logged and ignored.
    """
    model = config.model_for_phase("validate")

    def validate_node(state: PipelineState) -> dict:
        started = time.monotonic()
        project = state["project"].copy()
        try:
            touched = {
                path: project.get(path).content
                for path in project.touched_paths
                if path in project
            }
            report = engine.validate(touched, known_files=project.paths)
            for repair in report.repairs:
                project.replace_content(repair.path, repair.content)

            validation = ValidationResult(
                errors=[str(issue) for issue in report.errors],
                warnings=list(state["warnings"]) + [str(issue) for issue in report.warnings],
            )

            if not report.valid and reviewer is not None:
                flagged = sorted({issue.file for issue in report.errors})
                try:
                    review = reviewer.review({path: project.get(path).content for path in flagged})
                except Exception as exc:
                    logger.warning("AI review failed: %s", exc)
                else:
                    validation.errors.extend(review.errors)
                    validation.warnings.extend(review.warnings)
                    validation.suggestions.extend(review.suggestions)
        except Exception as exc:
            return _failure("validate", model, started, exc)

        return {
            "project": project,
            "report": report,
            "validation": validation,
            "phases": [
                PhaseResult(
                    phase="validate",
                    model=model,
                    duration_ms=_elapsed_ms(started),
                    success=validation.is_valid,
                    summary="All validations passed"
                    if validation.is_valid
                    else f"{len(validation.errors)} errors found",
                )
            ],
        }

    return validate_node


def continue_or_end(state: PipelineState) -> str:
    """Router: stop the graph once any node has recorded a failure."""
    return "end" if state.get("failed_phase") else "continue"


def build_graph(
    architect: ArchitectAgent,
    coder: CoderAgent,
    engine: ValidationEngine,
    reviewer: ReviewerAgent | None = None,
    config: PipelineConfig | None = None,
):
    """Build and compile the pipeline StateGraph.

    Edge topology:
      START -> architect_node -> conditional -> {code_node, END}
      code_node -> conditional -> {validate_node, END}
      validate_node -> END

    Args:
        architect: Agent for the architect phase.
        coder: Agent for the code phase.
        engine: Local validation engine.
        reviewer: Optional AI reviewer for the validate phase.
        config: Pipeline configuration.

    Returns:
        CompiledStateGraph ready to invoke or stream.

    Raises:
        GraphBuildError: If graph construction fails.
    """
    config = config or PipelineConfig()
    try:
        graph = StateGraph(PipelineState)

        graph.add_node("architect_node", make_architect_node(architect, config))
        graph.add_node("code_node", make_code_node(coder, config))
        graph.add_node("validate_node", make_validate_node(engine, reviewer, config))

        graph.add_edge(START, "architect_node")
        graph.add_conditional_edges(
            "architect_node",
            continue_or_end,
            {"continue": "code_node", "end": END},
        )
        graph.add_conditional_edges(
            "code_node",
            continue_or_end,
            {"continue": "validate_node", "end": END},
        )
        graph.add_edge("validate_node", END)

        return graph.compile()

    except Exception as exc:
        raise GraphBuildError(f"Failed to build pipeline graph: {exc}") from exc
