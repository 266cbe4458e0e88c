"""Pipeline runner: batch and streaming execution of the phase graph.

Streaming is a single-producer generator. The graph is advanced only when
the consumer asks for the next event, so closing the generator stops the
run before the next phase starts.
"""

import logging
import time
from typing import Iterable, Iterator, Mapping, Sequence

from pydantic import ValidationError

from codesync.agents.architect import ArchitectAgent
from codesync.agents.coder import CoderAgent
from codesync.agents.generation_service import GenerationService
from codesync.agents.reviewer import ReviewerAgent
from codesync.config import PipelineConfig
from codesync.models import (
    SYNC_EVENT_ADAPTER,
    TERMINAL_EVENT_TYPES,
    ArchitecturePlan,
    ChatMessage,
    ChunkEvent,
    CodeDraft,
    CommandType,
    CompleteEvent,
    ErrorEvent,
    FileEvent,
    PhaseResult,
    PipelineResult,
    StageEvent,
    SyncEvent,
    ValidationReport,
    ValidationResult,
)
from codesync.orchestrator.exceptions import PhaseError
from codesync.orchestrator.graph import build_graph
from codesync.orchestrator.state import AppliedChange, PipelineState, make_initial_state
from codesync.sync.output_parser import extract_routes
from codesync.validation.validator import ValidationEngine

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"
SSE_PREFIX = "data:"

STAGE_MESSAGES = {
    "architect": "Planning changes",
    "code": "Generating code",
    "validate": "Validating generated code",
}


def _dedupe(items: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(items))


def _generated_paths(applied: Sequence[AppliedChange]) -> list[str]:
    return _dedupe(
        change["command"].path
        for change in applied
        if change["command"].command != CommandType.DELETE_FILE
    )


def _ai_message(plan: ArchitecturePlan | None, draft: CodeDraft | None) -> str:
    if draft is not None and draft.message:
        return draft.message
    if plan is not None:
        return plan.understanding
    return ""


def _models_used(phases: Sequence[PhaseResult]) -> list[str]:
    return _dedupe(phase.model for phase in phases)


def chunk_content(path: str, content: str, chunk_size: int) -> Iterator[ChunkEvent]:
    """Split ``content`` into ordered, fixed-size chunk events."""
    for index, start in enumerate(range(0, len(content), chunk_size)):
        yield ChunkEvent(path=path, index=index, chunk=content[start:start + chunk_size])


class Pipeline:
    """Runs architect -> code -> validate over one project snapshot.

    Agents default to ones built on a shared GenerationService; any of them
    may be injected instead.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        service: GenerationService | None = None,
        architect: ArchitectAgent | None = None,
        coder: CoderAgent | None = None,
        reviewer: ReviewerAgent | None = None,
        engine: ValidationEngine | None = None,
    ):
        self.config = config or PipelineConfig()
        if service is None and None in (architect, coder, reviewer):
            service = GenerationService(self.config)
        self.architect = architect or ArchitectAgent(service)
        self.coder = coder or CoderAgent(service)
        self.reviewer = reviewer or ReviewerAgent(service)
        self.engine = engine or ValidationEngine()
        self.graph = build_graph(
            self.architect,
            self.coder,
            self.engine,
            self.reviewer,
            self.config,
        )

    def _initial_state(
        self,
        request: str,
        history: Sequence[ChatMessage],
        files: Mapping[str, str] | None,
    ) -> PipelineState:
        return make_initial_state(request, history, files, self.config)

    def run(
        self,
        request: str,
        history: Sequence[ChatMessage] = (),
        files: Mapping[str, str] | None = None,
        raise_on_failure: bool = False,
    ) -> PipelineResult:
        """Run every phase and return one aggregated result.

        Args:
            request: The user's request.
            history: Prior conversation, oldest first.
            files: Current project contents, ``{path: content}``.
            raise_on_failure: Raise PhaseError instead of returning an
                unsuccessful result when a phase fails.

        Returns:
            PipelineResult. ``success`` is False when a phase failed or the
            final validation has errors.

        Raises:
            PhaseError: Only when ``raise_on_failure`` is set.
        """
        started = time.monotonic()
        final = self.graph.invoke(self._initial_state(request, history, files))
        elapsed = int((time.monotonic() - started) * 1000)
        phases = list(final["phases"])

        if final["failed_phase"]:
            reason = final["errors"][-1] if final["errors"] else "Unknown error"
            if raise_on_failure:
                raise PhaseError(final["failed_phase"], reason)
            return PipelineResult(
                success=False,
                message=f"Pipeline failed: {reason}",
                phases=phases,
                commands=final["draft"].commands if final["draft"] else [],
                outcomes=list(final["outcomes"]),
                validation=ValidationResult(errors=list(final["errors"])),
                models_used=_models_used(phases),
                total_duration_ms=elapsed,
            )

        project = final["project"]
        validation = final["validation"] or ValidationResult()
        report = final["report"] or ValidationReport()
        paths = _generated_paths(final["applied"])
        return PipelineResult(
            success=validation.is_valid,
            message=_ai_message(final["plan"], final["draft"]),
            phases=phases,
            commands=final["draft"].commands if final["draft"] else [],
            outcomes=list(final["outcomes"]),
            validation=validation,
            repairs=list(report.repairs),
            files=[project.get(p) for p in project.changed_paths() if p in project],
            routes=extract_routes(paths),
            suggestions=list(validation.suggestions),
            models_used=_models_used(phases),
            total_duration_ms=elapsed,
        )

    def stream(
        self,
        request: str,
        history: Sequence[ChatMessage] = (),
        files: Mapping[str, str] | None = None,
    ) -> Iterator[SyncEvent]:
        """Run the phases and yield progress events as they happen.

        Order: architect start/complete, code start, a file event plus its
        chunk events per applied command, code complete, validate
        start/complete, complete. A failure yields exactly one error event
        and ends the stream.
        """
        updates = self.graph.stream(
            self._initial_state(request, history, files),
            stream_mode="updates",
        )
        current = "architect"
        plan: ArchitecturePlan | None = None
        draft: CodeDraft | None = None
        applied: list[AppliedChange] = []
        validation = ValidationResult()
        report = ValidationReport()
        phases: list[PhaseResult] = []

        yield StageEvent(stage="architect", status="start", message=STAGE_MESSAGES["architect"])
        try:
            for chunk in updates:
                for node_name, update in chunk.items():
                    current = node_name.removesuffix("_node")
                    update = update or {}
                    phases.extend(update.get("phases", []))

                    if update.get("failed_phase"):
                        errors = update.get("errors") or ["Pipeline failed"]
                        yield ErrorEvent(message=errors[-1], stage=update["failed_phase"])
                        return

                    if current == "architect":
                        plan = update["plan"]
                        yield StageEvent(
                            stage="architect",
                            status="complete",
                            message=plan.understanding,
                            data={"steps": len(plan.steps), "durationMs": phases[-1].duration_ms},
                        )
                        yield StageEvent(stage="code", status="start", message=STAGE_MESSAGES["code"])

                    elif current == "code":
                        draft = update["draft"]
                        applied = update.get("applied", [])
                        for change in applied:
                            yield from self._file_events(change)
                        yield StageEvent(
                            stage="code",
                            status="complete",
                            message=phases[-1].summary,
                            data={
                                "filesCreated": _generated_paths(applied),
                                "outcomes": [
                                    o.model_dump(mode="json", exclude_none=True)
                                    for o in update.get("outcomes", [])
                                ],
                                "durationMs": phases[-1].duration_ms,
                            },
                        )
                        yield StageEvent(
                            stage="validate", status="start", message=STAGE_MESSAGES["validate"]
                        )

                    elif current == "validate":
                        validation = update["validation"]
                        report = update["report"]
                        yield StageEvent(
                            stage="validate",
                            status="complete",
                            message=phases[-1].summary,
                            data={
                                "isValid": validation.is_valid,
                                "errors": validation.errors,
                                "warnings": validation.warnings,
                                "repairs": [r.model_dump() for r in report.repairs],
                                "durationMs": phases[-1].duration_ms,
                            },
                        )
        except Exception as exc:
            logger.exception("Pipeline stream failed during %s", current)
            yield ErrorEvent(message=str(exc), stage=current)
            return
        finally:
            updates.close()

        paths = _generated_paths(applied)
        yield CompleteEvent(
            files_generated=len(paths),
            file_paths=paths,
            ai_message=_ai_message(plan, draft),
            routes=extract_routes(paths),
            suggestions=list(validation.suggestions),
            models_used=_models_used(phases),
            validation_passed=validation.is_valid,
            repair_attempts=len(report.repairs),
        )

    def _file_events(self, change: AppliedChange) -> Iterator[SyncEvent]:
        command = change["command"]
        yield FileEvent(
            command=command.command,
            path=command.path,
            patches=command.patches,
        )
        if change["content"]:
            yield from chunk_content(command.path, change["content"], self.config.chunk_size)


def encode_event(event: SyncEvent) -> str:
    """Serialize one event as a single camelCase JSON line (no newline)."""
    return event.model_dump_json(by_alias=True, exclude_none=True)


def encode_stream(events: Iterable[SyncEvent], sse: bool = False) -> Iterator[str]:
    """Yield wire lines for ``events``, then the sentinel after the terminal event.

    With ``sse`` each line is framed as ``data: ...`` followed by a blank line.
    A stream that ends without a terminal event gets no sentinel.
    """

    def frame(payload: str) -> str:
        return f"{SSE_PREFIX} {payload}\n\n" if sse else f"{payload}\n"

    for event in events:
        yield frame(encode_event(event))
        if event.type in TERMINAL_EVENT_TYPES:
            yield frame(DONE_SENTINEL)
            return


def parse_event_line(line: str) -> SyncEvent | None:
    """Parse one wire line back into an event.

    Returns None for blank lines, the sentinel, and malformed lines.
    """
    payload = line.strip()
    if payload.startswith(SSE_PREFIX):
        payload = payload[len(SSE_PREFIX):].strip()
    if not payload or payload == DONE_SENTINEL:
        return None
    try:
        return SYNC_EVENT_ADAPTER.validate_json(payload)
    except ValidationError as e:
        logger.debug("Ignoring malformed event line: %s", e)
        return None
