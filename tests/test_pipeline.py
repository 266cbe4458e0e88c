"""Tests for batch and streaming pipeline execution."""

import json
from unittest.mock import MagicMock

import pytest

from codesync.agents.exceptions import CodeGenerationError, GenerationServiceError
from codesync.config import PipelineConfig
from codesync.models import (
    ArchitecturePlan,
    ChatMessage,
    ChunkEvent,
    CodeDraft,
    CommandType,
    CompleteEvent,
    ErrorEvent,
    FileCommand,
    StageEvent,
    ValidationResult,
)
from codesync.orchestrator.exceptions import PhaseError
from codesync.orchestrator.pipeline import (
    DONE_SENTINEL,
    Pipeline,
    chunk_content,
    encode_event,
    encode_stream,
    parse_event_line,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _create(path: str, content: str) -> FileCommand:
    return FileCommand(command=CommandType.CREATE_FILE, path=path, content=content)


def _make_pipeline(plan_payload, *commands, config=None, message="I added an About page."):
    architect = MagicMock()
    architect.plan.return_value = ArchitecturePlan.model_validate(plan_payload)
    coder = MagicMock()
    coder.generate.return_value = CodeDraft(message=message, commands=list(commands))
    reviewer = MagicMock()
    reviewer.review.return_value = ValidationResult()
    pipeline = Pipeline(
        config=config or PipelineConfig(),
        architect=architect,
        coder=coder,
        reviewer=reviewer,
    )
    return pipeline, architect, coder, reviewer


def _kinds(events):
    kinds = []
    for event in events:
        if isinstance(event, StageEvent):
            kinds.append(f"{event.stage}:{event.status}")
        else:
            kinds.append(event.type)
    return kinds


# ---------------------------------------------------------------------------
# Batch mode
# ---------------------------------------------------------------------------


class TestPipelineRun:
    def test_success(self, plan_payload, sample_files, about_tsx):
        pipeline, _, _, reviewer = _make_pipeline(
            plan_payload, _create("src/pages/About.tsx", about_tsx)
        )

        result = pipeline.run("Add an About page", files=sample_files)

        assert result.success is True
        assert result.message == "I added an About page."
        assert [p.phase for p in result.phases] == ["architect", "code", "validate"]
        assert [f.path for f in result.files] == ["src/pages/About.tsx"]
        assert result.routes == ["/", "/about"]
        assert result.models_used == [
            PipelineConfig().architect_model,
            PipelineConfig().validate_model,
        ]
        assert result.applied_paths == ["src/pages/About.tsx"]
        reviewer.review.assert_not_called()

    def test_input_files_not_mutated(self, plan_payload, sample_files, about_tsx):
        pipeline, *_ = _make_pipeline(plan_payload, _create("src/pages/About.tsx", about_tsx))
        before = dict(sample_files)
        pipeline.run("Add an About page", files=sample_files)
        assert sample_files == before

    def test_history_passed_to_agents(self, plan_payload, about_tsx):
        pipeline, architect, *_ = _make_pipeline(
            plan_payload, _create("src/pages/About.tsx", about_tsx)
        )
        history = [
            ChatMessage(role="user", content="Build a landing page"),
            ChatMessage(role="assistant", content="Done."),
        ]

        pipeline.run("Add an About page", history=history)

        messages = architect.plan.call_args.args[0]
        assert [m.content for m in messages] == [
            "Build a landing page",
            "Done.",
            "Add an About page",
        ]

    def test_message_falls_back_to_plan_understanding(self, plan_payload, about_tsx):
        pipeline, *_ = _make_pipeline(
            plan_payload, _create("src/pages/About.tsx", about_tsx), message=""
        )
        result = pipeline.run("Add an About page")
        assert result.message == "Add an About page linked from the app"

    def test_validation_errors_fail_the_run(self, plan_payload):
        pipeline, _, _, reviewer = _make_pipeline(
            plan_payload, _create("src/lib/broken.ts", "export function f() {\n")
        )

        result = pipeline.run("Add a helper")

        assert result.success is False
        assert result.validation.errors == [
            "src/lib/broken.ts: Unmatched brackets: 1 open, 0 close"
        ]
        reviewer.review.assert_called_once()

    def test_rejected_command_reported(self, plan_payload, sample_files, about_tsx):
        pipeline, *_ = _make_pipeline(
            plan_payload,
            _create("package.json", "{}"),
            _create("src/pages/About.tsx", about_tsx),
        )

        result = pipeline.run("Add an About page", files=sample_files)

        assert result.success is True
        assert [f.path for f in result.files] == ["src/pages/About.tsx"]
        assert "package.json: Protected path: package.json" in result.validation.warnings

    def test_phase_failure(self, plan_payload, sample_files):
        pipeline, _, coder, _ = _make_pipeline(plan_payload)
        coder.generate.side_effect = CodeGenerationError("Code phase returned an empty response")

        result = pipeline.run("Add an About page", files=sample_files)

        assert result.success is False
        assert result.message == "Pipeline failed: Code phase returned an empty response"
        assert result.validation.errors == ["Code phase returned an empty response"]
        assert [(p.phase, p.success) for p in result.phases] == [
            ("architect", True),
            ("code", False),
        ]
        assert result.files == []

    def test_raise_on_failure(self, plan_payload):
        pipeline, architect, _, _ = _make_pipeline(plan_payload)
        architect.plan.side_effect = GenerationServiceError("Architect phase failed: timeout")

        with pytest.raises(PhaseError) as exc_info:
            pipeline.run("x", raise_on_failure=True)
        assert exc_info.value.phase == "architect"
        assert str(exc_info.value) == "Architect phase failed: timeout"


# ---------------------------------------------------------------------------
# Streaming mode
# ---------------------------------------------------------------------------


class TestPipelineStream:
    def test_event_order(self, plan_payload, sample_files, about_tsx):
        pipeline, *_ = _make_pipeline(plan_payload, _create("src/pages/About.tsx", about_tsx))

        events = list(pipeline.stream("Add an About page", files=sample_files))

        assert _kinds(events) == [
            "architect:start",
            "architect:complete",
            "code:start",
            "file",
            "chunk",
            "code:complete",
            "validate:start",
            "validate:complete",
            "complete",
        ]
        assert events[1].data["steps"] == 1
        assert events[5].data["filesCreated"] == ["src/pages/About.tsx"]
        assert events[7].data["isValid"] is True

        complete = events[-1]
        assert isinstance(complete, CompleteEvent)
        assert complete.files_generated == 1
        assert complete.file_paths == ["src/pages/About.tsx"]
        assert complete.routes == ["/", "/about"]
        assert complete.validation_passed is True
        assert complete.ai_message == "I added an About page."

    def test_chunks_rebuild_content(self, plan_payload, about_tsx):
        config = PipelineConfig(chunk_size=16)
        pipeline, *_ = _make_pipeline(
            plan_payload, _create("src/pages/About.tsx", about_tsx), config=config
        )

        chunks = [e for e in pipeline.stream("Add an About page") if isinstance(e, ChunkEvent)]

        assert [c.index for c in chunks] == list(range(len(chunks)))
        assert all(len(c.chunk) <= 16 for c in chunks)
        assert "".join(c.chunk for c in chunks) == about_tsx

    def test_delete_has_no_chunks(self, plan_payload, sample_files):
        pipeline, *_ = _make_pipeline(
            plan_payload, FileCommand(command=CommandType.DELETE_FILE, path="src/pages/Home.tsx")
        )

        events = list(pipeline.stream("Remove Home", files=sample_files))

        file_events = [e for e in events if e.type == "file"]
        assert file_events[0].command == CommandType.DELETE_FILE
        assert not any(e.type == "chunk" for e in events)
        assert events[-1].files_generated == 0

    def test_code_failure_ends_with_single_error(self, plan_payload, sample_files):
        pipeline, _, coder, _ = _make_pipeline(plan_payload)
        coder.generate.side_effect = GenerationServiceError("Code phase failed: timeout")

        events = list(pipeline.stream("Add an About page", files=sample_files))

        assert _kinds(events) == ["architect:start", "architect:complete", "code:start", "error"]
        assert isinstance(events[-1], ErrorEvent)
        assert events[-1].message == "Code phase failed: timeout"
        assert events[-1].stage == "code"

    def test_closing_stream_stops_run(self, plan_payload):
        pipeline, architect, coder, _ = _make_pipeline(plan_payload)

        stream = pipeline.stream("Add an About page")
        first = next(stream)
        stream.close()

        assert first.stage == "architect"
        assert first.status == "start"
        architect.plan.assert_not_called()
        coder.generate.assert_not_called()


# ---------------------------------------------------------------------------
# Wire helpers
# ---------------------------------------------------------------------------


class TestWireFormat:
    def test_chunk_content(self):
        chunks = list(chunk_content("src/a.ts", "abcdefg", 3))
        assert [(c.index, c.chunk) for c in chunks] == [(0, "abc"), (1, "def"), (2, "g")]

    def test_chunk_content_empty(self):
        assert list(chunk_content("src/a.ts", "", 3)) == []

    def test_encode_event_is_single_camel_case_line(self):
        line = encode_event(CompleteEvent(files_generated=2, validation_passed=False))
        assert "\n" not in line
        assert json.loads(line)["filesGenerated"] == 2

    def test_encode_stream_appends_sentinel_after_terminal(self):
        events = [
            StageEvent(stage="architect", status="start"),
            ErrorEvent(message="boom", stage="architect"),
            StageEvent(stage="code", status="start"),
        ]
        lines = list(encode_stream(events))

        assert len(lines) == 3
        assert all(line.endswith("\n") for line in lines)
        assert lines[-1] == DONE_SENTINEL + "\n"

    def test_encode_stream_sse_framing(self):
        lines = list(encode_stream([ErrorEvent(message="boom")], sse=True))
        assert lines == [
            'data: {"type":"error","message":"boom"}\n\n',
            "data: [DONE]\n\n",
        ]

    def test_no_sentinel_without_terminal_event(self):
        lines = list(encode_stream([StageEvent(stage="code", status="start")]))
        assert DONE_SENTINEL not in "".join(lines)

    def test_parse_event_line_round_trip(self):
        event = ChunkEvent(path="src/a.ts", index=0, chunk="export {};")
        for line in encode_stream([event, ErrorEvent(message="x")], sse=True):
            parsed = parse_event_line(line)
            if parsed is not None and parsed.type == "chunk":
                assert parsed == event

    @pytest.mark.parametrize("line", ["", "\n", "[DONE]", "data: [DONE]", "{not json", '{"type": "nope"}'])
    def test_parse_event_line_ignores_non_events(self, line):
        assert parse_event_line(line) is None
