"""Unit tests for the pipeline graph nodes and topology."""

from unittest.mock import MagicMock

import pytest

from codesync.agents.exceptions import CodeGenerationError, PlanValidationError
from codesync.config import PipelineConfig
from codesync.models import (
    ArchitecturePlan,
    CodeDraft,
    CommandStatus,
    CommandType,
    FileCommand,
    SearchReplacePatch,
    ValidationResult,
)
from codesync.orchestrator.exceptions import GraphBuildError
from codesync.orchestrator.graph import (
    build_graph,
    continue_or_end,
    make_architect_node,
    make_code_node,
    make_validate_node,
)
from codesync.orchestrator.state import make_initial_state
from codesync.validation import ValidationEngine


# ---------------------------------------------------------------------------
# Helpers / shared fixtures
# ---------------------------------------------------------------------------


def make_plan() -> ArchitecturePlan:
    return ArchitecturePlan(understanding="Add an About page")


def make_draft(*commands: FileCommand, message: str = "Added the page.") -> CodeDraft:
    return CodeDraft(message=message, commands=list(commands), from_tool_calls=True)


def create(path: str, content: str) -> FileCommand:
    return FileCommand(command=CommandType.CREATE_FILE, path=path, content=content)


@pytest.fixture
def state(sample_files):
    return make_initial_state("Add an About page", files=sample_files)


# ---------------------------------------------------------------------------
# Architect node
# ---------------------------------------------------------------------------


class TestArchitectNode:
    def test_success(self, state, config):
        architect = MagicMock()
        architect.plan.return_value = make_plan()

        update = make_architect_node(architect, config)(state)

        assert update["plan"].understanding == "Add an About page"
        phase = update["phases"][0]
        assert phase.phase == "architect"
        assert phase.model == config.architect_model
        assert phase.success is True
        architect.plan.assert_called_once_with(
            state["messages"], state["project"].contents(), state["context_summary"]
        )

    def test_failure_recorded(self, state, config):
        architect = MagicMock()
        architect.plan.side_effect = PlanValidationError("Architect plan is malformed")

        update = make_architect_node(architect, config)(state)

        assert update["failed_phase"] == "architect"
        assert update["errors"] == ["Architect plan is malformed"]
        assert update["phases"][0].success is False
        assert "plan" not in update


# ---------------------------------------------------------------------------
# Code node
# ---------------------------------------------------------------------------


class TestCodeNode:
    def test_applies_commands_on_a_copy(self, state, config, about_tsx):
        state["plan"] = make_plan()
        coder = MagicMock()
        coder.generate.return_value = make_draft(create("src/pages/About.tsx", about_tsx))

        update = make_code_node(coder, config)(state)

        assert "src/pages/About.tsx" in update["project"]
        assert "src/pages/About.tsx" not in state["project"]
        assert update["applied"] == [
            {"command": update["draft"].commands[0], "content": about_tsx}
        ]
        assert update["outcomes"][0].status == CommandStatus.APPLIED
        assert update["phases"][0].summary == "Generated 1 files"
        assert update["phases"][0].success is True

    def test_rejected_and_failed_commands_become_warnings(self, state, config):
        state["plan"] = make_plan()
        coder = MagicMock()
        draft = make_draft(
            create("package.json", "{}"),
            FileCommand(
                command=CommandType.PATCH_FILE,
                path="src/App.tsx",
                patches=[SearchReplacePatch(search="not present", replace="x")],
            ),
        )
        draft.tool_errors = ["Unknown tool: rename_file"]
        coder.generate.return_value = draft

        update = make_code_node(coder, config)(state)

        assert update["applied"] == []
        assert [o.status for o in update["outcomes"]] == [
            CommandStatus.REJECTED,
            CommandStatus.PATCH_FAILED,
        ]
        assert update["warnings"] == [
            "Rejected tool call: Unknown tool: rename_file",
            "package.json: Protected path: package.json",
            "src/App.tsx: Patch failed for src/App.tsx; full-file replacement required",
        ]
        assert update["phases"][0].success is False

    def test_delete_recorded_without_content(self, state, config):
        state["plan"] = make_plan()
        coder = MagicMock()
        coder.generate.return_value = make_draft(
            FileCommand(command=CommandType.DELETE_FILE, path="src/pages/Home.tsx")
        )

        update = make_code_node(coder, config)(state)

        assert update["applied"][0]["content"] is None
        assert "src/pages/Home.tsx" not in update["project"]

    def test_patch_recorded_with_resulting_content(self, state, config):
        state["plan"] = make_plan()
        coder = MagicMock()
        coder.generate.return_value = make_draft(
            FileCommand(
                command=CommandType.PATCH_FILE,
                path="src/pages/Home.tsx",
                patches=[SearchReplacePatch(search=">Home<", replace=">Welcome<")],
            )
        )

        update = make_code_node(coder, config)(state)

        assert ">Welcome<" in update["applied"][0]["content"]

    def test_failure_recorded(self, state, config):
        state["plan"] = make_plan()
        coder = MagicMock()
        coder.generate.side_effect = CodeGenerationError("Code phase returned an empty response")

        update = make_code_node(coder, config)(state)

        assert update["failed_phase"] == "code"
        assert update["errors"] == ["Code phase returned an empty response"]


# ---------------------------------------------------------------------------
# Validate node
# ---------------------------------------------------------------------------


class TestValidateNode:
    def _state_with(self, state, *commands):
        project = state["project"].copy()
        project.apply_commands(commands)
        state["project"] = project
        return state

    def test_clean_files_skip_review(self, state, config, about_tsx):
        state = self._state_with(state, create("src/pages/About.tsx", about_tsx))
        reviewer = MagicMock()

        update = make_validate_node(ValidationEngine(), reviewer, config)(state)

        assert update["validation"].is_valid is True
        assert update["phases"][0].summary == "All validations passed"
        reviewer.review.assert_not_called()

    def test_only_touched_files_validated(self, sample_files, config, about_tsx):
        files = {**sample_files, "src/legacy.ts": "{"}
        state = make_initial_state("Add an About page", files=files)
        state = self._state_with(state, create("src/pages/About.tsx", about_tsx))

        update = make_validate_node(ValidationEngine(), None, config)(state)

        assert update["validation"].is_valid is True

    def test_errors_trigger_review(self, state, config):
        state = self._state_with(state, create("src/lib/broken.ts", "export function f() {\n"))
        reviewer = MagicMock()
        reviewer.review.return_value = ValidationResult(
            errors=["src/lib/broken.ts: Missing closing brace"],
            suggestions=["Close the function body"],
        )

        update = make_validate_node(ValidationEngine(), reviewer, config)(state)

        validation = update["validation"]
        assert validation.errors == [
            "src/lib/broken.ts: Unmatched brackets: 1 open, 0 close",
            "src/lib/broken.ts: Missing closing brace",
        ]
        assert validation.suggestions == ["Close the function body"]
        assert update["phases"][0].summary == "2 errors found"
        reviewer.review.assert_called_once_with({"src/lib/broken.ts": "export function f() {\n"})

    def test_reviewer_failure_ignored(self, state, config):
        state = self._state_with(state, create("src/lib/broken.ts", "{"))
        reviewer = MagicMock()
        reviewer.review.side_effect = RuntimeError("rate limited")

        update = make_validate_node(ValidationEngine(), reviewer, config)(state)

        assert "failed_phase" not in update
        assert len(update["validation"].errors) == 1

    def test_repairs_applied_to_project(self, state, config):
        content = "export default function About() {\n  console.log('x');\n  return <div />;\n}\n"
        state = self._state_with(state, create("src/pages/About.tsx", content))
        state["warnings"] = ["package.json: Protected path: package.json"]

        update = make_validate_node(ValidationEngine(), None, config)(state)

        repaired = update["project"].get("src/pages/About.tsx").content
        assert repaired.startswith("import React from 'react';\n")
        assert update["report"].repairs[0].path == "src/pages/About.tsx"
        assert update["validation"].warnings == [
            "package.json: Protected path: package.json",
            "src/pages/About.tsx: Contains console.log statements",
        ]


# ---------------------------------------------------------------------------
# Topology
# ---------------------------------------------------------------------------


class TestGraph:
    def test_continue_or_end(self):
        assert continue_or_end({"failed_phase": None}) == "continue"
        assert continue_or_end({"failed_phase": "code"}) == "end"

    def test_full_run(self, sample_files, about_tsx):
        architect = MagicMock()
        architect.plan.return_value = make_plan()
        coder = MagicMock()
        coder.generate.return_value = make_draft(create("src/pages/About.tsx", about_tsx))

        graph = build_graph(architect, coder, ValidationEngine(), MagicMock(), PipelineConfig())
        final = graph.invoke(make_initial_state("Add an About page", files=sample_files))

        assert [p.phase for p in final["phases"]] == ["architect", "code", "validate"]
        assert final["validation"].is_valid is True
        assert final["failed_phase"] is None

    def test_failure_stops_graph(self, sample_files):
        architect = MagicMock()
        architect.plan.side_effect = PlanValidationError("bad plan")
        coder = MagicMock()

        graph = build_graph(architect, coder, ValidationEngine())
        final = graph.invoke(make_initial_state("x", files=sample_files))

        assert final["failed_phase"] == "architect"
        assert [p.phase for p in final["phases"]] == ["architect"]
        coder.generate.assert_not_called()

    def test_build_error_wrapped(self, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("no graph")

        monkeypatch.setattr("codesync.orchestrator.graph.StateGraph", broken)
        with pytest.raises(GraphBuildError, match="no graph"):
            build_graph(MagicMock(), MagicMock(), ValidationEngine())
