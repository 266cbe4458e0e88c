"""Data models for codesync."""

from codesync.models.command_models import CommandType, FileCommand, SearchReplacePatch
from codesync.models.generation_models import ChatMessage, CodeDraft, GenerationResponse, ToolCall
from codesync.models.event_models import (
    SYNC_EVENT_ADAPTER,
    TERMINAL_EVENT_TYPES,
    ChunkEvent,
    CompleteEvent,
    ErrorEvent,
    FileEvent,
    StageEvent,
    SyncEvent,
)
from codesync.models.plan_models import ArchitectureNotes, ArchitecturePlan, PlanStep
from codesync.models.project_models import PathCheck, ProjectFile, TreeNode, language_for_path
from codesync.models.report_models import (
    CommandOutcome,
    CommandStatus,
    IssueSeverity,
    PhaseName,
    PhaseResult,
    PipelineResult,
    Repair,
    ValidationIssue,
    ValidationReport,
    ValidationResult,
)

__all__ = [
    "ArchitectureNotes",
    "ArchitecturePlan",
    "ChatMessage",
    "ChunkEvent",
    "CodeDraft",
    "CommandOutcome",
    "CommandStatus",
    "CommandType",
    "CompleteEvent",
    "ErrorEvent",
    "FileCommand",
    "FileEvent",
    "GenerationResponse",
    "IssueSeverity",
    "PathCheck",
    "PhaseName",
    "PhaseResult",
    "PipelineResult",
    "PlanStep",
    "ProjectFile",
    "Repair",
    "SYNC_EVENT_ADAPTER",
    "SearchReplacePatch",
    "StageEvent",
    "SyncEvent",
    "TERMINAL_EVENT_TYPES",
    "ToolCall",
    "TreeNode",
    "ValidationIssue",
    "ValidationReport",
    "ValidationResult",
    "language_for_path",
]
