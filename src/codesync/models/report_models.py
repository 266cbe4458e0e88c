"""Report models for validation, phases, and pipeline results."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from codesync.models.command_models import CommandType, FileCommand
from codesync.models.project_models import ProjectFile


class IssueSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ValidationIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    file: str
    message: str
    severity: IssueSeverity
    line: int | None = None

    def __str__(self) -> str:
        return f"{self.file}: {self.message}"


class Repair(BaseModel):
    """An automatically applied, narrowly scoped fix."""

    model_config = ConfigDict(frozen=True)

    path: str
    content: str
    reason: str


class ValidationReport(BaseModel):
    """Output of the local validation engine.

    ``valid`` is derived from ``errors``; it cannot be set independently.
    """

    model_config = ConfigDict(frozen=False)

    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)
    repairs: list[Repair] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def valid(self) -> bool:
        return len(self.errors) == 0


class ValidationResult(BaseModel):
    """Pipeline-level validation outcome (local checks plus AI review)."""

    model_config = ConfigDict(frozen=False)

    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0


PhaseName = Literal["architect", "code", "validate"]


class PhaseResult(BaseModel):
    """Record of one completed (or failed) phase. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    phase: PhaseName
    model: str
    duration_ms: int
    success: bool
    summary: str = ""


class CommandStatus(str, Enum):
    APPLIED = "applied"
    REJECTED = "rejected"
    PATCH_FAILED = "patch_failed"
    MISSING = "missing"


class CommandOutcome(BaseModel):
    """What happened when a FileCommand met the project state."""

    model_config = ConfigDict(frozen=True)

    command: CommandType
    path: str
    status: CommandStatus
    error: str | None = None


class PipelineResult(BaseModel):
    """Aggregated batch-mode result of one pipeline invocation."""

    model_config = ConfigDict(frozen=False)

    success: bool
    message: str = ""
    phases: list[PhaseResult] = Field(default_factory=list)
    commands: list[FileCommand] = Field(default_factory=list)
    outcomes: list[CommandOutcome] = Field(default_factory=list)
    validation: ValidationResult = Field(default_factory=ValidationResult)
    repairs: list[Repair] = Field(default_factory=list)
    files: list[ProjectFile] = Field(default_factory=list)
    routes: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    models_used: list[str] = Field(default_factory=list)
    total_duration_ms: int = 0

    @property
    def applied_paths(self) -> list[str]:
        return [
            outcome.path
            for outcome in self.outcomes
            if outcome.status == CommandStatus.APPLIED
        ]
