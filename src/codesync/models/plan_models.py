"""Architecture plan produced by the architect phase."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class PlanStep(BaseModel):
    """One planned file action."""

    model_config = ConfigDict(frozen=False)

    step: int
    action: Literal["create", "update", "delete", "patch"]
    path: str
    description: str = ""
    dependencies: list[str] = Field(default_factory=list)
    considerations: list[str] = Field(default_factory=list)


class ArchitectureNotes(BaseModel):
    model_config = ConfigDict(frozen=False, populate_by_name=True)

    components: list[str] = Field(default_factory=list)
    data_flow: str = Field(default="", alias="dataFlow")
    state_management: str = Field(default="", alias="stateManagement")


class ArchitecturePlan(BaseModel):
    """Structured plan; validated when parsed from the architect response."""

    model_config = ConfigDict(frozen=False, populate_by_name=True)

    understanding: str
    steps: list[PlanStep] = Field(default_factory=list, alias="plan")
    architecture: ArchitectureNotes | None = None
    risks: list[str] = Field(default_factory=list)

    @property
    def planned_paths(self) -> list[str]:
        return [step.path for step in self.steps]
