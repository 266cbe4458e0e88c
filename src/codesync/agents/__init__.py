"""Phase agents and the generation service boundary."""

from codesync.agents.exceptions import (
    AgentError,
    CodeGenerationError,
    GenerationServiceError,
    PlanValidationError,
    ReviewError,
)
from codesync.agents.architect import ArchitectAgent
from codesync.agents.coder import CoderAgent
from codesync.agents.generation_service import GenerationService
from codesync.agents.reviewer import ReviewerAgent

__all__ = [
    "AgentError",
    "ArchitectAgent",
    "CodeGenerationError",
    "CoderAgent",
    "GenerationService",
    "GenerationServiceError",
    "PlanValidationError",
    "ReviewError",
    "ReviewerAgent",
]
