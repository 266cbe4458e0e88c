"""Exceptions for agent operations."""


class AgentError(Exception):
    """Base exception for all agent operations."""


class GenerationServiceError(AgentError):
    """Raised when the text-generation service cannot be reached or fails."""


class PlanValidationError(AgentError):
    """Raised when the architect response is not a valid plan."""


class CodeGenerationError(AgentError):
    """Raised when the code phase cannot produce a usable response."""


class ReviewError(AgentError):
    """Raised when the AI review response cannot be used."""
