"""Exceptions for orchestrator operations."""


class OrchestratorError(Exception):
    """Base exception for all orchestrator operations."""


class GraphBuildError(OrchestratorError):
    """Raised when graph construction fails."""


class PhaseError(OrchestratorError):
    """Raised when a pipeline phase fails and the run must stop."""

    def __init__(self, phase: str, message: str):
        super().__init__(message)
        self.phase = phase
