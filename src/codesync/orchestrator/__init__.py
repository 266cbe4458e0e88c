"""LangGraph orchestrator package for the generation pipeline."""

from codesync.orchestrator.exceptions import GraphBuildError, OrchestratorError, PhaseError
from codesync.orchestrator.graph import build_graph
from codesync.orchestrator.pipeline import Pipeline, encode_event, encode_stream, parse_event_line
from codesync.orchestrator.state import PipelineState, make_initial_state

__all__ = [
    "GraphBuildError",
    "OrchestratorError",
    "PhaseError",
    "Pipeline",
    "PipelineState",
    "build_graph",
    "encode_event",
    "encode_stream",
    "make_initial_state",
    "parse_event_line",
]
