"""Streaming event wire protocol.

Events are a tagged union on ``type``. Each variant carries only the fields
relevant to it and serializes with camelCase keys.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from codesync.models.command_models import CommandType, SearchReplacePatch


class _WireModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class StageEvent(_WireModel):
    type: Literal["stage"] = "stage"
    stage: str
    status: Literal["start", "complete", "error"]
    message: Optional[str] = None
    data: Optional[dict[str, Any]] = None


class FileEvent(_WireModel):
    type: Literal["file"] = "file"
    command: CommandType
    path: str
    content: Optional[str] = None
    patches: Optional[list[SearchReplacePatch]] = None


class ChunkEvent(_WireModel):
    """A fixed-size slice of a file's content, in order."""

    type: Literal["chunk"] = "chunk"
    path: str
    index: int
    chunk: str


class CompleteEvent(_WireModel):
    type: Literal["complete"] = "complete"
    files_generated: int
    file_paths: list[str] = Field(default_factory=list)
    ai_message: str = ""
    routes: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    models_used: list[str] = Field(default_factory=list)
    validation_passed: bool
    repair_attempts: int = 0


class ErrorEvent(_WireModel):
    type: Literal["error"] = "error"
    message: str
    stage: Optional[str] = None


SyncEvent = Annotated[
    Union[StageEvent, FileEvent, ChunkEvent, CompleteEvent, ErrorEvent],
    Field(discriminator="type"),
]

SYNC_EVENT_ADAPTER: TypeAdapter = TypeAdapter(SyncEvent)

TERMINAL_EVENT_TYPES = frozenset({"complete", "error"})
