"""Models for the generation-service boundary."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from codesync.models.command_models import FileCommand


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: str  # "user" | "assistant"
    content: str


class ToolCall(BaseModel):
    """A structured tool invocation returned by the generation service.

    ``arguments`` may arrive as a JSON string (OpenAI) or a dict (Anthropic).
    """

    model_config = ConfigDict(frozen=True)

    name: str
    arguments: dict[str, Any] | str = Field(default_factory=dict)


class GenerationResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    model: str
    provider: str


class CodeDraft(BaseModel):
    """What the code phase produced, before it meets the project state."""

    model_config = ConfigDict(frozen=False)

    message: str = ""
    commands: list[FileCommand] = Field(default_factory=list)
    tool_errors: list[str] = Field(default_factory=list)
    from_tool_calls: bool = False
