"""Command protocol models for file mutation intents."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class CommandType(str, Enum):
    """Kind of mutation a FileCommand requests."""

    CREATE_FILE = "CREATE_FILE"
    UPDATE_FILE = "UPDATE_FILE"
    DELETE_FILE = "DELETE_FILE"
    PATCH_FILE = "PATCH_FILE"


class SearchReplacePatch(BaseModel):
    """A single search-and-replace edit.

    ``context`` is accepted for disambiguation but is not used by the
    matcher; it is a reserved extension point.
    """

    model_config = ConfigDict(frozen=True)

    search: str
    replace: str
    context: Optional[str] = None

    @field_validator("search")
    @classmethod
    def _search_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("search must be non-empty")
        return value


class FileCommand(BaseModel):
    """A typed instruction to create, update, delete, or patch one file."""

    model_config = ConfigDict(frozen=False)

    command: CommandType
    path: str
    content: Optional[str] = None
    patches: Optional[list[SearchReplacePatch]] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("path")
    @classmethod
    def _clean_path(cls, value: str) -> str:
        value = value.strip()
        while value.startswith("./"):
            value = value[2:]
        return value

    @model_validator(mode="after")
    def _check_payload(self) -> "FileCommand":
        if self.command == CommandType.PATCH_FILE:
            if self.content is not None:
                raise ValueError("PATCH_FILE commands carry no full content")
            if not self.patches:
                raise ValueError("PATCH_FILE commands need at least one patch")
        elif self.command in (CommandType.CREATE_FILE, CommandType.UPDATE_FILE):
            if self.patches is not None:
                raise ValueError(f"{self.command.value} commands carry no patches")
            if self.content is None:
                raise ValueError(f"{self.command.value} commands need content")
        else:
            if self.content is not None or self.patches is not None:
                raise ValueError("DELETE_FILE commands carry no payload")
        return self
