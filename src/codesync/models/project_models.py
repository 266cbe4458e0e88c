"""Project file and tree models."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

_LANGUAGE_BY_EXTENSION = {
    "tsx": "typescript",
    "ts": "typescript",
    "jsx": "javascript",
    "js": "javascript",
    "css": "css",
    "html": "html",
    "json": "json",
    "md": "markdown",
}


def language_for_path(path: str) -> str:
    """Map a file path to a display language name ("text" when unknown)."""
    name = path.rsplit("/", 1)[-1]
    if "." not in name:
        return "text"
    ext = name.rsplit(".", 1)[-1].lower()
    return _LANGUAGE_BY_EXTENSION.get(ext, "text")


class ProjectFile(BaseModel):
    """One file of the in-memory project, keyed by ``path``."""

    model_config = ConfigDict(frozen=False)

    path: str
    content: str
    language: Optional[str] = None

    @classmethod
    def from_content(cls, path: str, content: str) -> "ProjectFile":
        return cls(path=path, content=content, language=language_for_path(path))


class TreeNode(BaseModel):
    """A file or folder in the hierarchical project view.

    Folders always carry a ``children`` list; files carry ``None``.
    """

    model_config = ConfigDict(frozen=False)

    name: str
    type: Literal["file", "folder"]
    path: str
    children: Optional[list["TreeNode"]] = None

    @classmethod
    def folder(cls, name: str, path: str) -> "TreeNode":
        return cls(name=name, type="folder", path=path, children=[])

    @classmethod
    def file(cls, name: str, path: str) -> "TreeNode":
        return cls(name=name, type="file", path=path)


class PathCheck(BaseModel):
    """Outcome of a protected-path check."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    error: Optional[str] = None


TreeNode.model_rebuild()
