"""Pipeline configuration.

Every tunable that used to be a process-wide constant lives on
``PipelineConfig`` and is passed in at construction.
"""

import os
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_ARCHITECT_MODEL = "claude-sonnet-4-5-20250929"
DEFAULT_CODE_MODEL = "claude-sonnet-4-5-20250929"
DEFAULT_VALIDATE_MODEL = "claude-haiku-4-5-20251001"

DEFAULT_PROTECTED_PATTERNS: tuple[str, ...] = (
    r"^src/integrations/",
    r"^src/main\.tsx$",
    r"^package\.json$",
    r"^package-lock\.json$",
    r"^bun\.lockb$",
    r"^\.gitignore$",
    r"^tsconfig",
    r"^vite\.config",
    r"^tailwind\.config",
    r"^node_modules/",
    r"^\.cache/",
    r"^dist/",
    r"^\.git/",
    r"^\.env",
)

DEFAULT_CHUNK_SIZE = 500
DEFAULT_HISTORY_LIMIT = 10
MAX_HISTORY_LIMIT = 50

# Env var prefix for overrides
ENV_PREFIX = "CODESYNC_"


class PipelineConfig(BaseModel):
    """Options for the orchestrator, agents, and project state."""

    model_config = ConfigDict(frozen=True)

    architect_model: str = DEFAULT_ARCHITECT_MODEL
    code_model: str = DEFAULT_CODE_MODEL
    validate_model: str = DEFAULT_VALIDATE_MODEL
    protected_patterns: tuple[str, ...] = DEFAULT_PROTECTED_PATTERNS
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, gt=0)
    history_limit: int = Field(default=DEFAULT_HISTORY_LIMIT, ge=0, le=MAX_HISTORY_LIMIT)
    tree_conflict_policy: Literal["reuse", "error"] = "reuse"
    llm_provider: Literal["auto", "anthropic", "openai"] = "auto"
    llm_fallback_provider: Literal["anthropic", "openai"] | None = None
    architect_max_tokens: int = 4000
    code_max_tokens: int = 12000
    validate_max_tokens: int = 2000
    timeout_seconds: float = 180.0

    @field_validator("llm_fallback_provider", mode="before")
    @classmethod
    def _empty_fallback_is_none(cls, value):
        if value == "":
            return None
        return value

    def model_for_phase(self, phase: str) -> str:
        """Return the configured model id for a pipeline phase."""
        if phase == "architect":
            return self.architect_model
        if phase == "code":
            return self.code_model
        if phase == "validate":
            return self.validate_model
        raise ValueError(f"Unknown phase: {phase}")

    def max_tokens_for_phase(self, phase: str) -> int:
        if phase == "architect":
            return self.architect_max_tokens
        if phase == "code":
            return self.code_max_tokens
        return self.validate_max_tokens

    @classmethod
    def from_env(cls, **overrides) -> "PipelineConfig":
        """Build a config from ``CODESYNC_*`` environment variables.

        Explicit keyword overrides win over the environment; ``None``
        overrides are ignored so CLI flags can be passed through as-is.
        """
        env_fields = {
            "architect_model": "ARCHITECT_MODEL",
            "code_model": "CODE_MODEL",
            "validate_model": "VALIDATE_MODEL",
            "chunk_size": "CHUNK_SIZE",
            "history_limit": "HISTORY_LIMIT",
            "tree_conflict_policy": "TREE_CONFLICT_POLICY",
            "llm_provider": "LLM_PROVIDER",
            "llm_fallback_provider": "LLM_FALLBACK_PROVIDER",
            "timeout_seconds": "TIMEOUT_SECONDS",
        }
        values: dict = {}
        for field_name, suffix in env_fields.items():
            raw = os.getenv(ENV_PREFIX + suffix)
            if raw is not None and raw != "":
                values[field_name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
