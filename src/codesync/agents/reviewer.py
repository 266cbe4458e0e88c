"""Reviewer agent: AI review of files that failed local validation."""

import logging
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from codesync.agents.exceptions import ReviewError
from codesync.agents.generation_service import GenerationService, parse_json_object
from codesync.models import ChatMessage, ValidationResult

logger = logging.getLogger(__name__)

MAX_REVIEW_CHARS = 3000

VALIDATE_PROMPT = """You are the Validation phase of a multi-stage code generation pipeline.

YOUR ROLE:
1. Review the generated code for errors
2. Check for syntax issues
3. Verify all imports are correct
4. Check for potential runtime errors

OUTPUT FORMAT (JSON):
{
  "isValid": true,
  "issues": [
    {
      "file": "path/to/file.tsx",
      "line": 10,
      "severity": "error",
      "message": "Description of issue",
      "fix": "Suggested fix"
    }
  ],
  "suggestions": ["Improvement suggestion"]
}

"severity" is "error" or "warning"."""


class _ReviewIssue(BaseModel):
    model_config = ConfigDict(extra="ignore")

    file: str
    message: str
    severity: Literal["error", "warning"] = "warning"
    line: Optional[int] = None
    fix: Optional[str] = None


class _ReviewPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    issues: list[_ReviewIssue] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)


class ReviewerAgent:
    def __init__(self, service: GenerationService):
        self.service = service

    def review(self, files: Mapping[str, str]) -> ValidationResult:
        """Review ``files`` and return the issues as ``"path: message"`` strings.

        Raises:
            GenerationServiceError: If the service call fails.
            ReviewError: If the response is not a usable review.
        """
        snippets = "\n\n".join(
            f"{path}:\n```\n{files[path][:MAX_REVIEW_CHARS]}\n```" for path in sorted(files)
        )
        response = self.service.generate(
            "validate",
            VALIDATE_PROMPT,
            [ChatMessage(role="user", content=f"Validate this code:\n\n{snippets}")],
            json_mode=True,
        )
        try:
            payload = _ReviewPayload.model_validate(parse_json_object(response.text))
        except (ValueError, ValidationError) as e:
            raise ReviewError(f"Review response is unusable: {e}") from e

        result = ValidationResult(suggestions=list(payload.suggestions))
        for issue in payload.issues:
            line = f"{issue.file}: {issue.message}"
            if issue.severity == "error":
                result.errors.append(line)
            else:
                result.warnings.append(line)
        logger.info(
            "AI review: %d error(s), %d warning(s)", len(result.errors), len(result.warnings)
        )
        return result
