"""Local validation and repair of generated code."""

from codesync.validation.validator import ValidationEngine

__all__ = ["ValidationEngine"]
