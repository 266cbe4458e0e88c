"""Utilities for codesync."""

from codesync.utils.diff_generator import detect_code_style, generate_unified_diff

__all__ = [
    "detect_code_style",
    "generate_unified_diff",
]
