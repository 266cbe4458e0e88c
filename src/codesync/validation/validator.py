"""Validation & repair engine: static checks over generated files.

Checks are heuristics over text plus a tree-sitter parse for imports and
exports. Nothing is compiled or executed.
"""

import json
import logging
import re
from typing import Iterable, Mapping, Union

from codesync.models import IssueSeverity, ProjectFile, Repair, ValidationIssue, ValidationReport
from codesync.utils.ast_parser import (
    SCRIPT_EXTENSIONS,
    extract_imports,
    has_export_statement,
    parse_source,
)

logger = logging.getLogger(__name__)

_INSPECTED_RE = re.compile(r"\.(ts|tsx|js|jsx|css|json)$")
_REACT_IMPORT_MARKERS = ("from 'react'", 'from "react"')
REACT_IMPORT_LINE = "import React from 'react';\n"
ALIAS_PREFIX = "@/"
ALIAS_TARGET = "src/"
IMPORT_SUFFIXES = ("", ".ts", ".tsx", ".js", ".jsx", "/index.ts", "/index.tsx")

FileMap = Mapping[str, Union[ProjectFile, str]]


def _content_of(entry: Union[ProjectFile, str]) -> str:
    return entry.content if isinstance(entry, ProjectFile) else entry


def _extension(path: str) -> str:
    name = path.rsplit("/", 1)[-1]
    return "." + name.rsplit(".", 1)[-1] if "." in name else ""


class ValidationEngine:
    """Runs local checks and narrow auto-repairs over a set of files."""

    def validate(
        self,
        files: FileMap,
        known_files: Iterable[str] | None = None,
    ) -> ValidationReport:
        """Validate ``files`` and propose repairs.

        Args:
            files: Files to inspect, usually those touched this turn.
            known_files: Every path in the project, used to resolve ``@/``
                imports. Defaults to the keys of ``files``.

        Returns:
            ValidationReport; ``valid`` is False when any error was found.
        """
        known = set(known_files) if known_files is not None else set(files)
        report = ValidationReport()

        for path in sorted(files):
            if not _INSPECTED_RE.search(path):
                continue
            content = _content_of(files[path])
            issues = self._check_file(path, content, known)
            for issue in issues:
                if issue.severity == IssueSeverity.ERROR:
                    report.errors.append(issue)
                else:
                    report.warnings.append(issue)

            repair = self._attempt_repair(path, content, issues)
            if repair is not None:
                report.repairs.append(repair)

        logger.info(
            "Validation complete: %d file(s), %d error(s), %d warning(s), %d repair(s)",
            len(files),
            len(report.errors),
            len(report.warnings),
            len(report.repairs),
        )
        return report

    def apply_repairs(self, files: FileMap, report: ValidationReport) -> dict[str, str]:
        """Return a ``{path: content}`` copy of ``files`` with repairs applied."""
        repaired = {path: _content_of(entry) for path, entry in files.items()}
        for repair in report.repairs:
            if repair.path in repaired:
                repaired[repair.path] = repair.content
        return repaired

    def _check_file(self, path: str, content: str, known: set[str]) -> list[ValidationIssue]:
        ext = _extension(path)
        if ext == ".json":
            return self._check_json(path, content)
        if ext not in SCRIPT_EXTENSIONS:
            return []

        issues = self._check_text(path, content)
        tree, language = parse_source(content, path)

        if "/components/" in path and not has_export_statement(tree, language):
            issues.append(self._error(path, "Component file has no exports"))

        for specifier in extract_imports(tree, language):
            if specifier.startswith(ALIAS_PREFIX) and not self._resolves(specifier, known):
                issues.append(self._warning(path, f"Import not found: {specifier}"))

        return issues

    def _check_text(self, path: str, content: str) -> list[ValidationIssue]:
        issues = []
        open_count = content.count("{")
        close_count = content.count("}")
        if open_count != close_count:
            issues.append(
                self._error(path, f"Unmatched brackets: {open_count} open, {close_count} close")
            )
        if "console.log" in content:
            issues.append(self._warning(path, "Contains console.log statements"))
        if ": any" in content:
            issues.append(self._warning(path, "Contains explicit any type"))
        return issues

    def _check_json(self, path: str, content: str) -> list[ValidationIssue]:
        try:
            json.loads(content)
        except json.JSONDecodeError as e:
            return [self._error(path, f"Invalid JSON: {e.msg}", line=e.lineno)]
        return []

    @staticmethod
    def _resolves(specifier: str, known: set[str]) -> bool:
        target = ALIAS_TARGET + specifier[len(ALIAS_PREFIX):]
        return any(target + suffix in known for suffix in IMPORT_SUFFIXES)

    @staticmethod
    def _attempt_repair(
        path: str,
        content: str,
        issues: list[ValidationIssue],
    ) -> Repair | None:
        if not issues or _extension(path) not in (".tsx", ".jsx"):
            return None
        if any(marker in content for marker in _REACT_IMPORT_MARKERS):
            return None
        return Repair(
            path=path,
            content=REACT_IMPORT_LINE + content,
            reason="Added missing React import",
        )

    @staticmethod
    def _error(path: str, message: str, line: int | None = None) -> ValidationIssue:
        return ValidationIssue(file=path, message=message, severity=IssueSeverity.ERROR, line=line)

    @staticmethod
    def _warning(path: str, message: str) -> ValidationIssue:
        return ValidationIssue(file=path, message=message, severity=IssueSeverity.WARNING)
