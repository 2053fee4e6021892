"""Exceptions raised while rendering, persisting and compiling reports."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from .validator import SyntaxDiagnostic


class ReportError(Exception):
    """Base exception for report generation errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class GeneratorDefectError(ReportError):
    """Generated markup failed validation.

    This signals a bug in the generator rather than bad input, so nothing in
    the package catches it.
    """

    def __init__(self, diagnostics: Sequence[SyntaxDiagnostic]) -> None:
        self.diagnostics = tuple(diagnostics)
        summary = "; ".join(diag.message for diag in self.diagnostics)
        super().__init__(f"generated markup failed validation: {summary}")


class PersistenceError(ReportError):
    """An output file could not be written."""

    def __init__(self, path: Path, cause: OSError) -> None:
        self.path = path
        super().__init__(f"failed to write {path}: {cause}")


class CompilationError(ReportError):
    """The document compiler could not produce output."""

    def __init__(self, path: Path, diagnostic: str) -> None:
        self.path = path
        self.diagnostic = diagnostic
        super().__init__(f"failed to compile {path}: {diagnostic}")


class ReportDefinitionError(ReportError, ValueError):
    """A declarative report definition is malformed."""
