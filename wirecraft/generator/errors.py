"""Errors and diagnostics raised while loading, compiling and generating."""

from dataclasses import dataclass
from enum import StrEnum


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Diagnostic:
    """A single compile-time finding, scoped to a message type when relevant."""

    severity: Severity
    code: str
    message: str
    message_type: str | None = None
    field: str | None = None

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def __str__(self) -> str:
        scope = ""
        if self.message_type:
            scope = self.message_type
            if self.field:
                scope += f".{self.field}"
            scope = f"[{scope}] "
        return f"{self.severity}: {scope}{self.message}"


class WirecraftError(RuntimeError):
    """Base class for generator-side failures."""


class SpecLoadError(WirecraftError):
    """Raised when a spec document cannot be decoded."""


class FormatSyntaxError(WirecraftError):
    """Raised when a format string is not well formed."""

    def __init__(self, message: str, column: int | None = None):
        super().__init__(message)
        self.column = column


class ValidationError(WirecraftError):
    """Raised when a spec fails semantic validation.

    Carries every error found, not just the first.
    """

    def __init__(self, diagnostics: list[Diagnostic]):
        self.diagnostics = diagnostics
        errors = [d for d in diagnostics if d.is_error]
        lines = "\n".join(f"  {d}" for d in errors)
        super().__init__(f"{len(errors)} validation error(s):\n{lines}")


class UnknownLanguageError(WirecraftError):
    """Raised when no profile or backend exists for a language."""


class GenerationError(WirecraftError):
    """Raised when a backend fails to render a language."""

    def __init__(self, language: str, cause: Exception):
        super().__init__(f"Generation failed for {language}: {cause}")
        self.language = language
        self.cause = cause
