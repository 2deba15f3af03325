"""Generated source files and per-language results."""

from dataclasses import dataclass, field
from typing import Any

from .errors import Diagnostic, GenerationError


@dataclass(frozen=True)
class SourceFile:
    path: str
    content: str


@dataclass(frozen=True)
class GeneratedSources:
    """What a backend returns: the four artifacts plus any support files."""

    parser: SourceFile
    serializer: SourceFile
    client: SourceFile
    tests: SourceFile
    extra: tuple[SourceFile, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def files(self) -> tuple[SourceFile, ...]:
        return (self.parser, self.serializer, self.client, self.tests, *self.extra)


@dataclass(frozen=True)
class LanguageArtifacts:
    language: str
    parser: SourceFile
    serializer: SourceFile
    client: SourceFile
    tests: SourceFile
    files: dict[str, str]
    generation_time_ms: float
    warnings: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "language": self.language,
            "files": sorted(self.files),
            "generationTimeMs": round(self.generation_time_ms, 3),
            "warnings": list(self.warnings),
        }


@dataclass
class GenerationResult:
    """Outcome of generating one protocol for several languages.

    A backend failure is recorded under ``errors`` without affecting the
    other languages.
    """

    protocol: str
    artifacts: dict[str, LanguageArtifacts] = field(default_factory=dict)
    errors: dict[str, GenerationError] = field(default_factory=dict)
    diagnostics: tuple[Diagnostic, ...] = ()
    total_time_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def languages(self) -> list[str]:
        return list(self.artifacts)
