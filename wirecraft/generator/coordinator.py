"""Fan a compiled protocol out to the language backends."""

from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from time import perf_counter

import structlog

from . import golang, python, rust, typescript
from .artifacts import GeneratedSources, GenerationResult, LanguageArtifacts
from .compiler import CompiledProtocol, compile_protocol
from .errors import GenerationError
from .profiles import LanguageProfile, ProfileRegistry
from .types import ProtocolSpec

logger = structlog.get_logger()

Backend = Callable[[CompiledProtocol, LanguageProfile], GeneratedSources]


class Coordinator:
    """Compiles a protocol once and renders it for each requested language.

    Backends share nothing but the read-only profile registry, so they may
    run on a thread pool. One backend failing does not stop the others.
    """

    def __init__(
        self,
        registry: ProfileRegistry | None = None,
        *,
        parallel: bool = True,
        max_workers: int | None = None,
        runtime_import: str = "wirecraft.proto",
    ):
        self.registry = registry if registry is not None else ProfileRegistry.builtin()
        self.parallel = parallel
        self.max_workers = max_workers
        self.backends: dict[str, Backend] = {
            "python": partial(python.generate, runtime_import=runtime_import),
            "typescript": typescript.generate,
            "go": golang.generate,
            "rust": rust.generate,
        }

    def generate(self, spec: ProtocolSpec, languages: Iterable[str]) -> GenerationResult:
        # Unknown languages fail before any work is done
        profiles = [self.registry.resolve(language) for language in languages]
        for profile in profiles:
            if profile.language not in self.backends:
                raise GenerationError(profile.language, KeyError("no backend registered"))

        start = perf_counter()
        protocol = compile_protocol(spec)
        result = GenerationResult(protocol=protocol.name, diagnostics=protocol.diagnostics)

        if self.parallel and len(profiles) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                outcomes = list(executor.map(partial(self._run, protocol), profiles))
        else:
            outcomes = [self._run(protocol, profile) for profile in profiles]

        for profile, outcome in zip(profiles, outcomes, strict=True):
            if isinstance(outcome, GenerationError):
                result.errors[profile.language] = outcome
            else:
                result.artifacts[profile.language] = outcome

        result.total_time_ms = (perf_counter() - start) * 1000
        logger.info(
            "generation_finished",
            protocol=protocol.name,
            languages=result.languages,
            failed=sorted(result.errors),
            total_time_ms=round(result.total_time_ms, 3),
        )
        return result

    def _run(self, protocol: CompiledProtocol, profile: LanguageProfile) -> LanguageArtifacts | GenerationError:
        backend = self.backends[profile.language]
        start = perf_counter()
        try:
            sources = backend(protocol, profile)
        except Exception as e:
            logger.error("generation_failed", protocol=protocol.name, language=profile.language, error=str(e))
            return GenerationError(profile.language, e)
        elapsed = (perf_counter() - start) * 1000
        logger.debug("language_generated", protocol=protocol.name, language=profile.language, time_ms=round(elapsed, 3))
        return LanguageArtifacts(
            language=profile.language,
            parser=sources.parser,
            serializer=sources.serializer,
            client=sources.client,
            tests=sources.tests,
            files={f.path: f.content for f in sources.files},
            generation_time_ms=elapsed,
            warnings=sources.warnings,
        )


def generate(spec: ProtocolSpec, languages: Iterable[str], **options) -> GenerationResult:
    """Generate sources for ``languages`` with a default coordinator."""
    return Coordinator(**options).generate(spec, languages)
