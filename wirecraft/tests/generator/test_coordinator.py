"""Tests for multi-language generation."""

import pytest

from wirecraft.generator.coordinator import Coordinator, generate
from wirecraft.generator.errors import GenerationError, UnknownLanguageError, ValidationError
from wirecraft.generator.loader import load_dict, load_file


def describe_coordinator():
    @pytest.fixture
    def spec(spec_path):
        return load_file(spec_path("gopher.json"))

    def generates_every_language(expect, spec):
        result = Coordinator().generate(spec, ["python", "typescript", "go", "rust"])
        expect(result.ok) == True
        expect(sorted(result.languages)) == ["go", "python", "rust", "typescript"]
        expect(result.protocol) == "Gopher"
        expect(sorted(result.artifacts["python"].files)) == [
            "__init__.py",
            "gopher_client.py",
            "gopher_parser.py",
            "gopher_serializer.py",
            "test_gopher.py",
        ]

    def resolves_aliases(expect, spec):
        result = Coordinator().generate(spec, ["py", "rs"])
        expect(sorted(result.languages)) == ["python", "rust"]

    def records_timing(expect, spec):
        result = Coordinator(parallel=False).generate(spec, ["go"])
        expect(result.artifacts["go"].generation_time_ms >= 0) == True
        expect(result.total_time_ms >= result.artifacts["go"].generation_time_ms) == True

    def matches_serial_output(expect, spec):
        serial = Coordinator(parallel=False).generate(spec, ["python", "typescript", "go", "rust"])
        parallel = Coordinator(parallel=True, max_workers=4).generate(spec, ["python", "typescript", "go", "rust"])
        for language in serial.languages:
            expect(parallel.artifacts[language].files) == serial.artifacts[language].files

    def rejects_unknown_language_before_generating(expect, spec):
        with pytest.raises(UnknownLanguageError):
            Coordinator().generate(spec, ["python", "cobol"])

    def rejects_language_without_backend(expect, spec):
        coordinator = Coordinator()
        del coordinator.backends["rust"]
        with pytest.raises(GenerationError):
            coordinator.generate(spec, ["rust"])

    def isolates_backend_failures(expect, spec):
        coordinator = Coordinator()

        def broken(protocol, profile):
            raise RuntimeError("template exploded")

        coordinator.backends["go"] = broken
        result = coordinator.generate(spec, ["python", "go", "rust"])
        expect(result.ok) == False
        expect(sorted(result.languages)) == ["python", "rust"]
        expect(result.errors["go"].language) == "go"
        expect(str(result.errors["go"].cause)) == "template exploded"

    def passes_runtime_import_to_python(expect, spec):
        result = Coordinator(runtime_import="vendored.runtime").generate(spec, ["python"])
        expect("from vendored.runtime import (" in result.artifacts["python"].files["gopher_parser.py"]) == True

    def propagates_validation_errors(expect):
        spec = load_dict({"protocol": {"name": "Empty", "port": 1}})
        with pytest.raises(ValidationError):
            Coordinator().generate(spec, ["python"])

    def summarizes_artifacts(expect, spec):
        artifacts = Coordinator().generate(spec, ["typescript"]).artifacts["typescript"]
        summary = artifacts.to_dict()
        expect(summary["language"]) == "typescript"
        expect("index.ts" in summary["files"]) == True
        expect(summary["warnings"]) == []


def describe_generate():
    def uses_a_default_coordinator(expect, spec_path):
        result = generate(load_file(spec_path("finger.json")), ["go"], parallel=False)
        expect(result.languages) == ["go"]
