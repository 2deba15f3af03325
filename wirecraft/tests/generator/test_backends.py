"""Tests for the TypeScript, Go and Rust backends."""

import os
import shutil
import subprocess

import pytest

from wirecraft.generator import golang, rust, typescript
from wirecraft.generator.compiler import compile_protocol
from wirecraft.generator.loader import load_dict
from wirecraft.generator.profiles import GO, RUST, TYPESCRIPT

BACKENDS = [(typescript, TYPESCRIPT), (golang, GO), (rust, RUST)]


@pytest.fixture
def ambiguous():
    data = {
        "protocol": {"name": "Pair Echo", "port": 7001},
        "connection": {"type": "UDP"},
        "messageTypes": [
            {
                "name": "Pair",
                "direction": "request",
                "format": "{left}{right}\n",
                "terminator": "\n",
                "fields": [
                    {"name": "left", "type": {"kind": "string"}},
                    {"name": "right", "type": {"kind": "string"}},
                ],
            },
            {"name": "Echo", "direction": "response", "format": "{text}\n", "terminator": "\n",
             "fields": [{"name": "text", "type": {"kind": "string"}}]},
        ],
    }
    return compile_protocol(load_dict(data))


def describe_typescript():
    def names_files_in_kebab_case(expect, compiled):
        sources = typescript.generate(compiled("gopher.json"))
        expect([f.path for f in sources.files]) == [
            "gopher-parser.ts",
            "gopher-serializer.ts",
            "gopher-client.ts",
            "gopher.test.ts",
            "index.ts",
        ]

    def returns_parse_results(expect, compiled):
        parser = typescript.generate(compiled("gopher.json")).parser.content
        expect(
            "export function parseGopherRequest(data: Uint8Array, offset = 0): ParseResult<GopherRequest>" in parser
        ) == True
        expect("throw " in parser) == False

    def throws_typed_client_errors(expect, compiled):
        client = typescript.generate(compiled("gopher.json")).client.content
        expect("export class GopherError extends Error" in client) == True
        expect("throw new GopherValidationError(result.errors)" in client) == True

    def checks_text_after_optional_fields(expect, compiled):
        parser = typescript.generate(compiled("tagged.json")).parser.content
        expect("if (end <= data.length && startsWith(data, " in parser) == True
        expect("if (end > pos && startsWith(data, " in parser) == True

    def rejects_empty_optional_values(expect, compiled):
        serializer = typescript.generate(compiled("tagged.json")).serializer.content
        expect("constraint: 'empty'" in serializer) == True
        expect("checkEmpty(errors, name, encodeValue(value), options.required);" in serializer) == True

    def never_leaves_width_read_fields_out_of_properties(expect, compiled):
        tests = typescript.generate(compiled("tagged.json")).tests.content
        expect("fc.option(fc.uint8Array" in tests) == False

    def uses_fast_check_properties(expect, compiled):
        tests = typescript.generate(compiled("gopher.json")).tests.content
        expect("fast-check" in tests) == True
        expect("numRuns: 100" in tests) == True


def describe_go():
    def names_files_in_snake_case(expect, compiled):
        sources = golang.generate(compiled("finger.json"))
        expect([f.path for f in sources.files]) == [
            "finger_parser.go",
            "finger_serializer.go",
            "finger_client.go",
            "finger_test.go",
        ]

    def returns_errors_as_values(expect, compiled):
        parser = golang.generate(compiled("gopher.json")).parser.content
        expect("func ParseGopherRequest(data []byte, offset int) (GopherRequest, int, error)" in parser) == True
        for marker in ("throw", "raise", "Result<", "panic("):
            expect(marker in parser) == False

    def shares_one_package(expect, compiled):
        sources = golang.generate(compiled("gopher.json"))
        for source in sources.files:
            expect("package gopher\n" in source.content) == True

    def checks_text_after_optional_fields(expect, compiled):
        parser = golang.generate(compiled("tagged.json")).parser.content
        expect("if end <= len(data) && bytes.HasPrefix(data[end:], " in parser) == True
        expect("if end > pos && bytes.HasPrefix(data[end:], " in parser) == True

    def rejects_empty_values_of_defaulted_fields(expect, compiled):
        serializer = golang.generate(compiled("tagged.json")).serializer.content
        expect('errs = checkEmpty(errs, "who", len(m.Who))' in serializer) == True
        expect('checkEmpty(errs, "note"' in serializer) == False

    def separates_response_check_from_client_type(expect, compiled):
        client = golang.generate(compiled("finger.json")).client.content
        expect("\treturn false\n}\n\n// FingerClient talks to a Finger server." in client) == True

    @pytest.mark.skipif(shutil.which("go") is None, reason="go toolchain not installed")
    @pytest.mark.parametrize("name", ["gopher.json", "finger.json", "tagged.json"])
    def passes_go_test(expect, compiled, tmp_path, name):
        for source in golang.generate(compiled(name)).files:
            (tmp_path / source.path).write_text(source.content, encoding="utf-8")
        (tmp_path / "go.mod").write_text("module example.com/generated\n\ngo 1.18\n", encoding="utf-8")
        result = subprocess.run(
            ["go", "test", "./..."],
            cwd=tmp_path,
            env={**os.environ, "GOTOOLCHAIN": "local"},
            capture_output=True,
            text=True,
            timeout=600,
        )
        expect(result.returncode) == 0

    def escapes_package_names_starting_with_digits(expect):
        data = {
            "protocol": {"name": "9P", "port": 564},
            "messageTypes": [{"name": "Version", "direction": "response", "format": "V\n"}],
        }
        expect(golang.package_name(compile_protocol(load_dict(data)))) == "proto9p"


def describe_rust():
    def names_files_in_snake_case(expect, compiled):
        sources = rust.generate(compiled("finger.json"))
        expect([f.path for f in sources.files]) == [
            "finger_parser.rs",
            "finger_serializer.rs",
            "finger_client.rs",
            "finger_tests.rs",
            "mod.rs",
        ]

    def returns_result_types(expect, compiled):
        parser = rust.generate(compiled("gopher.json")).parser.content
        expect(
            "pub fn parse_gopher_request(data: &[u8], offset: usize) -> Result<Parsed<GopherRequest>, ParseError>"
            in parser
        ) == True
        for marker in ("return nil, err", "throw", "raise"):
            expect(marker in parser) == False

    def uses_tokio_client(expect, compiled):
        client = rust.generate(compiled("finger.json")).client.content
        expect("tokio" in client) == True
        expect("pub async fn send_finger_query(" in client) == True

    def checks_text_after_optional_fields(expect, compiled):
        parser = rust.generate(compiled("tagged.json")).parser.content
        expect("if end <= data.len() && data[end..].starts_with(" in parser) == True
        expect("if end > pos && data[end..].starts_with(" in parser) == True

    def rejects_empty_optional_values(expect, compiled):
        serializer = rust.generate(compiled("tagged.json")).serializer.content
        expect('check_empty(&mut errors, "note", value.len());' in serializer) == True
        expect('check_empty(&mut errors, "who", message.who.len());' in serializer) == True

    def wraps_width_read_values_without_absence(expect, compiled):
        tests = rust.generate(compiled("tagged.json")).tests.content
        expect(".prop_map(Some)" in tests) == True

    def runs_proptest_cases(expect, compiled):
        tests = rust.generate(compiled("finger.json")).tests.content
        expect("proptest!" in tests) == True
        expect("with_cases(100)" in tests) == True


def describe_every_backend():
    @pytest.mark.parametrize(("backend", "profile"), BACKENDS)
    def references_every_field_in_the_parser(expect, compiled, backend, profile):
        protocol = compiled("gopher.json")
        parser = backend.generate(protocol).parser.content
        for message in protocol.messages:
            for field in message.fields:
                expect(profile.member_name(field.name) in parser) == True

    @pytest.mark.parametrize(("backend", "profile"), BACKENDS)
    def defines_a_function_per_message(expect, compiled, backend, profile):
        protocol = compiled("finger.json")
        sources = backend.generate(protocol)
        for message in protocol.messages:
            expect(profile.function_name("parse", message.name) in sources.parser.content) == True
            expect(profile.function_name("serialize", message.name) in sources.serializer.content) == True

    @pytest.mark.parametrize(("backend", "profile"), BACKENDS)
    def reports_skipped_tests_and_transport_warnings(expect, ambiguous, backend, profile):
        sources = backend.generate(ambiguous)
        expect(any("Pair tests are skipped" in w for w in sources.warnings)) == True
        expect(any("UDP is not supported" in w for w in sources.warnings)) == True
        expect(any("adjacent" in w or "directly followed" in w for w in sources.warnings)) == True

    @pytest.mark.parametrize(("backend", "profile"), BACKENDS)
    def is_deterministic(expect, compiled, backend, profile):
        protocol = compiled("gopher.json")
        first = backend.generate(protocol)
        second = backend.generate(protocol)
        expect([f.content for f in first.files]) == [f.content for f in second.files]
