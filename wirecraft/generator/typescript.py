"""TypeScript code generator for wirecraft protocols."""

import json
from typing import Any

from jinja2 import Environment, PackageLoader

from .artifacts import GeneratedSources, SourceFile
from .common import backend_warnings, client_settings, doc_text
from .compiler import CompiledField, CompiledMessage, CompiledProtocol
from .profiles import TYPESCRIPT, LanguageProfile

env = Environment(
    loader=PackageLoader("wirecraft.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

TYPE_MAP = {
    "string": "string",
    "number": "number",
    "boolean": "boolean",
    "bytes": "Uint8Array",
}

_ZERO = {"string": "", "number": 0, "boolean": False, "enum": "", "bytes": b""}


def _literal(value: Any) -> str:
    """Render a value as a TypeScript literal."""
    if value is None:
        return "undefined"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, bytes):
        return _bytes_of(value)
    if isinstance(value, tuple | list):
        return "[" + ", ".join(_literal(v) for v in value) + "]"
    return json.dumps(str(value))


def _bytes_of(data: bytes) -> str:
    return f"Uint8Array.of({', '.join(str(b) for b in data)})"


def _bytes_literal(text: str) -> str:
    return _bytes_of(text.encode("utf-8"))


def _stops_literal(stops: tuple[str, ...]) -> str:
    return "[" + ", ".join(_bytes_literal(s) for s in stops) + "]"


def _field_type(field: CompiledField) -> str:
    if field.kind == "enum":
        return " | ".join(json.dumps(v) for v in field.constraints.values) or "string"
    return TYPE_MAP[field.kind]


def _options(**options: Any) -> str:
    parts = [f"{key}: {value}" for key, value in options.items() if value is not None]
    return "{ " + ", ".join(parts) + " }" if parts else "{}"


def _pattern(field: CompiledField) -> str | None:
    pattern = field.constraints.pattern
    return f"new RegExp({json.dumps(pattern)}, 'u')" if pattern else None


def _coerce_call(field: CompiledField, raw: str) -> str:
    c = field.constraints
    match field.kind:
        case "string":
            opts = _options(minLength=c.min_length, maxLength=c.max_length, pattern=_pattern(field))
            return f"coerceString({raw}, {opts})"
        case "number":
            return f"coerceNumber({raw}, {_options(min=c.minimum, max=c.maximum)})"
        case "boolean":
            return f"coerceBoolean({raw})"
        case "enum":
            return f"coerceEnum({raw}, {_literal(c.values)} as const)"
        case "bytes":
            return f"coerceBytes({raw}, {_options(length=c.length)})"
    raise ValueError(f"Unknown field kind: {field.kind}")


def _check_call(field: CompiledField, value: str) -> str:
    c = field.constraints
    name = json.dumps(field.name)
    stops = _stops_literal(field.stops) if field.stops else None
    required = "true" if field.required else "false"
    match field.kind:
        case "string":
            opts = _options(
                required=required,
                minLength=c.min_length,
                maxLength=c.max_length,
                pattern=_pattern(field),
                stops=stops,
            )
            return f"checkString(errors, {name}, {value}, {opts})"
        case "number":
            opts = _options(required=required, min=c.minimum, max=c.maximum, stops=stops)
            return f"checkNumber(errors, {name}, {value}, {opts})"
        case "boolean":
            return f"checkBoolean(errors, {name}, {value}, {_options(required=required, stops=stops)})"
        case "enum":
            opts = _options(required=required, stops=stops)
            return f"checkEnum(errors, {name}, {value}, {_literal(c.values)}, {opts})"
        case "bytes":
            opts = _options(required=required, length=c.length, stops=stops)
            return f"checkBytes(errors, {name}, {value}, {opts})"
    raise ValueError(f"Unknown field kind: {field.kind}")


def _arbitrary(field: CompiledField) -> str:
    """fast-check arbitrary producing valid values of a field."""
    domain = field.domain
    text = (
        f"fc.string({{ unit: fc.constantFrom(...{json.dumps(domain.alphabet)}), "
        f"minLength: {domain.min_size}, maxLength: {domain.max_size} }})"
    )
    unbounded_text = field.kind == "string" or (field.kind == "bytes" and field.constraints.length is None)
    if field.constraints.pattern or domain.empty or (unbounded_text and not domain.alphabet):
        # Patterned fields and empty domains use one fixed value
        value = field.example if field.example is not None else _ZERO[field.kind]
        base = f"fc.constant({_literal(value)})"
    else:
        match field.kind:
            case "string":
                base = text
            case "number":
                base = f"fc.integer({{ min: {domain.minimum}, max: {domain.maximum} }})"
            case "boolean":
                base = "fc.boolean()"
            case "enum":
                base = f"fc.constantFrom(...({_literal(domain.values)} as const))"
            case "bytes" if field.constraints.length is not None:
                base = f"fc.uint8Array({{ minLength: {domain.min_size}, maxLength: {domain.max_size} }})"
            case "bytes":
                base = f"{text}.map((s) => encoder.encode(s))"
            case _:
                raise ValueError(f"Unknown field kind: {field.kind}")
    if field.generates_absent:
        return f"fc.option({base}, {{ nil: undefined }})"
    return base


def _example_object(message: CompiledMessage, profile: LanguageProfile) -> str:
    assert message.example is not None
    parts = [f"{profile.member_name(name)}: {_literal(value)}" for name, value in message.example.items()]
    return "{ " + ", ".join(parts) + " }" if parts else "{}"


def module_names(protocol: CompiledProtocol, profile: LanguageProfile = TYPESCRIPT) -> dict[str, str]:
    return {
        "parser": profile.file_name(protocol.name, "parser", suffix=""),
        "serializer": profile.file_name(protocol.name, "serializer", suffix=""),
        "client": profile.file_name(protocol.name, "client", suffix=""),
        "tests": profile.file_name(protocol.name, suffix=".test"),
    }


def generate(protocol: CompiledProtocol, profile: LanguageProfile = TYPESCRIPT) -> GeneratedSources:
    modules = module_names(protocol, profile)
    context = {
        "protocol": protocol,
        "profile": profile,
        "settings": client_settings(protocol),
        "modules": modules,
        "literal": _literal,
        "bytes_literal": _bytes_literal,
        "bytes_of": _bytes_of,
        "stops_literal": _stops_literal,
        "byte_length": lambda text: len(text.encode("utf-8")),
        "field_type": _field_type,
        "coerce_call": _coerce_call,
        "check_call": _check_call,
        "arbitrary": _arbitrary,
        "example_object": lambda m: _example_object(m, profile),
        "doc": doc_text,
        "BLANK_LINE": "",
    }

    def source(artifact: str) -> SourceFile:
        template = env.get_template(f"typescript-{artifact}.ts.j2")
        return SourceFile(f"{modules[artifact]}.ts", template.render(**context))

    index = env.get_template("typescript-index.ts.j2").render(**context)
    return GeneratedSources(
        parser=source("parser"),
        serializer=source("serializer"),
        client=source("client"),
        tests=source("tests"),
        extra=(SourceFile("index.ts", index),),
        warnings=backend_warnings(protocol, profile.display_name),
    )
