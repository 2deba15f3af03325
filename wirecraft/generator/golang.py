"""Go code generator for wirecraft protocols."""

import json
from typing import Any

from jinja2 import Environment, PackageLoader

from .artifacts import GeneratedSources, SourceFile
from .common import backend_warnings, client_settings, doc_text, pattern_fields
from .compiler import CompiledField, CompiledMessage, CompiledProtocol
from .profiles import GO, LanguageProfile
from .util import to_flat_case

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
    "number": "int64",
    "boolean": "bool",
    "enum": "string",
    "bytes": "[]byte",
}

# Comparison that is true when a field holds a value worth emitting
_PRESENT = {
    "string": "{} != \"\"",
    "number": "{} != 0",
    "boolean": "{}",
    "enum": "{} != \"\"",
    "bytes": "len({}) > 0",
}


def _string(text: str) -> str:
    """Render text as a Go interpreted string literal."""
    return json.dumps(text, ensure_ascii=False)


def _bytes_of(data: bytes) -> str:
    return "[]byte{" + ", ".join(f"0x{b:02x}" for b in data) + "}"


def _bytes_literal(text: str) -> str:
    return f"[]byte({_string(text)})"


def _literal(value: Any) -> str:
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, bytes):
        return _bytes_of(value)
    if isinstance(value, tuple | list):
        return "[]string{" + ", ".join(_literal(v) for v in value) + "}"
    return _string(str(value))


def _stops_args(stops: tuple[str, ...]) -> str:
    return "".join(f", {_bytes_literal(s)}" for s in stops)


def _pattern_var(message: CompiledMessage, field: CompiledField, profile: LanguageProfile) -> str:
    return profile.variable_name(message.name, field.name, "pattern")


def _regexp_source(pattern: str) -> str:
    if "`" not in pattern:
        return f"`{pattern}`"
    return _string(pattern)


def _number_range(field: CompiledField) -> str:
    c = field.constraints
    parts = []
    if c.minimum is not None:
        parts += [f"min: {c.minimum}", "hasMin: true"]
    if c.maximum is not None:
        parts += [f"max: {c.maximum}", "hasMax: true"]
    return "numberRange{" + ", ".join(parts) + "}"


def _length(value: int | None) -> str:
    return "-1" if value is None else str(value)


def _coerce_call(message: CompiledMessage, field: CompiledField, raw: str, profile: LanguageProfile) -> str:
    c = field.constraints
    match field.kind:
        case "string":
            pattern = _pattern_var(message, field, profile) if c.pattern else "nil"
            return f"coerceString({raw}, {c.min_length or 0}, {_length(c.max_length)}, {pattern})"
        case "number":
            return f"coerceNumber({raw}, {_number_range(field)})"
        case "boolean":
            return f"coerceBoolean({raw})"
        case "enum":
            return f"coerceEnum({raw}, {_literal(c.values)})"
        case "bytes":
            return f"coerceBytes({raw}, {_length(c.length)})"
    raise ValueError(f"Unknown field kind: {field.kind}")


def _check_call(message: CompiledMessage, field: CompiledField, value: str, profile: LanguageProfile) -> str:
    c = field.constraints
    name = _string(field.name)
    stops = _stops_args(field.stops)
    match field.kind:
        case "string":
            pattern = _pattern_var(message, field, profile) if c.pattern else "nil"
            return (
                f"checkString(errs, {name}, {value}, {c.min_length or 0}, "
                f"{_length(c.max_length)}, {pattern}{stops})"
            )
        case "number":
            return f"checkNumber(errs, {name}, {value}, {_number_range(field)}{stops})"
        case "boolean":
            return f"checkBoolean(errs, {name}, {value}{stops})"
        case "enum":
            return f"checkEnum(errs, {name}, {value}, {_literal(c.values)}{stops})"
        case "bytes":
            return f"checkBytes(errs, {name}, {value}, {_length(c.length)}{stops})"
    raise ValueError(f"Unknown field kind: {field.kind}")


def _empty_check(field: CompiledField, value: str) -> str | None:
    """Reject an optional value that would be written as nothing."""
    if field.required or field.kind not in ("string", "enum", "bytes") or field.constraints.length is not None:
        return None
    return f"checkEmpty(errs, {_string(field.name)}, len({value}))"


def _present(field: CompiledField, expr: str) -> str:
    return _PRESENT[field.kind].format(expr)


def _write_call(field: CompiledField, expr: str) -> str:
    match field.kind:
        case "string" | "enum":
            return f"buf.WriteString({expr})"
        case "number":
            return f"buf.WriteString(strconv.FormatInt({expr}, 10))"
        case "boolean":
            return f"buf.WriteString(strconv.FormatBool({expr}))"
        case "bytes":
            return f"buf.Write({expr})"
    raise ValueError(f"Unknown field kind: {field.kind}")


def _generator(field: CompiledField) -> str:
    """Expression drawing a random valid value of a field from r."""
    domain = field.domain
    if field.constraints.pattern:
        base = _literal(field.example) if field.example is not None else "\"\""
    else:
        match field.kind:
            case "string":
                base = f"randomString(r, {_string(domain.alphabet)}, {domain.min_size}, {domain.max_size})"
            case "number":
                base = f"randomInt(r, {domain.minimum}, {domain.maximum})"
            case "boolean":
                base = "r.Intn(2) == 1"
            case "enum":
                base = "pick(r" + "".join(f", {_literal(v)}" for v in domain.values) + ")"
            case "bytes" if field.constraints.length is not None:
                base = f"randomBytes(r, {field.constraints.length})"
            case "bytes":
                base = (
                    f"[]byte(randomString(r, {_string(domain.alphabet)}, "
                    f"{domain.min_size}, {domain.max_size}))"
                )
            case _:
                raise ValueError(f"Unknown field kind: {field.kind}")
    if field.generates_absent:
        return f"optional(r, {base})"
    return base


def _example_struct(message: CompiledMessage, profile: LanguageProfile) -> str:
    assert message.example is not None
    parts = [f"{profile.member_name(name)}: {_literal(value)}" for name, value in message.example.items()]
    return f"{profile.type_name(message.name)}{{" + ", ".join(parts) + "}"


def package_name(protocol: CompiledProtocol) -> str:
    name = to_flat_case(protocol.name)
    if not name or not name[0].isalpha():
        name = f"proto{name}"
    return GO.escape(name)


def module_names(protocol: CompiledProtocol, profile: LanguageProfile = GO) -> dict[str, str]:
    return {
        "parser": profile.file_name(protocol.name, "parser"),
        "serializer": profile.file_name(protocol.name, "serializer"),
        "client": profile.file_name(protocol.name, "client"),
        "tests": profile.file_name(protocol.name, suffix="_test.go"),
    }


def generate(protocol: CompiledProtocol, profile: LanguageProfile = GO) -> GeneratedSources:
    modules = module_names(protocol, profile)
    context = {
        "protocol": protocol,
        "profile": profile,
        "package": package_name(protocol),
        "settings": client_settings(protocol),
        "literal": _literal,
        "string": _string,
        "bytes_literal": _bytes_literal,
        "stops_args": _stops_args,
        "byte_length": lambda text: len(text.encode("utf-8")),
        "go_type": lambda field: TYPE_MAP[field.kind],
        "pattern_var": lambda message, field: _pattern_var(message, field, profile),
        "regexp_source": _regexp_source,
        "coerce_call": lambda message, field, raw: _coerce_call(message, field, raw, profile),
        "check_call": lambda message, field, value: _check_call(message, field, value, profile),
        "empty_check": _empty_check,
        "present": _present,
        "write_call": _write_call,
        "generator": _generator,
        "pattern_fields": pattern_fields,
        "example_struct": lambda message: _example_struct(message, profile),
        "doc": doc_text,
        "BLANK_LINE": "",
    }

    def source(artifact: str) -> SourceFile:
        template = env.get_template(f"go-{artifact}.go.j2")
        return SourceFile(modules[artifact], template.render(**context))

    return GeneratedSources(
        parser=source("parser"),
        serializer=source("serializer"),
        client=source("client"),
        tests=source("tests"),
        warnings=backend_warnings(protocol, profile.display_name),
    )
