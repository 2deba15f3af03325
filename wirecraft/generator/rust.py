"""Rust code generator for wirecraft protocols."""

from typing import Any

from jinja2 import Environment, PackageLoader

from .artifacts import GeneratedSources, SourceFile
from .common import backend_warnings, client_settings, doc_text, pattern_fields
from .compiler import CompiledField, CompiledMessage, CompiledProtocol
from .profiles import RUST, LanguageProfile

env = Environment(
    loader=PackageLoader("wirecraft.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

TYPE_MAP = {
    "string": "String",
    "number": "i64",
    "boolean": "bool",
    "enum": "String",
    "bytes": "Vec<u8>",
}

# proptest supports tuples of up to twelve strategies
_TUPLE_LIMIT = 10

_STR_ESCAPES = {'"': '\\"', "\\": "\\\\", "\n": "\\n", "\r": "\\r", "\t": "\\t", "\0": "\\0"}


def _str(text: str) -> str:
    """Render text as a Rust string literal."""
    out = []
    for ch in text:
        if ch in _STR_ESCAPES:
            out.append(_STR_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\u{{{ord(ch):x}}}")
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'


def _bytes_of(data: bytes) -> str:
    """Render bytes as a Rust byte string literal."""
    out = []
    for b in data:
        ch = chr(b)
        if ch in '"\\':
            out.append("\\" + ch)
        elif 0x20 <= b < 0x7F:
            out.append(ch)
        else:
            out.append(f"\\x{b:02x}")
    return 'b"' + "".join(out) + '"'


def _bytes_literal(text: str) -> str:
    return _bytes_of(text.encode("utf-8"))


def _stops_slice(stops: tuple[str, ...]) -> str:
    return "&[" + ", ".join(f"{_bytes_literal(s)}.as_slice()" for s in stops) + "]"


_CLASS_SPECIALS = set("\\]^-[&~")


def _char_class(alphabet: str) -> str:
    """Regex character class matching exactly the characters of alphabet."""
    return "[" + "".join("\\" + ch if ch in _CLASS_SPECIALS else ch for ch in alphabet) + "]"


def _option(value: Any) -> str:
    return "None" if value is None else f"Some({value})"


def _rust_type(field: CompiledField) -> str:
    base = TYPE_MAP[field.kind]
    return f"Option<{base}>" if field.nullable else base


def _value(field: CompiledField, value: Any) -> str:
    """Render a field value as an owned Rust expression."""
    match field.kind:
        case "string" | "enum":
            return f"{_str(str(value))}.to_string()"
        case "number":
            return str(value)
        case "boolean":
            return "true" if value else "false"
        case "bytes":
            return f"{_bytes_of(value)}.to_vec()"
    raise ValueError(f"Unknown field kind: {field.kind}")


def _pattern_fn(message: CompiledMessage, field: CompiledField, profile: LanguageProfile) -> str:
    return profile.function_name(message.name, field.name, "pattern")


def _enum_values(values: tuple[str, ...]) -> str:
    return "&[" + ", ".join(_str(v) for v in values) + "]"


def _coerce_call(message: CompiledMessage, field: CompiledField, raw: str, profile: LanguageProfile) -> str:
    c = field.constraints
    match field.kind:
        case "string":
            pattern = _option(f"{_pattern_fn(message, field, profile)}()" if c.pattern else None)
            return f"coerce_string({raw}, {_option(c.min_length)}, {_option(c.max_length)}, {pattern})"
        case "number":
            return f"coerce_number({raw}, {_option(c.minimum)}, {_option(c.maximum)})"
        case "boolean":
            return f"coerce_boolean({raw})"
        case "enum":
            return f"coerce_enum({raw}, {_enum_values(c.values)})"
        case "bytes":
            return f"coerce_bytes({raw}, {_option(c.length)})"
    raise ValueError(f"Unknown field kind: {field.kind}")


def _check_call(message: CompiledMessage, field: CompiledField, value: str, profile: LanguageProfile) -> str:
    c = field.constraints
    name = _str(field.name)
    stops = _stops_slice(field.stops)
    match field.kind:
        case "string":
            pattern = _option(f"{_pattern_fn(message, field, profile)}()" if c.pattern else None)
            return (
                f"check_string(&mut errors, {name}, &{value}, {_option(c.min_length)}, "
                f"{_option(c.max_length)}, {pattern}, {stops})"
            )
        case "number":
            return (
                f"check_number(&mut errors, {name}, &{value}, {_option(c.minimum)}, "
                f"{_option(c.maximum)}, {stops})"
            )
        case "boolean":
            return f"check_boolean(&mut errors, {name}, &{value}, {stops})"
        case "enum":
            return f"check_enum(&mut errors, {name}, &{value}, {_enum_values(c.values)}, {stops})"
        case "bytes":
            return f"check_bytes(&mut errors, {name}, &{value}, {_option(c.length)}, {stops})"
    raise ValueError(f"Unknown field kind: {field.kind}")


def _empty_check(field: CompiledField, value: str) -> str | None:
    """Reject an optional value that would be written as nothing."""
    if field.required or field.kind not in ("string", "enum", "bytes") or field.constraints.length is not None:
        return None
    return f"check_empty(&mut errors, {_str(field.name)}, {value}.len())"


def _write_call(field: CompiledField, expr: str) -> str:
    match field.kind:
        case "string" | "enum":
            return f"out.extend_from_slice({expr}.as_bytes());"
        case "number" | "boolean":
            return f"out.extend_from_slice({expr}.to_string().as_bytes());"
        case "bytes":
            return f"out.extend_from_slice(&{expr});"
    raise ValueError(f"Unknown field kind: {field.kind}")


def _strategy(field: CompiledField) -> str:
    """proptest strategy producing valid values of a field."""
    domain = field.domain
    unbounded_text = field.kind == "string" or (field.kind == "bytes" and field.constraints.length is None)
    if field.constraints.pattern or domain.empty or (unbounded_text and not domain.alphabet):
        # Patterned fields and empty domains use one fixed value
        value = field.example
        if value is None:
            value = {"string": "", "number": 0, "boolean": False, "enum": "", "bytes": b""}[field.kind]
        base = f"Just({_value(field, value)})"
    else:
        match field.kind:
            case "string":
                base = _str(f"{_char_class(domain.alphabet)}{{{domain.min_size},{domain.max_size}}}")
            case "number":
                base = f"{domain.minimum}i64..={domain.maximum}i64"
            case "boolean":
                base = "any::<bool>()"
            case "enum":
                values = ", ".join(_str(v) for v in domain.values)
                base = f"prop::sample::select(vec![{values}]).prop_map(String::from)"
            case "bytes" if field.constraints.length is not None:
                length = field.constraints.length
                base = f"prop::collection::vec(any::<u8>(), {length}..={length})"
            case "bytes":
                pattern = f"{_char_class(domain.alphabet)}{{{domain.min_size},{domain.max_size}}}"
                base = f"{_str(pattern)}.prop_map(String::into_bytes)"
            case _:
                raise ValueError(f"Unknown field kind: {field.kind}")
    if field.generates_absent:
        return f"prop::option::of({base})"
    if field.nullable:
        return f"{base}.prop_map(Some)"
    return base


def _chunks(items: list[Any]) -> list[list[Any]]:
    return [items[i : i + _TUPLE_LIMIT] for i in range(0, len(items), _TUPLE_LIMIT)]


def _tuple(items: list[str]) -> str:
    return "(" + ", ".join(items) + ("," if len(items) == 1 else "") + ")"


def _strategy_tuple(message: CompiledMessage) -> str:
    """Strategies for every field, nested so no tuple exceeds proptest's limit."""
    groups = [_tuple([_strategy(f) for f in chunk]) for chunk in _chunks(list(message.fields))]
    return groups[0] if len(groups) == 1 else _tuple(groups)


def _binding_tuple(message: CompiledMessage, profile: LanguageProfile) -> str:
    names = [profile.member_name(f.name) for f in message.fields]
    groups = [_tuple(chunk) for chunk in _chunks(names)]
    return groups[0] if len(groups) == 1 else _tuple(groups)


def _example_struct(message: CompiledMessage, profile: LanguageProfile) -> str:
    assert message.example is not None
    parts = []
    for field in message.fields:
        value = _value(field, message.example[field.name])
        if field.nullable:
            value = f"Some({value})"
        parts.append(f"{profile.member_name(field.name)}: {value}")
    return f"{profile.type_name(message.name)} {{ " + ", ".join(parts) + " }"


def module_names(protocol: CompiledProtocol, profile: LanguageProfile = RUST) -> dict[str, str]:
    return {
        "parser": profile.file_name(protocol.name, "parser", suffix=""),
        "serializer": profile.file_name(protocol.name, "serializer", suffix=""),
        "client": profile.file_name(protocol.name, "client", suffix=""),
        "tests": profile.file_name(protocol.name, "tests", suffix=""),
    }


def generate(protocol: CompiledProtocol, profile: LanguageProfile = RUST) -> GeneratedSources:
    modules = module_names(protocol, profile)
    context = {
        "protocol": protocol,
        "profile": profile,
        "settings": client_settings(protocol),
        "modules": modules,
        "rust_str": _str,
        "bytes_of": _bytes_of,
        "bytes_literal": _bytes_literal,
        "stops_slice": _stops_slice,
        "byte_length": lambda text: len(text.encode("utf-8")),
        "rust_type": _rust_type,
        "value": _value,
        "pattern_fields": pattern_fields,
        "pattern_fn": lambda message, field: _pattern_fn(message, field, profile),
        "coerce_call": lambda message, field, raw: _coerce_call(message, field, raw, profile),
        "check_call": lambda message, field, value: _check_call(message, field, value, profile),
        "empty_check": _empty_check,
        "write_call": _write_call,
        "strategy_tuple": _strategy_tuple,
        "binding_tuple": lambda message: _binding_tuple(message, profile),
        "example_struct": lambda message: _example_struct(message, profile),
        "doc": doc_text,
        "BLANK_LINE": "",
    }

    def source(artifact: str) -> SourceFile:
        template = env.get_template(f"rust-{artifact}.rs.j2")
        return SourceFile(f"{modules[artifact]}.rs", template.render(**context))

    mod = env.get_template("rust-mod.rs.j2").render(**context)
    return GeneratedSources(
        parser=source("parser"),
        serializer=source("serializer"),
        client=source("client"),
        tests=source("tests"),
        extra=(SourceFile("mod.rs", mod),),
        warnings=backend_warnings(protocol, profile.display_name),
    )
