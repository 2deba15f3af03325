"""Python code generator for wirecraft protocols."""

import json
from importlib import resources
from typing import Any

from jinja2 import Environment, PackageLoader

from .artifacts import GeneratedSources, SourceFile
from .common import backend_warnings, client_settings, doc_text
from .compiler import CompiledField, CompiledMessage, CompiledProtocol
from .profiles import PYTHON, LanguageProfile

RUNTIME_FILES = [
    "__init__.py",
    "checks.py",
    "client.py",
    "errors.py",
    "pool.py",
    "results.py",
]

env = Environment(
    loader=PackageLoader("wirecraft.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

# Map field kinds to Python type annotations
TYPE_MAP = {
    "string": "str",
    "number": "int",
    "boolean": "bool",
    "enum": "str",
    "bytes": "bytes",
}


def _literal(value: Any) -> str:
    """Render a value as a Python literal."""
    if value is None or isinstance(value, bool | int):
        return repr(value)
    if isinstance(value, bytes):
        return repr(value)
    if isinstance(value, tuple | list):
        items = ", ".join(_literal(v) for v in value)
        return f"({items},)" if len(value) == 1 else f"({items})"
    return json.dumps(str(value), ensure_ascii=False)


def _bytes_literal(text: str) -> str:
    return repr(text.encode("utf-8"))


def _stops_literal(stops: tuple[str, ...]) -> str:
    return _literal(tuple(s.encode("utf-8") for s in stops))


def _byte_length(text: str) -> int:
    return len(text.encode("utf-8"))


def _annotation(field: CompiledField) -> str:
    base = TYPE_MAP[field.kind]
    return f"{base} | None" if field.nullable else base


def _kwargs(**options: Any) -> str:
    """Render keyword arguments, leaving out the ones that are None."""
    parts = [f"{key}={_literal(value)}" for key, value in options.items() if value is not None]
    return "".join(f", {part}" for part in parts)


def _coerce_call(field: CompiledField, raw: str) -> str:
    c = field.constraints
    match field.kind:
        case "string":
            return f"coerce_string({raw}{_kwargs(min_length=c.min_length, max_length=c.max_length, pattern=c.pattern)})"
        case "number":
            return f"coerce_number({raw}{_kwargs(minimum=c.minimum, maximum=c.maximum)})"
        case "boolean":
            return f"coerce_boolean({raw})"
        case "enum":
            return f"coerce_enum({raw}, {_literal(c.values)})"
        case "bytes":
            return f"coerce_bytes({raw}{_kwargs(length=c.length)})"
    raise ValueError(f"Unknown field kind: {field.kind}")


def _check_call(field: CompiledField, value: str) -> str:
    c = field.constraints
    common = f"required={field.required}"
    if field.stops:
        common += f", stops={_stops_literal(field.stops)}"
    name = _literal(field.name)
    match field.kind:
        case "string":
            extra = _kwargs(min_length=c.min_length, max_length=c.max_length, pattern=c.pattern)
            return f"check_string({name}, {value}, {common}{extra})"
        case "number":
            return f"check_number({name}, {value}, {common}{_kwargs(minimum=c.minimum, maximum=c.maximum)})"
        case "boolean":
            return f"check_boolean({name}, {value}, {common})"
        case "enum":
            return f"check_enum({name}, {value}, {_literal(c.values)}, {common})"
        case "bytes":
            return f"check_bytes({name}, {value}, {common}{_kwargs(length=c.length)})"
    raise ValueError(f"Unknown field kind: {field.kind}")


def _strategy(field: CompiledField) -> str:
    """Hypothesis strategy producing valid values of a field."""
    domain = field.domain
    if field.constraints.pattern:
        base = f"st.just({_literal(field.example)})"
    else:
        match field.kind:
            case "string":
                base = (
                    f"st.text(alphabet={_literal(domain.alphabet)}, "
                    f"min_size={domain.min_size}, max_size={domain.max_size})"
                )
            case "number":
                base = f"st.integers(min_value={domain.minimum}, max_value={domain.maximum})"
            case "boolean":
                base = "st.booleans()"
            case "enum":
                base = f"st.sampled_from({_literal(domain.values)})"
            case "bytes" if field.constraints.length is not None:
                base = f"st.binary(min_size={domain.min_size}, max_size={domain.max_size})"
            case "bytes":
                base = (
                    f"st.text(alphabet={_literal(domain.alphabet)}, "
                    f"min_size={domain.min_size}, max_size={domain.max_size}).map(str.encode)"
                )
            case _:
                raise ValueError(f"Unknown field kind: {field.kind}")
    if field.generates_absent:
        return f"st.none() | {base}"
    return base


def _example_args(message: CompiledMessage, profile: LanguageProfile) -> str:
    assert message.example is not None
    return ", ".join(
        f"{profile.member_name(name)}={_literal(value)}" for name, value in message.example.items()
    )


def module_names(protocol: CompiledProtocol, profile: LanguageProfile = PYTHON) -> dict[str, str]:
    return {
        "parser": profile.file_name(protocol.name, "parser", suffix=""),
        "serializer": profile.file_name(protocol.name, "serializer", suffix=""),
        "client": profile.file_name(protocol.name, "client", suffix=""),
        "tests": profile.file_name("test", protocol.name, suffix=""),
    }


def render(
    protocol: CompiledProtocol,
    profile: LanguageProfile = PYTHON,
    runtime_import: str = "wirecraft.proto",
) -> dict[str, str]:
    """Render a compiled protocol to Python modules, keyed by file name."""
    modules = module_names(protocol, profile)
    context = {
        "protocol": protocol,
        "profile": profile,
        "settings": client_settings(protocol),
        "modules": modules,
        "runtime_import": runtime_import,
        "literal": _literal,
        "bytes_literal": _bytes_literal,
        "stops_literal": _stops_literal,
        "byte_length": _byte_length,
        "annotation": _annotation,
        "coerce_call": _coerce_call,
        "check_call": _check_call,
        "strategy": _strategy,
        "example_args": lambda m: _example_args(m, profile),
        "doc": doc_text,
        "BLANK_LINE": "",
    }

    files: dict[str, str] = {}
    for artifact, module in modules.items():
        template = env.get_template(f"python-{artifact}.py.j2")
        files[f"{module}.py"] = template.render(**context)
    files["__init__.py"] = env.get_template("python-init.py.j2").render(**context)
    return files


def generate(
    protocol: CompiledProtocol,
    profile: LanguageProfile = PYTHON,
    *,
    runtime_import: str = "wirecraft.proto",
) -> GeneratedSources:
    files = render(protocol, profile, runtime_import)
    modules = module_names(protocol, profile)
    return GeneratedSources(
        parser=SourceFile(f"{modules['parser']}.py", files[f"{modules['parser']}.py"]),
        serializer=SourceFile(f"{modules['serializer']}.py", files[f"{modules['serializer']}.py"]),
        client=SourceFile(f"{modules['client']}.py", files[f"{modules['client']}.py"]),
        tests=SourceFile(f"{modules['tests']}.py", files[f"{modules['tests']}.py"]),
        extra=(SourceFile("__init__.py", files["__init__.py"]),),
        warnings=backend_warnings(protocol, profile.display_name),
    )


def runtime() -> dict[str, str]:
    """Return the Python runtime files as a dict of filename -> content."""
    result: dict[str, str] = {}
    for filename in RUNTIME_FILES:
        content = resources.files("wirecraft.proto").joinpath(filename).read_text()
        result[filename] = content
    return result
