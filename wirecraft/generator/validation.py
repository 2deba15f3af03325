"""Semantic checks over a protocol spec.

Every check runs to completion and reports through Diagnostic records, so
a spec with several problems is rejected with all of them at once.
"""

import re
from collections import Counter
from collections.abc import Iterable
from typing import Any

from .emission import merge_constraints
from .errors import Diagnostic, FormatSyntaxError, Severity
from .grammar import placeholder_names
from .types import (
    BooleanType,
    BytesType,
    Direction,
    EnumType,
    FieldDefinition,
    MessageType,
    NetworkErrorPolicy,
    NumberType,
    ProtocolSpec,
    StringType,
    Transport,
)


def _error(code: str, text: str, message: str | None = None, field: str | None = None) -> Diagnostic:
    return Diagnostic(Severity.ERROR, code, text, message, field)


def _warning(code: str, text: str, message: str | None = None, field: str | None = None) -> Diagnostic:
    return Diagnostic(Severity.WARNING, code, text, message, field)


def _duplicates(names: Iterable[str]) -> list[str]:
    return [name for name, count in Counter(names).items() if count > 1]


def check_spec(spec: ProtocolSpec) -> list[Diagnostic]:
    """Checks that concern the protocol as a whole rather than one message type."""
    diagnostics: list[Diagnostic] = []

    if not spec.message_types:
        diagnostics.append(_error("no_message_types", "protocol declares no message types"))

    for name in _duplicates(m.name for m in spec.message_types):
        diagnostics.append(_error("duplicate_message_type", f"message type {name!r} is declared more than once"))

    for name in _duplicates(t.name for t in spec.types):
        diagnostics.append(_error("duplicate_type", f"type {name!r} is declared more than once"))

    for type_def in spec.types:
        if type_def.kind == "enum":
            if not type_def.values:
                diagnostics.append(_error("empty_enum", f"enum type {type_def.name!r} has no values"))
            for name in _duplicates(v.name for v in type_def.values):
                diagnostics.append(
                    _error("duplicate_enum_value", f"enum type {type_def.name!r} repeats value {name!r}")
                )
        elif type_def.kind == "struct":
            for name in _duplicates(f.name for f in type_def.fields):
                diagnostics.append(
                    _error("duplicate_field", f"struct type {type_def.name!r} repeats field {name!r}")
                )
        else:
            diagnostics.append(
                _error("invalid_type", f"type {type_def.name!r} has unknown kind {type_def.kind!r}")
            )

    handling = spec.error_handling
    if handling.on_network_error == NetworkErrorPolicy.RETRY:
        if handling.retry_attempts is None or handling.retry_attempts < 1:
            diagnostics.append(
                _error("invalid_retry", "onNetworkError 'retry' requires retryAttempts >= 1")
            )
        if handling.retry_delay is None or handling.retry_delay < 0:
            diagnostics.append(
                _error("invalid_retry", "onNetworkError 'retry' requires retryDelay >= 0")
            )

    if spec.connection.transport == Transport.UDP:
        diagnostics.append(
            _warning("udp_transport", "UDP transport is not supported by stream clients; emitting TCP clients")
        )

    directions = {m.direction for m in spec.message_types}
    if Direction.REQUEST in directions and Direction.RESPONSE not in directions:
        for message in spec.message_types:
            if message.direction == Direction.REQUEST:
                diagnostics.append(
                    _warning(
                        "no_response_type",
                        "request has no corresponding response message type",
                        message.name,
                    )
                )

    return diagnostics


def _check_default(definition: FieldDefinition, message: str) -> list[Diagnostic]:
    value = definition.default_value
    if value is None:
        return []

    field_type = definition.type
    valid = True
    match field_type:
        case StringType():
            valid = isinstance(value, str)
        case NumberType():
            valid = isinstance(value, int) and not isinstance(value, bool)
        case BooleanType():
            valid = isinstance(value, bool)
        case EnumType(values=values):
            valid = isinstance(value, str) and value in values
        case BytesType():
            valid = False
    if not valid:
        return [
            _error(
                "invalid_default",
                f"default value {value!r} does not fit a {field_type.kind} field",
                message,
                definition.name,
            )
        ]

    constraints = merge_constraints(definition)
    problems: list[str] = []
    if isinstance(value, str) and not isinstance(field_type, EnumType):
        if constraints.max_length is not None and len(value) > constraints.max_length:
            problems.append(f"is longer than {constraints.max_length}")
        if constraints.min_length is not None and len(value) < constraints.min_length:
            problems.append(f"is shorter than {constraints.min_length}")
        if constraints.pattern and _compiles(constraints.pattern):
            if not re.search(constraints.pattern, value):
                problems.append(f"does not match {constraints.pattern!r}")
    if isinstance(value, int) and not isinstance(value, bool):
        if constraints.minimum is not None and value < constraints.minimum:
            problems.append(f"is below {constraints.minimum}")
        if constraints.maximum is not None and value > constraints.maximum:
            problems.append(f"is above {constraints.maximum}")
    return [
        _error("invalid_default", f"default value {value!r} {problem}", message, definition.name)
        for problem in problems
    ]


def _compiles(pattern: str) -> bool:
    try:
        re.compile(pattern)
    except re.error:
        return False
    return True


def check_field(definition: FieldDefinition, message: str) -> list[Diagnostic]:
    """Checks on one field's type, validation rule and default."""
    diagnostics: list[Diagnostic] = []
    name = definition.name
    field_type = definition.type
    rule = definition.validation

    def error(code: str, text: str) -> None:
        diagnostics.append(_error(code, text, message, name))

    match field_type:
        case StringType(max_length=max_length) if max_length is not None and max_length < 0:
            error("invalid_length", f"maxLength {max_length} is negative")
        case NumberType(minimum=lo, maximum=hi) if lo is not None and hi is not None and lo > hi:
            error("invalid_range", f"min {lo} is greater than max {hi}")
        case EnumType(values=values):
            if not values:
                error("empty_enum", "enum field has no values")
            for value in _duplicates(values):
                error("duplicate_enum_value", f"enum value {value!r} is listed more than once")
        case BytesType(length=length) if length is not None and length <= 0:
            error("invalid_length", f"bytes length {length} must be positive")

    if rule:
        if rule.min_length is not None and rule.min_length < 0:
            error("invalid_length", f"minLength {rule.min_length} is negative")
        if rule.max_length is not None and rule.max_length < 0:
            error("invalid_length", f"maxLength {rule.max_length} is negative")
        if rule.min_length is not None and rule.max_length is not None and rule.min_length > rule.max_length:
            error("invalid_length", f"minLength {rule.min_length} is greater than maxLength {rule.max_length}")
        if rule.minimum is not None and rule.maximum is not None and rule.minimum > rule.maximum:
            error("invalid_range", f"min {rule.minimum} is greater than max {rule.maximum}")
        if rule.pattern is not None and not _compiles(rule.pattern):
            error("invalid_pattern", f"pattern {rule.pattern!r} is not a valid regular expression")

    if not diagnostics:
        constraints = merge_constraints(definition)
        if (
            constraints.min_length is not None
            and constraints.max_length is not None
            and constraints.min_length > constraints.max_length
        ):
            error(
                "invalid_length",
                f"minLength {constraints.min_length} exceeds the type's maxLength {constraints.max_length}",
            )
        if (
            constraints.minimum is not None
            and constraints.maximum is not None
            and constraints.minimum > constraints.maximum
        ):
            error("invalid_range", f"combined min {constraints.minimum} exceeds max {constraints.maximum}")
        diagnostics.extend(_check_default(definition, message))

    return diagnostics


def check_message(message: MessageType) -> list[Diagnostic]:
    """Checks on one message type: placeholders, fields and format syntax."""
    diagnostics: list[Diagnostic] = []
    declared = [f.name for f in message.fields]

    for name in _duplicates(declared):
        diagnostics.append(
            _error("duplicate_field", f"field {name!r} is declared more than once", message.name, name)
        )

    try:
        names = placeholder_names(message.format)
    except FormatSyntaxError as exc:
        diagnostics.append(_error("format_syntax", str(exc), message.name))
        names = None

    if names is not None:
        for name in dict.fromkeys(names):
            if name not in declared:
                diagnostics.append(
                    _error(
                        "undefined_placeholder",
                        f"placeholder {{{name}}} does not match any declared field",
                        message.name,
                        name,
                    )
                )
        for name in _duplicates(names):
            diagnostics.append(
                _warning(
                    "repeated_placeholder",
                    f"placeholder {{{name}}} appears more than once; the last occurrence wins when parsing",
                    message.name,
                    name,
                )
            )
        for name in dict.fromkeys(declared):
            if name not in names:
                diagnostics.append(
                    _error("unreferenced_field", f"field {name!r} never appears in the format", message.name, name)
                )

    for definition in message.fields:
        diagnostics.extend(check_field(definition, message.name))

    return diagnostics


def summarize(diagnostics: list[Diagnostic]) -> dict[str, Any]:
    """Count diagnostics by severity, for logging."""
    errors = sum(1 for d in diagnostics if d.is_error)
    return {"errors": errors, "warnings": len(diagnostics) - errors}
