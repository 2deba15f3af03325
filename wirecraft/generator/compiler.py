"""Compile a ProtocolSpec into the language-neutral IR used by the backends."""

from dataclasses import dataclass, field
from typing import Any

import structlog

from .emission import (
    Constraints,
    Domain,
    EmitStep,
    NoExample,
    build_domain,
    build_steps,
    example_value,
    merge_constraints,
    render,
)
from .errors import Diagnostic, Severity, ValidationError
from .grammar import Segment, compile_format, unescape
from .machine import OptionalField, ParserState, StateMachine, Termination, build_states
from .types import Direction, EnumType, FieldDefinition, MessageType, ProtocolSpec, TypeDefinition
from .validation import check_message, check_spec, summarize

logger = structlog.get_logger()


@dataclass(frozen=True)
class CompiledField:
    """A field definition with everything derived from its position."""

    definition: FieldDefinition
    constraints: Constraints
    stops: tuple[str, ...]
    domain: Domain
    example: Any = None
    absence_ambiguous: bool = False

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def kind(self) -> str:
        return self.definition.type.kind

    @property
    def required(self) -> bool:
        return self.definition.required

    @property
    def default(self) -> Any:
        return self.definition.default_value

    @property
    def nullable(self) -> bool:
        """Optional with no default, so absence is represented explicitly."""
        return not self.required and self.default is None

    @property
    def generates_absent(self) -> bool:
        """Whether round-trip tests may leave the field out."""
        return self.nullable and not self.absence_ambiguous


@dataclass(frozen=True)
class CompiledMessage:
    message: MessageType
    delimiter: str | None
    terminator: str | None
    machine: StateMachine
    steps: tuple[EmitStep, ...]
    fields: tuple[CompiledField, ...]
    example: dict[str, Any] | None = None
    example_bytes: bytes | None = None
    skip_reason: str | None = None

    @property
    def name(self) -> str:
        return self.message.name

    @property
    def description(self) -> str | None:
        return self.message.description

    @property
    def segments(self) -> tuple[Segment, ...]:
        return self.machine.segments

    @property
    def states(self) -> tuple[ParserState, ...]:
        return self.machine.states

    @property
    def is_request(self) -> bool:
        return self.message.direction in (Direction.REQUEST, Direction.BIDIRECTIONAL)

    @property
    def is_response(self) -> bool:
        return self.message.direction in (Direction.RESPONSE, Direction.BIDIRECTIONAL)

    @property
    def round_trip_safe(self) -> bool:
        return self.skip_reason is None

    @property
    def rejects_truncation(self) -> bool:
        return self.machine.rejects_truncation and bool(self.example_bytes)

    @property
    def truncated_bytes(self) -> bytes | None:
        if not self.rejects_truncation or self.example_bytes is None:
            return None
        return self.example_bytes[:-1]

    def find_field(self, name: str) -> CompiledField | None:
        for compiled in self.fields:
            if compiled.name == name:
                return compiled
        return None


@dataclass(frozen=True)
class CompiledProtocol:
    """The IR of a whole protocol: surviving message types plus diagnostics."""

    spec: ProtocolSpec
    messages: tuple[CompiledMessage, ...]
    diagnostics: tuple[Diagnostic, ...] = field(default=())

    @property
    def name(self) -> str:
        return self.spec.protocol.name

    @property
    def requests(self) -> tuple[CompiledMessage, ...]:
        return tuple(m for m in self.messages if m.is_request)

    @property
    def responses(self) -> tuple[CompiledMessage, ...]:
        return tuple(m for m in self.messages if m.is_response)

    @property
    def enum_types(self) -> tuple[TypeDefinition, ...]:
        return tuple(t for t in self.spec.types if t.kind == "enum")

    @property
    def warnings(self) -> tuple[Diagnostic, ...]:
        return tuple(d for d in self.diagnostics if d.severity == Severity.WARNING)

    @property
    def errors(self) -> tuple[Diagnostic, ...]:
        """Errors of message types that were dropped from the compilation."""
        return tuple(d for d in self.diagnostics if d.is_error)


def _field_stops(machine: StateMachine, name: str) -> tuple[str, ...]:
    stops: dict[str, None] = {}
    for state in machine.field_states:
        if state.field.name == name:
            stops.update(dict.fromkeys(state.extraction.stops))
    return tuple(stops)


def _fixed_width_optionals(machine: StateMachine) -> set[str]:
    """Optional fields read by width, where a missing value can be mistaken for
    the leading bytes of what follows."""
    return {
        state.field.name
        for state in machine.field_states
        if isinstance(state, OptionalField) and state.extraction.termination == Termination.FIXED_LENGTH
    }


def compile_message(message: MessageType) -> tuple[CompiledMessage, list[Diagnostic]]:
    """Compile one message type that already passed validation."""
    diagnostics: list[Diagnostic] = []
    segments, problems = compile_format(message.format, message.fields)
    if problems:
        raise ValidationError(
            [Diagnostic(Severity.ERROR, "undefined_placeholder", p, message.name) for p in problems]
        )

    delimiter = unescape(message.delimiter) if message.delimiter else None
    terminator = unescape(message.terminator) if message.terminator else None
    machine = build_states(segments, delimiter, terminator)
    steps = build_steps(list(machine.segments), delimiter, machine.terminator)

    for name in machine.ambiguous_fields:
        diagnostics.append(
            Diagnostic(
                Severity.WARNING,
                "adjacent_fields",
                "field is directly followed by another field with no delimiter; "
                "its boundary is guessed from the next separator",
                message.name,
                name,
            )
        )

    compiled_fields: list[CompiledField] = []
    skip_reasons: list[str] = []
    example: dict[str, Any] = {}
    if machine.ambiguous_fields:
        skip_reasons.append("field boundaries are ambiguous: " + ", ".join(machine.ambiguous_fields))
    fixed_width_optionals = _fixed_width_optionals(machine)

    for definition in message.fields:
        constraints = merge_constraints(definition)
        stops = _field_stops(machine, definition.name)
        domain = build_domain(definition, constraints, stops)

        if isinstance(definition.type, EnumType):
            for value in constraints.values:
                if value not in domain.values:
                    diagnostics.append(
                        Diagnostic(
                            Severity.WARNING,
                            "unsafe_enum_value",
                            f"enum value {value!r} collides with a separator and cannot round-trip",
                            message.name,
                            definition.name,
                        )
                    )
        if domain.empty:
            diagnostics.append(
                Diagnostic(
                    Severity.WARNING,
                    "empty_domain",
                    "no value of this field survives serialization and parsing",
                    message.name,
                    definition.name,
                )
            )
            skip_reasons.append(f"field {definition.name!r} has no round-trippable values")

        try:
            value = example_value(definition, constraints, domain)
        except NoExample as exc:
            value = None
            skip_reasons.append(str(exc))
        else:
            example[definition.name] = value

        absence_ambiguous = definition.name in fixed_width_optionals and definition.default_value is None
        if absence_ambiguous:
            diagnostics.append(
                Diagnostic(
                    Severity.WARNING,
                    "ambiguous_absence",
                    "optional field is read by width; when absent, the bytes that follow "
                    "may be taken for its value",
                    message.name,
                    definition.name,
                )
            )
        compiled_fields.append(
            CompiledField(definition, constraints, stops, domain, value, absence_ambiguous=absence_ambiguous)
        )

    complete = len(example) == len(message.fields)
    compiled = CompiledMessage(
        message=message,
        delimiter=delimiter,
        terminator=machine.terminator,
        machine=machine,
        steps=tuple(steps),
        fields=tuple(compiled_fields),
        example=example if complete else None,
        example_bytes=render(steps, example) if complete else None,
        skip_reason="; ".join(skip_reasons) or None,
    )
    return compiled, diagnostics


def compile_protocol(spec: ProtocolSpec) -> CompiledProtocol:
    """Validate and compile a protocol.

    Spec-wide errors abort with the complete batch of diagnostics. A message
    type with errors of its own is dropped and its errors are kept on the
    result; compilation fails only when no message type survives.
    """
    diagnostics = check_spec(spec)
    found = [(message, check_message(message)) for message in spec.message_types]
    for _, message_diagnostics in found:
        diagnostics.extend(message_diagnostics)

    if any(d.is_error and d.message_type is None for d in diagnostics):
        raise ValidationError(diagnostics)

    compiled: list[CompiledMessage] = []
    for message, message_diagnostics in found:
        errors = [d for d in message_diagnostics if d.is_error]
        if errors:
            logger.warning(
                "message_type_dropped",
                protocol=spec.protocol.name,
                message_type=message.name,
                errors=[str(e) for e in errors],
            )
            continue
        compiled_message, warnings = compile_message(message)
        diagnostics.extend(warnings)
        compiled.append(compiled_message)

    if not compiled:
        raise ValidationError(diagnostics)

    for diagnostic in diagnostics:
        if not diagnostic.is_error:
            logger.debug("compile_warning", code=diagnostic.code, detail=str(diagnostic))

    logger.info(
        "protocol_compiled",
        protocol=spec.protocol.name,
        message_types=len(compiled),
        dropped=len(spec.message_types) - len(compiled),
        **summarize(diagnostics),
    )
    return CompiledProtocol(spec, tuple(compiled), tuple(diagnostics))
