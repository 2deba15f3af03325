"""Serializer emission plans.

The emission plan mirrors a message's segments: literals are copied, fields
are rendered per type, the delimiter goes between directly adjacent fields
and the terminator closes the message. The same plan renders example values
to bytes so that generated example tests can assert exact output.
"""

import string
from dataclasses import dataclass
from typing import Any, ClassVar

from .grammar import FieldSegment, LiteralSegment, Segment
from .types import (
    BooleanType,
    BytesType,
    EnumType,
    FieldDefinition,
    NumberType,
    StringType,
)

NUMBER_DOMAIN_BOUND = 1_000_000
STRING_DOMAIN_SLACK = 16
ALPHANUMERIC = string.ascii_letters + string.digits
BOOLEAN_TOKENS = ("true", "false")


@dataclass(frozen=True)
class LiteralStep:
    kind: ClassVar[str] = "literal"
    text: str


@dataclass(frozen=True)
class FieldStep:
    kind: ClassVar[str] = "field"
    field: FieldDefinition


@dataclass(frozen=True)
class DelimiterStep:
    kind: ClassVar[str] = "delimiter"
    delimiter: str


@dataclass(frozen=True)
class TerminatorStep:
    kind: ClassVar[str] = "terminator"
    terminator: str


EmitStep = LiteralStep | FieldStep | DelimiterStep | TerminatorStep


@dataclass(frozen=True)
class Constraints:
    """A field's type bounds merged with its validation rule."""

    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    minimum: int | None = None
    maximum: int | None = None
    values: tuple[str, ...] = ()
    length: int | None = None


@dataclass(frozen=True)
class Domain:
    """Values a property test may generate for a field.

    ``alphabet`` holds the characters that can never form one of the
    field's stop sequences. An empty domain means no value round-trips.
    """

    alphabet: str = ""
    min_size: int = 0
    max_size: int = 0
    minimum: int = -NUMBER_DOMAIN_BOUND
    maximum: int = NUMBER_DOMAIN_BOUND
    values: tuple[str, ...] = ()
    empty: bool = False


def build_steps(segments: list[Segment], delimiter: str | None, terminator: str | None) -> list[EmitStep]:
    """Compile segments into the serializer's emission plan."""
    steps: list[EmitStep] = []
    previous: Segment | None = None
    for segment in segments:
        if isinstance(segment, LiteralSegment):
            steps.append(LiteralStep(segment.text))
        else:
            if delimiter and isinstance(previous, FieldSegment):
                steps.append(DelimiterStep(delimiter))
            steps.append(FieldStep(segment.field))
        previous = segment
    if terminator:
        steps.append(TerminatorStep(terminator))
    return steps


def _tighter_min(*bounds: int | None) -> int | None:
    present = [b for b in bounds if b is not None]
    return max(present) if present else None


def _tighter_max(*bounds: int | None) -> int | None:
    present = [b for b in bounds if b is not None]
    return min(present) if present else None


def merge_constraints(definition: FieldDefinition) -> Constraints:
    rule = definition.validation
    field_type = definition.type

    match field_type:
        case StringType(max_length=type_max):
            return Constraints(
                min_length=rule.min_length if rule else None,
                max_length=_tighter_max(type_max, rule.max_length if rule else None),
                pattern=rule.pattern if rule else None,
            )
        case NumberType(minimum=type_min, maximum=type_max):
            return Constraints(
                minimum=_tighter_min(type_min, rule.minimum if rule else None),
                maximum=_tighter_max(type_max, rule.maximum if rule else None),
            )
        case EnumType(values=values):
            return Constraints(values=values)
        case BytesType(length=length):
            return Constraints(length=length)
        case BooleanType():
            return Constraints()
    raise TypeError(f"Unhandled field type {field_type!r}")


def safe_alphabet(stops: tuple[str, ...]) -> str:
    """Alphanumerics that appear in none of the stop sequences."""
    banned = set("".join(stops))
    return "".join(c for c in ALPHANUMERIC if c not in banned)


def contains_stop(value: str | bytes, stops: tuple[str, ...]) -> bool:
    """True when a stop would be found inside the rendered value.

    A stop also counts when it overlaps the end of the value, since the
    parser would then end the field early.
    """
    raw = value.encode("utf-8") if isinstance(value, str) else value
    for stop in stops:
        encoded = stop.encode("utf-8")
        if (raw + encoded).find(encoded) < len(raw):
            return True
    return False


def build_domain(
    definition: FieldDefinition, constraints: Constraints, stops: tuple[str, ...]
) -> Domain:
    alphabet = safe_alphabet(stops)
    banned = set("".join(stops))
    field_type = definition.type

    match field_type:
        case StringType():
            min_size = constraints.min_length or 0
            if not definition.required:
                min_size = max(min_size, 1)
            max_size = constraints.max_length
            if max_size is None:
                max_size = min_size + STRING_DOMAIN_SLACK
            max_size = min(max_size, min_size + STRING_DOMAIN_SLACK)
            empty = max_size < min_size or (min_size > 0 and not alphabet)
            return Domain(alphabet=alphabet, min_size=min_size, max_size=max_size, empty=empty)
        case NumberType():
            lo = constraints.minimum if constraints.minimum is not None else -NUMBER_DOMAIN_BOUND
            hi = constraints.maximum if constraints.maximum is not None else NUMBER_DOMAIN_BOUND
            if "-" in banned:
                lo = max(lo, 0)
            empty = lo > hi or any(c in banned for c in string.digits)
            return Domain(minimum=lo, maximum=hi, empty=empty)
        case BooleanType():
            empty = any(contains_stop(token, stops) for token in BOOLEAN_TOKENS)
            return Domain(values=BOOLEAN_TOKENS, empty=empty)
        case EnumType():
            values = tuple(
                v for v in constraints.values if v and not contains_stop(v, stops)
            )
            return Domain(values=values, empty=not values)
        case BytesType(length=length):
            if length is not None:
                return Domain(min_size=length, max_size=length)
            min_size = 0 if definition.required else 1
            return Domain(
                alphabet=alphabet,
                min_size=min_size,
                max_size=min_size + STRING_DOMAIN_SLACK,
                empty=min_size > 0 and not alphabet,
            )
    raise TypeError(f"Unhandled field type {field_type!r}")


class NoExample(Exception):
    """Raised when no valid example value can be derived for a field."""


def example_value(definition: FieldDefinition, constraints: Constraints, domain: Domain) -> Any:
    """Pick a deterministic valid value for a field."""
    if definition.default_value is not None:
        return definition.default_value

    field_type = definition.type
    match field_type:
        case StringType():
            if constraints.pattern:
                raise NoExample(f"field {definition.name!r} has a pattern and no default")
            if not domain.alphabet:
                raise NoExample(f"field {definition.name!r} has no safe characters")
            size = max(constraints.min_length or 0, 1)
            if constraints.max_length is not None:
                size = min(size, constraints.max_length)
            if size == 0 and not definition.required:
                raise NoExample(f"optional field {definition.name!r} only admits empty text")
            return domain.alphabet[0] * size
        case NumberType():
            if domain.empty:
                raise NoExample(f"field {definition.name!r} has an empty range")
            return min(max(1, domain.minimum), domain.maximum)
        case BooleanType():
            if domain.empty:
                raise NoExample(f"field {definition.name!r} cannot carry a boolean token")
            return True
        case EnumType():
            if not domain.values:
                raise NoExample(f"field {definition.name!r} has no usable enum value")
            return domain.values[0]
        case BytesType(length=length):
            if length is not None:
                return bytes(range(65, 65 + length)) if length <= 26 else b"A" * length
            if not domain.alphabet:
                raise NoExample(f"field {definition.name!r} has no safe characters")
            return domain.alphabet[0].encode("ascii")
    raise TypeError(f"Unhandled field type {field_type!r}")


def render_value(value: Any) -> bytes:
    """Render one field value the way every generated serializer does."""
    if isinstance(value, bool):
        return b"true" if value else b"false"
    if isinstance(value, int):
        return str(value).encode("ascii")
    if isinstance(value, bytes):
        return value
    return str(value).encode("utf-8")


def render(steps: list[EmitStep], values: dict[str, Any]) -> bytes:
    """Reference renderer: the exact bytes a serializer emits for ``values``.

    Fields missing from ``values`` (or set to None) are emitted as nothing.
    """
    out = bytearray()
    for step in steps:
        match step:
            case LiteralStep(text=text):
                out += text.encode("utf-8")
            case DelimiterStep(delimiter=delimiter):
                out += delimiter.encode("utf-8")
            case TerminatorStep(terminator=terminator):
                out += terminator.encode("utf-8")
            case FieldStep(field=definition):
                value = values.get(definition.name)
                if value is None:
                    value = definition.default_value
                if value is not None:
                    out += render_value(value)
    return bytes(out)
