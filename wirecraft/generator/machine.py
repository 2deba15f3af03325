"""Parser state machine derivation.

A message's segments, delimiter and terminator are compiled into a linear
list of parser states. Each field state carries an Extraction describing
where the field's bytes end; backends render the states one after another
with no backtracking other than the single lookahead of an optional field.
"""

from dataclasses import dataclass, replace
from enum import StrEnum
from typing import ClassVar

from .grammar import FieldSegment, LiteralSegment, Segment
from .types import BytesType, EnumType, FieldDefinition


class StateKind(StrEnum):
    EXPECT_FIXED = "EXPECT_FIXED"
    EXTRACT_FIELD = "EXTRACT_FIELD"
    EXPECT_DELIMITER = "EXPECT_DELIMITER"
    OPTIONAL_FIELD = "OPTIONAL_FIELD"
    TERMINAL = "TERMINAL"


class Termination(StrEnum):
    """How the end of a field is located."""

    UNTIL_DELIMITER = "until_delimiter"
    UNTIL_LITERAL = "until_literal"
    UNTIL_TERMINATOR = "until_terminator"
    END_OF_BUFFER = "end_of_buffer"
    FIXED_LENGTH = "fixed_length"


@dataclass(frozen=True)
class Extraction:
    """Where a field stops.

    For the scanning terminations the field ends at the earliest occurrence
    of any of ``stops``; FIXED_LENGTH reads exactly ``length`` bytes and
    END_OF_BUFFER takes the rest of the input.
    """

    termination: Termination
    stops: tuple[str, ...] = ()
    length: int | None = None


@dataclass(frozen=True)
class ExpectFixed:
    kind: ClassVar[StateKind] = StateKind.EXPECT_FIXED
    literal: str

    @property
    def label(self) -> str:
        return str(self.kind)


@dataclass(frozen=True)
class ExtractField:
    kind: ClassVar[StateKind] = StateKind.EXTRACT_FIELD
    field: FieldDefinition
    extraction: Extraction

    @property
    def label(self) -> str:
        return f"{self.kind}:{self.field.name}"


@dataclass(frozen=True)
class ExpectDelimiter:
    kind: ClassVar[StateKind] = StateKind.EXPECT_DELIMITER
    delimiter: str

    @property
    def label(self) -> str:
        return str(self.kind)


@dataclass(frozen=True)
class OptionalField:
    """A field that may be absent.

    ``follow`` is the text the next state expects right after the field, or
    None when the next state is another field or the end of the input.
    """

    kind: ClassVar[StateKind] = StateKind.OPTIONAL_FIELD
    field: FieldDefinition
    extraction: Extraction
    follow: str | None = None

    @property
    def label(self) -> str:
        return f"{self.kind}:{self.field.name}"


@dataclass(frozen=True)
class Terminal:
    kind: ClassVar[StateKind] = StateKind.TERMINAL
    terminator: str | None = None

    @property
    def label(self) -> str:
        return str(self.kind)


ParserState = ExpectFixed | ExtractField | ExpectDelimiter | OptionalField | Terminal


@dataclass(frozen=True)
class StateMachine:
    """The derived states plus what was noticed while deriving them."""

    segments: tuple[Segment, ...]
    states: tuple[ParserState, ...]
    ambiguous_fields: tuple[str, ...] = ()

    @property
    def field_states(self) -> tuple[ExtractField | OptionalField, ...]:
        return tuple(s for s in self.states if isinstance(s, ExtractField | OptionalField))

    @property
    def terminator(self) -> str | None:
        last = self.states[-1]
        return last.terminator if isinstance(last, Terminal) else None

    @property
    def rejects_truncation(self) -> bool:
        """True when the final state requires bytes, so a cut-off message fails."""
        if self.terminator:
            return True
        body = [s for s in self.states if not isinstance(s, Terminal)]
        return bool(body) and isinstance(body[-1], ExpectFixed)


def normalize_terminator(segments: list[Segment], terminator: str | None) -> list[Segment]:
    """Move a trailing copy of the terminator out of the last literal.

    ``"{selector}\\r\\n"`` with terminator ``"\\r\\n"`` would otherwise expect
    the terminator twice.
    """
    if not terminator or not segments:
        return list(segments)
    last = segments[-1]
    if not isinstance(last, LiteralSegment) or not last.text.endswith(terminator):
        return list(segments)

    remainder = last.text[: -len(terminator)]
    if remainder:
        return [*segments[:-1], LiteralSegment(remainder)]
    return list(segments[:-1])


def fixed_width(definition: FieldDefinition) -> int | None:
    """Return the byte width of a field that always occupies the same width."""
    field_type = definition.type
    if isinstance(field_type, BytesType):
        return field_type.length
    if isinstance(field_type, EnumType) and field_type.values:
        widths = {len(value.encode("utf-8")) for value in field_type.values}
        if len(widths) == 1:
            width = widths.pop()
            return width or None
    return None


def _downstream_stop(
    segments: list[Segment], index: int, terminator: str | None
) -> Extraction:
    for segment in segments[index + 1 :]:
        if isinstance(segment, LiteralSegment):
            return Extraction(Termination.UNTIL_LITERAL, (segment.text,))
    if terminator:
        return Extraction(Termination.UNTIL_TERMINATOR, (terminator,))
    return Extraction(Termination.END_OF_BUFFER)


def derive_extraction(
    segments: list[Segment],
    index: int,
    delimiter: str | None,
    terminator: str | None,
) -> tuple[Extraction, bool]:
    """Derive the termination rule of the field segment at ``index``.

    Returns the extraction and whether the field boundary is ambiguous
    (two fields abut with nothing separating them).
    """
    segment = segments[index]
    assert isinstance(segment, FieldSegment)
    field_type = segment.field.type

    if isinstance(field_type, BytesType) and field_type.length is not None:
        return Extraction(Termination.FIXED_LENGTH, length=field_type.length), False

    following = segments[index + 1] if index + 1 < len(segments) else None

    if isinstance(following, LiteralSegment):
        return Extraction(Termination.UNTIL_LITERAL, (following.text,)), False

    if isinstance(following, FieldSegment):
        if delimiter:
            stops = (delimiter, terminator) if terminator and terminator != delimiter else (delimiter,)
            return Extraction(Termination.UNTIL_DELIMITER, stops), False
        width = fixed_width(segment.field)
        if width is not None:
            return Extraction(Termination.FIXED_LENGTH, length=width), False
        return _downstream_stop(segments, index, terminator), True

    if terminator:
        return Extraction(Termination.UNTIL_TERMINATOR, (terminator,)), False
    return Extraction(Termination.END_OF_BUFFER), False


def build_states(
    segments: list[Segment], delimiter: str | None, terminator: str | None
) -> StateMachine:
    """Compile segments into the parser's state list."""
    segments = normalize_terminator(segments, terminator)
    states: list[ParserState] = []
    ambiguous: list[str] = []

    for index, segment in enumerate(segments):
        if isinstance(segment, LiteralSegment):
            states.append(ExpectFixed(segment.text))
            continue

        previous = segments[index - 1] if index else None
        if delimiter and isinstance(previous, FieldSegment):
            states.append(ExpectDelimiter(delimiter))

        extraction, is_ambiguous = derive_extraction(segments, index, delimiter, terminator)
        if is_ambiguous:
            ambiguous.append(segment.field.name)
        if segment.field.required:
            states.append(ExtractField(segment.field, extraction))
        else:
            states.append(OptionalField(segment.field, extraction))

    states.append(Terminal(terminator or None))
    states = [
        replace(state, follow=following_text(states[index + 1])) if isinstance(state, OptionalField) else state
        for index, state in enumerate(states)
    ]
    return StateMachine(tuple(segments), tuple(states), tuple(ambiguous))


def following_text(state: ParserState) -> str | None:
    """Return the text ``state`` requires at the current offset, if any."""
    if isinstance(state, ExpectFixed):
        return state.literal
    if isinstance(state, ExpectDelimiter):
        return state.delimiter
    if isinstance(state, Terminal):
        return state.terminator
    return None
