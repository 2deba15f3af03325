"""Format string compiler using Lark.

Turns a message format such as ``"{itemType}{display}\\t{selector}\\r\\n"``
into an ordered list of literal and field segments, resolving each
placeholder against the message's field definitions.
"""

import os
import re
from dataclasses import dataclass
from typing import Any

from lark import Lark, Token
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken
from lark.visitors import Transformer

from .errors import FormatSyntaxError
from .types import FieldDefinition

_g_parser: Lark | None = None

_ESCAPES = {
    "{": "{",
    "}": "}",
    "\\": "\\",
    "r": "\r",
    "n": "\n",
    "t": "\t",
    "0": "\0",
}

_ESCAPE_RE = re.compile(r"\\(x[0-9A-Fa-f]{2}|.)", re.DOTALL)


@dataclass(frozen=True)
class LiteralSegment:
    """Fixed text copied verbatim to and from the wire."""

    text: str

    @property
    def is_field(self) -> bool:
        return False


@dataclass(frozen=True)
class FieldSegment:
    """A placeholder bound to its field definition."""

    field: FieldDefinition

    @property
    def is_field(self) -> bool:
        return True


Segment = LiteralSegment | FieldSegment


@dataclass(frozen=True)
class _Placeholder:
    name: str
    column: int


def unescape(text: str) -> str:
    """Resolve backslash escapes in literal text.

    Unknown escapes are kept verbatim, backslash included.
    """

    def _replace(match: re.Match[str]) -> str:
        seq = match.group(1)
        if seq.startswith("x") and len(seq) == 3:
            return chr(int(seq[1:], 16))
        if seq in _ESCAPES:
            return _ESCAPES[seq]
        return match.group(0)

    return _ESCAPE_RE.sub(_replace, text)


class FormatTransformer(Transformer):
    """Transform the parse tree into literal strings and placeholders."""

    def start(self, args: list[Any]) -> list[str | _Placeholder]:
        return list(args)

    def literal(self, args: list[Token]) -> str:
        return unescape(str(args[0]))

    def placeholder(self, args: list[Token]) -> _Placeholder:
        token = args[0]
        return _Placeholder(name=str(token), column=token.column or 0)


def _get_parser() -> Lark:
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/format.lark", encoding="utf-8") as f:
            grammar = f.read()
        _g_parser = Lark(grammar, parser="lalr")
    return _g_parser


def _describe(exc: UnexpectedInput, text: str) -> FormatSyntaxError:
    column = getattr(exc, "column", None)
    if isinstance(exc, UnexpectedEOF) or (
        isinstance(exc, UnexpectedToken) and exc.token.type == "$END"
    ):
        return FormatSyntaxError(f"unterminated placeholder in format {text!r}", column)
    if isinstance(exc, UnexpectedCharacters):
        char = exc.char
        if char == "}":
            return FormatSyntaxError(f"unmatched '}}' at column {column} in format {text!r}", column)
        if char == "\\":
            return FormatSyntaxError(f"dangling escape at column {column} in format {text!r}", column)
        return FormatSyntaxError(
            f"invalid placeholder character {char!r} at column {column} in format {text!r}",
            column,
        )
    if isinstance(exc, UnexpectedToken) and exc.token.type == "RBRACE":
        if "FIELD_NAME" in exc.expected:
            return FormatSyntaxError(f"empty placeholder at column {column} in format {text!r}", column)
        return FormatSyntaxError(f"unmatched '}}' at column {column} in format {text!r}", column)
    return FormatSyntaxError(f"malformed format {text!r} at column {column}", column)


def tokenize(text: str) -> list[str | _Placeholder]:
    """Split a format string into literal runs and placeholders."""
    try:
        tree = _get_parser().parse(text)
    except UnexpectedInput as exc:
        raise _describe(exc, text) from exc
    return FormatTransformer().transform(tree)


def placeholder_names(text: str) -> list[str]:
    """Return the placeholder names of a format string in source order."""
    return [item.name for item in tokenize(text) if isinstance(item, _Placeholder)]


def compile_format(
    text: str, fields: list[FieldDefinition]
) -> tuple[list[Segment], list[str]]:
    """Compile a format string into segments.

    Returns the segments and a list of problems; a placeholder that names no
    declared field is reported and left out of the segments.
    """
    by_name = {f.name: f for f in fields}
    segments: list[Segment] = []
    problems: list[str] = []

    for item in tokenize(text):
        if isinstance(item, str):
            if item:
                segments.append(LiteralSegment(item))
            continue
        definition = by_name.get(item.name)
        if definition is None:
            available = ", ".join(by_name) or "none"
            problems.append(
                f"undefined placeholder {{{item.name}}} at column {item.column} "
                f"(declared fields: {available})"
            )
            continue
        segments.append(FieldSegment(definition))

    return segments, problems
