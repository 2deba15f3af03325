"""Value checks and coercions shared by generated parsers and serializers.

``check_*`` functions validate a message value and return every violation.
``coerce_*`` functions turn raw field bytes into a typed value, or an
Invalid describing what was expected instead.
"""

import re
from dataclasses import dataclass
from typing import Any

from .results import FieldError, ParseFailure

PREVIEW_LENGTH = 50

_INTEGER = re.compile(r"-?[0-9]+")


@dataclass(frozen=True)
class Invalid:
    expected: str


def preview(data: bytes, offset: int) -> str:
    """Decode up to PREVIEW_LENGTH bytes from offset for error reports."""
    chunk = data[offset : offset + PREVIEW_LENGTH]
    text = chunk.decode("utf-8", errors="replace")
    if len(data) - offset > PREVIEW_LENGTH:
        text += "..."
    return text


def fail(state: str, data: bytes, offset: int, expected: str) -> ParseFailure:
    actual = preview(data, offset)
    return ParseFailure(
        state=state,
        offset=offset,
        expected=expected,
        actual=actual,
        message=f"{state}: expected {expected!r} at offset {offset}, found {actual!r}",
    )


def find_stop(data: bytes, start: int, stops: tuple[bytes, ...]) -> int:
    """Return the index of the earliest stop at or after start, or -1."""
    best = -1
    for stop in stops:
        index = data.find(stop, start)
        if index != -1 and (best == -1 or index < best):
            best = index
    return best


def decode_text(raw: bytes) -> str | None:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return None


def parse_integer(text: str) -> int | None:
    if not _INTEGER.fullmatch(text):
        return None
    return int(text)


def parse_boolean(text: str) -> bool | None:
    if text == "true":
        return True
    if text == "false":
        return False
    return None


def encode_value(value: Any) -> bytes:
    """Render a field value to its wire form."""
    if isinstance(value, bool):
        return b"true" if value else b"false"
    if isinstance(value, int):
        return str(value).encode("ascii")
    if isinstance(value, bytes | bytearray):
        return bytes(value)
    return str(value).encode("utf-8")


def _contains_stop(raw: bytes, stops: tuple[bytes, ...]) -> bytes | None:
    for stop in stops:
        if (raw + stop).find(stop) < len(raw):
            return stop
    return None


def _presence(name: str, value: Any, required: bool) -> list[FieldError] | None:
    if value is not None:
        return None
    if required:
        return [FieldError(name, "required", f"{name} is required", "a value")]
    return []


def _empty_errors(name: str, value: Any, required: bool) -> list[FieldError]:
    """An optional value that renders to nothing would parse back as absent."""
    if required or encode_value(value):
        return []
    return [FieldError(name, "empty", f"{name} must be omitted rather than empty", "a non-empty value")]


def _stop_errors(name: str, value: Any, stops: tuple[bytes, ...]) -> list[FieldError]:
    stop = _contains_stop(encode_value(value), stops)
    if stop is None:
        return []
    return [
        FieldError(
            name,
            "contains_stop",
            f"{name} must not contain the separator {stop.decode('utf-8', 'replace')!r}",
            f"no {stop.decode('utf-8', 'replace')!r}",
        )
    ]


def check_string(
    name: str,
    value: Any,
    *,
    required: bool = True,
    min_length: int | None = None,
    max_length: int | None = None,
    pattern: str | None = None,
    stops: tuple[bytes, ...] = (),
) -> list[FieldError]:
    missing = _presence(name, value, required)
    if missing is not None:
        return missing
    if not isinstance(value, str):
        return [FieldError(name, "type", f"{name} must be a string", "a string")]

    errors: list[FieldError] = _empty_errors(name, value, required)
    if min_length is not None and len(value) < min_length:
        errors.append(
            FieldError(
                name,
                "min_length",
                f"{name} must be at least {min_length} characters",
                f"at least {min_length} characters",
            )
        )
    if max_length is not None and len(value) > max_length:
        errors.append(
            FieldError(
                name,
                "max_length",
                f"{name} must be at most {max_length} characters",
                f"at most {max_length} characters",
            )
        )
    if pattern is not None and not re.search(pattern, value):
        errors.append(
            FieldError(name, "pattern", f"{name} must match {pattern!r}", f"text matching {pattern!r}")
        )
    errors.extend(_stop_errors(name, value, stops))
    return errors


def check_number(
    name: str,
    value: Any,
    *,
    required: bool = True,
    minimum: int | None = None,
    maximum: int | None = None,
    stops: tuple[bytes, ...] = (),
) -> list[FieldError]:
    missing = _presence(name, value, required)
    if missing is not None:
        return missing
    if not isinstance(value, int) or isinstance(value, bool):
        return [FieldError(name, "type", f"{name} must be an integer", "an integer")]

    errors: list[FieldError] = []
    if minimum is not None and value < minimum:
        errors.append(FieldError(name, "minimum", f"{name} must be >= {minimum}", f"a number >= {minimum}"))
    if maximum is not None and value > maximum:
        errors.append(FieldError(name, "maximum", f"{name} must be <= {maximum}", f"a number <= {maximum}"))
    errors.extend(_stop_errors(name, value, stops))
    return errors


def check_boolean(
    name: str, value: Any, *, required: bool = True, stops: tuple[bytes, ...] = ()
) -> list[FieldError]:
    missing = _presence(name, value, required)
    if missing is not None:
        return missing
    if not isinstance(value, bool):
        return [FieldError(name, "type", f"{name} must be a boolean", "true or false")]
    return _stop_errors(name, value, stops)


def check_enum(
    name: str,
    value: Any,
    values: tuple[str, ...],
    *,
    required: bool = True,
    stops: tuple[bytes, ...] = (),
) -> list[FieldError]:
    missing = _presence(name, value, required)
    if missing is not None:
        return missing
    if value not in values:
        allowed = ", ".join(values)
        return [FieldError(name, "enum", f"{name} must be one of: {allowed}", f"one of: {allowed}")]
    return _empty_errors(name, value, required) + _stop_errors(name, value, stops)


def check_bytes(
    name: str,
    value: Any,
    *,
    required: bool = True,
    length: int | None = None,
    stops: tuple[bytes, ...] = (),
) -> list[FieldError]:
    missing = _presence(name, value, required)
    if missing is not None:
        return missing
    if not isinstance(value, bytes | bytearray):
        return [FieldError(name, "type", f"{name} must be bytes", "bytes")]
    if length is not None and len(value) != length:
        return [FieldError(name, "length", f"{name} must be exactly {length} bytes", f"{length} bytes")]
    return _empty_errors(name, value, required) + _stop_errors(name, value, stops)


def _first(errors: list[FieldError]) -> Invalid | None:
    if errors:
        return Invalid(errors[0].expected or errors[0].constraint)
    return None


def coerce_string(
    raw: bytes,
    *,
    min_length: int | None = None,
    max_length: int | None = None,
    pattern: str | None = None,
) -> str | Invalid:
    text = decode_text(raw)
    if text is None:
        return Invalid("UTF-8 text")
    problem = _first(
        check_string("", text, min_length=min_length, max_length=max_length, pattern=pattern)
    )
    return problem or text


def coerce_number(raw: bytes, *, minimum: int | None = None, maximum: int | None = None) -> int | Invalid:
    text = decode_text(raw)
    number = parse_integer(text) if text is not None else None
    if number is None:
        return Invalid("an integer")
    problem = _first(check_number("", number, minimum=minimum, maximum=maximum))
    return problem or number


def coerce_boolean(raw: bytes) -> bool | Invalid:
    text = decode_text(raw)
    flag = parse_boolean(text) if text is not None else None
    if flag is None:
        return Invalid("true or false")
    return flag


def coerce_enum(raw: bytes, values: tuple[str, ...]) -> str | Invalid:
    text = decode_text(raw)
    if text is None or text not in values:
        return Invalid("one of: " + ", ".join(values))
    return text


def coerce_bytes(raw: bytes, *, length: int | None = None) -> bytes | Invalid:
    if length is not None and len(raw) != length:
        return Invalid(f"{length} bytes")
    return bytes(raw)
