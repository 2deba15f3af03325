"""Result types returned by generated parsers and serializers."""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class FieldError:
    """One violated constraint on one field."""

    field: str
    constraint: str
    message: str
    expected: str | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class ParseSuccess(Generic[T]):
    message: T
    bytes_consumed: int

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class ParseFailure:
    """A failed parse. Nothing is consumed, whatever state failed."""

    state: str
    offset: int
    expected: str
    actual: str
    message: str
    bytes_consumed: int = 0

    @property
    def ok(self) -> bool:
        return False


@dataclass(frozen=True)
class SerializeSuccess:
    data: bytes

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class SerializeFailure:
    """Every violation found while validating the message."""

    errors: tuple[FieldError, ...]

    @property
    def ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return "; ".join(str(e) for e in self.errors)


ParseResult = Union[ParseSuccess[T], ParseFailure]
SerializeResult = Union[SerializeSuccess, SerializeFailure]
