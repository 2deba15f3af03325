"""Type definitions for protocol specifications.

A ProtocolSpec is produced once per compilation run (by the loader or by
hand) and is never mutated afterwards.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, ClassVar

from dataclasses_json import DataClassJsonMixin, LetterCase, config

_CAMEL = config(letter_case=LetterCase.CAMEL)["dataclasses_json"]


class Direction(StrEnum):
    """Which side of the connection sends a message."""

    REQUEST = "request"
    RESPONSE = "response"
    BIDIRECTIONAL = "bidirectional"


class Transport(StrEnum):
    TCP = "TCP"
    UDP = "UDP"


class ParseErrorPolicy(StrEnum):
    THROW = "throw"
    RETURN = "return"
    LOG = "log"


class NetworkErrorPolicy(StrEnum):
    THROW = "throw"
    RETRY = "retry"
    RETURN = "return"


@dataclass(frozen=True)
class StringType:
    """Free text, optionally capped at max_length code points."""

    kind: ClassVar[str] = "string"
    max_length: int | None = None


@dataclass(frozen=True)
class NumberType:
    """Decimal integer, optionally bounded."""

    kind: ClassVar[str] = "number"
    minimum: int | None = None
    maximum: int | None = None


@dataclass(frozen=True)
class BooleanType:
    kind: ClassVar[str] = "boolean"


@dataclass(frozen=True)
class EnumType:
    """One of a fixed set of textual values."""

    kind: ClassVar[str] = "enum"
    values: tuple[str, ...] = ()


@dataclass(frozen=True)
class BytesType:
    """Raw bytes; length=N makes the field exactly N bytes wide."""

    kind: ClassVar[str] = "bytes"
    length: int | None = None


FieldType = StringType | NumberType | BooleanType | EnumType | BytesType


def decode_field_type(value: Any) -> FieldType:
    """Decode the ``{"kind": ...}`` JSON form of a field type."""
    if isinstance(value, (StringType, NumberType, BooleanType, EnumType, BytesType)):
        return value
    if not isinstance(value, dict) or "kind" not in value:
        raise ValueError(f"Field type must be an object with a 'kind', got {value!r}")

    kind = value["kind"]
    if kind == "string":
        return StringType(max_length=value.get("maxLength"))
    if kind == "number":
        return NumberType(minimum=value.get("min"), maximum=value.get("max"))
    if kind == "boolean":
        return BooleanType()
    if kind == "enum":
        return EnumType(values=tuple(str(v) for v in value.get("values", [])))
    if kind == "bytes":
        return BytesType(length=value.get("length"))
    raise ValueError(f"Unknown field type kind {kind!r}")


def encode_field_type(value: FieldType) -> dict[str, Any]:
    """Encode a field type back to its JSON form."""
    data: dict[str, Any] = {"kind": value.kind}
    if isinstance(value, StringType) and value.max_length is not None:
        data["maxLength"] = value.max_length
    elif isinstance(value, NumberType):
        if value.minimum is not None:
            data["min"] = value.minimum
        if value.maximum is not None:
            data["max"] = value.maximum
    elif isinstance(value, EnumType):
        data["values"] = list(value.values)
    elif isinstance(value, BytesType) and value.length is not None:
        data["length"] = value.length
    return data


@dataclass(frozen=True)
class ValidationRule(DataClassJsonMixin):
    """Extra constraints on a field's value."""

    dataclass_json_config = _CAMEL

    pattern: str | None = None
    min_length: int | None = None
    max_length: int | None = None
    minimum: int | None = field(default=None, metadata=config(field_name="min"))
    maximum: int | None = field(default=None, metadata=config(field_name="max"))
    custom: str | None = None


@dataclass(frozen=True)
class FieldDefinition(DataClassJsonMixin):
    """Represents a field of a message type."""

    dataclass_json_config = _CAMEL

    name: str
    type: FieldType = field(
        metadata=config(encoder=encode_field_type, decoder=decode_field_type)
    )
    required: bool = True
    validation: ValidationRule | None = None
    default_value: Any = None


@dataclass(frozen=True)
class MessageType(DataClassJsonMixin):
    """Represents one message format of a protocol."""

    dataclass_json_config = _CAMEL

    name: str
    direction: Direction
    format: str
    fields: list[FieldDefinition] = field(default_factory=list)
    delimiter: str | None = None
    terminator: str | None = None
    description: str | None = None

    def find_field(self, name: str) -> FieldDefinition | None:
        for definition in self.fields:
            if definition.name == name:
                return definition
        return None


@dataclass(frozen=True)
class HandshakeSpec(DataClassJsonMixin):
    dataclass_json_config = _CAMEL

    required: bool = False
    client_sends: str | None = None
    server_responds: str | None = None


@dataclass(frozen=True)
class TerminationSpec(DataClassJsonMixin):
    dataclass_json_config = _CAMEL

    close_connection: bool = True
    client_sends: str | None = None
    server_responds: str | None = None


@dataclass(frozen=True)
class ConnectionSpec(DataClassJsonMixin):
    """Connection behaviour; timeout is in milliseconds."""

    dataclass_json_config = _CAMEL

    transport: Transport = field(default=Transport.TCP, metadata=config(field_name="type"))
    handshake: HandshakeSpec | None = None
    termination: TerminationSpec | None = None
    timeout: int | None = None
    keep_alive: bool = False


@dataclass(frozen=True)
class ProtocolMetadata(DataClassJsonMixin):
    dataclass_json_config = _CAMEL

    name: str
    port: int
    description: str = ""
    version: str | None = None
    rfc: str | None = None


@dataclass(frozen=True)
class EnumValue(DataClassJsonMixin):
    dataclass_json_config = _CAMEL

    name: str
    value: Any
    description: str | None = None


@dataclass(frozen=True)
class TypeDefinition(DataClassJsonMixin):
    """A custom enum or struct type declared alongside the messages."""

    dataclass_json_config = _CAMEL

    name: str
    kind: str
    values: list[EnumValue] = field(default_factory=list)
    fields: list[FieldDefinition] = field(default_factory=list)


@dataclass(frozen=True)
class ErrorHandlingSpec(DataClassJsonMixin):
    """Error policies; retry_delay is in milliseconds."""

    dataclass_json_config = _CAMEL

    on_parse_error: ParseErrorPolicy = ParseErrorPolicy.RETURN
    on_network_error: NetworkErrorPolicy = NetworkErrorPolicy.THROW
    retry_attempts: int | None = None
    retry_delay: int | None = None


@dataclass(frozen=True)
class ProtocolSpec(DataClassJsonMixin):
    """Represents a complete protocol definition."""

    dataclass_json_config = _CAMEL

    protocol: ProtocolMetadata
    connection: ConnectionSpec = field(default_factory=ConnectionSpec)
    message_types: list[MessageType] = field(default_factory=list)
    types: list[TypeDefinition] = field(default_factory=list)
    error_handling: ErrorHandlingSpec = field(default_factory=ErrorHandlingSpec)
